# Database models
from warehouse.models.user import User, UserRole
from warehouse.models.material import Material, MaterialMovement, MovementType, RemainingMaterial
from warehouse.models.product import (
    Product,
    ProductCategory,
    ProductColour,
    ProductMaterial,
    ProductPhoto,
    ProductVariation,
)
from warehouse.models.contact import Contact, ContactNote, ContactType
from warehouse.models.order import Order, OrderProduct, OrderStatus

__all__ = [
    "User",
    "UserRole",
    "Material",
    "MaterialMovement",
    "MovementType",
    "RemainingMaterial",
    "Product",
    "ProductCategory",
    "ProductColour",
    "ProductMaterial",
    "ProductPhoto",
    "ProductVariation",
    "Contact",
    "ContactNote",
    "ContactType",
    "Order",
    "OrderProduct",
    "OrderStatus",
]

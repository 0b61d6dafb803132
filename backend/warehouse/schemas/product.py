# backend/warehouse/schemas/product.py
from datetime import datetime
from typing import Annotated
from pydantic import AfterValidator, Field, computed_field
from warehouse.models.product import ProductCategory
from warehouse.schemas.common import CamelModel, Pagination
from warehouse.schemas.inventory import MovementResponse


def _check_category(v: str | None) -> str | None:
    if v is not None and v not in ProductCategory.all():
        raise ValueError(f"Category must be one of: {', '.join(ProductCategory.all())}")
    return v


Category = Annotated[str, AfterValidator(_check_category)]


class ColourIn(CamelModel):
    color_name: str = Field(..., min_length=1)
    color_code: str | None = None


class VariationIn(CamelModel):
    variation_type: str = Field(..., min_length=1)
    variation_value: str = Field(..., min_length=1)
    price_adjustment: float | None = None


class ProductMaterialIn(CamelModel):
    material_id: int
    quantity: float = Field(..., gt=0)
    unit: str = "pcs"


class ProductMaterialUpdate(CamelModel):
    quantity: float | None = Field(None, gt=0)
    unit: str | None = None


class ProductCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: Category
    material_id: int | None = None
    price: float | None = Field(None, ge=0)
    qty_on_hand: int = Field(0, ge=0)
    unit: str = "pcs"
    description: str | None = None
    default_target: int = Field(0, ge=0)
    colours: list[ColourIn] = []
    variations: list[VariationIn] = []
    materials: list[ProductMaterialIn] = []


class ProductUpdate(CamelModel):
    """Field-level update; stock is changed only through the stock endpoints."""

    name: str | None = Field(None, min_length=1, max_length=255)
    category: Category | None = None
    material_id: int | None = None
    price: float | None = Field(None, ge=0)
    unit: str | None = None
    description: str | None = None
    default_target: int | None = Field(None, ge=0)


class ColourUpdate(CamelModel):
    color_name: str | None = Field(None, min_length=1)
    color_code: str | None = None


class VariationUpdate(CamelModel):
    variation_type: str | None = Field(None, min_length=1)
    variation_value: str | None = Field(None, min_length=1)
    price_adjustment: float | None = None


class ColourResponse(CamelModel):
    id: int
    color_name: str
    color_code: str | None = None


class VariationResponse(CamelModel):
    id: int
    variation_type: str
    variation_value: str
    price_adjustment: float | None = None


class PhotoResponse(CamelModel):
    id: int
    photo_path: str
    thumbnail_path: str | None = None
    original_name: str | None = None
    is_primary: bool
    sort_order: int


class MaterialRef(CamelModel):
    id: int
    name: str
    code: str
    unit: str
    qty_on_hand: float


class ProductMaterialResponse(CamelModel):
    id: int
    material_id: int
    quantity: float
    unit: str
    material: MaterialRef

    @computed_field(alias="isAvailable")
    @property
    def is_available(self) -> bool:
        return self.material.qty_on_hand >= self.quantity

    @computed_field(alias="shortfall")
    @property
    def shortfall(self) -> float:
        return max(0.0, self.quantity - self.material.qty_on_hand)


class ProductResponse(CamelModel):
    id: int
    code: str
    name: str
    description: str | None = None
    category: str
    material_id: int | None = None
    price: float | None = None
    qty_on_hand: int
    unit: str
    default_target: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ProductListItem(ProductResponse):
    base_material: MaterialRef | None = None
    colours: list[ColourResponse] = []
    variations: list[VariationResponse] = []
    photos: list[PhotoResponse] = []


class ProductDetail(ProductListItem):
    product_materials: list[ProductMaterialResponse] = []


class ProductListResponse(CamelModel):
    success: bool = True
    products: list[ProductListItem]
    pagination: Pagination


class ProductDetailResponse(CamelModel):
    success: bool = True
    product: ProductDetail


class ProductWriteResponse(CamelModel):
    success: bool = True
    message: str
    product: ProductDetail


class CategoryListResponse(CamelModel):
    success: bool = True
    categories: list[str]


class PhotoSortItem(CamelModel):
    id: int
    sort_order: int


class PhotoSortRequest(CamelModel):
    photos: list[PhotoSortItem] = Field(..., min_length=1)


class PhotoListResponse(CamelModel):
    success: bool = True
    message: str
    photos: list[PhotoResponse]


class ProductStockInfo(CamelModel):
    id: int
    name: str
    code: str
    previous_stock: int
    new_stock: int
    adjustment: int


class ProductStockResponse(CamelModel):
    success: bool = True
    message: str
    product: ProductStockInfo


class MaterialRequirement(CamelModel):
    material_id: int
    material_name: str
    unit: str
    required_quantity: float
    available_quantity: float
    is_available: bool
    shortfall: float


class AvailabilityResponse(CamelModel):
    success: bool = True
    product_id: int
    production_quantity: int
    can_produce: bool
    max_producible: int
    requirements: list[MaterialRequirement]


class ProductMaterialListResponse(CamelModel):
    success: bool = True
    data: list[ProductMaterialResponse]


class ProductMaterialWriteResponse(CamelModel):
    success: bool = True
    message: str
    data: ProductMaterialResponse


class MovementProduct(CamelModel):
    id: int
    name: str
    code: str
    current_stock: int
    unit: str


class ProductMovementListResponse(CamelModel):
    success: bool = True
    product: MovementProduct
    movements: list[MovementResponse]
    pagination: Pagination


class ReceivedLine(CamelModel):
    product_id: int
    product_name: str
    previous_stock: int
    added_quantity: int
    new_stock: int


class ReceivedOrder(CamelModel):
    id: int
    order_number: str
    status: str


class OrderStockResponse(CamelModel):
    success: bool = True
    message: str
    order: ReceivedOrder
    stock_updates: list[ReceivedLine]


class ColourListResponse(CamelModel):
    success: bool = True
    data: list[ColourResponse]


class ColourWriteResponse(CamelModel):
    success: bool = True
    message: str
    data: ColourResponse


class VariationListResponse(CamelModel):
    success: bool = True
    data: list[VariationResponse]


class VariationWriteResponse(CamelModel):
    success: bool = True
    message: str
    data: VariationResponse

"""Repository for products, their photos, colours, variations and bills of materials."""

import logging
import math
from typing import Any, List, Optional
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from warehouse.core.exceptions import ConflictError, NotFoundError, ValidationError
from warehouse.models import (
    Material,
    MaterialMovement,
    Order,
    OrderProduct,
    Product,
    ProductColour,
    ProductMaterial,
    ProductPhoto,
    ProductVariation,
)
from warehouse.schemas.product import (
    ColourIn,
    ColourUpdate,
    PhotoSortItem,
    ProductCreate,
    ProductMaterialIn,
    ProductMaterialUpdate,
    VariationIn,
    VariationUpdate,
)
from warehouse.services.code_generator import generate_product_code
from warehouse.services.photo_storage import StoredPhoto

logger = logging.getLogger(__name__)

SORTABLE = {
    "name": Product.name,
    "code": Product.code,
    "category": Product.category,
    "price": Product.price,
    "qtyOnHand": Product.qty_on_hand,
    "createdAt": Product.created_at,
    "updatedAt": Product.updated_at,
}

_DETAIL = (
    selectinload(Product.base_material),
    selectinload(Product.colours),
    selectinload(Product.variations),
    selectinload(Product.photos),
    selectinload(Product.product_materials).selectinload(ProductMaterial.material),
)


class ProductRepository:
    """Repository for Product CRUD.

    Stock is changed only through InventoryLedger; ``qty_on_hand`` is set
    here only as the opening balance on create.
    """

    def __init__(self, session: AsyncSession):
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def get_detail(self, product_id: int, active_only: bool = True) -> Product:
        """Load a product with colours, variations, photos and materials.

        Raises:
            NotFoundError: Unknown (or inactive, when active_only) product
        """
        query = (
            select(Product)
            .options(*_DETAIL)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        if active_only:
            query = query.where(Product.is_active == True)  # noqa: E712
        product = (await self.session.execute(query)).scalar_one_or_none()
        if product is None:
            raise NotFoundError("Product not found")
        return product

    async def list_filtered(
        self,
        page: int = 1,
        limit: int = 50,
        search: Optional[str] = None,
        category: Optional[str] = None,
        is_active: str = "true",
        sort_by: str = "name",
        sort_order: str = "asc",
    ) -> tuple[List[Product], int]:
        """List products with filtering, sorting and pagination.

        Args:
            is_active: "true", "false" or "all"

        Returns:
            (products, total count)
        """
        column = SORTABLE.get(sort_by)
        if column is None:
            raise ValidationError(f"Cannot sort by '{sort_by}'")

        query = select(Product)
        if is_active != "all":
            query = query.where(Product.is_active == (is_active == "true"))
        if category and category != "all":
            query = query.where(Product.category == category)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    Product.name.ilike(pattern),
                    Product.code.ilike(pattern),
                    Product.description.ilike(pattern),
                )
            )

        total = await self.session.scalar(select(func.count()).select_from(query.subquery()))
        order = column.desc() if sort_order.lower() == "desc" else column.asc()
        result = await self.session.execute(
            query.options(*_DETAIL[:4])
            .order_by(order, Product.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def categories(self) -> List[str]:
        result = await self.session.execute(
            select(Product.category)
            .where(Product.is_active == True)  # noqa: E712
            .distinct()
            .order_by(Product.category)
        )
        return [c for c in result.scalars() if c and c.strip()]

    async def _check_base_material(self, material_id: Optional[int]) -> None:
        if material_id is None:
            return
        material = await self.session.get(Material, material_id)
        if material is None or not material.is_active:
            raise ValidationError("Invalid base material")

    async def _require_material(self, material_id: int) -> Material:
        material = await self.session.get(Material, material_id)
        if material is None or not material.is_active:
            raise NotFoundError("Material not found")
        return material

    async def create(self, data: ProductCreate) -> Product:
        """Create a product with a generated code and optional children."""
        await self._check_base_material(data.material_id)
        for requirement in data.materials:
            await self._require_material(requirement.material_id)
        if len({r.material_id for r in data.materials}) != len(data.materials):
            raise ValidationError("Each material may only be listed once")

        product = Product(
            code=await generate_product_code(self.session, data.category),
            **data.model_dump(exclude={"colours", "variations", "materials"}),
        )
        product.colours = [ProductColour(**c.model_dump()) for c in data.colours]
        product.variations = [ProductVariation(**v.model_dump()) for v in data.variations]
        product.product_materials = [ProductMaterial(**m.model_dump()) for m in data.materials]
        self.session.add(product)
        await self.session.commit()
        logger.info(f"Created product {product.code} ({product.name})")
        return await self.get_detail(product.id)

    async def update(self, product_id: int, changes: dict[str, Any]) -> Product:
        """Apply field-level changes; ``qty_on_hand`` is never accepted."""
        changes.pop("qty_on_hand", None)
        product = await self.get_detail(product_id)
        if "material_id" in changes:
            await self._check_base_material(changes["material_id"])
        for key, value in changes.items():
            if value is None and not Product.__table__.c[key].nullable:
                continue
            setattr(product, key, value)
        await self.session.commit()
        return await self.get_detail(product_id)

    async def delete(self, product_id: int) -> tuple[bool, List[str]]:
        """Delete a product.

        Products referenced by an active order cannot be deleted. Products
        with order history or stock movements are deactivated; the rest are
        removed together with their children.

        Returns:
            (hard_deleted, photo paths to remove once committed)

        Raises:
            NotFoundError: Unknown or already inactive product
            ConflictError: An active order uses the product
        """
        product = await self.get_detail(product_id)

        active_refs = await self.session.scalar(
            select(func.count(OrderProduct.id))
            .join(Order, Order.id == OrderProduct.order_id)
            .where(OrderProduct.product_id == product_id, Order.is_active == True)  # noqa: E712
        )
        if active_refs:
            raise ConflictError("Cannot delete product as it is used in existing orders")

        any_refs = await self.session.scalar(
            select(func.count(OrderProduct.id)).where(OrderProduct.product_id == product_id)
        )
        movements = await self.session.scalar(
            select(func.count(MaterialMovement.id)).where(MaterialMovement.product_id == product_id)
        )

        if any_refs or movements:
            product.is_active = False
            await self.session.commit()
            logger.info(f"Deactivated product {product.code}")
            return False, []

        photo_paths = [p.photo_path for p in product.photos]
        await self.session.delete(product)
        await self.session.commit()
        logger.info(f"Deleted product {product.code}")
        return True, photo_paths

    # Photos

    async def add_photos(self, product_id: int, stored: List[StoredPhoto]) -> List[ProductPhoto]:
        product = await self.get_detail(product_id)
        next_order = max((p.sort_order for p in product.photos), default=-1) + 1
        has_primary = any(p.is_primary for p in product.photos)
        for offset, photo in enumerate(stored):
            product.photos.append(
                ProductPhoto(
                    photo_path=photo.photo_path,
                    original_name=photo.original_name,
                    sort_order=next_order + offset,
                    is_primary=not has_primary and offset == 0,
                )
            )
        await self.session.commit()
        return (await self.get_detail(product_id)).photos

    async def sort_photos(self, product_id: int, items: List[PhotoSortItem]) -> List[ProductPhoto]:
        product = await self.get_detail(product_id)
        photos = {p.id: p for p in product.photos}
        for item in items:
            if item.id not in photos:
                raise NotFoundError(f"Photo {item.id} not found")
            photos[item.id].sort_order = item.sort_order
        await self.session.commit()
        return (await self.get_detail(product_id)).photos

    async def set_primary_photo(self, product_id: int, photo_id: int) -> List[ProductPhoto]:
        product = await self.get_detail(product_id)
        if photo_id not in {p.id for p in product.photos}:
            raise NotFoundError("Photo not found")
        for photo in product.photos:
            photo.is_primary = photo.id == photo_id
        await self.session.commit()
        return (await self.get_detail(product_id)).photos

    async def delete_photo(self, product_id: int, photo_id: int) -> str:
        """Remove a photo row and return its path for file cleanup."""
        product = await self.get_detail(product_id)
        photo = next((p for p in product.photos if p.id == photo_id), None)
        if photo is None:
            raise NotFoundError("Photo not found")
        product.photos.remove(photo)
        if photo.is_primary and product.photos:
            product.photos[0].is_primary = True
        await self.session.commit()
        return photo.photo_path

    # Colours and variations

    async def list_colours(self, product_id: int) -> List[ProductColour]:
        await self.get_detail(product_id)
        result = await self.session.execute(
            select(ProductColour)
            .where(ProductColour.product_id == product_id)
            .order_by(ProductColour.color_name, ProductColour.id)
        )
        return list(result.scalars().all())

    async def get_colour(self, product_id: int, colour_id: int) -> ProductColour:
        colour = await self.session.get(ProductColour, colour_id, populate_existing=True)
        if colour is None or colour.product_id != product_id:
            raise NotFoundError("Product colour not found")
        return colour

    async def _check_colour_name(self, product_id: int, name: str, exclude_id: Optional[int] = None) -> None:
        query = select(ProductColour.id).where(
            ProductColour.product_id == product_id,
            func.lower(ProductColour.color_name) == name.lower(),
        )
        if exclude_id is not None:
            query = query.where(ProductColour.id != exclude_id)
        if await self.session.scalar(query) is not None:
            raise ConflictError("Color name already exists for this product")

    async def add_colour(self, product_id: int, data: ColourIn) -> ProductColour:
        await self.get_detail(product_id)
        await self._check_colour_name(product_id, data.color_name)
        colour = ProductColour(product_id=product_id, **data.model_dump())
        self.session.add(colour)
        await self.session.commit()
        return await self.get_colour(product_id, colour.id)

    async def update_colour(self, product_id: int, colour_id: int, data: ColourUpdate) -> ProductColour:
        colour = await self.get_colour(product_id, colour_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("color_name"):
            await self._check_colour_name(product_id, changes["color_name"], exclude_id=colour_id)
        for key, value in changes.items():
            if value is None and not ProductColour.__table__.c[key].nullable:
                continue
            setattr(colour, key, value)
        await self.session.commit()
        return await self.get_colour(product_id, colour_id)

    async def delete_colour(self, product_id: int, colour_id: int) -> None:
        colour = await self.get_colour(product_id, colour_id)
        await self.session.delete(colour)
        await self.session.commit()

    async def list_variations(self, product_id: int) -> List[ProductVariation]:
        await self.get_detail(product_id)
        result = await self.session.execute(
            select(ProductVariation)
            .where(ProductVariation.product_id == product_id)
            .order_by(ProductVariation.variation_type, ProductVariation.variation_value, ProductVariation.id)
        )
        return list(result.scalars().all())

    async def get_variation(self, product_id: int, variation_id: int) -> ProductVariation:
        variation = await self.session.get(ProductVariation, variation_id, populate_existing=True)
        if variation is None or variation.product_id != product_id:
            raise NotFoundError("Product variation not found")
        return variation

    async def _check_variation(
        self, product_id: int, variation_type: str, value: str, exclude_id: Optional[int] = None
    ) -> None:
        query = select(ProductVariation.id).where(
            ProductVariation.product_id == product_id,
            func.lower(ProductVariation.variation_type) == variation_type.lower(),
            func.lower(ProductVariation.variation_value) == value.lower(),
        )
        if exclude_id is not None:
            query = query.where(ProductVariation.id != exclude_id)
        if await self.session.scalar(query) is not None:
            raise ConflictError(f"{variation_type} '{value}' already exists for this product")

    async def add_variation(self, product_id: int, data: VariationIn) -> ProductVariation:
        await self.get_detail(product_id)
        await self._check_variation(product_id, data.variation_type, data.variation_value)
        variation = ProductVariation(product_id=product_id, **data.model_dump())
        self.session.add(variation)
        await self.session.commit()
        return await self.get_variation(product_id, variation.id)

    async def update_variation(
        self, product_id: int, variation_id: int, data: VariationUpdate
    ) -> ProductVariation:
        variation = await self.get_variation(product_id, variation_id)
        changes = data.model_dump(exclude_unset=True)
        for key, value in list(changes.items()):
            if value is None and not ProductVariation.__table__.c[key].nullable:
                del changes[key]
        if "variation_type" in changes or "variation_value" in changes:
            await self._check_variation(
                product_id,
                changes.get("variation_type", variation.variation_type),
                changes.get("variation_value", variation.variation_value),
                exclude_id=variation_id,
            )
        for key, value in changes.items():
            setattr(variation, key, value)
        await self.session.commit()
        return await self.get_variation(product_id, variation_id)

    async def delete_variation(self, product_id: int, variation_id: int) -> None:
        variation = await self.get_variation(product_id, variation_id)
        await self.session.delete(variation)
        await self.session.commit()

    # Bill of materials

    async def list_materials(self, product_id: int) -> List[ProductMaterial]:
        return (await self.get_detail(product_id)).product_materials

    async def _get_requirement(self, product_id: int, material_id: int) -> ProductMaterial:
        result = await self.session.execute(
            select(ProductMaterial)
            .options(selectinload(ProductMaterial.material))
            .where(ProductMaterial.product_id == product_id, ProductMaterial.material_id == material_id)
            .execution_options(populate_existing=True)
        )
        requirement = result.scalar_one_or_none()
        if requirement is None:
            raise NotFoundError("Product material relationship not found")
        return requirement

    async def add_material(self, product_id: int, data: ProductMaterialIn) -> ProductMaterial:
        await self.get_detail(product_id)
        await self._require_material(data.material_id)
        existing = await self.session.scalar(
            select(ProductMaterial.id).where(
                ProductMaterial.product_id == product_id,
                ProductMaterial.material_id == data.material_id,
            )
        )
        if existing is not None:
            raise ConflictError("Material is already associated with this product")
        self.session.add(ProductMaterial(product_id=product_id, **data.model_dump()))
        await self.session.commit()
        return await self._get_requirement(product_id, data.material_id)

    async def update_material(
        self, product_id: int, material_id: int, data: ProductMaterialUpdate
    ) -> ProductMaterial:
        requirement = await self._get_requirement(product_id, material_id)
        for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(requirement, key, value)
        await self.session.commit()
        return await self._get_requirement(product_id, material_id)

    async def remove_material(self, product_id: int, material_id: int) -> None:
        requirement = await self._get_requirement(product_id, material_id)
        await self.session.delete(requirement)
        await self.session.commit()

    async def availability(self, product_id: int, quantity: int = 1) -> dict:
        """Whether current material stock covers ``quantity`` units.

        ``max_producible`` is the smallest ``floor(on_hand / per_unit)``
        across the bill of materials, 0 when the product has none.
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        product = await self.get_detail(product_id)
        requirements = []
        for pm in product.product_materials:
            required = pm.quantity * quantity
            available = pm.material.qty_on_hand
            requirements.append({
                "material_id": pm.material_id,
                "material_name": pm.material.name,
                "unit": pm.unit,
                "required_quantity": required,
                "available_quantity": available,
                "is_available": available >= required,
                "shortfall": max(0.0, required - available),
            })
        max_producible = min(
            (math.floor(pm.material.qty_on_hand / pm.quantity) for pm in product.product_materials),
            default=0,
        )
        return {
            "product_id": product.id,
            "production_quantity": quantity,
            "can_produce": all(r["is_available"] for r in requirements),
            "max_producible": max_producible,
            "requirements": requirements,
        }

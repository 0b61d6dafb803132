"""Repository for material records outside the stock ledger."""

import logging
from typing import Any, List, Optional
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from warehouse.core.exceptions import ConflictError, NotFoundError, ValidationError
from warehouse.models import Material, MaterialMovement, Product, ProductMaterial, RemainingMaterial
from warehouse.schemas.material import MaterialBulkItem, MaterialCreate
from warehouse.services.code_generator import generate_material_code

logger = logging.getLogger(__name__)

SORTABLE = {
    "name": Material.name,
    "code": Material.code,
    "qtyOnHand": Material.qty_on_hand,
    "minStock": Material.min_stock,
    "pricePerUnit": Material.price_per_unit,
    "attributeType": Material.attribute_type,
    "createdAt": Material.created_at,
    "updatedAt": Material.updated_at,
}

EXPORT_HEADER = [
    "ID", "Name", "Description", "Code", "Attribute Type", "Attribute Value", "Unit",
    "Qty On Hand", "Min Stock", "Max Stock", "Reorder Point", "Reorder Qty", "Location", "Created At",
]


def restock_recommendation(material: Material) -> dict:
    """Suggest an action from the current balance and thresholds."""
    current = material.qty_on_hand
    if current == 0:
        return {
            "action": "urgent_restock",
            "priority": "critical",
            "reason": "Material is completely out of stock",
            "recommended_quantity": material.reorder_qty or material.min_stock or 50,
        }
    if current <= material.reorder_point:
        return {
            "action": "restock_needed",
            "priority": "high",
            "reason": f"Stock is at or below reorder point ({material.reorder_point:g})",
            "recommended_quantity": material.reorder_qty or (material.min_stock * 2) or 100,
        }
    if current <= material.min_stock:
        return {
            "action": "monitor_stock",
            "priority": "medium",
            "reason": f"Stock is below minimum level ({material.min_stock:g})",
            "recommended_quantity": material.reorder_qty or material.min_stock or 25,
        }
    return {
        "action": "adequate_stock",
        "priority": "low",
        "reason": "Stock levels are adequate",
        "recommended_quantity": 0,
    }


class MaterialRepository:
    """Repository for Material CRUD, reporting and import/export.

    Quantity changes after creation go through InventoryLedger; nothing here
    writes ``qty_on_hand`` on an existing material.
    """

    def __init__(self, session: AsyncSession):
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def get_by_id(self, material_id: int) -> Material:
        """Get a material by ID.

        Raises:
            NotFoundError: No material with this ID
        """
        material = await self.session.get(Material, material_id)
        if material is None:
            raise NotFoundError("Material not found")
        return material

    async def list_filtered(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        category: Optional[str] = None,
        sort_by: str = "name",
        sort_order: str = "asc",
    ) -> tuple[List[Material], int, dict[int, tuple[bool, bool]]]:
        """List materials with filtering, sorting and pagination.

        Args:
            page: 1-based page number
            limit: Page size
            search: Matched against name, code, description and attributes
            category: Matched against attribute_type
            sort_by: camelCase field name from SORTABLE
            sort_order: "asc" or "desc"

        Returns:
            (materials, total count, {id: (has_movements, has_remaining)})
        """
        column = SORTABLE.get(sort_by)
        if column is None:
            raise ValidationError(f"Cannot sort by '{sort_by}'")

        query = select(Material)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    Material.name.ilike(pattern),
                    Material.code.ilike(pattern),
                    Material.description.ilike(pattern),
                    Material.attribute_type.ilike(pattern),
                    Material.attribute_value.ilike(pattern),
                )
            )
        if category:
            query = query.where(Material.attribute_type.ilike(f"%{category}%"))

        total = await self.session.scalar(select(func.count()).select_from(query.subquery()))

        order = column.desc() if sort_order.lower() == "desc" else column.asc()
        result = await self.session.execute(
            query.order_by(order, Material.id).offset((page - 1) * limit).limit(limit)
        )
        materials = list(result.scalars().all())
        return materials, total or 0, await self.dependency_flags([m.id for m in materials])

    async def dependency_flags(self, material_ids: List[int]) -> dict[int, tuple[bool, bool]]:
        """Which materials have movements or remaining-material rows."""
        if not material_ids:
            return {}
        moved = set(
            (
                await self.session.execute(
                    select(MaterialMovement.material_id)
                    .where(MaterialMovement.material_id.in_(material_ids))
                    .distinct()
                )
            ).scalars()
        )
        remaining = set(
            (
                await self.session.execute(
                    select(RemainingMaterial.material_id)
                    .where(RemainingMaterial.material_id.in_(material_ids))
                    .distinct()
                )
            ).scalars()
        )
        return {mid: (mid in moved, mid in remaining) for mid in material_ids}

    async def recent_movements(self, material_id: int, limit: int = 10) -> List[MaterialMovement]:
        result = await self.session.execute(
            select(MaterialMovement)
            .options(selectinload(MaterialMovement.user))
            .where(MaterialMovement.material_id == material_id)
            .order_by(MaterialMovement.created_at.desc(), MaterialMovement.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def create(self, data: MaterialCreate) -> Material:
        """Create a material with a generated code.

        The code's source segment is the supplier, or the name when no
        supplier is given.
        """
        code = await generate_material_code(self.session, data.supplier or data.name)
        material = Material(code=code, **data.model_dump())
        self.session.add(material)
        await self.session.commit()
        await self.session.refresh(material)
        logger.info(f"Created material {material.code} ({material.name})")
        return material

    async def update(self, material_id: int, changes: dict[str, Any]) -> Material:
        """Apply field-level changes; ``qty_on_hand`` is never accepted."""
        changes.pop("qty_on_hand", None)
        material = await self.get_by_id(material_id)
        for key, value in changes.items():
            if value is None and not Material.__table__.c[key].nullable:
                continue
            setattr(material, key, value)
        await self.session.commit()
        await self.session.refresh(material)
        return material

    async def delete(self, material_id: int) -> None:
        """Delete a material that has no ledger or remaining-material history.

        Raises:
            NotFoundError: Unknown material
            ConflictError: Movements or remaining-material rows exist
        """
        material = await self.get_by_id(material_id)
        has_movements, has_remaining = (await self.dependency_flags([material_id]))[material_id]
        if has_movements or has_remaining:
            raise ConflictError(
                "Cannot delete material with existing movements or remaining material records"
            )
        await self.session.delete(material)
        await self.session.commit()
        logger.info(f"Deleted material {material.code}")

    async def list_by_category(self, category: str) -> List[Material]:
        result = await self.session.execute(
            select(Material)
            .where(Material.attribute_type.ilike(f"%{category}%"))
            .order_by(Material.name)
        )
        return list(result.scalars().all())

    async def bulk_update(self, items: List[MaterialBulkItem]) -> tuple[List[Material], List[dict]]:
        """Update several materials; a missing ID is reported, not fatal."""
        results, errors = [], []
        for item in items:
            try:
                material = await self.update(item.id, item.model_dump(exclude={"id"}, exclude_unset=True))
            except NotFoundError as e:
                errors.append({"material": item.model_dump(by_alias=True, exclude_unset=True), "error": e.message})
                continue
            results.append(material)
        return results, errors

    async def import_rows(self, rows: List[dict]) -> tuple[List[Material], List[dict]]:
        """Create materials from raw rows, collecting per-row errors."""
        results, errors = [], []
        for row in rows:
            try:
                data = MaterialCreate.model_validate(row)
            except SchemaValidationError as e:
                errors.append({"material": row, "error": "; ".join(err["msg"] for err in e.errors())})
                continue
            try:
                results.append(await self.create(data))
            except RuntimeError as e:
                await self.session.rollback()
                errors.append({"material": row, "error": str(e)})
        logger.info(f"Imported {len(results)} materials, {len(errors)} rejected")
        return results, errors

    async def export_rows(self) -> List[list]:
        """CSV rows (header first) for every material ordered by name."""
        result = await self.session.execute(select(Material).order_by(Material.name))
        rows = [EXPORT_HEADER]
        for m in result.scalars():
            rows.append([
                m.id, m.name, m.description or "", m.code, m.attribute_type or "",
                m.attribute_value or "", m.unit, m.qty_on_hand, m.min_stock, m.max_stock,
                m.reorder_point, m.reorder_qty, m.location or "", m.created_at.isoformat(),
            ])
        return rows

    async def analytics(self) -> dict:
        """Inventory overview, per-type counts, top values and latest movements."""
        value = Material.qty_on_hand * Material.price_per_unit
        total_materials = await self.session.scalar(select(func.count(Material.id))) or 0
        total_value = await self.session.scalar(select(func.coalesce(func.sum(value), 0)))
        critical = await self.session.scalar(
            select(func.count(Material.id)).where(Material.qty_on_hand <= Material.min_stock)
        ) or 0

        by_type = (
            await self.session.execute(
                select(Material.attribute_type, func.count(Material.id))
                .where(Material.attribute_type.is_not(None))
                .group_by(Material.attribute_type)
                .order_by(Material.attribute_type)
            )
        ).all()

        top = (
            await self.session.execute(select(Material).order_by(value.desc(), Material.id).limit(10))
        ).scalars().all()

        recent = (
            await self.session.execute(
                select(MaterialMovement)
                .options(selectinload(MaterialMovement.material), selectinload(MaterialMovement.user))
                .where(MaterialMovement.material_id.is_not(None))
                .order_by(MaterialMovement.created_at.desc(), MaterialMovement.id.desc())
                .limit(10)
            )
        ).scalars().all()

        return {
            "overview": {
                "total_materials": total_materials,
                "total_value": float(total_value or 0),
                "critical_stock_count": critical,
                "attribute_types": len(by_type),
            },
            "materials_by_attribute": [{"name": name, "count": count} for name, count in by_type],
            "top_value_materials": list(top),
            "recent_movements": list(recent),
        }

    async def products_using(self, material_id: int) -> tuple[Material, List[ProductMaterial]]:
        """Active products whose bill of materials includes this material."""
        material = await self.get_by_id(material_id)
        result = await self.session.execute(
            select(ProductMaterial)
            .join(Product, Product.id == ProductMaterial.product_id)
            .options(selectinload(ProductMaterial.product))
            .where(ProductMaterial.material_id == material_id, Product.is_active == True)  # noqa: E712
            .order_by(Product.name)
        )
        return material, list(result.scalars().all())

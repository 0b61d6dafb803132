# backend/warehouse/api/materials.py
import csv
import io
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from warehouse.api.deps import get_cache, get_current_user
from warehouse.core.cache import MATERIALS, LookupCache
from warehouse.core.database import get_db
from warehouse.models.user import User
from warehouse.repositories.material_repository import MaterialRepository, restock_recommendation
from warehouse.schemas.common import MessageResponse, Pagination
from warehouse.schemas.inventory import (
    AdjustmentInfo,
    MovementListResponse,
    MovementResponse,
    StockAdjustRequest,
    StockSetRequest,
)
from warehouse.schemas.material import (
    BatchResult,
    InventoryAnalytics,
    MaterialAdjustResponse,
    MaterialBulkUpdateRequest,
    MaterialCollectionResponse,
    MaterialCreate,
    MaterialDetailResponse,
    MaterialImportRequest,
    MaterialListResponse,
    MaterialResponse,
    MaterialStockResponse,
    MaterialUpdate,
    MaterialWriteResponse,
    ProductsUsingMaterialResponse,
    ProductUsingMaterial,
)
from warehouse.services.inventory_ledger import InventoryLedger, StockKind

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/materials-management", tags=["materials"])


def _dump(model) -> dict:
    return model.model_dump(by_alias=True, mode="json")


@router.get("", response_model=MaterialListResponse)
async def list_materials(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    search: Optional[str] = None,
    category: Optional[str] = None,
    sort_by: str = Query("name", alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    key = f"{MATERIALS}:list:{page}:{limit}:{search or ''}:{category or ''}:{sort_by}:{sort_order}"
    cached = cache.get(key)
    if cached is not None:
        return cached

    materials, total, flags = await MaterialRepository(db).list_filtered(
        page, limit, search, category, sort_by, sort_order
    )
    items = []
    for m in materials:
        has_movements, has_remaining = flags[m.id]
        items.append({
            **MaterialResponse.model_validate(m).model_dump(),
            "has_movements": has_movements,
            "has_remaining_materials": has_remaining,
            "can_delete": not (has_movements or has_remaining),
        })
    payload = _dump(
        MaterialListResponse(data={"materials": items, "pagination": Pagination.build(page, limit, total)})
    )
    cache.set(key, payload)
    return payload


@router.get("/critical-stock", response_model=MaterialCollectionResponse)
async def critical_stock(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    key = f"{MATERIALS}:critical"
    cached = cache.get(key)
    if cached is not None:
        return cached

    materials = await InventoryLedger(db).critical_stock()
    payload = _dump(MaterialCollectionResponse(data=[MaterialResponse.model_validate(m) for m in materials]))
    cache.set(key, payload)
    return payload


@router.get("/export")
async def export_materials(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    buffer = io.StringIO()
    csv.writer(buffer).writerows(await MaterialRepository(db).export_rows())
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=materials-export.csv"},
    )


@router.get("/analytics/inventory", response_model=InventoryAnalytics)
async def inventory_analytics(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    key = f"{MATERIALS}:analytics"
    cached = cache.get(key)
    if cached is not None:
        return cached

    payload = _dump(InventoryAnalytics.model_validate(await MaterialRepository(db).analytics()))
    cache.set(key, payload)
    return payload


@router.get("/category/{category}", response_model=MaterialCollectionResponse)
async def materials_by_category(
    category: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    key = f"{MATERIALS}:category:{category.lower()}"
    cached = cache.get(key)
    if cached is not None:
        return cached

    materials = await MaterialRepository(db).list_by_category(category)
    payload = _dump(MaterialCollectionResponse(data=[MaterialResponse.model_validate(m) for m in materials]))
    cache.set(key, payload)
    return payload


@router.put("/bulk/update", response_model=BatchResult)
async def bulk_update(
    req: MaterialBulkUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    results, errors = await MaterialRepository(db).bulk_update(req.materials)
    cache.invalidate_materials()
    return BatchResult(
        message=f"Bulk update completed. {len(results)} successful, {len(errors)} failed.",
        results=[MaterialResponse.model_validate(m) for m in results],
        errors=errors,
    )


@router.post("/import", response_model=BatchResult)
async def import_materials(
    req: MaterialImportRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    results, errors = await MaterialRepository(db).import_rows(req.materials)
    cache.invalidate_materials()
    return BatchResult(
        message=f"Import completed. {len(results)} successful, {len(errors)} failed.",
        results=[MaterialResponse.model_validate(m) for m in results],
        errors=errors,
    )


@router.post("", response_model=MaterialWriteResponse, status_code=status.HTTP_201_CREATED)
async def create_material(
    req: MaterialCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    material = await MaterialRepository(db).create(req)
    cache.invalidate_materials()
    return MaterialWriteResponse(
        message="Material created successfully", data=MaterialResponse.model_validate(material)
    )


@router.get("/{material_id}", response_model=MaterialDetailResponse)
async def get_material(
    material_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    key = f"{MATERIALS}:detail:{material_id}"
    cached = cache.get(key)
    if cached is not None:
        return cached

    repo = MaterialRepository(db)
    material = await repo.get_by_id(material_id)
    movements = await repo.recent_movements(material_id)
    detail = {
        **MaterialResponse.model_validate(material).model_dump(),
        "recent_movements": [MovementResponse.model_validate(m) for m in movements],
        "restock_recommendation": restock_recommendation(material),
    }
    payload = _dump(MaterialDetailResponse(data=detail))
    cache.set(key, payload)
    return payload


@router.put("/{material_id}", response_model=MaterialWriteResponse)
async def update_material(
    material_id: int,
    req: MaterialUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    material = await MaterialRepository(db).update(material_id, req.model_dump(exclude_unset=True))
    cache.invalidate_materials()
    return MaterialWriteResponse(
        message="Material updated successfully", data=MaterialResponse.model_validate(material)
    )


@router.delete("/{material_id}", response_model=MessageResponse)
async def delete_material(
    material_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    await MaterialRepository(db).delete(material_id)
    cache.invalidate_materials()
    return MessageResponse(message="Material deleted successfully")


@router.post("/{material_id}/adjust", response_model=MaterialAdjustResponse)
async def adjust_stock(
    material_id: int,
    req: StockAdjustRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    """Add or remove stock; OUT below zero is rejected."""
    result = await InventoryLedger(db).adjust(
        StockKind.MATERIAL, material_id, req.type, req.quantity, req.reason, req.user_id
    )
    cache.invalidate_materials()
    return MaterialAdjustResponse(
        message="Stock adjusted successfully",
        material=MaterialResponse.model_validate(result.entity),
        previous_quantity=result.previous_quantity,
        new_quantity=result.new_quantity,
        adjustment=AdjustmentInfo(type=req.type, quantity=req.quantity),
    )


@router.put("/{material_id}/stock", response_model=MaterialStockResponse)
async def set_stock(
    material_id: int,
    req: StockSetRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    """Set stock to an absolute level; an unchanged level records nothing."""
    result = await InventoryLedger(db).set_level(
        StockKind.MATERIAL, material_id, req.quantity, req.reason, req.user_id
    )
    if result.movement is not None:
        cache.invalidate_materials()
    return MaterialStockResponse(
        message="Stock level updated successfully" if result.movement else "Stock level unchanged",
        material=MaterialResponse.model_validate(result.entity),
        previous_quantity=result.previous_quantity,
        new_quantity=result.new_quantity,
        quantity_difference=result.difference,
    )


@router.get("/{material_id}/movements", response_model=MovementListResponse)
async def list_movements(
    material_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    movements, total = await InventoryLedger(db).history(StockKind.MATERIAL, material_id, page, limit)
    return MovementListResponse(
        movements=[MovementResponse.model_validate(m) for m in movements],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{material_id}/products", response_model=ProductsUsingMaterialResponse)
async def products_using_material(
    material_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    material, requirements = await MaterialRepository(db).products_using(material_id)
    return ProductsUsingMaterialResponse(
        material=MaterialResponse.model_validate(material),
        products=[
            ProductUsingMaterial(
                product_id=pm.product.id,
                product_name=pm.product.name,
                product_code=pm.product.code,
                quantity_per_unit=pm.quantity,
                unit=pm.unit,
                max_producible=int(material.qty_on_hand // pm.quantity),
            )
            for pm in requirements
        ],
    )

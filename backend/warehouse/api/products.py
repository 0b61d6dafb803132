# backend/warehouse/api/products.py
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession
from warehouse.api.deps import get_cache, get_current_user, get_photo_storage, require_admin
from warehouse.core.cache import PRODUCTS, LookupCache
from warehouse.core.database import get_db
from warehouse.models import MovementType, Product
from warehouse.models.user import User
from warehouse.repositories.product_repository import ProductRepository
from warehouse.schemas.common import MessageResponse, Pagination
from warehouse.schemas.inventory import (
    CompleteOrderStockRequest,
    MovementResponse,
    ProductStockAdjustRequest,
    StockSetRequest,
)
from warehouse.schemas.product import (
    AvailabilityResponse,
    CategoryListResponse,
    ColourIn,
    ColourListResponse,
    ColourResponse,
    ColourUpdate,
    ColourWriteResponse,
    MovementProduct,
    OrderStockResponse,
    PhotoListResponse,
    PhotoResponse,
    PhotoSortRequest,
    ProductCreate,
    ProductDetail,
    ProductDetailResponse,
    ProductListItem,
    ProductListResponse,
    ProductMaterialIn,
    ProductMaterialListResponse,
    ProductMaterialResponse,
    ProductMaterialUpdate,
    ProductMaterialWriteResponse,
    ProductMovementListResponse,
    ProductStockInfo,
    ProductStockResponse,
    ProductUpdate,
    ReceivedLine,
    ReceivedOrder,
    VariationIn,
    VariationListResponse,
    VariationResponse,
    VariationUpdate,
    VariationWriteResponse,
)
from warehouse.services.inventory_ledger import InventoryLedger, LedgerResult, StockKind
from warehouse.services.photo_storage import PhotoStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])


def _stock_info(product: Product, result: LedgerResult) -> ProductStockInfo:
    return ProductStockInfo(
        id=product.id,
        name=product.name,
        code=product.code,
        previous_stock=int(result.previous_quantity),
        new_stock=int(result.new_quantity),
        adjustment=int(result.difference),
    )


@router.get("", response_model=ProductListResponse)
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    search: Optional[str] = None,
    category: Optional[str] = None,
    is_active: str = Query("true", alias="isActive", pattern="^(true|false|all)$"),
    sort_by: str = Query("name", alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    key = f"{PRODUCTS}:list:{page}:{limit}:{search or ''}:{category or ''}:{is_active}:{sort_by}:{sort_order}"
    cached = cache.get(key)
    if cached is not None:
        return cached

    products, total = await ProductRepository(db).list_filtered(
        page, limit, search, category, is_active, sort_by, sort_order
    )
    payload = ProductListResponse(
        products=[ProductListItem.model_validate(p) for p in products],
        pagination=Pagination.build(page, limit, total),
    ).model_dump(by_alias=True, mode="json")
    cache.set(key, payload)
    return payload


@router.get("/categories", response_model=CategoryListResponse)
async def list_categories(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return CategoryListResponse(categories=await ProductRepository(db).categories())


@router.post("/stock/complete-order", response_model=OrderStockResponse)
async def complete_order_stock(
    req: CompleteOrderStockRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    """Book a completed order's finished quantities into product stock."""
    receipt = await InventoryLedger(db).receive_order(req.order_id, req.user_id)
    cache.invalidate_products()
    return OrderStockResponse(
        message="Product stock updated successfully",
        order=ReceivedOrder.model_validate(receipt.order),
        stock_updates=[
            ReceivedLine(
                product_id=u.entity.id,
                product_name=u.entity.name,
                previous_stock=int(u.previous_quantity),
                added_quantity=int(u.difference),
                new_stock=int(u.new_quantity),
            )
            for u in receipt.updates
        ],
    )


@router.post("", response_model=ProductDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    req: ProductCreate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    product = await ProductRepository(db).create(req)
    cache.invalidate_products()
    return ProductDetailResponse(product=ProductDetail.model_validate(product))


@router.get("/{product_id}", response_model=ProductDetailResponse)
async def get_product(
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    key = f"{PRODUCTS}:detail:{product_id}"
    cached = cache.get(key)
    if cached is not None:
        return cached

    product = await ProductRepository(db).get_detail(product_id)
    payload = ProductDetailResponse(product=ProductDetail.model_validate(product)).model_dump(
        by_alias=True, mode="json"
    )
    cache.set(key, payload)
    return payload


@router.put("/{product_id}", response_model=ProductDetailResponse)
async def update_product(
    product_id: int,
    req: ProductUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    product = await ProductRepository(db).update(product_id, req.model_dump(exclude_unset=True))
    cache.invalidate_products()
    return ProductDetailResponse(product=ProductDetail.model_validate(product))


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
    storage: PhotoStorage = Depends(get_photo_storage),
):
    hard_deleted, photo_paths = await ProductRepository(db).delete(product_id)
    cache.invalidate_products()
    # files go only after the rows are gone
    if photo_paths:
        await run_in_threadpool(storage.remove, photo_paths)
    return MessageResponse(message="Product deleted successfully" if hard_deleted else "Product deactivated")


# Photos


@router.post("/{product_id}/photos", response_model=PhotoListResponse, status_code=status.HTTP_201_CREATED)
async def upload_photos(
    product_id: int,
    files: List[UploadFile] = File(...),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
    storage: PhotoStorage = Depends(get_photo_storage),
):
    repo = ProductRepository(db)
    await repo.get_detail(product_id)
    stored = []
    try:
        for upload in files:
            stored.append(await run_in_threadpool(storage.save, upload))
        photos = await repo.add_photos(product_id, stored)
    except Exception:
        await run_in_threadpool(storage.remove, [s.photo_path for s in stored])
        raise
    cache.invalidate_products()
    return PhotoListResponse(
        message=f"{len(stored)} photo(s) uploaded successfully",
        photos=[PhotoResponse.model_validate(p) for p in photos],
    )


@router.put("/{product_id}/photos/sort", response_model=PhotoListResponse)
async def sort_photos(
    product_id: int,
    req: PhotoSortRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    photos = await ProductRepository(db).sort_photos(product_id, req.photos)
    cache.invalidate_products()
    return PhotoListResponse(
        message="Photo order updated successfully",
        photos=[PhotoResponse.model_validate(p) for p in photos],
    )


@router.put("/{product_id}/photos/{photo_id}/primary", response_model=PhotoListResponse)
async def set_primary_photo(
    product_id: int,
    photo_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    photos = await ProductRepository(db).set_primary_photo(product_id, photo_id)
    cache.invalidate_products()
    return PhotoListResponse(
        message="Primary photo updated successfully",
        photos=[PhotoResponse.model_validate(p) for p in photos],
    )


@router.delete("/{product_id}/photos/{photo_id}", response_model=MessageResponse)
async def delete_photo(
    product_id: int,
    photo_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
    storage: PhotoStorage = Depends(get_photo_storage),
):
    photo_path = await ProductRepository(db).delete_photo(product_id, photo_id)
    cache.invalidate_products()
    await run_in_threadpool(storage.remove, [photo_path])
    return MessageResponse(message="Photo deleted successfully")


# Colours and variations


@router.get("/{product_id}/colours", response_model=ColourListResponse)
async def list_product_colours(
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    colours = await ProductRepository(db).list_colours(product_id)
    return ColourListResponse(data=[ColourResponse.model_validate(c) for c in colours])


@router.get("/{product_id}/colours/{colour_id}", response_model=ColourResponse)
async def get_product_colour(
    product_id: int,
    colour_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return ColourResponse.model_validate(await ProductRepository(db).get_colour(product_id, colour_id))


@router.post("/{product_id}/colours", response_model=ColourWriteResponse, status_code=status.HTTP_201_CREATED)
async def add_product_colour(
    product_id: int,
    req: ColourIn,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    colour = await ProductRepository(db).add_colour(product_id, req)
    cache.invalidate_products()
    return ColourWriteResponse(
        message="Product colour created successfully", data=ColourResponse.model_validate(colour)
    )


@router.put("/{product_id}/colours/{colour_id}", response_model=ColourWriteResponse)
async def update_product_colour(
    product_id: int,
    colour_id: int,
    req: ColourUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    colour = await ProductRepository(db).update_colour(product_id, colour_id, req)
    cache.invalidate_products()
    return ColourWriteResponse(
        message="Product colour updated successfully", data=ColourResponse.model_validate(colour)
    )


@router.delete("/{product_id}/colours/{colour_id}", response_model=MessageResponse)
async def delete_product_colour(
    product_id: int,
    colour_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    await ProductRepository(db).delete_colour(product_id, colour_id)
    cache.invalidate_products()
    return MessageResponse(message="Product colour deleted successfully")


@router.get("/{product_id}/variations", response_model=VariationListResponse)
async def list_product_variations(
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    variations = await ProductRepository(db).list_variations(product_id)
    return VariationListResponse(data=[VariationResponse.model_validate(v) for v in variations])


@router.get("/{product_id}/variations/{variation_id}", response_model=VariationResponse)
async def get_product_variation(
    product_id: int,
    variation_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return VariationResponse.model_validate(await ProductRepository(db).get_variation(product_id, variation_id))


@router.post(
    "/{product_id}/variations", response_model=VariationWriteResponse, status_code=status.HTTP_201_CREATED
)
async def add_product_variation(
    product_id: int,
    req: VariationIn,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    variation = await ProductRepository(db).add_variation(product_id, req)
    cache.invalidate_products()
    return VariationWriteResponse(
        message="Product variation created successfully", data=VariationResponse.model_validate(variation)
    )


@router.put("/{product_id}/variations/{variation_id}", response_model=VariationWriteResponse)
async def update_product_variation(
    product_id: int,
    variation_id: int,
    req: VariationUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    variation = await ProductRepository(db).update_variation(product_id, variation_id, req)
    cache.invalidate_products()
    return VariationWriteResponse(
        message="Product variation updated successfully", data=VariationResponse.model_validate(variation)
    )


@router.delete("/{product_id}/variations/{variation_id}", response_model=MessageResponse)
async def delete_product_variation(
    product_id: int,
    variation_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    await ProductRepository(db).delete_variation(product_id, variation_id)
    cache.invalidate_products()
    return MessageResponse(message="Product variation deleted successfully")


# Bill of materials


@router.get("/{product_id}/materials", response_model=ProductMaterialListResponse)
async def list_product_materials(
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    requirements = await ProductRepository(db).list_materials(product_id)
    return ProductMaterialListResponse(data=[ProductMaterialResponse.model_validate(r) for r in requirements])


@router.get("/{product_id}/materials/availability", response_model=AvailabilityResponse)
async def material_availability(
    product_id: int,
    quantity: int = Query(1, ge=1),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return AvailabilityResponse(**await ProductRepository(db).availability(product_id, quantity))


@router.post(
    "/{product_id}/materials", response_model=ProductMaterialWriteResponse, status_code=status.HTTP_201_CREATED
)
async def add_product_material(
    product_id: int,
    req: ProductMaterialIn,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    requirement = await ProductRepository(db).add_material(product_id, req)
    cache.invalidate_materials()
    return ProductMaterialWriteResponse(
        message="Material requirement added successfully",
        data=ProductMaterialResponse.model_validate(requirement),
    )


@router.put("/{product_id}/materials/{material_id}", response_model=ProductMaterialWriteResponse)
async def update_product_material(
    product_id: int,
    material_id: int,
    req: ProductMaterialUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    requirement = await ProductRepository(db).update_material(product_id, material_id, req)
    cache.invalidate_materials()
    return ProductMaterialWriteResponse(
        message="Material requirement updated successfully",
        data=ProductMaterialResponse.model_validate(requirement),
    )


@router.delete("/{product_id}/materials/{material_id}", response_model=MessageResponse)
async def remove_product_material(
    product_id: int,
    material_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    await ProductRepository(db).remove_material(product_id, material_id)
    cache.invalidate_materials()
    return MessageResponse(message="Material requirement removed successfully")


# Stock ledger


@router.post("/{product_id}/stock/adjust", response_model=ProductStockResponse)
async def adjust_product_stock(
    product_id: int,
    req: ProductStockAdjustRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    """IN/OUT change stock by ``quantity``; ADJUST sets it to ``quantity``."""
    ledger = InventoryLedger(db)
    if req.type == MovementType.ADJUST:
        result = await ledger.set_level(
            StockKind.PRODUCT, product_id, req.quantity, req.reason, req.user_id, movement_type=MovementType.ADJUST
        )
    else:
        result = await ledger.adjust(StockKind.PRODUCT, product_id, req.type, req.quantity, req.reason, req.user_id)
    if result.movement is not None:
        cache.invalidate_products()
    return ProductStockResponse(
        message="Product stock adjusted successfully", product=_stock_info(result.entity, result)
    )


@router.put("/{product_id}/stock/set", response_model=ProductStockResponse)
async def set_product_stock(
    product_id: int,
    req: StockSetRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    result = await InventoryLedger(db).set_level(
        StockKind.PRODUCT, product_id, req.quantity, req.reason, req.user_id
    )
    if result.movement is not None:
        cache.invalidate_products()
    return ProductStockResponse(
        message="Product stock level set successfully", product=_stock_info(result.entity, result)
    )


@router.get("/{product_id}/stock/movements", response_model=ProductMovementListResponse)
async def list_product_movements(
    product_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ledger = InventoryLedger(db)
    movements, total = await ledger.history(StockKind.PRODUCT, product_id, page, limit)
    product = await db.get(Product, product_id)
    return ProductMovementListResponse(
        product=MovementProduct(
            id=product.id,
            name=product.name,
            code=product.code,
            current_stock=product.qty_on_hand,
            unit=product.unit,
        ),
        movements=[MovementResponse.model_validate(m) for m in movements],
        pagination=Pagination.build(page, limit, total),
    )

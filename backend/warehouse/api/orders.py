# backend/warehouse/api/orders.py
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from warehouse.api.deps import get_cache, get_current_user
from warehouse.core.cache import LookupCache
from warehouse.core.database import get_db
from warehouse.core.exceptions import NotFoundError, ValidationError
from warehouse.models import Contact, Order, OrderProduct, OrderStatus, Product
from warehouse.models.user import User
from warehouse.schemas.common import MessageResponse, Pagination
from warehouse.schemas.order import (
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderUpdate,
    OrderWriteResponse,
)
from warehouse.services.code_generator import generate_order_number

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])

_LINES = selectinload(Order.order_products).selectinload(OrderProduct.product)


async def _get_order(db: AsyncSession, order_id: int) -> Order:
    result = await db.execute(
        select(Order)
        .options(_LINES)
        .where(Order.id == order_id, Order.is_active == True)  # noqa: E712
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order not found")
    return order


async def _check_contact(db: AsyncSession, contact_id: Optional[int], label: str) -> None:
    if contact_id is None:
        return
    contact = await db.get(Contact, contact_id)
    if contact is None or not contact.is_active:
        raise ValidationError(f"Invalid {label}")


@router.get("", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(Order).where(Order.is_active == True)  # noqa: E712
    if status_filter and status_filter.lower() != "all":
        query = query.where(Order.status == status_filter.upper())
    if search:
        query = query.where(or_(Order.order_number.ilike(f"%{search}%"), Order.notes.ilike(f"%{search}%")))

    total = await db.scalar(select(func.count()).select_from(query.subquery()))
    orders = (
        await db.execute(
            query.options(_LINES)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
    ).scalars().all()
    return OrderListResponse(
        orders=[OrderResponse.model_validate(o) for o in orders],
        pagination=Pagination.build(page, limit, total or 0),
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return OrderResponse.model_validate(await _get_order(db, order_id))


@router.post("", response_model=OrderWriteResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    req: OrderCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    await _check_contact(db, req.customer_id, "customer")
    await _check_contact(db, req.worker_id, "worker")
    for line in req.products:
        product = await db.get(Product, line.product_id)
        if product is None or not product.is_active:
            raise NotFoundError(f"Product {line.product_id} not found")

    order = Order(
        order_number=await generate_order_number(db),
        customer_id=req.customer_id,
        worker_id=req.worker_id,
        due_date=req.due_date,
        notes=req.notes,
        status=OrderStatus.CREATED,
        target_pcs=sum(line.quantity for line in req.products),
        completed_pcs=0,
        created_by=current_user.id,
    )
    order.order_products = [OrderProduct(product_id=line.product_id, quantity=line.quantity) for line in req.products]
    db.add(order)
    await db.commit()
    cache.invalidate_products()
    logger.info(f"Created order {order.order_number} with {len(req.products)} lines")
    return OrderWriteResponse(
        message="Order created successfully", order=OrderResponse.model_validate(await _get_order(db, order.id))
    )


@router.put("/{order_id}", response_model=OrderWriteResponse)
async def update_order(
    order_id: int,
    req: OrderUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    """Update status, schedule fields and per-line progress.

    Progress is frozen once the order's output has been booked into stock.
    """
    order = await _get_order(db, order_id)
    changes = req.model_dump(exclude_unset=True, exclude={"products"})
    if "customer_id" in changes:
        await _check_contact(db, changes["customer_id"], "customer")
    if "worker_id" in changes:
        await _check_contact(db, changes["worker_id"], "worker")

    if req.products:
        if order.stock_received:
            raise ValidationError("Cannot change progress after stock has been received")
        lines = {line.id: line for line in order.order_products}
        for progress in req.products:
            line = lines.get(progress.id)
            if line is None:
                raise NotFoundError(f"Order line {progress.id} not found")
            if progress.completed_qty > line.quantity:
                raise ValidationError("Completed quantity cannot exceed ordered quantity")
            line.completed_qty = progress.completed_qty
        order.completed_pcs = sum(line.completed_qty for line in order.order_products)

    for key, value in changes.items():
        if value is None and not Order.__table__.c[key].nullable:
            continue
        setattr(order, key, value)

    await db.commit()
    cache.invalidate_products()
    return OrderWriteResponse(
        message="Order updated successfully", order=OrderResponse.model_validate(await _get_order(db, order_id))
    )


@router.delete("/{order_id}", response_model=MessageResponse)
async def delete_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    order = await _get_order(db, order_id)
    order.is_active = False
    await db.commit()
    cache.invalidate_products()
    logger.info(f"Deactivated order {order.order_number}")
    return MessageResponse(message="Order deleted successfully")

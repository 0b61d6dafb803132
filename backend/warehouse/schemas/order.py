# backend/warehouse/schemas/order.py
from datetime import datetime
from typing import Annotated
from pydantic import AfterValidator, Field
from warehouse.models.order import OrderStatus
from warehouse.schemas.common import CamelModel, Pagination


def _check_status(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.upper()
    if v not in OrderStatus.all():
        raise ValueError(f"Status must be one of: {', '.join(OrderStatus.all())}")
    return v


Status = Annotated[str, AfterValidator(_check_status)]


class OrderProductIn(CamelModel):
    product_id: int
    quantity: int = Field(..., gt=0)


class OrderCreate(CamelModel):
    customer_id: int | None = None
    worker_id: int | None = None
    due_date: datetime | None = None
    notes: str | None = None
    products: list[OrderProductIn] = Field(..., min_length=1)


class OrderProductProgress(CamelModel):
    id: int
    completed_qty: int = Field(..., ge=0)


class OrderUpdate(CamelModel):
    status: Status | None = None
    customer_id: int | None = None
    worker_id: int | None = None
    due_date: datetime | None = None
    notes: str | None = None
    products: list[OrderProductProgress] = []


class OrderProductRef(CamelModel):
    id: int
    name: str
    code: str


class OrderProductResponse(CamelModel):
    id: int
    product_id: int
    quantity: int
    completed_qty: int
    product: OrderProductRef | None = None


class OrderResponse(CamelModel):
    id: int
    order_number: str
    customer_id: int | None = None
    worker_id: int | None = None
    status: str
    due_date: datetime | None = None
    target_pcs: int
    completed_pcs: int
    notes: str | None = None
    stock_received: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime
    order_products: list[OrderProductResponse] = []


class OrderListResponse(CamelModel):
    orders: list[OrderResponse]
    pagination: Pagination


class OrderWriteResponse(CamelModel):
    success: bool = True
    message: str
    order: OrderResponse

# backend/warehouse/schemas/inventory.py
"""Request/response schemas for stock adjustments and movement history."""

from datetime import datetime
from typing import Annotated, Literal
from pydantic import AfterValidator, Field
from warehouse.schemas.common import CamelModel, Pagination


def _strip_reason(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Reason is required")
    return v


Reason = Annotated[str, AfterValidator(_strip_reason)]


class StockAdjustRequest(CamelModel):
    """Body of POST .../adjust: add or remove a quantity."""

    type: Literal["IN", "OUT"]
    quantity: float = Field(..., gt=0, allow_inf_nan=False)
    reason: Reason
    user_id: int = Field(..., gt=0)


class ProductStockAdjustRequest(StockAdjustRequest):
    """Products also accept ADJUST, which sets the level to ``quantity``."""

    type: Literal["IN", "OUT", "ADJUST"]
    quantity: float = Field(..., ge=0, allow_inf_nan=False)


class StockSetRequest(CamelModel):
    """Body of PUT .../stock: set the quantity on hand to an absolute level."""

    quantity: float = Field(..., ge=0, allow_inf_nan=False)
    reason: Reason
    user_id: int = Field(..., gt=0)


class MovementUser(CamelModel):
    id: int
    name: str
    email: str


class MovementResponse(CamelModel):
    id: int
    material_id: int | None = None
    product_id: int | None = None
    order_id: int | None = None
    user_id: int
    movement_type: str
    quantity: float
    unit: str
    qty_after: float
    notes: str
    created_at: datetime
    user: MovementUser | None = None


class MovementListResponse(CamelModel):
    movements: list[MovementResponse]
    pagination: Pagination


class AdjustmentInfo(CamelModel):
    type: str
    quantity: float


class CompleteOrderStockRequest(CamelModel):
    order_id: int = Field(..., gt=0)
    user_id: int = Field(..., gt=0)

# backend/warehouse/schemas/dashboard.py
from datetime import datetime
from warehouse.schemas.common import CamelModel


class OrderStats(CamelModel):
    total: int = 0
    pending: int = 0
    processing: int = 0
    completed: int = 0
    cancelled: int = 0
    delivered: int = 0
    avg_completion_percentage: int = 0


class MaterialStats(CamelModel):
    total: int = 0
    total_qty: float = 0
    critical_count: int = 0
    out_of_stock_count: int = 0


class ProductStats(CamelModel):
    total: int = 0
    total_qty: int = 0
    out_of_stock_count: int = 0


class UserStats(CamelModel):
    total: int = 0
    active: int = 0
    admin: int = 0
    tailor: int = 0


class CriticalMaterial(CamelModel):
    id: int
    name: str
    code: str
    qty_on_hand: float
    min_stock: float
    unit: str


class Deadline(CamelModel):
    id: int
    order_number: str
    status: str
    due_date: datetime
    target_pcs: int
    completed_pcs: int


class RecentMovement(CamelModel):
    id: int
    movement_type: str
    quantity: float
    qty_after: float
    item_name: str
    item_code: str
    user_name: str | None = None
    created_at: datetime


class DashboardSummary(CamelModel):
    order_stats: OrderStats
    material_stats: MaterialStats
    product_stats: ProductStats
    user_stats: UserStats
    critical_materials: list[CriticalMaterial]
    upcoming_deadlines: list[Deadline]
    recent_movements: list[RecentMovement]

# backend/warehouse/services/dashboard_service.py
"""Aggregates for the admin dashboard."""

import logging
from datetime import datetime, timedelta
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from warehouse.models import Material, MaterialMovement, Order, OrderStatus, Product, User, UserRole
from warehouse.schemas.dashboard import (
    CriticalMaterial,
    DashboardSummary,
    Deadline,
    MaterialStats,
    OrderStats,
    ProductStats,
    RecentMovement,
    UserStats,
)
from warehouse.services.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

DEADLINE_WINDOW = timedelta(days=3)


class DashboardService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def summary(self, now: datetime | None = None) -> DashboardSummary:
        now = now or datetime.utcnow()
        critical = await InventoryLedger(self.session).critical_stock()
        summary = DashboardSummary(
            order_stats=await self._order_stats(),
            material_stats=await self._material_stats(len(critical)),
            product_stats=await self._product_stats(),
            user_stats=await self._user_stats(),
            critical_materials=[CriticalMaterial.model_validate(m) for m in critical[:10]],
            upcoming_deadlines=await self._deadlines(now),
            recent_movements=await self._recent_movements(),
        )
        logger.debug("Dashboard summary computed")
        return summary

    async def _order_stats(self) -> OrderStats:
        rows = (
            await self.session.execute(
                select(Order.status, func.count(Order.id))
                .where(Order.is_active == True)  # noqa: E712
                .group_by(Order.status)
            )
        ).all()
        counts = dict(rows)

        processing = (
            await self.session.execute(
                select(Order.target_pcs, Order.completed_pcs).where(
                    Order.is_active == True, Order.status == OrderStatus.PROCESSING  # noqa: E712
                )
            )
        ).all()
        avg = 0.0
        if processing:
            avg = sum((done / target) * 100 if target > 0 else 0 for target, done in processing) / len(processing)

        return OrderStats(
            total=sum(counts.values()),
            pending=counts.get(OrderStatus.CREATED, 0),
            processing=counts.get(OrderStatus.PROCESSING, 0),
            completed=counts.get(OrderStatus.COMPLETED, 0),
            cancelled=counts.get(OrderStatus.CANCELLED, 0),
            delivered=counts.get(OrderStatus.DELIVERED, 0),
            avg_completion_percentage=round(avg),
        )

    async def _material_stats(self, critical_count: int) -> MaterialStats:
        total, total_qty, out_of_stock = (
            await self.session.execute(
                select(
                    func.count(Material.id),
                    func.coalesce(func.sum(Material.qty_on_hand), 0),
                    func.coalesce(func.sum(case((Material.qty_on_hand == 0, 1), else_=0)), 0),
                ).where(Material.is_active == True)  # noqa: E712
            )
        ).one()
        return MaterialStats(
            total=total,
            total_qty=total_qty,
            critical_count=critical_count,
            out_of_stock_count=out_of_stock,
        )

    async def _product_stats(self) -> ProductStats:
        total, total_qty, out_of_stock = (
            await self.session.execute(
                select(
                    func.count(Product.id),
                    func.coalesce(func.sum(Product.qty_on_hand), 0),
                    func.coalesce(func.sum(case((Product.qty_on_hand == 0, 1), else_=0)), 0),
                ).where(Product.is_active == True)  # noqa: E712
            )
        ).one()
        return ProductStats(total=total, total_qty=total_qty, out_of_stock_count=out_of_stock)

    async def _user_stats(self) -> UserStats:
        rows = (await self.session.execute(select(User.role, User.is_active))).all()
        return UserStats(
            total=len(rows),
            active=sum(1 for _, active in rows if active),
            admin=sum(1 for role, _ in rows if role == UserRole.ADMIN),
            tailor=sum(1 for role, _ in rows if role == UserRole.TAILOR),
        )

    async def _deadlines(self, now: datetime) -> list[Deadline]:
        result = await self.session.execute(
            select(Order)
            .where(
                Order.is_active == True,  # noqa: E712
                Order.due_date >= now,
                Order.due_date <= now + DEADLINE_WINDOW,
                Order.status.not_in(OrderStatus.CLOSED),
            )
            .order_by(Order.due_date)
            .limit(5)
        )
        return [Deadline.model_validate(o) for o in result.scalars()]

    async def _recent_movements(self) -> list[RecentMovement]:
        result = await self.session.execute(
            select(MaterialMovement)
            .options(
                selectinload(MaterialMovement.material),
                selectinload(MaterialMovement.product),
                selectinload(MaterialMovement.user),
            )
            .order_by(MaterialMovement.created_at.desc(), MaterialMovement.id.desc())
            .limit(10)
        )
        movements = []
        for m in result.scalars():
            item = m.material or m.product
            movements.append(
                RecentMovement(
                    id=m.id,
                    movement_type=m.movement_type,
                    quantity=m.quantity,
                    qty_after=m.qty_after,
                    item_name=item.name,
                    item_code=item.code,
                    user_name=m.user.name if m.user else None,
                    created_at=m.created_at,
                )
            )
        return movements

"""Tests for dashboard aggregates."""

from datetime import datetime, timedelta

from warehouse.models import Order, OrderStatus
from warehouse.services.dashboard_service import DashboardService
from warehouse.services.inventory_ledger import InventoryLedger, StockKind

NOW = datetime(2026, 5, 1, 9, 0)


async def test_summary_aggregates(test_session, admin_user, staff_user, make_material, make_product):
    low = await make_material(qty_on_hand=2, min_stock=10, name="Low")
    await make_material(qty_on_hand=0, min_stock=0, name="Empty")
    await make_material(qty_on_hand=40, min_stock=5, name="Fine")
    product = await make_product(qty_on_hand=6)
    await make_product(qty_on_hand=0)

    test_session.add_all([
        Order(order_number="ORD-1", status=OrderStatus.PROCESSING, target_pcs=10, completed_pcs=5,
              due_date=NOW + timedelta(days=1)),
        Order(order_number="ORD-2", status=OrderStatus.PROCESSING, target_pcs=4, completed_pcs=4,
              due_date=NOW + timedelta(days=10)),
        Order(order_number="ORD-3", status=OrderStatus.COMPLETED, due_date=NOW + timedelta(days=2)),
        Order(order_number="ORD-4", status=OrderStatus.CREATED, is_active=False),
    ])
    await test_session.commit()

    ledger = InventoryLedger(test_session)
    await ledger.adjust(StockKind.MATERIAL, low.id, "IN", 1, "delivery", admin_user.id)
    await ledger.adjust(StockKind.PRODUCT, product.id, "OUT", 1, "sale", staff_user.id)

    summary = await DashboardService(test_session).summary(now=NOW)

    assert summary.order_stats.total == 3
    assert summary.order_stats.processing == 2
    assert summary.order_stats.completed == 1
    assert summary.order_stats.avg_completion_percentage == 75
    assert summary.material_stats.total == 3
    assert summary.material_stats.critical_count == 2
    assert summary.material_stats.out_of_stock_count == 1
    assert summary.product_stats.total == 2
    assert summary.product_stats.total_qty == 5
    assert summary.product_stats.out_of_stock_count == 1
    assert summary.user_stats.total == 2
    assert summary.user_stats.admin == 1
    assert [m.name for m in summary.critical_materials] == ["Low", "Empty"]
    assert [d.order_number for d in summary.upcoming_deadlines] == ["ORD-1"]
    assert [(m.item_code, m.user_name) for m in summary.recent_movements] == [
        (product.code, "Staff"),
        (low.code, "Admin"),
    ]

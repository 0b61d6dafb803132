"""Tests for the inventory ledger: balances, movements and their invariants."""

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from warehouse.core.database import Base
from warehouse.core.exceptions import (
    ConflictError,
    InsufficientStock,
    NotFoundError,
    ValidationError,
)
from warehouse.models import (
    Material,
    MaterialMovement,
    MovementType,
    Order,
    OrderProduct,
    OrderStatus,
    Product,
    User,
    UserRole,
)
from warehouse.services.inventory_ledger import InventoryLedger, StockKind

MATERIAL = StockKind.MATERIAL
PRODUCT = StockKind.PRODUCT


async def movement_count(session, material_id=None, product_id=None) -> int:
    query = select(func.count(MaterialMovement.id))
    if material_id is not None:
        query = query.where(MaterialMovement.material_id == material_id)
    if product_id is not None:
        query = query.where(MaterialMovement.product_id == product_id)
    return await session.scalar(query)


@pytest.fixture
async def material(make_material):
    return await make_material(qty_on_hand=100)


@pytest.fixture
def ledger(test_session):
    return InventoryLedger(test_session)


class TestMaterialScenarios:
    """The canonical OUT / rejected OUT / set-level / no-op / history walk."""

    async def test_out_reduces_balance_and_records_movement(self, ledger, material, admin_user, test_session):
        result = await ledger.adjust(MATERIAL, material.id, "OUT", 30, "sold", admin_user.id)

        assert result.previous_quantity == 100
        assert result.new_quantity == 70
        assert result.entity.qty_on_hand == 70
        movement = result.movement
        assert movement.movement_type == MovementType.OUT
        assert movement.quantity == 30
        assert movement.qty_after == 70
        assert movement.notes == "sold"
        assert movement.unit == "meter"
        assert await movement_count(test_session, material_id=material.id) == 1

    async def test_out_beyond_balance_is_rejected_without_side_effects(
        self, ledger, material, admin_user, test_session
    ):
        await ledger.adjust(MATERIAL, material.id, "OUT", 30, "sold", admin_user.id)

        with pytest.raises(InsufficientStock) as exc:
            await ledger.adjust(MATERIAL, material.id, "OUT", 100, "sold", admin_user.id)

        assert exc.value.available == 70
        assert exc.value.requested == 100
        await test_session.refresh(material)
        assert material.qty_on_hand == 70
        assert await movement_count(test_session, material_id=material.id) == 1

    async def test_set_level_records_the_difference(self, ledger, material, admin_user):
        await ledger.adjust(MATERIAL, material.id, "OUT", 30, "sold", admin_user.id)

        result = await ledger.set_level(MATERIAL, material.id, 50, "correction", admin_user.id)

        assert result.new_quantity == 50
        assert result.difference == -20
        assert result.movement.movement_type == MovementType.OUT
        assert result.movement.quantity == 20
        assert result.movement.qty_after == 50

    async def test_set_level_to_current_value_writes_nothing(self, ledger, make_material, admin_user, test_session):
        material = await make_material(qty_on_hand=50)

        result = await ledger.set_level(MATERIAL, material.id, 50, "no change", admin_user.id)

        assert result.movement is None
        assert result.new_quantity == 50
        assert result.entity.qty_on_hand == 50
        assert await movement_count(test_session, material_id=material.id) == 0

    async def test_history_is_newest_first(self, ledger, material, admin_user):
        material_id, user_id, user_email = material.id, admin_user.id, admin_user.email
        await ledger.adjust(MATERIAL, material_id, "OUT", 30, "sold", user_id)
        with pytest.raises(InsufficientStock):
            await ledger.adjust(MATERIAL, material_id, "OUT", 100, "sold", user_id)
        await ledger.set_level(MATERIAL, material_id, 50, "correction", user_id)

        movements, total = await ledger.history(MATERIAL, material_id, page=1, limit=10)

        assert total == 2
        assert [(m.movement_type, m.quantity) for m in movements] == [("OUT", 20), ("OUT", 30)]
        assert movements[0].user.email == user_email


class TestLedgerInvariant:
    async def test_newest_movement_matches_balance(self, ledger, material, admin_user, test_session):
        await ledger.adjust(MATERIAL, material.id, "IN", 25.5, "delivery", admin_user.id)
        await ledger.adjust(MATERIAL, material.id, "OUT", 10, "cutting", admin_user.id)
        await ledger.set_level(MATERIAL, material.id, 200, "stocktake", admin_user.id)
        await ledger.adjust(MATERIAL, material.id, "OUT", 0.5, "sample", admin_user.id)

        movements, _ = await ledger.history(MATERIAL, material.id)
        await test_session.refresh(material)
        assert movements[0].qty_after == material.qty_on_hand == 199.5

        signed = sum(m.quantity if m.movement_type == "IN" else -m.quantity for m in movements)
        assert 100 + signed == pytest.approx(material.qty_on_hand)

    async def test_out_to_exactly_zero_is_allowed(self, ledger, material, admin_user):
        result = await ledger.adjust(MATERIAL, material.id, "OUT", 100, "used up", admin_user.id)
        assert result.new_quantity == 0

    async def test_set_level_up_records_in(self, ledger, material, admin_user):
        result = await ledger.set_level(MATERIAL, material.id, 130, "found stock", admin_user.id)
        assert result.movement.movement_type == MovementType.IN
        assert result.movement.quantity == 30

    async def test_writes_see_changes_made_by_other_sessions(
        self, ledger, material, admin_user, session_factory, test_session
    ):
        # ``material`` stays loaded in test_session while another session moves stock
        async with session_factory() as other:
            await InventoryLedger(other).adjust(MATERIAL, material.id, "OUT", 30, "sold", admin_user.id)
        assert material.qty_on_hand == 100

        result = await ledger.set_level(MATERIAL, material.id, 50, "stocktake", admin_user.id)

        assert result.previous_quantity == 70
        assert result.movement.movement_type == MovementType.OUT
        assert result.movement.quantity == 20

        adjusted = await ledger.adjust(MATERIAL, material.id, "IN", 5, "return", admin_user.id)
        assert adjusted.previous_quantity == 50
        assert adjusted.entity.qty_on_hand == 55


class TestValidation:
    @pytest.mark.parametrize(
        "direction, quantity, reason, message",
        [
            ("SIDEWAYS", 5, "x", "Type must be either IN or OUT"),
            ("ADJUST", 5, "x", "Type must be either IN or OUT"),
            ("IN", 0, "x", "greater than zero"),
            ("IN", -3, "x", "greater than zero"),
            ("IN", "5", "x", "must be a number"),
            ("IN", True, "x", "must be a number"),
            ("IN", float("inf"), "x", "finite"),
            ("IN", float("nan"), "x", "finite"),
            ("IN", 5, "   ", "Reason is required"),
            ("IN", 5, None, "Reason is required"),
        ],
    )
    async def test_adjust_rejects_malformed_input(
        self, ledger, material, admin_user, test_session, direction, quantity, reason, message
    ):
        with pytest.raises(ValidationError, match=message):
            await ledger.adjust(MATERIAL, material.id, direction, quantity, reason, admin_user.id)
        assert await movement_count(test_session) == 0

    async def test_set_level_rejects_negative(self, ledger, material, admin_user):
        with pytest.raises(ValidationError):
            await ledger.set_level(MATERIAL, material.id, -1, "oops", admin_user.id)

    @pytest.mark.parametrize("level", [float("inf"), float("nan")])
    async def test_set_level_rejects_non_finite(self, ledger, material, admin_user, test_session, level):
        with pytest.raises(ValidationError, match="finite"):
            await ledger.set_level(MATERIAL, material.id, level, "stocktake", admin_user.id)
        await test_session.refresh(material)
        assert material.qty_on_hand == 100
        assert await movement_count(test_session) == 0

    async def test_unknown_material(self, ledger, admin_user):
        with pytest.raises(NotFoundError, match="Material not found"):
            await ledger.adjust(MATERIAL, 999, "IN", 1, "x", admin_user.id)

    async def test_unknown_user(self, ledger, material, test_session):
        material_id = material.id
        with pytest.raises(NotFoundError, match="User not found"):
            await ledger.adjust(MATERIAL, material_id, "IN", 1, "x", 999)
        refreshed = await test_session.get(Material, material_id)
        await test_session.refresh(refreshed)
        assert refreshed.qty_on_hand == 100

    async def test_bad_ids(self, ledger, admin_user):
        with pytest.raises(ValidationError):
            await ledger.adjust(MATERIAL, 0, "IN", 1, "x", admin_user.id)
        with pytest.raises(ValidationError):
            await ledger.adjust(MATERIAL, 1, "IN", 1, "x", -4)

    async def test_history_for_unknown_entity(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.history(MATERIAL, 404)

    async def test_history_pagination(self, ledger, material, admin_user):
        for _ in range(5):
            await ledger.adjust(MATERIAL, material.id, "IN", 1, "drip", admin_user.id)
        page, total = await ledger.history(MATERIAL, material.id, page=2, limit=2)
        assert total == 5
        assert [m.qty_after for m in page] == [103, 102]


class TestProductStock:
    async def test_product_adjust_records_product_movement(self, ledger, make_product, admin_user, test_session):
        product = await make_product(qty_on_hand=10)

        result = await ledger.adjust(PRODUCT, product.id, "IN", 5, "returned", admin_user.id)

        assert result.entity.qty_on_hand == 15
        assert result.movement.product_id == product.id
        assert result.movement.material_id is None
        assert await movement_count(test_session, product_id=product.id) == 1

    async def test_product_quantities_must_be_whole(self, ledger, make_product, admin_user):
        product = await make_product(qty_on_hand=10)
        with pytest.raises(ValidationError, match="whole numbers"):
            await ledger.adjust(PRODUCT, product.id, "OUT", 1.5, "cut", admin_user.id)

    async def test_product_explicit_adjust_type(self, ledger, make_product, admin_user):
        product = await make_product(qty_on_hand=10)
        result = await ledger.set_level(
            PRODUCT, product.id, 4, "stocktake", admin_user.id, movement_type=MovementType.ADJUST
        )
        assert result.movement.movement_type == MovementType.ADJUST
        assert result.movement.quantity == 6
        assert result.movement.qty_after == 4

    async def test_product_out_beyond_stock(self, ledger, make_product, admin_user):
        product = await make_product(qty_on_hand=2)
        with pytest.raises(InsufficientStock):
            await ledger.adjust(PRODUCT, product.id, "OUT", 3, "sale", admin_user.id)

    async def test_unknown_kind(self, ledger, admin_user):
        with pytest.raises(ValidationError):
            await ledger.adjust("widget", 1, "IN", 1, "x", admin_user.id)


class TestReceiveOrder:
    @pytest.fixture
    async def completed_order(self, test_session, make_product):
        first = await make_product(qty_on_hand=3)
        second = await make_product(qty_on_hand=0)
        third = await make_product(qty_on_hand=7)
        order = Order(order_number="ORD-20260101-001", status=OrderStatus.COMPLETED, target_pcs=30)
        order.order_products = [
            OrderProduct(product_id=first.id, quantity=10, completed_qty=10),
            OrderProduct(product_id=second.id, quantity=10, completed_qty=4),
            OrderProduct(product_id=third.id, quantity=10, completed_qty=0),
        ]
        test_session.add(order)
        await test_session.commit()
        return order, (first, second, third)

    async def test_books_completed_quantities(self, ledger, completed_order, admin_user, test_session):
        order, (first, second, third) = completed_order

        receipt = await ledger.receive_order(order.id, admin_user.id)

        assert receipt.order.stock_received is True
        assert sorted((u.entity.id, u.previous_quantity, u.new_quantity) for u in receipt.updates) == [
            (first.id, 3, 13),
            (second.id, 0, 4),
        ]
        movements = (
            await test_session.execute(select(MaterialMovement).where(MaterialMovement.order_id == order.id))
        ).scalars().all()
        assert len(movements) == 2
        assert all(m.movement_type == "IN" for m in movements)
        assert "ORD-20260101-001" in movements[0].notes
        await test_session.refresh(third)
        assert third.qty_on_hand == 7

    async def test_second_receipt_conflicts(self, ledger, completed_order, admin_user):
        order, _ = completed_order
        await ledger.receive_order(order.id, admin_user.id)
        with pytest.raises(ConflictError):
            await ledger.receive_order(order.id, admin_user.id)

    async def test_order_must_be_completed(self, ledger, test_session, admin_user):
        order = Order(order_number="ORD-20260101-009", status=OrderStatus.PROCESSING)
        test_session.add(order)
        await test_session.commit()
        with pytest.raises(ValidationError):
            await ledger.receive_order(order.id, admin_user.id)

    async def test_unknown_order(self, ledger, admin_user):
        with pytest.raises(NotFoundError):
            await ledger.receive_order(12345, admin_user.id)


class TestCriticalStock:
    async def test_most_critical_first(self, ledger, make_material):
        fine = await make_material(qty_on_hand=50, min_stock=10)
        low = await make_material(qty_on_hand=8, min_stock=10)
        empty = await make_material(qty_on_hand=0, min_stock=20)
        at_min = await make_material(qty_on_hand=5, min_stock=5)
        await make_material(qty_on_hand=0, min_stock=5, is_active=False)

        critical = await ledger.critical_stock()

        assert [m.id for m in critical] == [empty.id, low.id, at_min.id]
        assert fine.id not in {m.id for m in critical}


class TestConcurrentWrites:
    """Parallel requests on a file database, each with its own connection."""

    @pytest.fixture
    async def file_sessions(self, tmp_path):
        engine = create_async_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
            connect_args={"timeout": 30},
            poolclass=NullPool,
        )
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        await engine.dispose()

    @pytest.fixture
    async def stock(self, file_sessions):
        async with file_sessions() as session:
            user = User(name="Clerk", email="clerk@test.com", password_hash="x", role=UserRole.STAFF)
            material = Material(code="CON-1-TEST-20260101", name="Cotton", unit="meter", qty_on_hand=100)
            product = Product(code="HJB-20260101-001", name="Pashmina", category="Hijab", qty_on_hand=0)
            session.add_all([user, material, product])
            await session.commit()
            return user.id, material.id, product.id

    async def _run(self, file_sessions, write):
        async def one(i):
            async with file_sessions() as session:
                return await write(InventoryLedger(session), i)

        return await asyncio.gather(*(one(i) for i in range(20)), return_exceptions=True)

    async def _qty_after(self, file_sessions, material_id):
        async with file_sessions() as session:
            result = await session.execute(
                select(MaterialMovement.qty_after).where(MaterialMovement.material_id == material_id)
            )
            return sorted(result.scalars().all())

    async def test_parallel_outs_lose_no_update(self, file_sessions, stock):
        user_id, material_id, _ = stock

        results = await self._run(
            file_sessions, lambda ledger, i: ledger.adjust(MATERIAL, material_id, "OUT", 1, "picking", user_id)
        )

        assert not [r for r in results if isinstance(r, BaseException)]
        async with file_sessions() as session:
            assert (await session.get(Material, material_id)).qty_on_hand == 100 - 20
        assert await self._qty_after(file_sessions, material_id) == list(range(80, 100))
        assert sorted(r.new_quantity for r in results) == list(range(80, 100))

    async def test_parallel_outs_never_overdraw(self, file_sessions, stock):
        user_id, material_id, _ = stock

        results = await self._run(
            file_sessions, lambda ledger, i: ledger.adjust(MATERIAL, material_id, "OUT", 7, "picking", user_id)
        )

        succeeded = [r for r in results if not isinstance(r, BaseException)]
        rejected = [r for r in results if isinstance(r, BaseException)]
        assert len(succeeded) == 14
        assert all(isinstance(r, InsufficientStock) for r in rejected)
        async with file_sessions() as session:
            assert (await session.get(Material, material_id)).qty_on_hand == 100 - 14 * 7
        assert len(set(await self._qty_after(file_sessions, material_id))) == 14

    async def test_parallel_set_levels_keep_movements_consistent(self, file_sessions, stock):
        user_id, material_id, _ = stock

        results = await self._run(
            file_sessions,
            lambda ledger, i: ledger.set_level(MATERIAL, material_id, 50 + i, "stocktake", user_id),
        )

        assert not [r for r in results if isinstance(r, BaseException)]
        async with file_sessions() as session:
            final = (await session.get(Material, material_id)).qty_on_hand
            movements = (
                await session.execute(
                    select(MaterialMovement)
                    .where(MaterialMovement.material_id == material_id)
                    .order_by(MaterialMovement.id)
                )
            ).scalars().all()
        assert movements[-1].qty_after == final
        signed = sum(m.quantity if m.movement_type == "IN" else -m.quantity for m in movements)
        assert 100 + signed == final

    async def test_parallel_order_receipts_book_once(self, file_sessions, stock):
        user_id, _, product_id = stock
        async with file_sessions() as session:
            order = Order(order_number="ORD-20260101-001", status=OrderStatus.COMPLETED, target_pcs=5)
            order.order_products = [OrderProduct(product_id=product_id, quantity=5, completed_qty=5)]
            session.add(order)
            await session.commit()
            order_id = order.id

        results = await self._run(file_sessions, lambda ledger, i: ledger.receive_order(order_id, user_id))

        assert len([r for r in results if not isinstance(r, BaseException)]) == 1
        assert all(isinstance(r, ConflictError) for r in results if isinstance(r, BaseException))
        async with file_sessions() as session:
            assert (await session.get(Product, product_id)).qty_on_hand == 5

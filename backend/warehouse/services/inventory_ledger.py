# backend/warehouse/services/inventory_ledger.py
"""Inventory ledger: the only code path that changes ``qty_on_hand``.

Every change to a material or product balance is written together with one
``MaterialMovement`` row recording the magnitude and the resulting balance,
so the newest movement's ``qty_after`` always equals the current quantity.

Balances are never written back from a value read earlier in the request.
Adjustments run ``UPDATE ... SET qty_on_hand = qty_on_hand + delta`` with the
non-negativity guard in the WHERE clause and take the resulting balance from
``RETURNING``; absolute levels are written with a compare-and-set on the
balance that was read. Both hold on PostgreSQL and on SQLite, where
``SELECT ... FOR UPDATE`` is not available.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
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
    OrderStatus,
    Product,
    User,
)

logger = logging.getLogger(__name__)

# compare-and-set attempts for set_level before giving up
SET_LEVEL_ATTEMPTS = 5


class StockKind:
    MATERIAL = "material"
    PRODUCT = "product"


_MODELS = {StockKind.MATERIAL: Material, StockKind.PRODUCT: Product}
_LABELS = {StockKind.MATERIAL: "Material", StockKind.PRODUCT: "Product"}


@dataclass
class LedgerResult:
    """Outcome of one ledger write."""

    entity: Any
    previous_quantity: float
    new_quantity: float
    movement: Optional[MaterialMovement] = None

    @property
    def difference(self) -> float:
        return self.new_quantity - self.previous_quantity


@dataclass
class OrderReceipt:
    order: Order
    updates: list[LedgerResult] = field(default_factory=list)


def _check_number(value: Any, name: str) -> float:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number")
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be a finite number")
    return value


def _check_reason(reason: Any) -> str:
    if not isinstance(reason, str) or not reason.strip():
        raise ValidationError("Reason is required")
    return reason.strip()


def _check_id(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer")
    return value


def _check_kind(kind: str) -> None:
    if kind not in _MODELS:
        raise ValidationError(f"Unknown stock kind: {kind}")


def _check_integral(kind: str, quantity: float) -> None:
    if kind == StockKind.PRODUCT and quantity != int(quantity):
        raise ValidationError("Product quantities must be whole numbers")


class InventoryLedger:
    """Applies stock changes to materials and products.

    The ledger owns the session's transaction for each write: it commits on
    success and rolls back on any failure, so a rejected call leaves neither
    a balance change nor a movement behind.
    """

    def __init__(self, session: AsyncSession):
        """Initialize the ledger with a database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def adjust(
        self,
        kind: str,
        entity_id: int,
        direction: str,
        quantity: float,
        reason: str,
        user_id: int,
    ) -> LedgerResult:
        """Add (IN) or remove (OUT) a positive quantity.

        Args:
            kind: StockKind.MATERIAL or StockKind.PRODUCT
            entity_id: Material or product ID
            direction: "IN" or "OUT"
            quantity: Positive magnitude of the change
            reason: Free-text reason stored on the movement
            user_id: Acting user

        Returns:
            LedgerResult with the refreshed entity and the new movement

        Raises:
            ValidationError: Malformed input
            NotFoundError: Unknown entity or user
            InsufficientStock: OUT would leave a negative balance
        """
        _check_kind(kind)
        if direction not in (MovementType.IN, MovementType.OUT):
            raise ValidationError("Type must be either IN or OUT")
        quantity = _check_number(quantity, "Quantity")
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than zero")
        _check_integral(kind, quantity)
        reason = _check_reason(reason)
        _check_id(entity_id, f"{_LABELS[kind]} ID")
        _check_id(user_id, "User ID")

        delta = quantity if direction == MovementType.IN else -quantity
        if kind == StockKind.PRODUCT:
            delta = int(delta)

        try:
            await self._require_user(user_id)
            qty_after = await self._apply_delta(kind, entity_id, delta)
            if qty_after is None:
                available = await self._current_quantity(kind, entity_id)
                logger.warning(
                    f"Rejected {direction} {quantity} on {kind} {entity_id}: only {available} on hand"
                )
                raise InsufficientStock(
                    "Insufficient stock for this adjustment",
                    available=available,
                    requested=quantity,
                )
            entity = await self._load(kind, entity_id)
            movement = self._write(kind, entity, direction, quantity, qty_after, reason, user_id)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(entity)
        logger.info(
            f"{kind} {entity_id}: {direction} {quantity} -> {entity.qty_on_hand} (user {user_id})"
        )
        return LedgerResult(entity, qty_after - delta, entity.qty_on_hand, movement)

    async def set_level(
        self,
        kind: str,
        entity_id: int,
        new_level: float,
        reason: str,
        user_id: int,
        movement_type: Optional[str] = None,
    ) -> LedgerResult:
        """Set the balance to an absolute level.

        The movement direction follows the sign of the difference unless
        ``movement_type`` is given (products record explicit ADJUST rows). A
        level equal to the current balance writes nothing.

        Args:
            kind: StockKind.MATERIAL or StockKind.PRODUCT
            entity_id: Material or product ID
            new_level: Target balance, zero or more
            reason: Free-text reason stored on the movement
            user_id: Acting user
            movement_type: Optional override for the recorded type

        Returns:
            LedgerResult; ``movement`` is None when nothing changed

        Raises:
            ConflictError: The balance kept changing underneath the write
        """
        _check_kind(kind)
        new_level = _check_number(new_level, "Quantity")
        if new_level < 0:
            raise ValidationError("Quantity cannot be negative")
        _check_integral(kind, new_level)
        if movement_type is not None and movement_type not in MovementType.all():
            raise ValidationError("Type must be IN, OUT, or ADJUST")
        reason = _check_reason(reason)
        _check_id(entity_id, f"{_LABELS[kind]} ID")
        _check_id(user_id, "User ID")

        try:
            await self._require_user(user_id)
            for _ in range(SET_LEVEL_ATTEMPTS):
                entity = await self._load(kind, entity_id, lock=True)
                previous = entity.qty_on_hand
                delta = new_level - previous
                if delta == 0:
                    # nothing to record; ends the transaction and releases the lock
                    await self.session.commit()
                    logger.debug(f"{kind} {entity_id}: level already {previous}, no movement")
                    return LedgerResult(entity, previous, previous, None)
                if await self._compare_and_set(kind, entity_id, previous, new_level):
                    break
                logger.debug(f"{kind} {entity_id}: balance moved from {previous}, retrying")
            else:
                raise ConflictError("Stock level changed during the update, please retry")
            direction = movement_type or (MovementType.IN if delta > 0 else MovementType.OUT)
            movement = self._write(kind, entity, direction, abs(delta), new_level, reason, user_id)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(entity)
        logger.info(
            f"{kind} {entity_id}: set {previous} -> {entity.qty_on_hand} as {direction} (user {user_id})"
        )
        return LedgerResult(entity, previous, entity.qty_on_hand, movement)

    async def history(
        self, kind: str, entity_id: int, page: int = 1, limit: int = 20
    ) -> tuple[list[MaterialMovement], int]:
        """Movements for one entity, newest first.

        Returns:
            (page of movements, total movement count)
        """
        _check_kind(kind)
        if page < 1 or limit < 1:
            raise ValidationError("Page and limit must be positive")
        model = _MODELS[kind]
        if await self.session.get(model, entity_id) is None:
            raise NotFoundError(f"{_LABELS[kind]} not found")

        column = MaterialMovement.material_id if kind == StockKind.MATERIAL else MaterialMovement.product_id
        total = await self.session.scalar(
            select(func.count(MaterialMovement.id)).where(column == entity_id)
        )
        result = await self.session.execute(
            select(MaterialMovement)
            .options(selectinload(MaterialMovement.user))
            .where(column == entity_id)
            .order_by(MaterialMovement.created_at.desc(), MaterialMovement.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def critical_stock(self) -> list[Material]:
        """Active materials at or below their minimum, most critical first."""
        result = await self.session.execute(
            select(Material)
            .where(Material.is_active == True, Material.qty_on_hand <= Material.min_stock)  # noqa: E712
            .order_by((Material.qty_on_hand - Material.min_stock).asc(), Material.id)
        )
        return list(result.scalars().all())

    async def receive_order(self, order_id: int, user_id: int) -> OrderReceipt:
        """Book the completed quantities of a finished order into product stock.

        The order is claimed by flipping ``stock_received`` in a guarded
        UPDATE, so only one of several concurrent calls books anything. Every
        product line with a positive ``completed_qty`` then gets one IN
        movement; the claim and all lines commit together.

        Raises:
            NotFoundError: Unknown or inactive order, or unknown user
            ValidationError: Order is not COMPLETED
            ConflictError: Stock for this order was already received
        """
        _check_id(order_id, "Order ID")
        _check_id(user_id, "User ID")

        updates: list[LedgerResult] = []
        try:
            await self._require_user(user_id)
            claimed = await self.session.execute(
                update(Order)
                .where(
                    Order.id == order_id,
                    Order.is_active == True,  # noqa: E712
                    Order.status == OrderStatus.COMPLETED,
                    Order.stock_received == False,  # noqa: E712
                )
                .values(stock_received=True)
                .returning(Order.id)
                .execution_options(synchronize_session=False)
            )
            if claimed.scalar_one_or_none() is None:
                order = await self.session.get(Order, order_id, populate_existing=True)
                if order is None or not order.is_active:
                    raise NotFoundError("Order not found")
                if order.status != OrderStatus.COMPLETED:
                    raise ValidationError("Order must be completed to update stock")
                raise ConflictError("Stock for this order has already been received")

            result = await self.session.execute(
                select(Order)
                .options(selectinload(Order.order_products))
                .where(Order.id == order_id)
                .execution_options(populate_existing=True)
            )
            order = result.scalar_one()

            for line in order.order_products:
                if not line.completed_qty:
                    continue
                qty_after = await self._apply_delta(StockKind.PRODUCT, line.product_id, line.completed_qty)
                if qty_after is None:
                    raise NotFoundError(f"Product {line.product_id} not found")
                product = await self._load(StockKind.PRODUCT, line.product_id)
                movement = self._write(
                    StockKind.PRODUCT,
                    product,
                    MovementType.IN,
                    line.completed_qty,
                    qty_after,
                    f"Stock increase from completed order {order.order_number}",
                    user_id,
                    order_id=order.id,
                )
                updates.append(LedgerResult(product, qty_after - line.completed_qty, qty_after, movement))

            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            f"Received stock for order {order.order_number}: {len(updates)} product lines (user {user_id})"
        )
        return OrderReceipt(order, updates)

    async def _require_user(self, user_id: int) -> User:
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _apply_delta(self, kind: str, entity_id: int, delta: float) -> Optional[float]:
        """Add ``delta`` in one statement; None when the row is missing or would go negative."""
        model = _MODELS[kind]
        result = await self.session.execute(
            update(model)
            .where(model.id == entity_id, model.qty_on_hand + delta >= 0)
            .values(qty_on_hand=model.qty_on_hand + delta)
            .returning(model.qty_on_hand)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()

    async def _compare_and_set(self, kind: str, entity_id: int, expected: float, new_level: float) -> bool:
        model = _MODELS[kind]
        result = await self.session.execute(
            update(model)
            .where(model.id == entity_id, model.qty_on_hand == expected)
            .values(qty_on_hand=new_level)
            .returning(model.id)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none() is not None

    async def _current_quantity(self, kind: str, entity_id: int) -> float:
        model = _MODELS[kind]
        quantity = await self.session.scalar(select(model.qty_on_hand).where(model.id == entity_id))
        if quantity is None:
            raise NotFoundError(f"{_LABELS[kind]} not found")
        return quantity

    async def _load(self, kind: str, entity_id: int, lock: bool = False):
        model = _MODELS[kind]
        query = select(model).where(model.id == entity_id).execution_options(populate_existing=True)
        if lock:
            query = query.with_for_update()
        entity = (await self.session.execute(query)).scalar_one_or_none()
        if entity is None:
            raise NotFoundError(f"{_LABELS[kind]} not found")
        return entity

    def _write(
        self,
        kind: str,
        entity,
        movement_type: str,
        quantity: float,
        qty_after: float,
        reason: str,
        user_id: int,
        order_id: Optional[int] = None,
    ) -> MaterialMovement:
        """Stage the movement row; the balance itself is already written."""
        if kind == StockKind.PRODUCT:
            quantity = int(quantity)
            qty_after = int(qty_after)
        movement = MaterialMovement(
            material_id=entity.id if kind == StockKind.MATERIAL else None,
            product_id=entity.id if kind == StockKind.PRODUCT else None,
            order_id=order_id,
            user_id=user_id,
            movement_type=movement_type,
            quantity=quantity,
            unit=entity.unit or "pcs",
            qty_after=qty_after,
            notes=reason,
        )
        self.session.add(movement)
        return movement

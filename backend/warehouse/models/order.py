# backend/warehouse/models/order.py
from datetime import datetime
from typing import Optional
from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from warehouse.core.database import Base


class OrderStatus:
    CREATED = "CREATED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    # no longer counted as open work
    CLOSED = (COMPLETED, DELIVERED, CANCELLED)

    @classmethod
    def all(cls) -> list[str]:
        return [cls.CREATED, cls.PROCESSING, cls.COMPLETED, cls.DELIVERED, cls.CANCELLED]


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    customer_id: Mapped[int | None] = mapped_column(ForeignKey("contacts.id"), nullable=True)
    worker_id: Mapped[int | None] = mapped_column(ForeignKey("contacts.id"), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=OrderStatus.CREATED, nullable=False, index=True)
    due_date: Mapped[datetime | None] = mapped_column(nullable=True)
    target_pcs: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed_pcs: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    stock_received: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow, onupdate=datetime.utcnow
    )

    order_products: Mapped[list["OrderProduct"]] = relationship(
        "OrderProduct", back_populates="order", cascade="all, delete-orphan"
    )
    customer: Mapped[Optional["Contact"]] = relationship("Contact", foreign_keys=[customer_id])  # noqa: F821
    worker: Mapped[Optional["Contact"]] = relationship("Contact", foreign_keys=[worker_id])  # noqa: F821


class OrderProduct(Base):
    __tablename__ = "order_products"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    completed_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="order_products")
    product: Mapped["Product"] = relationship("Product")  # noqa: F821

# backend/warehouse/models/material.py
from datetime import datetime
from typing import Optional
from sqlalchemy import Boolean, CheckConstraint, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from warehouse.core.database import Base


class MovementType:
    IN = "IN"
    OUT = "OUT"
    ADJUST = "ADJUST"

    @classmethod
    def all(cls) -> list[str]:
        return [cls.IN, cls.OUT, cls.ADJUST]


class Material(Base):
    """Raw-material lot held in the warehouse."""
    __tablename__ = "materials"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(60), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit: Mapped[str] = mapped_column(String(20), default="pcs", nullable=False)
    qty_on_hand: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    min_stock: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    max_stock: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    reorder_point: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    reorder_qty: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    price_per_unit: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    supplier: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    attribute_type: Mapped[str | None] = mapped_column(String(100), nullable=True)  # e.g. "Fabric"
    attribute_value: Mapped[str | None] = mapped_column(String(255), nullable=True)  # e.g. "Voal"
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint("qty_on_hand >= 0", name="ck_materials_qty_non_negative"),
        Index("idx_materials_attribute_type", "attribute_type"),
    )


class MaterialMovement(Base):
    """Append-only ledger row: one stock change and the balance it produced.

    Exactly one of material_id / product_id is set.
    """
    __tablename__ = "material_movements"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    material_id: Mapped[int | None] = mapped_column(
        ForeignKey("materials.id"), nullable=True, index=True
    )
    product_id: Mapped[int | None] = mapped_column(
        ForeignKey("products.id"), nullable=True, index=True
    )
    order_id: Mapped[int | None] = mapped_column(ForeignKey("orders.id"), nullable=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    movement_type: Mapped[str] = mapped_column(String(10), nullable=False)  # IN/OUT/ADJUST
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="pcs", nullable=False)
    qty_after: Mapped[float] = mapped_column(Float, nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, index=True)

    material: Mapped[Optional["Material"]] = relationship("Material")
    product: Mapped[Optional["Product"]] = relationship("Product")  # noqa: F821
    user: Mapped["User"] = relationship("User")  # noqa: F821

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_material_movements_quantity_positive"),
        CheckConstraint(
            "(material_id IS NULL) <> (product_id IS NULL)",
            name="ck_material_movements_single_target",
        ),
    )


class RemainingMaterial(Base):
    """Leftover material reported back against an order."""
    __tablename__ = "remaining_materials"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    material_id: Mapped[int] = mapped_column(ForeignKey("materials.id"), nullable=False, index=True)
    order_id: Mapped[int | None] = mapped_column(ForeignKey("orders.id"), nullable=True)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="pcs", nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)

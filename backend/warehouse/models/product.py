# backend/warehouse/models/product.py
from datetime import datetime
from typing import Optional
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from warehouse.core.database import Base


class ProductCategory:
    HIJAB = "Hijab"
    SCRUNCHIE = "Scrunchie"

    # product code prefixes
    PREFIXES = {HIJAB: "HJB", SCRUNCHIE: "SCR"}

    @classmethod
    def all(cls) -> list[str]:
        return [cls.HIJAB, cls.SCRUNCHIE]


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    material_id: Mapped[int | None] = mapped_column(ForeignKey("materials.id"), nullable=True)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    qty_on_hand: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="pcs", nullable=False)
    default_target: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow, onupdate=datetime.utcnow
    )

    base_material: Mapped[Optional["Material"]] = relationship("Material")  # noqa: F821
    colours: Mapped[list["ProductColour"]] = relationship(
        "ProductColour", back_populates="product", cascade="all, delete-orphan"
    )
    variations: Mapped[list["ProductVariation"]] = relationship(
        "ProductVariation", back_populates="product", cascade="all, delete-orphan"
    )
    photos: Mapped[list["ProductPhoto"]] = relationship(
        "ProductPhoto",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductPhoto.sort_order",
    )
    product_materials: Mapped[list["ProductMaterial"]] = relationship(
        "ProductMaterial", back_populates="product", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("qty_on_hand >= 0", name="ck_products_qty_non_negative"),
    )


class ProductColour(Base):
    __tablename__ = "product_colours"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    color_name: Mapped[str] = mapped_column(String(100), nullable=False)
    color_code: Mapped[str | None] = mapped_column(String(20), nullable=True)  # e.g. "#F5E6D3"
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    product: Mapped["Product"] = relationship("Product", back_populates="colours")


class ProductVariation(Base):
    __tablename__ = "product_variations"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    variation_type: Mapped[str] = mapped_column(String(100), nullable=False)  # e.g. "Size"
    variation_value: Mapped[str] = mapped_column(String(100), nullable=False)  # e.g. "XL"
    price_adjustment: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    product: Mapped["Product"] = relationship("Product", back_populates="variations")


class ProductPhoto(Base):
    __tablename__ = "product_photos"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    photo_path: Mapped[str] = mapped_column(String(500), nullable=False)
    thumbnail_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    original_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)

    product: Mapped["Product"] = relationship("Product", back_populates="photos")


class ProductMaterial(Base):
    """How much of a material one unit of a product consumes."""
    __tablename__ = "product_materials"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    material_id: Mapped[int] = mapped_column(ForeignKey("materials.id"), nullable=False, index=True)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="pcs", nullable=False)

    product: Mapped["Product"] = relationship("Product", back_populates="product_materials")
    material: Mapped["Material"] = relationship("Material")  # noqa: F821

    __table_args__ = (
        UniqueConstraint("product_id", "material_id", name="uq_product_materials_pair"),
        CheckConstraint("quantity > 0", name="ck_product_materials_quantity_positive"),
    )

# backend/warehouse/services/code_generator.py
"""Human-readable codes for materials, products and orders."""

import random
import re
import string
from datetime import date, datetime
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from warehouse.core.exceptions import ValidationError
from warehouse.models import Material, Order, Product, ProductCategory

MAX_CODE_ATTEMPTS = 10


def _today(today: date | None) -> str:
    return (today or datetime.utcnow().date()).strftime("%Y%m%d")


def clean_source(source: str | None) -> str:
    """Upper-case alphanumerics of the supplier/name, at most 6 characters."""
    cleaned = re.sub(r"[^A-Za-z0-9]", "", source or "").upper()[:6]
    return cleaned or "UNKNWN"


def build_material_code(
    total_units: int, source: str | None, today: date | None = None, rng: random.Random | None = None
) -> str:
    """Format: [3 random letters]-[units]-[SOURCE]-[YYYYMMDD]"""
    rng = rng or random
    letters = "".join(rng.choice(string.ascii_uppercase) for _ in range(3))
    return f"{letters}-{total_units}-{clean_source(source)}-{_today(today)}"


async def generate_material_code(
    session: AsyncSession, source: str | None, today: date | None = None, rng: random.Random | None = None
) -> str:
    """Generate a material code not yet in use.

    Raises:
        RuntimeError: No unique code after MAX_CODE_ATTEMPTS tries
    """
    total = await session.scalar(select(func.count(Material.id))) or 0
    for _ in range(MAX_CODE_ATTEMPTS):
        code = build_material_code(total + 1, source, today, rng)
        exists = await session.scalar(select(Material.id).where(Material.code == code))
        if exists is None:
            return code
    raise RuntimeError("Failed to generate unique code after multiple attempts")


async def _next_in_sequence(session: AsyncSession, model, column, prefix: str) -> str:
    count = await session.scalar(select(func.count()).select_from(model).where(column.like(f"{prefix}-%"))) or 0
    seq = count + 1
    # deleted rows leave gaps; skip forward past any taken number
    while await session.scalar(select(func.count()).select_from(model).where(column == f"{prefix}-{seq:03d}")):
        seq += 1
    return f"{prefix}-{seq:03d}"


async def generate_product_code(session: AsyncSession, category: str, today: date | None = None) -> str:
    """<HJB|SCR>-<YYYYMMDD>-<NNN>, numbered per category and day."""
    prefix = ProductCategory.PREFIXES.get(category)
    if prefix is None:
        raise ValidationError(f"Category must be one of: {', '.join(ProductCategory.all())}")
    return await _next_in_sequence(session, Product, Product.code, f"{prefix}-{_today(today)}")


async def generate_order_number(session: AsyncSession, today: date | None = None) -> str:
    """ORD-<YYYYMMDD>-<NNN>"""
    return await _next_in_sequence(session, Order, Order.order_number, f"ORD-{_today(today)}")

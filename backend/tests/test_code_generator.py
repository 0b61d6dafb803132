"""Tests for material, product and order code generation."""

import random
import re
from datetime import date

import pytest

from warehouse.core.exceptions import ValidationError
from warehouse.models import Order
from warehouse.services import code_generator
from warehouse.services.code_generator import (
    build_material_code,
    clean_source,
    generate_material_code,
    generate_order_number,
    generate_product_code,
)

TODAY = date(2026, 3, 14)


def test_clean_source_strips_and_truncates():
    assert clean_source("PT. Kain-Jaya Abadi") == "PTKAIN"
    assert clean_source("  ") == "UNKNWN"
    assert clean_source(None) == "UNKNWN"


def test_build_material_code_format():
    code = build_material_code(7, "Voal Supplier", TODAY, random.Random(1))
    assert re.fullmatch(r"[A-Z]{3}-7-VOALSU-20260314", code)


async def test_material_code_counts_existing_materials(test_session, make_material):
    await make_material()
    await make_material()
    code = await generate_material_code(test_session, "acme", TODAY)
    assert code.split("-")[1:] == ["3", "ACME", "20260314"]


async def test_material_code_gives_up_after_repeated_collisions(test_session, make_material, monkeypatch):
    await make_material(code="AAA-2-ACME-20260314")
    monkeypatch.setattr(code_generator, "build_material_code", lambda *a, **k: "AAA-2-ACME-20260314")
    with pytest.raises(RuntimeError, match="Failed to generate unique code"):
        await generate_material_code(test_session, "acme", TODAY)


async def test_product_code_sequence_per_category_and_day(test_session, make_product):
    assert await generate_product_code(test_session, "Hijab", TODAY) == "HJB-20260314-001"
    await make_product(code="HJB-20260314-001")
    assert await generate_product_code(test_session, "Hijab", TODAY) == "HJB-20260314-002"
    assert await generate_product_code(test_session, "Scrunchie", TODAY) == "SCR-20260314-001"


async def test_product_code_skips_taken_numbers(test_session, make_product):
    # one row but its number is 002, so 002 must not be reused
    await make_product(code="HJB-20260314-002")
    assert await generate_product_code(test_session, "Hijab", TODAY) == "HJB-20260314-003"


async def test_product_code_unknown_category(test_session):
    with pytest.raises(ValidationError):
        await generate_product_code(test_session, "Bag", TODAY)


async def test_order_number_sequence(test_session):
    assert await generate_order_number(test_session, TODAY) == "ORD-20260314-001"
    test_session.add(Order(order_number="ORD-20260314-001"))
    await test_session.commit()
    assert await generate_order_number(test_session, TODAY) == "ORD-20260314-002"

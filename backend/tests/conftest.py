"""Shared fixtures: test settings, an in-memory database and seed records."""

import os
import tempfile

# Settings are read at import time, so the environment must be prepared first
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="warehouse-uploads-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from warehouse.core.database import Base
from warehouse.core.security import hash_password
from warehouse.models import Material, Product, User, UserRole


# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def admin_user(test_session):
    user = User(
        name="Admin",
        email="admin@test.com",
        password_hash=hash_password("admin123"),
        role=UserRole.ADMIN,
    )
    test_session.add(user)
    await test_session.commit()
    await test_session.refresh(user)
    return user


@pytest.fixture
async def staff_user(test_session):
    user = User(
        name="Staff",
        email="staff@test.com",
        password_hash=hash_password("staff123"),
        role=UserRole.STAFF,
    )
    test_session.add(user)
    await test_session.commit()
    await test_session.refresh(user)
    return user


@pytest.fixture
def make_material(test_session):
    """Insert a material directly, bypassing the ledger (opening balance)."""
    counter = {"n": 0}

    async def _make(qty_on_hand: float = 0, **fields) -> Material:
        counter["n"] += 1
        values = {
            "code": f"TST-{counter['n']}-TEST-20260101",
            "name": f"Material {counter['n']}",
            "unit": "meter",
            "qty_on_hand": qty_on_hand,
        }
        values.update(fields)
        material = Material(**values)
        test_session.add(material)
        await test_session.commit()
        await test_session.refresh(material)
        return material

    return _make


@pytest.fixture
def make_product(test_session):
    counter = {"n": 0}

    async def _make(qty_on_hand: int = 0, **fields) -> Product:
        counter["n"] += 1
        values = {
            "code": f"HJB-20260101-{counter['n']:03d}",
            "name": f"Product {counter['n']}",
            "category": "Hijab",
            "qty_on_hand": qty_on_hand,
        }
        values.update(fields)
        product = Product(**values)
        test_session.add(product)
        await test_session.commit()
        await test_session.refresh(product)
        return product

    return _make

"""
Pytest configuration and shared fixtures for the Darzi backend tests.

Provides an in-memory SQLite DB session, a file-backed DB for multi-session
race tests, an HTTP client bound to the test DB, and provider/order factories
placed around a fixed origin in Bengaluru.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from database import Base, get_db
from services import discovery_service
from utils.geo import destination_point

# MG Road, Bengaluru
ORIGIN_LAT = 12.9716
ORIGIN_LNG = 77.5946


# ── Database Fixtures ────────────────────────────────────────────────


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create an in-memory SQLite database session for each test.

    Uses StaticPool to allow in-memory SQLite with async SQLAlchemy.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture(scope="function")
async def session_factory(tmp_path):
    """
    Session factory over a file-backed SQLite DB.

    Each session gets its own connection, so concurrent sessions contend on
    real database locks the way separate service instances would.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'race.db'}",
        connect_args={"timeout": 10},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client against the app with the in-memory database.

    Overrides get_db dependency to use the test DB session.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clear_discovery_cache():
    """Discovery results are cached per process; start every test cold."""
    discovery_service.clear_cache()
    yield
    discovery_service.clear_cache()


# ── Test Data Fixtures ────────────────────────────────────────────────


@pytest.fixture
def origin() -> tuple[float, float]:
    return ORIGIN_LAT, ORIGIN_LNG


@pytest.fixture
def sample_requester_ref() -> str:
    return "cust-9845012345"


@pytest.fixture
def sample_provider_ref() -> str:
    return "tailor-001"


@pytest.fixture
def make_provider(db_session: AsyncSession):
    """
    Factory: insert a provider `distance_km` from the origin on `bearing` degrees.

    Pass distance_km=None for a provider without a location.
    """
    from db_models import Provider

    async def _make(
        provider_id: str,
        distance_km: float | None,
        *,
        bearing: float = 0.0,
        status: str = "ACTIVE",
        specializations: list[str] | None = None,
        provides_fabric: bool = False,
        name: str | None = None,
    ) -> Provider:
        lat = lng = None
        if distance_km is not None:
            lat, lng = destination_point(ORIGIN_LAT, ORIGIN_LNG, distance_km, bearing)
        provider = Provider(
            id=provider_id,
            name=name or f"Tailor {provider_id}",
            shop_name=f"{provider_id} Stitch Works",
            status=status,
            latitude=lat,
            longitude=lng,
            specializations=specializations if specializations is not None else ["Shirt", "Pant"],
            provides_fabric=provides_fabric,
            city="Bengaluru",
        )
        db_session.add(provider)
        await db_session.commit()
        return provider

    return _make


@pytest.fixture
def order_kwargs(sample_requester_ref: str, sample_provider_ref: str) -> dict:
    """Keyword arguments for order_service.create_order (total 1000, deposit 100)."""
    return {
        "requester_ref": sample_requester_ref,
        "provider_ref": sample_provider_ref,
        "garment_type": "Shirt",
        "measurements": {"chest": 38.5, "waist": 32, "sleeve": 24.0},
        "total_amount": 1000,
        "deposit_amount": 100,
        "deposit_mode": "CASH",
    }


@pytest.fixture
async def placed_order(db_session: AsyncSession, order_kwargs: dict):
    """A committed order in PLACED."""
    from services import order_service

    order = await order_service.create_order(db_session, **order_kwargs)
    await db_session.commit()
    return order

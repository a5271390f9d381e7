# tests/conftest.py
from __future__ import annotations

from decimal import Decimal
from typing import AsyncGenerator, Callable, Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from core.config import Settings
from db.database import Base, get_async_session, import_models
from db.inventory.stock import StockRecord
from db.product import Product
from db.store import Store
from main import create_app

INTERNAL_KEY = "test-internal-key"
AUTH_SECRET = "test-auth-secret-0123456789-abcdef"


# =========================================
# Per-test SQLite file database (NullPool, one connection per session)
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    import_models()
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def session_maker(async_engine: AsyncEngine):
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as sess:
        yield sess


# =========================================
# Reference data helpers
# =========================================
@pytest.fixture
def add_stock(session_maker) -> Callable:
    """Insert a store/product/stock triple; reuses store and product by id."""

    async def _add(
        *,
        store_id: str,
        product_id: str,
        quantity: int,
        lat: float = 37.0,
        lng: float = -122.0,
        store_name: Optional[str] = None,
        product_name: str = "Widget",
        price: str = "9.99",
    ) -> None:
        async with session_maker() as s:
            async with s.begin():
                if await s.get(Store, store_id) is None:
                    s.add(
                        Store(
                            id=store_id,
                            name=store_name or f"Store {store_id}",
                            latitude=lat,
                            longitude=lng,
                            full_address=f"1 Main St, Unit {store_id}",
                        )
                    )
                if await s.get(Product, product_id) is None:
                    s.add(Product(id=product_id, name=product_name, price=Decimal(price)))
                await s.flush()
                s.add(StockRecord(store_id=store_id, product_id=product_id, available_quantity=quantity))

    return _add


@pytest.fixture
def stock_level(session_maker) -> Callable:
    async def _level(store_id: str, product_id: str) -> Optional[int]:
        async with session_maker() as s:
            row = await s.get(StockRecord, (store_id, product_id))
            return None if row is None else row.available_quantity

    return _level


# =========================================
# Settings / FastAPI / httpx AsyncClient
# =========================================
@pytest.fixture
def unconfigured_settings() -> Settings:
    return Settings(internal_system_key=INTERNAL_KEY, auth_secret="")


@pytest.fixture
def configured_settings() -> Settings:
    return Settings(internal_system_key=INTERNAL_KEY, auth_secret=AUTH_SECRET)


@pytest.fixture
def make_client(session_maker):
    def _make(settings: Settings) -> httpx.AsyncClient:
        app = create_app(settings)

        async def _session_override() -> AsyncGenerator[AsyncSession, None]:
            async with session_maker() as sess:
                yield sess

        app.dependency_overrides[get_async_session] = _session_override
        client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://testserver",
        )
        return client

    return _make


@pytest_asyncio.fixture
async def client(make_client, unconfigured_settings) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with make_client(unconfigured_settings) as c:
        yield c


@pytest_asyncio.fixture
async def configured_client(make_client, configured_settings) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with make_client(configured_settings) as c:
        yield c

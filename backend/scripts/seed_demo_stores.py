"""
Seed demo stores, products and stock rows (idempotent).

Run locally:
  python backend/scripts/seed_demo_stores.py

It uses the same DATABASE_* env vars as the backend (dotenv supported by core.config).
"""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

import structlog  # noqa: E402
from sqlalchemy import func, select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from core.config import settings  # noqa: E402
from core.logging import configure_logging  # noqa: E402
from db.database import async_session_maker, create_db_and_tables  # noqa: E402
from db.inventory.stock import StockRecord  # noqa: E402
from db.product import Product  # noqa: E402
from db.store import Store  # noqa: E402

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SeedStore:
    name: str
    latitude: float
    longitude: float
    full_address: str


@dataclass(frozen=True)
class SeedProduct:
    name: str
    price: Decimal


SEED_STORES: list[SeedStore] = [
    SeedStore("Mission Hardware", 37.7599, -122.4148, "2145 Mission St, San Francisco, CA 94110"),
    SeedStore("Sunset Supply", 37.7536, -122.4906, "1820 Irving St, San Francisco, CA 94122"),
    SeedStore("Oakland Depot", 37.8044, -122.2712, "410 Broadway, Oakland, CA 94607"),
    SeedStore("Palo Alto Corner", 37.4419, -122.1430, "300 University Ave, Palo Alto, CA 94301"),
]

SEED_PRODUCTS: list[SeedProduct] = [
    SeedProduct("Cordless Drill 18V", Decimal("89.99")),
    SeedProduct("LED Work Light", Decimal("24.50")),
    SeedProduct("Extension Cord 25ft", Decimal("15.99")),
]

# (store name, product name) -> units on hand
SEED_STOCK: dict[tuple[str, str], int] = {
    ("Mission Hardware", "Cordless Drill 18V"): 4,
    ("Mission Hardware", "LED Work Light"): 12,
    ("Sunset Supply", "Cordless Drill 18V"): 0,
    ("Sunset Supply", "Extension Cord 25ft"): 30,
    ("Oakland Depot", "Cordless Drill 18V"): 7,
    ("Oakland Depot", "LED Work Light"): 3,
    ("Palo Alto Corner", "Extension Cord 25ft"): 9,
}


async def _get_or_create_store(db: AsyncSession, seed: SeedStore) -> Store:
    res = await db.execute(select(Store).where(func.lower(Store.name) == seed.name.lower()))
    store = res.scalar_one_or_none()
    if store:
        return store
    store = Store(
        name=seed.name,
        latitude=seed.latitude,
        longitude=seed.longitude,
        full_address=seed.full_address,
    )
    db.add(store)
    await db.flush()
    return store


async def _get_or_create_product(db: AsyncSession, seed: SeedProduct) -> Product:
    res = await db.execute(select(Product).where(func.lower(Product.name) == seed.name.lower()))
    product = res.scalar_one_or_none()
    if product:
        return product
    product = Product(name=seed.name, price=seed.price)
    db.add(product)
    await db.flush()
    return product


async def seed(db: AsyncSession) -> dict:
    stores = {s.name: await _get_or_create_store(db, s) for s in SEED_STORES}
    products = {p.name: await _get_or_create_product(db, p) for p in SEED_PRODUCTS}

    created_stock = 0
    for (store_name, product_name), qty in SEED_STOCK.items():
        store = stores[store_name]
        product = products[product_name]
        if await db.get(StockRecord, (store.id, product.id)) is not None:
            continue
        db.add(StockRecord(store_id=store.id, product_id=product.id, available_quantity=qty))
        created_stock += 1

    await db.commit()
    return {"stores": len(stores), "products": len(products), "stock_rows_created": created_stock}


async def main() -> None:
    configure_logging(settings)
    await create_db_and_tables()
    async with async_session_maker() as db:
        summary = await seed(db)
    logger.info("demo data seeded", **summary)


if __name__ == "__main__":
    asyncio.run(main())

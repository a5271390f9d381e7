"""Nearby in-stock offers for a product query, closest store first."""

from typing import List

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.geo import great_circle_miles
from db.inventory.stock import StockRecord as StockRecordModel
from db.product import Product as ProductModel
from db.store import Store as StoreModel
from schemas.tools import Offer

logger = structlog.get_logger(__name__)

DEFAULT_RADIUS_MILES = 10.0
MAX_OFFERS = 10


async def find_offers(
    db: AsyncSession,
    product_query: str,
    user_lat: float,
    user_lng: float,
    max_radius_miles: float = DEFAULT_RADIUS_MILES,
) -> List[Offer]:
    """Return up to MAX_OFFERS in-stock offers strictly inside the radius.

    An empty list means nothing matched; storage failures propagate.
    """
    q = (
        select(StockRecordModel, StoreModel, ProductModel)
        .join(StoreModel, StockRecordModel.store_id == StoreModel.id)
        .join(ProductModel, StockRecordModel.product_id == ProductModel.id)
        .where(ProductModel.name.icontains(product_query, autoescape=True))
        .where(StockRecordModel.available_quantity > 0)
        # Fixed input order so equal distances keep a stable tiebreak.
        .order_by(StockRecordModel.store_id, StockRecordModel.product_id)
    )
    rows = (await db.execute(q)).all()

    in_range = []
    for stock, store, product in rows:
        distance = great_circle_miles(user_lat, user_lng, store.latitude, store.longitude)
        if distance < max_radius_miles:
            in_range.append((distance, stock, store, product))

    in_range.sort(key=lambda r: r[0])

    offers = [
        Offer(
            store_id=store.id,
            venue_id=store.id,
            store_name=store.name,
            product_id=product.id,
            product_name=product.name,
            price=float(product.price),
            available_quantity=int(stock.available_quantity),
            distance_miles=round(distance, 2),
            formatted_pickup_address=store.full_address,
        )
        for distance, stock, store, product in in_range[:MAX_OFFERS]
    ]
    logger.debug(
        "proximity search",
        product_query=product_query,
        candidates=len(rows),
        in_range=len(in_range),
        returned=len(offers),
    )
    return offers

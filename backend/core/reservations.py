"""
Atomic stock reservation.

The read-check-write runs inside one transaction: the row is read with a
row lock (FOR UPDATE where the engine supports it) and the decrement is a
conditional UPDATE that only matches while enough stock remains. Engines
without row locks still cannot oversell because of that guard.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db.inventory.stock import StockRecord as StockRecordModel

logger = structlog.get_logger(__name__)


class ReservationError(Exception):
    """Business-level reservation failure; reported to the caller as data."""


class StockRecordNotFound(ReservationError):
    def __init__(self, store_id: str, product_id: str):
        self.store_id = store_id
        self.product_id = product_id
        super().__init__("Stock record not found")


class InsufficientStock(ReservationError):
    def __init__(self, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__(f"Insufficient stock. Available: {available}, Requested: {requested}")


@dataclass(frozen=True)
class ReservationResult:
    product_id: str
    store_id: str
    quantity: int
    remaining: Optional[int] = None
    error: Optional[ReservationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def reason(self) -> Optional[str]:
        return str(self.error) if self.error else None


def _stock_key(store_id: str, product_id: str):
    return (
        StockRecordModel.store_id == store_id,
        StockRecordModel.product_id == product_id,
    )


async def reserve_stock(
    db: AsyncSession,
    *,
    product_id: str,
    store_id: str,
    quantity: int,
) -> ReservationResult:
    """Decrement available stock by ``quantity`` or fail without side effects.

    ``db`` must not have a transaction in progress; this function owns the
    transactional scope and commits or rolls back before returning.
    """
    if quantity <= 0:
        raise ValueError("quantity must be a positive integer")

    try:
        async with db.begin():
            record = (
                await db.execute(
                    select(StockRecordModel)
                    .where(*_stock_key(store_id, product_id))
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
            ).scalar_one_or_none()

            if record is None:
                raise StockRecordNotFound(store_id, product_id)

            if record.available_quantity < quantity:
                raise InsufficientStock(int(record.available_quantity), quantity)

            res = await db.execute(
                update(StockRecordModel)
                .where(*_stock_key(store_id, product_id))
                .where(StockRecordModel.available_quantity >= quantity)
                .values(
                    available_quantity=StockRecordModel.available_quantity - quantity,
                    updated_at=func.now(),
                )
                .execution_options(synchronize_session=False)
            )

            # Reload inside the transaction: the row is ours until commit.
            await db.refresh(record)
            if res.rowcount != 1:
                raise InsufficientStock(int(record.available_quantity), quantity)
            remaining = int(record.available_quantity)

    except ReservationError as e:
        logger.info(
            "reservation rejected",
            store_id=store_id,
            product_id=product_id,
            quantity=quantity,
            reason=str(e),
        )
        return ReservationResult(product_id, store_id, quantity, error=e)

    logger.info(
        "reservation committed",
        store_id=store_id,
        product_id=product_id,
        quantity=quantity,
        remaining=remaining,
    )
    return ReservationResult(product_id, store_id, quantity, remaining=remaining)

"""Inventory sync: the restocking path that adds units to StockRecord rows."""

from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.access import require_internal_key
from db.database import get_async_session
from db.inventory.stock import StockRecord as StockRecordModel
from db.product import Product as ProductModel
from db.store import Store as StoreModel
from schemas.inventory import StockLevelRead, StockSyncRequest, StockSyncResponse

logger = structlog.get_logger(__name__)

router = APIRouter()


async def _increment_stock(
    *,
    db: AsyncSession,
    store_id: str,
    product_id: str,
    delta: int,
) -> StockLevelRead:
    res = await db.execute(
        update(StockRecordModel)
        .where(StockRecordModel.store_id == store_id)
        .where(StockRecordModel.product_id == product_id)
        .values(
            available_quantity=StockRecordModel.available_quantity + delta,
            updated_at=func.now(),
        )
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        if await db.get(StoreModel, store_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Store {store_id} not found")
        if await db.get(ProductModel, product_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Product {product_id} not found")
        db.add(StockRecordModel(store_id=store_id, product_id=product_id, available_quantity=delta))
        await db.flush()

    row = (
        await db.execute(
            select(StockRecordModel.available_quantity, StockRecordModel.updated_at)
            .where(StockRecordModel.store_id == store_id)
            .where(StockRecordModel.product_id == product_id)
        )
    ).one()
    return StockLevelRead(
        store_id=store_id,
        product_id=product_id,
        available_quantity=int(row.available_quantity),
        updated_at=row.updated_at,
    )


@router.post(
    "/sync",
    response_model=StockSyncResponse,
    dependencies=[Depends(require_internal_key)],
)
async def sync_inventory(
    payload: StockSyncRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """Add received units to stock. All items apply in one transaction or none do."""
    synced: List[StockLevelRead] = []
    try:
        async with db.begin():
            for item in payload.items:
                synced.append(
                    await _increment_stock(
                        db=db,
                        store_id=item.store_id,
                        product_id=item.product_id,
                        delta=item.quantity,
                    )
                )
    except IntegrityError:
        logger.warning("inventory sync conflicted", items=len(payload.items))
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Stock changed concurrently; retry the sync",
        )

    logger.info("inventory synced", items=len(synced))
    return StockSyncResponse(synced=synced)

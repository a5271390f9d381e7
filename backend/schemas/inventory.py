from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class StockSyncItem(BaseModel):
    store_id: str
    product_id: str
    quantity: int = Field(gt=0, description="Units received; added to available stock")

    @field_validator("store_id", "product_id")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v


class StockSyncRequest(BaseModel):
    items: List[StockSyncItem] = Field(min_length=1)


class StockLevelRead(BaseModel):
    store_id: str
    product_id: str
    available_quantity: int
    updated_at: Optional[datetime] = None


class StockSyncResponse(BaseModel):
    synced: List[StockLevelRead]

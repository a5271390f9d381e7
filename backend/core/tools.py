"""
Agent tool dispatch.

Validates a tool call against the parameter model registered for its name,
runs it, and wraps the outcome in the ToolResult envelope. Business failures
(no stock row, not enough stock) come back as envelopes with ``isError``;
caller mistakes and internal failures are raised as ToolError subclasses
carrying the HTTP status the router should answer with.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional, Sequence

import structlog
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from core.proximity import find_offers
from core.reservations import reserve_stock
from schemas.tools import FindProductParams, ReserveStockParams, ToolResult

logger = structlog.get_logger(__name__)


class ToolError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response(self) -> dict:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class UnknownToolError(ToolError):
    status_code = 400

    def __init__(self, tool: str):
        super().__init__("Unknown tool")
        self.tool = tool


class ToolValidationError(ToolError):
    status_code = 422


class ToolServerError(ToolError):
    status_code = 500


TOOL_PARAMS: Dict[str, type[BaseModel]] = {
    "find_product_nearby": FindProductParams,
    "reserve_stock_item": ReserveStockParams,
}

TOOL_DESCRIPTIONS: Dict[str, str] = {
    "find_product_nearby": (
        "Find stores near the user that have a product in stock, "
        "closest first (at most 10 results)."
    ),
    "reserve_stock_item": (
        "Reserve a quantity of a product at a specific store. "
        "Fails without changes when the store has too little stock."
    ),
}


def tool_metadata() -> dict:
    return {
        "tools": [
            {
                "name": name,
                "description": TOOL_DESCRIPTIONS[name],
                "parameters": model.model_json_schema(),
            }
            for name, model in TOOL_PARAMS.items()
        ]
    }


def validation_details(errors: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Trim pydantic error dicts to their JSON-safe parts."""
    return [
        {"loc": [str(p) for p in err["loc"]], "msg": err["msg"], "type": err["type"]}
        for err in errors
    ]


async def _find_product_nearby(db: AsyncSession, params: FindProductParams) -> ToolResult:
    offers = await find_offers(
        db,
        params.product_query,
        params.user_lat,
        params.user_lng,
        params.max_radius_miles,
    )
    if not offers:
        return ToolResult.text(
            f'No stores found with "{params.product_query}" in stock '
            f"within {params.max_radius_miles:g} miles."
        )
    payload = [o.model_dump() for o in offers]
    return ToolResult.text(json.dumps(payload, indent=2))


async def _reserve_stock_item(db: AsyncSession, params: ReserveStockParams) -> ToolResult:
    result = await reserve_stock(
        db,
        product_id=params.product_id,
        store_id=params.store_id,
        quantity=params.quantity,
    )
    if not result.ok:
        return ToolResult.text(f"Reservation failed: {result.reason}", is_error=True)
    return ToolResult.text(
        f"Successfully reserved {params.quantity} items of product "
        f"{params.product_id} at store {params.store_id}."
    )


_HANDLERS = {
    "find_product_nearby": _find_product_nearby,
    "reserve_stock_item": _reserve_stock_item,
}


class ToolDispatcher:
    def __init__(self, timeout_seconds: Optional[float] = None):
        self.timeout_seconds = timeout_seconds

    async def dispatch(self, db: AsyncSession, tool: str, raw_params: Any) -> ToolResult:
        model = TOOL_PARAMS.get(tool)
        if model is None:
            raise UnknownToolError(tool)

        try:
            params = model.model_validate(raw_params if raw_params is not None else {})
        except ValidationError as e:
            raise ToolValidationError(f"Invalid parameters for {tool}", validation_details(e.errors())) from e

        handler = _HANDLERS[tool]
        try:
            return await asyncio.wait_for(handler(db, params), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.error("tool call timed out", tool=tool, timeout_seconds=self.timeout_seconds)
            raise ToolServerError(f"{tool} timed out") from e
        except Exception as e:
            logger.exception("tool call failed", tool=tool)
            raise ToolServerError(str(e) or e.__class__.__name__) from e

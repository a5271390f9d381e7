from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FindProductParams(BaseModel):
    model_config = ConfigDict(strict=True)

    product_query: str = Field(description="Case-insensitive substring of the product name")
    user_lat: float = Field(ge=-90, le=90, description="Caller latitude in degrees")
    user_lng: float = Field(ge=-180, le=180, description="Caller longitude in degrees")
    max_radius_miles: float = Field(default=10, gt=0, description="Search radius in miles")


class ReserveStockParams(BaseModel):
    model_config = ConfigDict(strict=True)

    product_id: str
    store_id: str
    quantity: int = Field(gt=0, description="Number of units to reserve")

    @field_validator("quantity", mode="before")
    @classmethod
    def integral_float_quantity(cls, v):
        # JSON clients may send 2.0 for 2
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return v


class ToolCall(BaseModel):
    tool: str
    params: Dict[str, Any] = Field(default_factory=dict)


class Offer(BaseModel):
    store_id: str
    venue_id: str
    store_name: str
    product_id: str
    product_name: str
    price: float
    available_quantity: int
    distance_miles: float
    formatted_pickup_address: str


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolResult(BaseModel):
    """Envelope returned for every handled tool call, business failures included."""
    model_config = ConfigDict(populate_by_name=True)

    content: List[TextContent]
    is_error: Optional[bool] = Field(default=None, alias="isError")

    @classmethod
    def text(cls, text: str, is_error: bool = False) -> "ToolResult":
        return cls(content=[TextContent(text=text)], is_error=True if is_error else None)

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)

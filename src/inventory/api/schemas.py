"""Pydantic request/response schemas for the Inventory API."""

from pydantic import BaseModel, Field

from inventory.stock.movement import MovementType
from shared.api import UTCDateTime


class AdjustStockRequest(BaseModel):
    """Receive (IN), remove (OUT) or set (ADJUSTMENT) stock for a product."""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"quantity": 24, "type": "IN", "reason": "Morning delivery from supplier"},
                {"quantity": 10, "type": "ADJUSTMENT", "reason": "Physical count"},
            ]
        }
    }

    quantity: int = Field(ge=0)
    type: MovementType
    reason: str = Field(max_length=255)


class StockLevelResponse(BaseModel):
    product_id: str
    display_name: str
    stock_quantity: int
    min_stock: int
    is_low: bool


class MovementResponse(BaseModel):
    id: str
    product_id: str
    type: str
    quantity: int
    stock_after: int
    reason: str | None = None
    created_at: UTCDateTime

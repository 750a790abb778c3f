"""FastAPI routes for the Inventory domain: stock levels and movements."""

from fastapi import APIRouter, Query
from protean.utils.globals import current_domain

from catalogue.product.product import Product
from inventory.api.schemas import AdjustStockRequest, MovementResponse, StockLevelResponse
from inventory.stock import ledger
from inventory.stock.adjustment import AdjustStock

# ---------------------------------------------------------------------------
# Inventory Router
# ---------------------------------------------------------------------------
inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])


def _stock_level(product) -> StockLevelResponse:
    return StockLevelResponse(
        product_id=str(product.id),
        display_name=product.display_name,
        stock_quantity=product.stock_quantity,
        min_stock=product.min_stock,
        is_low=product.stock_quantity <= product.min_stock,
    )


def _movement(movement) -> MovementResponse:
    return MovementResponse(
        id=str(movement.id),
        product_id=str(movement.product_id),
        type=movement.movement_type,
        quantity=movement.quantity,
        stock_after=movement.stock_after,
        reason=movement.reason,
        created_at=movement.created_at,
    )


@inventory_router.get("/low-stock", response_model=list[StockLevelResponse])
async def list_low_stock() -> list[StockLevelResponse]:
    return [_stock_level(product) for product in ledger.low_stock_products()]


@inventory_router.get("/{product_id}", response_model=StockLevelResponse)
async def read_stock(product_id: str) -> StockLevelResponse:
    return _stock_level(current_domain.repository_for(Product).get_product(product_id))


@inventory_router.post("/{product_id}/adjust", response_model=StockLevelResponse)
async def adjust(product_id: str, body: AdjustStockRequest) -> StockLevelResponse:
    command = AdjustStock(
        product_id=product_id,
        quantity=body.quantity,
        movement_type=body.type.value,
        reason=body.reason,
    )
    current_domain.process(command, asynchronous=False)
    return _stock_level(current_domain.repository_for(Product).get_product(product_id))


@inventory_router.get("/{product_id}/movements", response_model=list[MovementResponse])
async def list_movements(product_id: str, limit: int | None = Query(default=None, ge=1)) -> list[MovementResponse]:
    current_domain.repository_for(Product).get_product(product_id)
    return [_movement(m) for m in ledger.movements_for(product_id, limit)]

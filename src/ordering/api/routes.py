"""FastAPI routes for the Ordering domain: carts and orders."""

import json
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, Response
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AddToCartRequest,
    CancelOrderRequest,
    CartItemResponse,
    CartResponse,
    CartSummaryResponse,
    CheckoutRequest,
    OrderListResponse,
    OrderResponse,
    OrderStatsResponse,
    PaginationResponse,
    UpdateCartItemRequest,
    UpdateStatusRequest,
)
from ordering.cart.items import (
    AddToCart,
    ClearCart,
    OpenCart,
    RemoveFromCart,
    UpdateCartItem,
    cart_products,
    cart_summary,
    load_cart,
)
from ordering.order import queries
from ordering.order.cancellation import CancelOrder
from ordering.order.creation import PlaceOrder
from ordering.order.order import OrderStatus, OrderType
from ordering.order.status import UpdateOrderStatus
from shared.api import current_user_id, get_settings
from shared.config import Settings


def _order_list(page) -> OrderListResponse:
    return OrderListResponse(
        orders=[OrderResponse.of(order) for order in page.orders],
        pagination=PaginationResponse(
            page=page.page,
            limit=page.limit,
            total=page.total,
            total_pages=page.total_pages,
        ),
    )


def _cart_item(user_id, item_id) -> CartItemResponse:
    cart = load_cart(user_id)
    item = cart.get_item(item_id)
    return CartItemResponse.of(item, cart_products(cart)[str(item.product_id)])


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def read_cart(user_id: int = Depends(current_user_id)) -> CartResponse:
    current_domain.process(OpenCart(user_id=user_id), asynchronous=False)
    cart = load_cart(user_id)
    return CartResponse.of(cart, cart_products(cart))


@cart_router.get("/summary", response_model=CartSummaryResponse)
async def read_cart_summary(
    user_id: int = Depends(current_user_id),
    settings: Settings = Depends(get_settings),
) -> CartSummaryResponse:
    return CartSummaryResponse(**cart_summary(load_cart(user_id), settings))


@cart_router.post("/items", status_code=201, response_model=CartItemResponse)
async def add_cart_item(body: AddToCartRequest, user_id: int = Depends(current_user_id)) -> CartItemResponse:
    command = AddToCart(
        user_id=user_id,
        product_id=body.product_id,
        quantity=body.quantity,
        selected_gifts=json.dumps([{"gift_id": g.gift_id, "quantity": g.quantity} for g in body.selected_gifts]),
    )
    item_id = current_domain.process(command, asynchronous=False)
    return _cart_item(user_id, item_id)


@cart_router.patch("/items/{item_id}", response_model=CartItemResponse)
async def update_cart_item_quantity(
    item_id: str,
    body: UpdateCartItemRequest,
    user_id: int = Depends(current_user_id),
) -> CartItemResponse:
    command = UpdateCartItem(user_id=user_id, item_id=item_id, quantity=body.quantity)
    current_domain.process(command, asynchronous=False)
    return _cart_item(user_id, item_id)


@cart_router.delete("/items/{item_id}", status_code=204)
async def remove_cart_item(item_id: str, user_id: int = Depends(current_user_id)) -> Response:
    current_domain.process(RemoveFromCart(user_id=user_id, item_id=item_id), asynchronous=False)
    return Response(status_code=204)


@cart_router.delete("", status_code=204)
async def empty_cart(user_id: int = Depends(current_user_id)) -> Response:
    current_domain.process(ClearCart(user_id=user_id), asynchronous=False)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def checkout(body: CheckoutRequest, user_id: int = Depends(current_user_id)) -> OrderResponse:
    """Convert the caller's cart into an order.

    1. Re-validate the cart (and the schedule for SCHEDULED orders)
    2. Snapshot prices and totals into a PENDING order
    3. Decrement stock and empty the cart
    """
    command = PlaceOrder(
        user_id=user_id,
        order_type=body.type.value,
        delivery_type=body.delivery_type.value,
        scheduled_for=body.scheduled_for,
        address_id=body.address_id,
        notes=body.notes,
        payment_method=body.payment_method,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return OrderResponse.of(queries.get_order(order_id))


@order_router.get("", response_model=OrderListResponse)
async def list_orders(
    user_id: int | None = None,
    status: OrderStatus | None = None,
    type: OrderType | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=queries.DEFAULT_PAGE_SIZE, ge=1, le=100),
) -> OrderListResponse:
    return _order_list(
        queries.list_orders(
            user_id=user_id,
            status=status,
            order_type=type,
            start=start_date,
            end=end_date,
            page=page,
            limit=limit,
        )
    )


@order_router.get("/mine", response_model=OrderListResponse)
async def list_my_orders(
    status: OrderStatus | None = None,
    type: OrderType | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=queries.DEFAULT_PAGE_SIZE, ge=1, le=100),
    user_id: int = Depends(current_user_id),
) -> OrderListResponse:
    return _order_list(queries.orders_for_user(user_id, status=status, order_type=type, page=page, limit=limit))


@order_router.get("/today", response_model=list[OrderResponse])
async def list_todays_orders(settings: Settings = Depends(get_settings)) -> list[OrderResponse]:
    return [OrderResponse.of(order) for order in queries.todays_orders(timezone=settings.business_timezone)]


@order_router.get("/scheduled", response_model=list[OrderResponse])
async def list_scheduled_orders(
    on: date | None = Query(default=None, alias="date"),
    settings: Settings = Depends(get_settings),
) -> list[OrderResponse]:
    orders = queries.scheduled_orders(on, timezone=settings.business_timezone)
    return [OrderResponse.of(order) for order in orders]


@order_router.get("/stats", response_model=OrderStatsResponse)
async def read_order_stats(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    settings: Settings = Depends(get_settings),
) -> OrderStatsResponse:
    return OrderStatsResponse(
        **queries.order_stats(start_date, end_date, timezone=settings.business_timezone)
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
async def read_order(order_id: str) -> OrderResponse:
    return OrderResponse.of(queries.get_order(order_id))


@order_router.patch("/{order_id}/status", response_model=OrderResponse)
async def change_order_status(
    order_id: str,
    body: UpdateStatusRequest,
    actor_id: int = Depends(current_user_id),
) -> OrderResponse:
    command = UpdateOrderStatus(order_id=order_id, status=body.status.value, changed_by=actor_id, notes=body.notes)
    current_domain.process(command, asynchronous=False)
    return OrderResponse.of(queries.get_order(order_id))


@order_router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel(
    order_id: str,
    body: CancelOrderRequest | None = None,
    actor_id: int = Depends(current_user_id),
) -> OrderResponse:
    command = CancelOrder(order_id=order_id, cancelled_by=actor_id, reason=body.reason if body else None)
    current_domain.process(command, asynchronous=False)
    return OrderResponse.of(queries.get_order(order_id))

"""Pydantic request/response schemas for the Ordering API.

These are external contracts, separate from the internal commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from catalogue.api.schemas import GiftAllocationSpec
from ordering.order.order import DeliveryType, OrderStatus, OrderType
from shared.api import Money, UTCDateTime


# ---------------------------------------------------------------------------
# Cart Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)
    selected_gifts: list[GiftAllocationSpec] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "0b8e7c52-4f0e-4c4e-a3a4-2d7f1c9e5b10",
                    "quantity": 2,
                    "selected_gifts": [{"gift_id": "c7b0e7f2-6a0f-4d5e-9c55-1f0f3b8a2d11", "quantity": 1}],
                }
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(ge=1)


class SelectedGiftResponse(BaseModel):
    gift_id: str
    quantity: int


class CartProductResponse(BaseModel):
    id: str
    name: str
    presentation: str
    price: Money
    stock_quantity: int
    is_flagship: bool


class CartItemResponse(BaseModel):
    id: str
    product_id: str
    quantity: int
    line_total: Money
    product: CartProductResponse
    selected_gifts: list[SelectedGiftResponse]

    @classmethod
    def of(cls, item, product):
        return cls(
            id=str(item.id),
            product_id=str(item.product_id),
            quantity=item.quantity,
            line_total=product.unit_price * item.quantity,
            product=CartProductResponse(
                id=str(product.id),
                name=product.name,
                presentation=product.presentation or "",
                price=product.price,
                stock_quantity=product.stock_quantity,
                is_flagship=product.is_flagship,
            ),
            selected_gifts=[
                SelectedGiftResponse(gift_id=gift_id, quantity=quantity) for gift_id, quantity in item.gifts().items()
            ],
        )


class CartResponse(BaseModel):
    id: str
    user_id: int
    item_count: int
    subtotal: Money
    items: list[CartItemResponse]

    @classmethod
    def of(cls, cart, products):
        prices = {product_id: product.unit_price for product_id, product in products.items()}
        return cls(
            id=str(cart.id),
            user_id=cart.user_id,
            item_count=cart.item_count,
            subtotal=cart.subtotal(prices),
            items=[CartItemResponse.of(item, products[str(item.product_id)]) for item in cart.lines],
        )


class CartSummaryResponse(BaseModel):
    item_count: int
    subtotal: Money
    tax: Money
    total: Money
    flagship_count: int


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    type: OrderType
    delivery_type: DeliveryType
    scheduled_for: datetime | None = None
    address_id: int | None = None
    notes: str | None = Field(default=None, max_length=500)
    payment_method: str | None = Field(default=None, max_length=50)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "type": "SCHEDULED",
                    "delivery_type": "DELIVERY",
                    "scheduled_for": "2026-11-02T12:00:00-06:00",
                    "address_id": 3,
                    "notes": "Ring the bell twice",
                    "payment_method": "cash",
                }
            ]
        }
    }


class UpdateStatusRequest(BaseModel):
    status: OrderStatus
    notes: str | None = Field(default=None, max_length=500)


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Order Response Schemas
# ---------------------------------------------------------------------------
class OrderItemResponse(BaseModel):
    id: str
    product_id: str
    quantity: int
    unit_price: Money
    line_total: Money
    gift_selections: list[SelectedGiftResponse]


class StatusHistoryResponse(BaseModel):
    status: str
    changed_by: int | None = None
    notes: str | None = None
    changed_at: UTCDateTime


class OrderResponse(BaseModel):
    id: str
    user_id: int
    type: str
    delivery_type: str
    status: str
    subtotal: Money
    tax: Money
    total: Money
    scheduled_for: UTCDateTime | None = None
    address_id: int | None = None
    notes: str | None = None
    payment_method: str | None = None
    is_paid: bool
    paid_at: UTCDateTime | None = None
    created_at: UTCDateTime
    items: list[OrderItemResponse]
    status_history: list[StatusHistoryResponse]

    @classmethod
    def of(cls, order):
        return cls(
            id=str(order.id),
            user_id=order.user_id,
            type=order.order_type,
            delivery_type=order.delivery_type,
            status=order.status,
            subtotal=order.subtotal,
            tax=order.tax,
            total=order.total,
            scheduled_for=order.scheduled_for,
            address_id=order.address_id,
            notes=order.notes,
            payment_method=order.payment_method,
            is_paid=order.is_paid,
            paid_at=order.paid_at,
            created_at=order.created_at,
            items=[
                OrderItemResponse(
                    id=str(item.id),
                    product_id=str(item.product_id),
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=item.line_total,
                    gift_selections=[
                        SelectedGiftResponse(gift_id=gift_id, quantity=quantity) for gift_id, quantity in item.gifts()
                    ],
                )
                for item in order.lines
            ],
            status_history=[
                StatusHistoryResponse(
                    status=change.status,
                    changed_by=change.changed_by,
                    notes=change.notes,
                    changed_at=change.changed_at,
                )
                for change in order.timeline
            ],
        )


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    pagination: PaginationResponse


class OrderStatsResponse(BaseModel):
    total_orders: int
    total_sales: Money
    average_order_value: Money
    orders_by_status: dict[str, int]
    orders_by_type: dict[str, int]

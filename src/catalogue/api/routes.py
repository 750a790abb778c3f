"""FastAPI endpoints for the Catalogue domain."""

import json

from fastapi import APIRouter
from protean.utils.globals import current_domain

from catalogue.api.schemas import CreateProductRequest, ProductResponse, UpdateProductRequest
from catalogue.product.creation import CreateProduct
from catalogue.product.details import UpdateProduct
from catalogue.product.product import Product

product_router = APIRouter(prefix="/products", tags=["products"])


def _gifts_payload(gifts) -> str | None:
    if gifts is None:
        return None
    return json.dumps([{"gift_id": g.gift_id, "quantity": g.quantity} for g in gifts])


def _money(amount) -> float | None:
    return None if amount is None else float(amount)


# --- Product endpoints ---


@product_router.get("", response_model=list[ProductResponse])
async def list_products(include_inactive: bool = False) -> list[ProductResponse]:
    products = current_domain.repository_for(Product).listing(include_inactive=include_inactive)
    return [ProductResponse.of(product) for product in products]


@product_router.post("", status_code=201, response_model=ProductResponse)
async def add_product(body: CreateProductRequest) -> ProductResponse:
    command = CreateProduct(
        name=body.name,
        presentation=body.presentation,
        description=body.description,
        price=_money(body.price),
        stock_quantity=body.stock_quantity,
        min_stock=body.min_stock,
        is_active=body.is_active,
        is_flagship=body.is_flagship,
        gifts=_gifts_payload(body.gifts),
    )
    product_id = current_domain.process(command, asynchronous=False)
    return ProductResponse.of(current_domain.repository_for(Product).get_product(product_id))


@product_router.get("/gifts", response_model=list[ProductResponse])
async def list_gift_candidates() -> list[ProductResponse]:
    return [ProductResponse.of(product) for product in current_domain.repository_for(Product).gift_candidates()]


@product_router.get("/{product_id}", response_model=ProductResponse)
async def read_product(product_id: str) -> ProductResponse:
    return ProductResponse.of(current_domain.repository_for(Product).get_product(product_id))


@product_router.patch("/{product_id}", response_model=ProductResponse)
async def change_product(product_id: str, body: UpdateProductRequest) -> ProductResponse:
    command = UpdateProduct(
        product_id=product_id,
        name=body.name,
        presentation=body.presentation,
        description=body.description,
        price=_money(body.price),
        min_stock=body.min_stock,
        is_active=body.is_active,
        is_flagship=body.is_flagship,
        gifts=_gifts_payload(body.gifts),
    )
    current_domain.process(command, asynchronous=False)
    return ProductResponse.of(current_domain.repository_for(Product).get_product(product_id))

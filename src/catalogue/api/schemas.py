"""Pydantic request/response schemas for the Catalogue API."""

from decimal import Decimal

from pydantic import BaseModel, Field

from shared.api import Money

# --- Product Request Schemas ---


class GiftAllocationSpec(BaseModel):
    gift_id: str
    quantity: int = Field(ge=1, default=1)


class CreateProductRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Pollo asado",
                    "presentation": "Entero",
                    "description": "Whole roasted chicken",
                    "price": "185.00",
                    "stock_quantity": 40,
                    "min_stock": 5,
                    "is_flagship": True,
                    "gifts": [{"gift_id": "c7b0e7f2-6a0f-4d5e-9c55-1f0f3b8a2d11", "quantity": 1}],
                }
            ]
        }
    }

    name: str = Field(min_length=1, max_length=150)
    presentation: str = Field(default="", max_length=100)
    description: str | None = None
    price: Decimal = Field(ge=0, decimal_places=2)
    stock_quantity: int = Field(ge=0, default=0)
    min_stock: int = Field(ge=0, default=0)
    is_active: bool = True
    is_flagship: bool = False
    gifts: list[GiftAllocationSpec] = Field(default_factory=list)


class UpdateProductRequest(BaseModel):
    """Partial update. Stock is not updatable here; it belongs to the ledger."""

    name: str | None = Field(default=None, min_length=1, max_length=150)
    presentation: str | None = Field(default=None, max_length=100)
    description: str | None = None
    price: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    min_stock: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    is_flagship: bool | None = None
    gifts: list[GiftAllocationSpec] | None = None


# --- Product Response Schemas ---


class GiftAllocationResponse(BaseModel):
    gift_id: str
    quantity: int


class ProductResponse(BaseModel):
    id: str
    name: str
    presentation: str
    display_name: str
    description: str | None = None
    price: Money
    stock_quantity: int
    min_stock: int
    has_gifts: bool
    is_active: bool
    is_flagship: bool
    gifts: list[GiftAllocationResponse]

    @classmethod
    def of(cls, product):
        return cls(
            id=str(product.id),
            name=product.name,
            presentation=product.presentation or "",
            display_name=product.display_name,
            description=product.description,
            price=product.price,
            stock_quantity=product.stock_quantity,
            min_stock=product.min_stock,
            has_gifts=product.has_gifts,
            is_active=product.is_active,
            is_flagship=product.is_flagship,
            gifts=[
                GiftAllocationResponse(gift_id=str(g.gift_id), quantity=g.quantity)
                for g in sorted(product.gifts, key=lambda g: str(g.gift_id))
            ],
        )

# app/schemas/cart.py
import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.

    Ids arrive as plain strings and are checked by the core validator,
    so a malformed id gets the same error shape on every route.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: str
    quantity: int

    @field_validator("product_id")
    @classmethod
    def strip_id(cls, v: str) -> str:
        return v.strip()


class CartItemUpdate(SQLModel):
    """
    Payload for updating quantity of a cart item.
    A quantity <= 0 removes the line.
    """

    model_config = ConfigDict(extra="forbid")

    quantity: int


class CartProductRead(SQLModel):
    """
    Live product data shown next to a cart line.
    """

    name: str
    description: str | None = None
    price: Decimal
    image_url: str | None = None
    stock: int


class CartItemRead(SQLModel):
    """
    Read model for a single cart item, including subtotal at live price.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    product: CartProductRead
    subtotal: Decimal
    created_at: datetime
    updated_at: datetime


class CartTotals(SQLModel):
    total_items: int
    item_count: int
    total_amount: Decimal


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    user_id: uuid.UUID
    items: list[CartItemRead]
    summary: CartTotals


class CartCount(SQLModel):
    """
    Lightweight counters for a cart badge.
    """

    unique_items: int
    total_quantity: int

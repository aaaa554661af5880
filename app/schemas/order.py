# app/schemas/order.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel

from app.schemas.order_item import OrderItemRead

OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]


class OrderCreate(SQLModel):
    """
    Payload for creating an order from the current cart.

    User provides:
      - shipping_price
      - address_id (must belong to the user)

    Backend derives:
      - user_id from token
      - status = 'pending'
      - items and total_price from cart and live catalog prices
    """

    model_config = ConfigDict(extra="forbid")

    shipping_price: Decimal = Decimal("0.00")
    address_id: str

    @field_validator("address_id")
    @classmethod
    def strip_id(cls, v: str) -> str:
        return v.strip()


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    user_id: uuid.UUID
    status: OrderStatus
    shipping_price: Decimal
    total_price: Decimal
    address_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime


class OrderListEntry(OrderRead):
    items_count: int


class AddressRead(SQLModel):
    id: uuid.UUID
    street: str
    number: str | None = None
    complement: str | None = None
    city: str
    state: str
    postal_code: str


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]
    items_total: Decimal
    address: AddressRead | None = None


class Pagination(SQLModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_previous_page: bool


class OrderPage(SQLModel):
    orders: list[OrderListEntry]
    pagination: Pagination


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.

    Plain string so unknown values reach the core validator.
    """

    model_config = ConfigDict(extra="forbid")

    status: str

    @field_validator("status")
    @classmethod
    def normalize_status(cls, v: str) -> str:
        return v.strip().lower()

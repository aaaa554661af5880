# app/schemas/order_item.py
import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import ConfigDict
from sqlmodel import SQLModel


class OrderItemIn(SQLModel):
    """
    One line handed to the ledger: product, quantity and frozen unit price.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: str
    quantity: int
    price: Decimal


class OrderItemsCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    order_id: str
    items: list[OrderItemIn]


class OrderItemQuantityUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    quantity: int


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID
    product_name: str | None = None
    product_image_url: str | None = None
    quantity: int
    price: Decimal
    subtotal: Decimal
    created_at: datetime


class ProductOrderItemRead(SQLModel):
    """
    A line of some order, seen from the product's side.
    """

    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    price: Decimal
    subtotal: Decimal
    created_at: datetime
    order_status: str
    order_date: datetime


class OrderTotals(SQLModel):
    item_count: int
    total_quantity: int
    total_amount: Decimal


class DeletedCount(SQLModel):
    deleted: int


class ProductSalesStats(SQLModel):
    product_id: uuid.UUID
    product_name: str
    total_orders: int
    total_quantity_sold: int
    total_revenue: Decimal
    average_price: Decimal
    first_sale: datetime
    last_sale: datetime

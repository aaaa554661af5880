# app/models/order.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlmodel import SQLModel, Field

# Lifecycle order matters: forward transitions move right in this tuple.
ORDER_FLOW = ("pending", "processing", "shipped", "delivered")
CANCELLED = "cancelled"
ORDER_STATUSES = ORDER_FLOW + (CANCELLED,)
CANCELLABLE_STATUSES = ("pending", "processing")


class Order(SQLModel, table=True):
    """
    Customer order.

    Created once per checkout. After that only `status` and `updated_at`
    change; `total_price` is frozen at creation time.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    # pending | processing | shipped | delivered | cancelled
    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    shipping_price: Decimal = Field(
        default=Decimal("0.00"),
        ge=0,
        max_digits=10,
        decimal_places=2,
    )

    # shipping_price + sum(order_items.subtotal) at checkout
    total_price: Decimal = Field(
        gt=0,
        max_digits=10,
        decimal_places=2,
        description="Final amount for this order",
    )

    # Live reference: the order follows later edits of the address
    address_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="addresses.id",
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last status change (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order.

    `price` is the unit price at purchase time, never the live catalog
    price. `subtotal` is always price * quantity.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        ondelete="CASCADE",
        index=True,
    )

    # No cascade: a product referenced by an order cannot be deleted
    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    price: Decimal = Field(
        gt=0,
        max_digits=10,
        decimal_places=2,
        description="Unit price at time of order",
    )

    subtotal: Decimal = Field(
        gt=0,
        max_digits=10,
        decimal_places=2,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

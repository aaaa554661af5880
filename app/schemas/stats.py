# app/schemas/stats.py
import uuid
from decimal import Decimal

from pydantic import ConfigDict
from sqlmodel import SQLModel


class StatusCount(SQLModel):
    model_config = ConfigDict(extra="forbid")

    status: str
    count: int


class RevenueSummary(SQLModel):
    """
    Totals over non-cancelled orders.
    """
    model_config = ConfigDict(extra="forbid")

    total_revenue: Decimal
    average_order_value: Decimal
    total_orders: int


class MonthlyOrders(SQLModel):
    """
    Orders and revenue for one calendar month ("YYYY-MM").
    """
    model_config = ConfigDict(extra="forbid")

    month: str
    orders_count: int
    revenue: Decimal


class TopProduct(SQLModel):
    """
    Aggregated stats for top-selling products.
    """
    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    name: str
    total_quantity: int
    orders_count: int
    total_revenue: Decimal


class OrderStatistics(SQLModel):
    """
    Full payload for the admin order statistics endpoint.
    """
    model_config = ConfigDict(extra="forbid")

    status_counts: list[StatusCount]
    revenue: RevenueSummary
    monthly: list[MonthlyOrders]
    top_products: list[TopProduct]

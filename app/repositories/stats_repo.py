# app/repositories/stats_repo.py
from datetime import datetime

from sqlalchemy import case, extract, func
from sqlmodel import Session, select

from app.models.order import CANCELLED, Order, OrderItem
from app.models.product import Product


class StatsRepository:
    """
    Read-only aggregated queries for the admin order statistics.
    """

    def count_by_status(self, session: Session) -> list[tuple]:
        stmt = (
            select(Order.status, func.count(Order.id))
            .group_by(Order.status)
            .order_by(Order.status)
        )
        return list(session.exec(stmt).all())

    def revenue_summary(self, session: Session) -> tuple:
        """
        (total revenue, average order value, order count) for all
        non-cancelled orders.
        """
        stmt = select(
            func.coalesce(func.sum(Order.total_price), 0),
            func.avg(Order.total_price),
            func.count(Order.id),
        ).where(Order.status != CANCELLED)
        return tuple(session.exec(stmt).one())

    def monthly_orders(self, session: Session, since: datetime) -> list[tuple]:
        """
        Orders and revenue per month since `since`, newest month first.
        Cancelled orders count as orders but not as revenue.
        """
        year = extract("year", Order.created_at)
        month = extract("month", Order.created_at)
        revenue = func.coalesce(
            func.sum(case((Order.status != CANCELLED, Order.total_price), else_=0)),
            0,
        )
        stmt = (
            select(
                year.label("year"),
                month.label("month"),
                func.count(Order.id).label("orders_count"),
                revenue.label("revenue"),
            )
            .where(Order.created_at >= since)
            .group_by(year, month)
            .order_by(year.desc(), month.desc())
        )
        return list(session.exec(stmt).all())

    def top_products(
        self,
        session: Session,
        limit: int = 10,
    ) -> list[tuple]:
        """
        Top products by quantity sold across all non-cancelled orders.
        """
        qty_sum = func.coalesce(func.sum(OrderItem.quantity), 0)
        revenue_sum = func.coalesce(func.sum(OrderItem.subtotal), 0)

        stmt = (
            select(
                OrderItem.product_id,
                Product.name,
                qty_sum.label("total_quantity"),
                func.count(func.distinct(OrderItem.order_id)).label("orders_count"),
                revenue_sum.label("total_revenue"),
            )
            .join(Order, Order.id == OrderItem.order_id)
            .join(Product, Product.id == OrderItem.product_id)
            .where(Order.status != CANCELLED)
            .group_by(OrderItem.product_id, Product.name)
            .order_by(qty_sum.desc())
            .limit(limit)
        )

        return list(session.exec(stmt).all())

# app/services/stats_service.py
from datetime import datetime, timezone

from sqlmodel import Session

from app.core.validators import money
from app.repositories.stats_repo import StatsRepository
from app.schemas.stats import (
    MonthlyOrders,
    OrderStatistics,
    RevenueSummary,
    StatusCount,
    TopProduct,
)

MONTHS_BACK = 12
TOP_PRODUCTS = 10


def months_ago_start(now: datetime, months: int) -> datetime:
    """
    First instant of the month `months - 1` months before `now`, so the
    window covers `months` calendar months including the current one.
    """
    year, month = now.year, now.month - (months - 1)
    while month <= 0:
        month += 12
        year -= 1
    return datetime(year, month, 1, tzinfo=timezone.utc)


class StatsService:
    """
    Orchestrates aggregated admin order statistics.
    """

    def __init__(self, repo: StatsRepository):
        self.repo = repo

    def get_order_statistics(
        self,
        session: Session,
        now: datetime | None = None,
    ) -> OrderStatistics:
        now = now or datetime.now(timezone.utc)

        status_counts = [
            StatusCount(status=status, count=int(count or 0))
            for status, count in self.repo.count_by_status(session)
        ]

        total_revenue, average, total_orders = self.repo.revenue_summary(session)
        revenue = RevenueSummary(
            total_revenue=money(total_revenue or 0),
            average_order_value=money(average or 0),
            total_orders=int(total_orders or 0),
        )

        # Monthly breakdown
        monthly: list[MonthlyOrders] = []
        for year, month, orders_count, month_revenue in self.repo.monthly_orders(
            session, since=months_ago_start(now, MONTHS_BACK)
        ):
            monthly.append(
                MonthlyOrders(
                    month=f"{int(year):04d}-{int(month):02d}",
                    orders_count=int(orders_count or 0),
                    revenue=money(month_revenue or 0),
                )
            )

        # Top products
        top_products: list[TopProduct] = []
        for product_id, name, total_quantity, orders_count, product_revenue in (
            self.repo.top_products(session, limit=TOP_PRODUCTS)
        ):
            top_products.append(
                TopProduct(
                    product_id=product_id,
                    name=name,
                    total_quantity=int(total_quantity or 0),
                    orders_count=int(orders_count or 0),
                    total_revenue=money(product_revenue or 0),
                )
            )

        return OrderStatistics(
            status_counts=status_counts,
            revenue=revenue,
            monthly=monthly,
            top_products=top_products,
        )

# app/repositories/order_repo.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import func, update
from sqlmodel import Session, select

from app.models.order import Order, OrderItem


SORTABLE_COLUMNS = {
    "created_at": Order.created_at,
    "updated_at": Order.updated_at,
    "total_price": Order.total_price,
    "status": Order.status,
}


class OrderRepository:
    """
    Data access layer for orders.

    NOTE:
      - No commits here; order creation is a multi-step transaction.
        The service is responsible for the transaction scope.
    """

    # ---- Reads ----

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def get_for_update(self, session: Session, order_id: uuid.UUID) -> Order | None:
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return session.exec(stmt).first()

    def list_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 10,
        user_id: uuid.UUID | None = None,
        status: str | None = None,
        sort_by: str = "created_at",
        descending: bool = True,
    ) -> tuple[list[tuple[Order, int]], int]:
        """
        Page of orders with their line counts, plus the total match count.
        """
        filters = []
        if user_id is not None:
            filters.append(Order.user_id == user_id)
        if status is not None:
            filters.append(Order.status == status)

        items_count = (
            select(func.count(OrderItem.id))
            .where(OrderItem.order_id == Order.id)
            .correlate(Order)
            .scalar_subquery()
        )
        column = SORTABLE_COLUMNS[sort_by]
        stmt = (
            select(Order, items_count.label("items_count"))
            .where(*filters)
            .order_by(column.desc() if descending else column.asc(), Order.id)
            .offset(skip)
            .limit(limit)
        )
        rows = [(order, int(count or 0)) for order, count in session.exec(stmt).all()]

        count_stmt = select(func.count(Order.id)).where(*filters)
        total = int(session.exec(count_stmt).one() or 0)
        return rows, total

    # ---- Writes ----

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        return order

    def set_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        new_status: str,
        expected: tuple[str, ...],
    ) -> bool:
        """
        Conditional status change: only applies while the stored status is
        one of `expected`. Returns False if another request got there first.
        """
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status.in_(expected))
            .values(status=new_status, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )
        return session.exec(stmt).rowcount == 1

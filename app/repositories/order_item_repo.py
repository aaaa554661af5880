# app/repositories/order_item_repo.py
import uuid
from datetime import datetime

from sqlalchemy import delete, func
from sqlmodel import Session, select

from app.models.order import Order, OrderItem
from app.models.product import Product


class OrderItemRepository:
    """
    Data access layer for order_items.

    Never commits: callers own the transaction (checkout or an admin
    correction).
    """

    # ---- Writes ----

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        return items

    def update(self, session: Session, item: OrderItem) -> OrderItem:
        session.add(item)
        session.flush()
        return item

    def delete_by_id(self, session: Session, item_id: uuid.UUID) -> int:
        stmt = delete(OrderItem).where(OrderItem.id == item_id)
        return session.exec(stmt).rowcount

    def delete_for_order(self, session: Session, order_id: uuid.UUID) -> int:
        stmt = delete(OrderItem).where(OrderItem.order_id == order_id)
        return session.exec(stmt).rowcount

    # ---- Reads ----

    def get_by_id(self, session: Session, item_id: uuid.UUID) -> OrderItem | None:
        return session.get(OrderItem, item_id)

    def get_with_product(
        self,
        session: Session,
        item_id: uuid.UUID,
    ) -> tuple[OrderItem, Product] | None:
        stmt = (
            select(OrderItem, Product)
            .join(Product, Product.id == OrderItem.product_id)
            .where(OrderItem.id == item_id)
        )
        return session.exec(stmt).first()

    def list_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[tuple[OrderItem, Product]]:
        stmt = (
            select(OrderItem, Product)
            .join(Product, Product.id == OrderItem.product_id)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.created_at.asc(), OrderItem.id)
        )
        return list(session.exec(stmt).all())

    def totals_for_order(self, session: Session, order_id: uuid.UUID) -> tuple:
        """
        (line count, total quantity, total amount) from stored rows.
        """
        stmt = select(
            func.count(OrderItem.id),
            func.coalesce(func.sum(OrderItem.quantity), 0),
            func.coalesce(func.sum(OrderItem.subtotal), 0),
        ).where(OrderItem.order_id == order_id)
        return tuple(session.exec(stmt).one())

    def list_by_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[tuple[OrderItem, Order]]:
        stmt = (
            select(OrderItem, Order)
            .join(Order, Order.id == OrderItem.order_id)
            .where(OrderItem.product_id == product_id)
            .order_by(OrderItem.created_at.desc(), OrderItem.id)
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def sales_stats(
        self,
        session: Session,
        product_id: uuid.UUID | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int = 10,
    ) -> list[tuple]:
        """
        Per-product sales aggregates, best revenue first.
        """
        revenue = func.coalesce(func.sum(OrderItem.subtotal), 0)

        stmt = (
            select(
                OrderItem.product_id,
                Product.name,
                func.count(OrderItem.id).label("total_orders"),
                func.coalesce(func.sum(OrderItem.quantity), 0).label(
                    "total_quantity_sold"
                ),
                revenue.label("total_revenue"),
                func.avg(OrderItem.price).label("average_price"),
                func.min(OrderItem.created_at).label("first_sale"),
                func.max(OrderItem.created_at).label("last_sale"),
            )
            .join(Product, Product.id == OrderItem.product_id)
        )
        if product_id is not None:
            stmt = stmt.where(OrderItem.product_id == product_id)
        if start_date is not None:
            stmt = stmt.where(OrderItem.created_at >= start_date)
        if end_date is not None:
            stmt = stmt.where(OrderItem.created_at <= end_date)

        stmt = (
            stmt.group_by(OrderItem.product_id, Product.name)
            .order_by(revenue.desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

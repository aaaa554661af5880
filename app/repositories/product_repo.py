# app/repositories/product_repo.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import update
from sqlmodel import Session, select

from app.models.product import Product


class ProductRepository:
    """
    Data access layer for Product.

    - Pure DB operations, no commits.
    - Stock changes are single conditional UPDATE statements so that
      concurrent checkouts are serialized by the database, not by Python.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def list_by_ids_for_update(
        self,
        session: Session,
        product_ids: list[uuid.UUID],
    ) -> list[Product]:
        """
        Lock product rows for the rest of the transaction.

        Rows are locked in ascending id order so that two checkouts touching
        the same products cannot deadlock each other.
        """
        if not product_ids:
            return []
        stmt = (
            select(Product)
            .where(Product.id.in_(product_ids))
            .order_by(Product.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(session.exec(stmt).all())

    def decrement_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> bool:
        """
        Conditional decrement: only succeeds while stock >= quantity.

        Returns False when no row matched (product gone or not enough stock).
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(
                stock=Product.stock - quantity,
                updated_at=datetime.now(timezone.utc),
            )
        )
        result = session.exec(stmt)
        return result.rowcount == 1

    def increment_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> None:
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(
                stock=Product.stock + quantity,
                updated_at=datetime.now(timezone.utc),
            )
        )
        session.exec(stmt)

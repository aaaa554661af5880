# app/repositories/cart_repo.py
import uuid

from sqlalchemy import delete, func
from sqlmodel import Session, select

from app.models.cart import CartItem
from app.models.product import Product


class CartRepository:
    """
    Data access layer for cart_items.

    No commits here; services wrap mutations in `transaction(session)`.
    """

    # Get items for a user
    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        for_update: bool = False,
    ) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.created_at)
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return list(session.exec(stmt).all())

    def list_with_products(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> list[tuple[CartItem, Product]]:
        """
        Cart rows joined with the live product row, newest first.
        """
        stmt = (
            select(CartItem, Product)
            .join(Product, Product.id == CartItem.product_id)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.created_at.desc())
        )
        return list(session.exec(stmt).all())

    def get_item(
        self, session: Session, user_id: uuid.UUID, product_id: uuid.UUID
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.user_id == user_id, CartItem.product_id == product_id
        )
        return session.exec(stmt).first()

    def count_for_user(self, session: Session, user_id: uuid.UUID) -> tuple[int, int]:
        """
        Return (distinct lines, total quantity) for a user's cart.
        """
        stmt = select(
            func.count(CartItem.id),
            func.coalesce(func.sum(CartItem.quantity), 0),
        ).where(CartItem.user_id == user_id)
        unique_items, total_quantity = session.exec(stmt).one()
        return int(unique_items or 0), int(total_quantity or 0)

    # CRUD
    def add(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.flush()
        return item

    def delete_item(
        self, session: Session, user_id: uuid.UUID, product_id: uuid.UUID
    ) -> int:
        stmt = delete(CartItem).where(
            CartItem.user_id == user_id, CartItem.product_id == product_id
        )
        return session.exec(stmt).rowcount

    def clear_user_cart(self, session: Session, user_id: uuid.UUID) -> int:
        stmt = delete(CartItem).where(CartItem.user_id == user_id)
        return session.exec(stmt).rowcount

# app/services/cart_service.py
import logging
import uuid
from datetime import datetime, timezone

from sqlmodel import Session

from app.core.errors import InsufficientStock, NotFound
from app.core.validators import check_quantity, money, require_quantity, require_uuid
from app.database import transaction
from app.models.cart import CartItem
from app.models.product import Product
from app.repositories.cart_repo import CartRepository
from app.schemas.cart import (
    CartCount,
    CartItemRead,
    CartProductRead,
    CartSummary,
    CartTotals,
)
from app.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - validate ids and quantities before touching storage
      - validate product existence through the catalog
      - enforce quantity <= stock (stock itself is never changed here)
      - compute line subtotals and cart totals at live catalog price
    """

    def __init__(self, cart_repo: CartRepository, catalog: CatalogService):
        self.cart_repo = cart_repo
        self.catalog = catalog

    # ---- internal helpers ----

    @staticmethod
    def _check_stock(product: Product, quantity: int) -> None:
        if quantity > product.stock:
            raise InsufficientStock(
                product.name, product.stock, quantity, str(product.id)
            )

    # ---- public operations ----

    def get_cart(
        self,
        session: Session,
        user_id: uuid.UUID | str,
    ) -> CartSummary:
        """
        Return full cart summary:
          - list of CartItemRead joined with live product data
          - total_items (sum of quantities)
          - item_count (distinct lines)
          - total_amount at current catalog prices
        """
        user_id = require_uuid(user_id, "user_id")
        rows = self.cart_repo.list_with_products(session, user_id)

        item_reads: list[CartItemRead] = []
        total_items = 0
        total_amount = money(0)

        for item, product in rows:
            subtotal = money(product.price * item.quantity)
            total_items += item.quantity
            total_amount += subtotal

            item_reads.append(
                CartItemRead(
                    id=item.id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    product=CartProductRead(
                        name=product.name,
                        description=product.description,
                        price=product.price,
                        image_url=product.image_url,
                        stock=product.stock,
                    ),
                    subtotal=subtotal,
                    created_at=item.created_at,
                    updated_at=item.updated_at,
                )
            )

        return CartSummary(
            user_id=user_id,
            items=item_reads,
            summary=CartTotals(
                total_items=total_items,
                item_count=len(item_reads),
                total_amount=total_amount,
            ),
        )

    def add_item(
        self,
        session: Session,
        user_id: uuid.UUID | str,
        product_id: uuid.UUID | str,
        quantity: int,
    ) -> CartSummary:
        """
        Add a product to the user's cart.

        Rules:
          - product must exist
          - quantity > 0
          - existing_quantity + quantity <= stock
        """
        user_id = require_uuid(user_id, "user_id")
        product_id = require_uuid(product_id, "product_id")
        quantity = require_quantity(quantity)

        with transaction(session):
            product = self.catalog.get_product(session, product_id)
            self._check_stock(product, quantity)

            existing = self.cart_repo.get_item(session, user_id, product_id)
            if existing:
                new_qty = existing.quantity + quantity
                if new_qty > product.stock:
                    raise InsufficientStock(
                        product_id=str(product.id),
                        message=(
                            f"Insufficient stock. You already have {existing.quantity} "
                            f"in your cart; at most "
                            f"{product.stock - existing.quantity} more can be added"
                        ),
                    )
                existing.quantity = new_qty
                existing.updated_at = datetime.now(timezone.utc)
                session.add(existing)
            else:
                self.cart_repo.add(
                    session,
                    CartItem(
                        user_id=user_id,
                        product_id=product_id,
                        quantity=quantity,
                    ),
                )

        logger.info("Cart %s: added %s x %s", user_id, quantity, product_id)
        return self.get_cart(session, user_id)

    def update_quantity(
        self,
        session: Session,
        user_id: uuid.UUID | str,
        product_id: uuid.UUID | str,
        quantity: int,
    ) -> CartSummary:
        """
        Replace the quantity of a line already in the cart.

        quantity <= 0 removes the line. Exceeding stock => InsufficientStock.
        """
        user_id = require_uuid(user_id, "user_id")
        product_id = require_uuid(product_id, "product_id")
        quantity = check_quantity(
            quantity, allow_zero_or_negative=True
        ).unwrap("quantity")

        if quantity <= 0:
            return self.remove_item(session, user_id, product_id)

        with transaction(session):
            product = self.catalog.get_product(session, product_id)
            item = self.cart_repo.get_item(session, user_id, product_id)
            if not item:
                raise NotFound("Item not in cart")

            self._check_stock(product, quantity)

            item.quantity = quantity
            item.updated_at = datetime.now(timezone.utc)
            session.add(item)

        return self.get_cart(session, user_id)

    def remove_item(
        self,
        session: Session,
        user_id: uuid.UUID | str,
        product_id: uuid.UUID | str,
    ) -> CartSummary:
        """
        Remove a product from the cart (if present),
        and return updated summary.
        """
        user_id = require_uuid(user_id, "user_id")
        product_id = require_uuid(product_id, "product_id")

        with transaction(session):
            self.cart_repo.delete_item(session, user_id, product_id)

        return self.get_cart(session, user_id)

    def clear(
        self,
        session: Session,
        user_id: uuid.UUID | str,
    ) -> CartSummary:
        """
        Clear all items from the cart and return an empty summary.
        """
        user_id = require_uuid(user_id, "user_id")

        with transaction(session):
            removed = self.cart_repo.clear_user_cart(session, user_id)

        logger.info("Cart %s cleared (%s lines)", user_id, removed)
        return CartSummary(
            user_id=user_id,
            items=[],
            summary=CartTotals(total_items=0, item_count=0, total_amount=money(0)),
        )

    def count(self, session: Session, user_id: uuid.UUID | str) -> CartCount:
        user_id = require_uuid(user_id, "user_id")
        unique_items, total_quantity = self.cart_repo.count_for_user(session, user_id)
        return CartCount(unique_items=unique_items, total_quantity=total_quantity)

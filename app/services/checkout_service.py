# app/services/checkout_service.py
import logging
import uuid
from decimal import Decimal

from sqlmodel import Session

from app.core.errors import EmptyCartError, InsufficientStock, NotFound
from app.core.validators import (
    money,
    require_amount,
    require_storable,
    require_uuid,
)
from app.database import transaction
from app.models.order import Order
from app.repositories.address_repo import AddressRepository
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import OrderWithItemsRead
from app.services.order_item_service import OrderItemService
from app.services.order_service import order_with_items

logger = logging.getLogger(__name__)


class CheckoutService:
    """
    Turns a user's cart into an order.

    One checkout is one transaction:

      1. address must belong to the user
      2. cart rows and their product rows are locked
      3. every line is checked against current stock
      4. order + order_items are written with prices snapshotted
      5. stock is decremented with conditional updates
      6. the cart is cleared

    Any failure rolls back all of it: no order, no items, stock and cart
    untouched.
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        address_repo: AddressRepository,
        order_repo: OrderRepository,
        ledger: OrderItemService,
    ):
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.address_repo = address_repo
        self.order_repo = order_repo
        self.ledger = ledger

    def create_order_from_cart(
        self,
        session: Session,
        user_id: uuid.UUID | str,
        shipping_price: Decimal | int | float | str,
        address_id: uuid.UUID | str,
    ) -> OrderWithItemsRead:
        """
        Create a pending order from the current cart.

        total_price = shipping_price + sum(catalog price * quantity), with
        catalog prices read under the product row locks.
        """
        user_id = require_uuid(user_id, "user_id")
        address_id = require_uuid(address_id, "address_id")
        shipping_price = require_amount(shipping_price, "shipping_price")

        with transaction(session):
            address = self.address_repo.get_for_user(session, address_id, user_id)
            if address is None:
                raise NotFound("Address not found or does not belong to the user")

            cart_items = self.cart_repo.list_for_user(session, user_id, for_update=True)
            if not cart_items:
                raise EmptyCartError()

            products = {
                p.id: p
                for p in self.product_repo.list_by_ids_for_update(
                    session, [ci.product_id for ci in cart_items]
                )
            }

            lines = []
            items_total = money(0)
            for ci in cart_items:
                product = products.get(ci.product_id)
                if product is None:
                    raise NotFound(f"Product {ci.product_id} not found")
                if ci.quantity > product.stock:
                    raise InsufficientStock(
                        product.name, product.stock, ci.quantity, str(product.id)
                    )
                price = money(product.price)
                items_total += money(price * ci.quantity)
                lines.append(
                    {"product_id": product.id, "quantity": ci.quantity, "price": price}
                )

            total_price = require_storable(shipping_price + items_total, "total_price")
            order = self.order_repo.create_order(
                session,
                Order(
                    user_id=user_id,
                    status="pending",
                    shipping_price=shipping_price,
                    total_price=total_price,
                    address_id=address_id,
                ),
            )
            items = self.ledger.create_items(session, order.id, lines)

            # Same ascending id order as the row locks
            for line in sorted(lines, key=lambda line: line["product_id"]):
                if not self.product_repo.decrement_stock(
                    session, line["product_id"], line["quantity"]
                ):
                    product = products[line["product_id"]]
                    raise InsufficientStock(product.name, product_id=str(product.id))

            self.cart_repo.clear_user_cart(session, user_id)

            result = order_with_items(
                order,
                [
                    self.ledger.to_read(item, products[item.product_id])
                    for item in items
                ],
                address,
            )

        logger.info(
            "Order %s created for user %s: %s lines, total %s",
            result.id,
            user_id,
            len(result.items),
            result.total_price,
        )
        return result

# app/services/order_item_service.py
import logging
import uuid
from collections.abc import Mapping, Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlmodel import Session

from app.core.errors import NotFound, ValidationError
from app.core.validators import (
    money,
    require_amount,
    require_offset_limit,
    require_quantity,
    require_storable,
    require_uuid,
)
from app.models.order import OrderItem
from app.models.product import Product
from app.repositories.order_item_repo import OrderItemRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order_item import (
    OrderItemRead,
    OrderTotals,
    ProductOrderItemRead,
    ProductSalesStats,
)

logger = logging.getLogger(__name__)


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


class OrderItemService:
    """
    Order item ledger.

    Owns creation, lookup, quantity correction, deletion and aggregates of
    order_items. Reused by checkout (inside its transaction) and by admin
    reporting.

    NOTE:
      - Methods never commit. Mutations run inside the caller's
        `transaction(session)` so they succeed or fail with it.
      - Every id is validated before any query is issued.
    """

    def __init__(
        self,
        item_repo: OrderItemRepository,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
    ):
        self.item_repo = item_repo
        self.order_repo = order_repo
        self.product_repo = product_repo

    # -------- helpers --------

    @staticmethod
    def to_read(item: OrderItem, product: Product | None = None) -> OrderItemRead:
        return OrderItemRead(
            id=item.id,
            order_id=item.order_id,
            product_id=item.product_id,
            product_name=product.name if product else None,
            product_image_url=product.image_url if product else None,
            quantity=item.quantity,
            price=item.price,
            subtotal=item.subtotal,
            created_at=item.created_at,
        )

    # -------- writes --------

    def create_items(
        self,
        session: Session,
        order_id: uuid.UUID | str,
        items: Sequence[Any],
    ) -> list[OrderItem]:
        """
        Insert one row per line for an existing order.

        Every line (product id, quantity > 0, price > 0) is validated and
        every product looked up before the first insert, so either all rows
        are written or none.
        """
        order_id = require_uuid(order_id, "order_id")
        if not items:
            raise ValidationError("Order items list is required", field="items")

        lines: list[tuple[uuid.UUID, int, Decimal]] = []
        for item in items:
            lines.append(
                (
                    require_uuid(_field(item, "product_id"), "product_id"),
                    require_quantity(_field(item, "quantity")),
                    require_amount(_field(item, "price"), "price", allow_zero=False),
                )
            )

        for _, quantity, price in lines:
            require_storable(money(price * quantity), "subtotal")

        if self.order_repo.get_by_id(session, order_id) is None:
            raise NotFound("Order not found")

        for product_id, _, _ in lines:
            if self.product_repo.get_by_id(session, product_id) is None:
                raise NotFound(f"Product {product_id} not found")

        rows = [
            OrderItem(
                order_id=order_id,
                product_id=product_id,
                quantity=quantity,
                price=price,
                subtotal=money(price * quantity),
            )
            for product_id, quantity, price in lines
        ]
        return self.item_repo.create_items(session, rows)

    def update_quantity(
        self,
        session: Session,
        item_id: uuid.UUID | str,
        quantity: int,
    ) -> OrderItemRead:
        """
        Correct the quantity of a line.

        The subtotal is recomputed from the stored purchase price, never
        from the current catalog price. The order's total_price is left
        untouched; use calculate_order_total to reconcile.
        """
        item_id = require_uuid(item_id, "item_id")
        quantity = require_quantity(quantity)

        item = self.item_repo.get_by_id(session, item_id)
        if item is None:
            raise NotFound("Order item not found")

        item.quantity = quantity
        item.subtotal = require_storable(money(item.price * quantity), "subtotal")
        self.item_repo.update(session, item)
        logger.info("Order item %s quantity corrected to %s", item_id, quantity)
        return self.to_read(item, self.product_repo.get_by_id(session, item.product_id))

    def delete_item(self, session: Session, item_id: uuid.UUID | str) -> int:
        item_id = require_uuid(item_id, "item_id")
        return self.item_repo.delete_by_id(session, item_id)

    def delete_all_for_order(self, session: Session, order_id: uuid.UUID | str) -> int:
        order_id = require_uuid(order_id, "order_id")
        return self.item_repo.delete_for_order(session, order_id)

    # -------- reads --------

    def get_items(
        self,
        session: Session,
        order_id: uuid.UUID | str,
    ) -> list[OrderItemRead]:
        """
        Lines of an order, oldest first, with product display fields.
        """
        order_id = require_uuid(order_id, "order_id")
        rows = self.item_repo.list_for_order(session, order_id)
        return [self.to_read(item, product) for item, product in rows]

    def get_item(self, session: Session, item_id: uuid.UUID | str) -> OrderItemRead:
        item_id = require_uuid(item_id, "item_id")
        row = self.item_repo.get_with_product(session, item_id)
        if row is None:
            raise NotFound("Order item not found")
        item, product = row
        return self.to_read(item, product)

    def calculate_order_total(
        self,
        session: Session,
        order_id: uuid.UUID | str,
    ) -> OrderTotals:
        """
        Aggregate the stored rows of an order.

        Independent of Order.total_price; used for reconciliation.
        """
        order_id = require_uuid(order_id, "order_id")
        item_count, total_quantity, total_amount = self.item_repo.totals_for_order(
            session, order_id
        )
        return OrderTotals(
            item_count=int(item_count or 0),
            total_quantity=int(total_quantity or 0),
            total_amount=money(total_amount or 0),
        )

    def get_items_by_product(
        self,
        session: Session,
        product_id: uuid.UUID | str,
        offset: int = 0,
        limit: int = 50,
    ) -> list[ProductOrderItemRead]:
        product_id = require_uuid(product_id, "product_id")
        offset, limit = require_offset_limit(offset, limit)

        rows = self.item_repo.list_by_product(session, product_id, offset, limit)
        return [
            ProductOrderItemRead(
                id=item.id,
                order_id=item.order_id,
                product_id=item.product_id,
                quantity=item.quantity,
                price=item.price,
                subtotal=item.subtotal,
                created_at=item.created_at,
                order_status=order.status,
                order_date=order.created_at,
            )
            for item, order in rows
        ]

    def get_sales_stats(
        self,
        session: Session,
        product_id: uuid.UUID | str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int = 10,
    ) -> list[ProductSalesStats]:
        """
        Sales per product (optionally one product / a date range),
        ordered by revenue descending.
        """
        if product_id is not None:
            product_id = require_uuid(product_id, "product_id")
        _, limit = require_offset_limit(0, limit)
        if start_date and end_date and start_date > end_date:
            raise ValidationError(
                "start_date must be before end_date", field="start_date"
            )

        rows = self.item_repo.sales_stats(
            session,
            product_id=product_id,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
        )

        stats: list[ProductSalesStats] = []
        for (
            row_product_id,
            name,
            total_orders,
            total_quantity_sold,
            total_revenue,
            average_price,
            first_sale,
            last_sale,
        ) in rows:
            stats.append(
                ProductSalesStats(
                    product_id=row_product_id,
                    product_name=name,
                    total_orders=int(total_orders or 0),
                    total_quantity_sold=int(total_quantity_sold or 0),
                    total_revenue=money(total_revenue or 0),
                    average_price=money(average_price or 0),
                    first_sale=first_sale,
                    last_sale=last_sale,
                )
            )
        return stats

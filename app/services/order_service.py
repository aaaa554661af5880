# app/services/order_service.py
import logging
import math
import uuid

from sqlmodel import Session

from app.core.config import get_settings
from app.core.errors import Conflict, Forbidden, InvalidStateError, NotFound
from app.core.validators import (
    money,
    require_choice,
    require_pagination,
    require_uuid,
)
from app.database import transaction
from app.models.address import Address
from app.models.order import (
    CANCELLABLE_STATUSES,
    CANCELLED,
    ORDER_FLOW,
    ORDER_STATUSES,
    Order,
)
from app.repositories.address_repo import AddressRepository
from app.repositories.order_item_repo import OrderItemRepository
from app.repositories.order_repo import SORTABLE_COLUMNS, OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    AddressRead,
    OrderListEntry,
    OrderPage,
    OrderRead,
    OrderWithItemsRead,
    Pagination,
)
from app.schemas.order_item import OrderItemRead, OrderTotals
from app.schemas.user import Requester
from app.services.order_item_service import OrderItemService

logger = logging.getLogger(__name__)

settings = get_settings()


def order_to_read(order: Order) -> OrderRead:
    return OrderRead(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        shipping_price=order.shipping_price,
        total_price=order.total_price,
        address_id=order.address_id,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def order_with_items(
    order: Order,
    items: list[OrderItemRead],
    address: Address | None = None,
) -> OrderWithItemsRead:
    """
    Compose OrderWithItemsRead from ORM rows.

    items_total is the sum of stored subtotals, shown next to the frozen
    total_price; they only differ after a ledger correction.
    """
    items_total = money(sum((it.subtotal for it in items), money(0)))
    return OrderWithItemsRead(
        **order_to_read(order).model_dump(),
        items=items,
        items_total=items_total,
        address=(
            AddressRead(
                id=address.id,
                street=address.street,
                number=address.number,
                complement=address.complement,
                city=address.city,
                state=address.state,
                postal_code=address.postal_code,
            )
            if address
            else None
        ),
    )


def check_transition(current: str, new: str) -> None:
    """
    Lifecycle rules:

      pending -> processing -> shipped -> delivered   (forward only,
                                                       steps may be skipped)
      pending | processing -> cancelled

    delivered and cancelled are terminal.
    """
    if new == CANCELLED:
        if current not in CANCELLABLE_STATUSES:
            raise InvalidStateError(current, new)
        return
    if current not in ORDER_FLOW or ORDER_FLOW.index(new) <= ORDER_FLOW.index(current):
        raise InvalidStateError(current, new)


class OrderService:
    """
    Order lifecycle manager.

    Responsibilities:
      - owner-or-admin gate on every order read and mutation
      - status state machine (admin) and cancellation (owner or admin)
      - paginated listings for customers and admins
      - restock on cancellation when RESTOCK_ON_CANCEL is set
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        item_repo: OrderItemRepository,
        product_repo: ProductRepository,
        address_repo: AddressRepository,
        ledger: OrderItemService,
    ):
        self.order_repo = order_repo
        self.item_repo = item_repo
        self.product_repo = product_repo
        self.address_repo = address_repo
        self.ledger = ledger

    # -------- helpers --------

    @staticmethod
    def _ensure_can_access(order: Order, requester: Requester) -> None:
        if not requester.is_admin and order.user_id != requester.user_id:
            raise Forbidden("You do not have access to this order")

    @staticmethod
    def _ensure_admin(requester: Requester) -> None:
        if not requester.is_admin:
            raise Forbidden("Admin access required")

    def _get_accessible_order(
        self,
        session: Session,
        order_id: uuid.UUID | str,
        requester: Requester,
    ) -> Order:
        order_id = require_uuid(order_id, "order_id")
        order = self.order_repo.get_by_id(session, order_id)
        if order is None:
            raise NotFound("Order not found")
        self._ensure_can_access(order, requester)
        return order

    def _page(
        self,
        session: Session,
        page: int,
        limit: int,
        **filters,
    ) -> OrderPage:
        skip, limit = require_pagination(page, limit)
        rows, total = self.order_repo.list_orders(session, skip, limit, **filters)
        total_pages = math.ceil(total / limit) if total else 0
        return OrderPage(
            orders=[
                OrderListEntry(**order_to_read(order).model_dump(), items_count=count)
                for order, count in rows
            ],
            pagination=Pagination(
                current_page=page,
                total_pages=total_pages,
                total_items=total,
                items_per_page=limit,
                has_next_page=page < total_pages,
                has_previous_page=page > 1,
            ),
        )

    def _restock(self, session: Session, order_id: uuid.UUID) -> None:
        for item, _ in self.item_repo.list_for_order(session, order_id):
            self.product_repo.increment_stock(session, item.product_id, item.quantity)

    # -------- User-facing operations --------

    def list_my_orders(
        self,
        session: Session,
        user_id: uuid.UUID | str,
        page: int = 1,
        limit: int = 10,
    ) -> OrderPage:
        """
        List orders for the given user (without items), newest first.
        """
        user_id = require_uuid(user_id, "user_id")
        return self._page(session, page, limit, user_id=user_id)

    def get_order(
        self,
        session: Session,
        order_id: uuid.UUID | str,
        requester: Requester,
    ) -> OrderWithItemsRead:
        """
        Get a single order with items and address.

        - 404 if order not found
        - 403 if it belongs to someone else and requester is not admin
        """
        order = self._get_accessible_order(session, order_id, requester)
        items = self.ledger.get_items(session, order.id)
        address = (
            self.address_repo.get_by_id(session, order.address_id)
            if order.address_id
            else None
        )
        return order_with_items(order, items, address)

    def get_order_items(
        self,
        session: Session,
        order_id: uuid.UUID | str,
        requester: Requester,
    ) -> list[OrderItemRead]:
        order = self._get_accessible_order(session, order_id, requester)
        return self.ledger.get_items(session, order.id)

    def get_order_total(
        self,
        session: Session,
        order_id: uuid.UUID | str,
        requester: Requester,
    ) -> OrderTotals:
        order = self._get_accessible_order(session, order_id, requester)
        return self.ledger.calculate_order_total(session, order.id)

    def cancel_order(
        self,
        session: Session,
        order_id: uuid.UUID | str,
        requester: Requester,
    ) -> OrderRead:
        """
        Cancel an order (owner or admin).

        Only pending / processing orders can be cancelled. The status change
        is a conditional update, so two concurrent cancels restock once.
        """
        order_id = require_uuid(order_id, "order_id")

        with transaction(session):
            order = self.order_repo.get_for_update(session, order_id)
            if order is None:
                raise NotFound("Order not found")
            self._ensure_can_access(order, requester)
            self._cancel(session, order)

        logger.info("Order %s cancelled by %s", order_id, requester.user_id)
        return order_to_read(order)

    def _cancel(self, session: Session, order: Order) -> None:
        check_transition(order.status, CANCELLED)
        if not self.order_repo.set_status(
            session, order.id, CANCELLED, expected=CANCELLABLE_STATUSES
        ):
            raise InvalidStateError(order.status, CANCELLED)
        if settings.RESTOCK_ON_CANCEL:
            self._restock(session, order.id)

    # -------- Admin operations --------

    def admin_list_orders(
        self,
        session: Session,
        requester: Requester,
        page: int = 1,
        limit: int = 10,
        status: str | None = None,
        user_id: uuid.UUID | str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> OrderPage:
        """
        List all orders (admin only) with optional status / user filters.
        """
        self._ensure_admin(requester)
        if status is not None:
            status = require_choice(status, ORDER_STATUSES, "status")
        if user_id is not None:
            user_id = require_uuid(user_id, "user_id")
        sort_by = require_choice(sort_by, tuple(SORTABLE_COLUMNS), "sort_by")
        sort_order = require_choice(sort_order.lower(), ("asc", "desc"), "sort_order")

        return self._page(
            session,
            page,
            limit,
            user_id=user_id,
            status=status,
            sort_by=sort_by,
            descending=sort_order == "desc",
        )

    def admin_set_status(
        self,
        session: Session,
        order_id: uuid.UUID | str,
        status: str,
        requester: Requester,
    ) -> OrderRead:
        """
        Admin-only status update.

        Forward moves only; 'cancelled' follows the cancellation rules
        (including restock). Setting the current status is a no-op.
        """
        self._ensure_admin(requester)
        order_id = require_uuid(order_id, "order_id")
        new = require_choice(status, ORDER_STATUSES, "status")

        with transaction(session):
            order = self.order_repo.get_for_update(session, order_id)
            if order is None:
                raise NotFound("Order not found")

            current = order.status
            if current == new:
                return order_to_read(order)

            if new == CANCELLED:
                self._cancel(session, order)
            else:
                check_transition(current, new)
                if not self.order_repo.set_status(
                    session, order.id, new, expected=(current,)
                ):
                    raise Conflict(
                        "Order status changed concurrently, reload and retry"
                    )

        logger.info("Order %s status %s -> %s", order_id, current, new)
        return order_to_read(order)

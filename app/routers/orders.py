# app/routers/orders.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_admin, require_auth, require_user
from app.database import get_session
from app.repositories.address_repo import AddressRepository
from app.repositories.cart_repo import CartRepository
from app.repositories.order_item_repo import OrderItemRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.stats_repo import StatsRepository
from app.schemas.order import (
    OrderCreate,
    OrderPage,
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from app.schemas.stats import OrderStatistics
from app.schemas.user import Requester
from app.services.checkout_service import CheckoutService
from app.services.order_item_service import OrderItemService
from app.services.order_service import OrderService
from app.services.stats_service import StatsService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
item_repo = OrderItemRepository()
product_repo = ProductRepository()
address_repo = AddressRepository()
ledger = OrderItemService(item_repo, order_repo, product_repo)

checkout = CheckoutService(
    CartRepository(), product_repo, address_repo, order_repo, ledger
)
service = OrderService(order_repo, item_repo, product_repo, address_repo, ledger)
stats = StatsService(StatsRepository())


# -------- User-facing endpoints --------


@router.post("", response_model=OrderWithItemsRead, status_code=201)
def create_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    requester: Requester = Depends(require_user),
):
    """
    Create an order from the current user's cart.

    Auth:
      - Only role='user' (customer) can checkout.
    """
    return checkout.create_order_from_cart(
        session,
        requester.user_id,
        shipping_price=payload.shipping_price,
        address_id=payload.address_id,
    )


@router.get("/me", response_model=OrderPage)
def list_my_orders(
    page: int = 1,
    limit: int = 10,
    session: Session = Depends(get_session),
    requester: Requester = Depends(require_user),
):
    """
    List the authenticated user's orders (without items), newest first.
    """
    return service.list_my_orders(session, requester.user_id, page, limit)


# Declared before /{order_id} so "statistics" is not taken for an id
@router.get("/statistics", response_model=OrderStatistics)
def order_statistics(
    session: Session = Depends(get_session),
    _: Requester = Depends(require_admin),
):
    """
    Aggregated order statistics (admin only).
    """
    return stats.get_order_statistics(session)


@router.get("/{order_id}", response_model=OrderWithItemsRead)
def get_order(
    order_id: str,
    session: Session = Depends(get_session),
    requester: Requester = Depends(require_auth),
):
    """
    Get a single order with items. Owner or admin.
    """
    return service.get_order(session, order_id, requester)


@router.patch("/{order_id}/cancel", response_model=OrderRead)
def cancel_order(
    order_id: str,
    session: Session = Depends(get_session),
    requester: Requester = Depends(require_auth),
):
    """
    Cancel a pending or processing order. Owner or admin.
    """
    return service.cancel_order(session, order_id, requester)


# -------- Admin endpoints --------


@router.get("", response_model=OrderPage)
def list_all_orders(
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
    user_id: str | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    session: Session = Depends(get_session),
    requester: Requester = Depends(require_admin),
):
    """
    List all orders (admin only).
    """
    return service.admin_list_orders(
        session,
        requester,
        page=page,
        limit=limit,
        status=status,
        user_id=user_id,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.patch("/{order_id}/status", response_model=OrderRead)
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    requester: Requester = Depends(require_admin),
):
    """
    Update order status (admin only).

      pending -> processing -> shipped -> delivered   (steps may be skipped)

      pending | processing -> cancelled

      delivered, cancelled -> (no change)
    """
    return service.admin_set_status(session, order_id, payload.status, requester)

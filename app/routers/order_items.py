# app/routers/order_items.py
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_admin, require_auth
from app.database import get_session, transaction
from app.repositories.address_repo import AddressRepository
from app.repositories.order_item_repo import OrderItemRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order_item import (
    DeletedCount,
    OrderItemQuantityUpdate,
    OrderItemRead,
    OrderItemsCreate,
    OrderTotals,
    ProductOrderItemRead,
    ProductSalesStats,
)
from app.schemas.user import Requester
from app.services.order_item_service import OrderItemService
from app.services.order_service import OrderService

router = APIRouter(prefix="/order-items", tags=["Order Items"])

item_repo = OrderItemRepository()
order_repo = OrderRepository()
product_repo = ProductRepository()
ledger = OrderItemService(item_repo, order_repo, product_repo)
orders = OrderService(order_repo, item_repo, product_repo, AddressRepository(), ledger)


# -------- Admin writes --------


@router.post(
    "",
    response_model=list[OrderItemRead],
    status_code=201,
    dependencies=[Depends(require_admin)],
)
def create_order_items(
    payload: OrderItemsCreate,
    session: Session = Depends(get_session),
):
    """
    Add lines to an existing order (admin only). All or nothing.
    """
    with transaction(session):
        rows = ledger.create_items(session, payload.order_id, payload.items)
        return [
            ledger.to_read(item, product_repo.get_by_id(session, item.product_id))
            for item in rows
        ]


@router.patch(
    "/{item_id}/quantity",
    response_model=OrderItemRead,
    dependencies=[Depends(require_admin)],
)
def update_order_item_quantity(
    item_id: str,
    payload: OrderItemQuantityUpdate,
    session: Session = Depends(get_session),
):
    """
    Correct the quantity of a line; subtotal follows the stored price.
    """
    with transaction(session):
        return ledger.update_quantity(session, item_id, payload.quantity)


@router.delete(
    "/order/{order_id}",
    response_model=DeletedCount,
    dependencies=[Depends(require_admin)],
)
def delete_order_items(
    order_id: str,
    session: Session = Depends(get_session),
):
    with transaction(session):
        return DeletedCount(deleted=ledger.delete_all_for_order(session, order_id))


@router.delete(
    "/{item_id}",
    response_model=DeletedCount,
    dependencies=[Depends(require_admin)],
)
def delete_order_item(
    item_id: str,
    session: Session = Depends(get_session),
):
    with transaction(session):
        return DeletedCount(deleted=ledger.delete_item(session, item_id))


# -------- Reads --------


@router.get("/order/{order_id}", response_model=list[OrderItemRead])
def list_order_items(
    order_id: str,
    session: Session = Depends(get_session),
    requester: Requester = Depends(require_auth),
):
    """
    Lines of an order, oldest first. Owner or admin.
    """
    return orders.get_order_items(session, order_id, requester)


@router.get("/order/{order_id}/total", response_model=OrderTotals)
def order_items_total(
    order_id: str,
    session: Session = Depends(get_session),
    requester: Requester = Depends(require_auth),
):
    """
    Totals aggregated from the stored lines. Owner or admin.
    """
    return orders.get_order_total(session, order_id, requester)


@router.get(
    "/statistics/sales",
    response_model=list[ProductSalesStats],
    dependencies=[Depends(require_admin)],
)
def sales_statistics(
    product_id: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    limit: int = 10,
    session: Session = Depends(get_session),
):
    """
    Sales per product, ordered by revenue (admin only).
    """
    return ledger.get_sales_stats(
        session,
        product_id=product_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )


@router.get(
    "/product/{product_id}",
    response_model=list[ProductOrderItemRead],
    dependencies=[Depends(require_admin)],
)
def list_product_order_items(
    product_id: str,
    skip: int = 0,
    limit: int = 50,
    session: Session = Depends(get_session),
):
    """
    Order lines for one product, newest first (admin only).
    """
    return ledger.get_items_by_product(session, product_id, skip, limit)


@router.get(
    "/{item_id}",
    response_model=OrderItemRead,
    dependencies=[Depends(require_admin)],
)
def get_order_item(
    item_id: str,
    session: Session = Depends(get_session),
):
    return ledger.get_item(session, item_id)

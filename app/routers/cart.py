# app/routers/cart.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_user
from app.database import get_session
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import CartCount, CartItemCreate, CartItemUpdate, CartSummary
from app.schemas.user import Requester
from app.services.cart_service import CartService
from app.services.catalog_service import CatalogService

router = APIRouter(prefix="/cart", tags=["Cart"])

service = CartService(CartRepository(), CatalogService(ProductRepository()))


@router.get("", response_model=CartSummary)
def get_my_cart(
    session: Session = Depends(get_session),
    requester: Requester = Depends(require_user),
):
    """
    Cart lines at live catalog prices, newest first, with totals.

    Customers only (403 for admins).
    """
    return service.get_cart(session, requester.user_id)


@router.get("/count", response_model=CartCount)
def count_my_cart(
    session: Session = Depends(get_session),
    requester: Requester = Depends(require_user),
):
    """
    Distinct lines and total quantity, for the cart badge.
    """
    return service.count(session, requester.user_id)


@router.post("", response_model=CartSummary, status_code=201)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    requester: Requester = Depends(require_user),
):
    """
    Add a product; an existing line for it is summed, capped by stock.
    """
    return service.add_item(
        session, requester.user_id, payload.product_id, payload.quantity
    )


@router.patch("/{product_id}", response_model=CartSummary)
def update_cart_item(
    product_id: str,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    requester: Requester = Depends(require_user),
):
    """
    Replace the quantity of a line (<= 0 removes it).
    """
    return service.update_quantity(
        session=session,
        user_id=requester.user_id,
        product_id=product_id,
        quantity=payload.quantity,
    )


@router.delete("/{product_id}", response_model=CartSummary)
def remove_cart_item(
    product_id: str,
    session: Session = Depends(get_session),
    requester: Requester = Depends(require_user),
):
    """
    Drop a line. Removing a product that is not in the cart is not an error.
    """
    return service.remove_item(session, requester.user_id, product_id)


@router.delete("", response_model=CartSummary)
def clear_cart(
    session: Session = Depends(get_session),
    requester: Requester = Depends(require_user),
):
    """
    Delete every line of the caller's cart.
    """
    return service.clear(session, requester.user_id)

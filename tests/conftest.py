"""Shared fixtures: in-memory SQLite schema, seed helpers and an API client."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from app.core.config import get_settings  # noqa: E402
from app.database import engine, get_session  # noqa: E402
from app.main import app  # noqa: E402
from app.models.address import Address  # noqa: E402
from app.models.product import Product  # noqa: E402
from app.models.user import User  # noqa: E402
from app.repositories.address_repo import AddressRepository  # noqa: E402
from app.repositories.cart_repo import CartRepository  # noqa: E402
from app.repositories.order_item_repo import OrderItemRepository  # noqa: E402
from app.repositories.order_repo import OrderRepository  # noqa: E402
from app.repositories.product_repo import ProductRepository  # noqa: E402
from app.schemas.user import Requester  # noqa: E402
from app.services.cart_service import CartService  # noqa: E402
from app.services.catalog_service import CatalogService  # noqa: E402
from app.services.checkout_service import CheckoutService  # noqa: E402
from app.services.order_item_service import OrderItemService  # noqa: E402
from app.services.order_service import OrderService  # noqa: E402


@pytest.fixture(autouse=True)
def schema():
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture()
def session():
    with Session(engine) as session:
        yield session


@pytest.fixture()
def statements():
    """Collects every SQL statement sent to the database while active."""
    seen: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        seen.append(statement)

    event.listen(engine, "before_cursor_execute", _record)
    yield seen
    event.remove(engine, "before_cursor_execute", _record)


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_user(session):
    counter = {"n": 0}

    def _make(role: str = "user") -> User:
        counter["n"] += 1
        user = User(email=f"{role}{counter['n']}@example.com", name=role, role=role)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_product(session):
    def _make(name: str = "Chocolate cake", price: str = "25.00", stock: int = 10) -> Product:
        product = Product(name=name, price=Decimal(price), stock=stock)
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture()
def make_address(session):
    def _make(user: User) -> Address:
        address = Address(
            user_id=user.id,
            street="Main St",
            number="12",
            city="Springfield",
            state="IL",
            postal_code="62701",
        )
        session.add(address)
        session.commit()
        session.refresh(address)
        return address

    return _make


@pytest.fixture()
def customer(make_user):
    return make_user("user")


@pytest.fixture()
def admin(make_user):
    return make_user("admin")


@pytest.fixture()
def as_requester():
    def _as(user: User) -> Requester:
        return Requester(user_id=user.id, role=user.role)

    return _as


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------
@pytest.fixture()
def cart():
    return CartService(CartRepository(), CatalogService(ProductRepository()))


@pytest.fixture()
def ledger():
    return OrderItemService(OrderItemRepository(), OrderRepository(), ProductRepository())


@pytest.fixture()
def checkout(ledger):
    return CheckoutService(
        CartRepository(), ProductRepository(), AddressRepository(), OrderRepository(), ledger
    )


@pytest.fixture()
def orders(ledger):
    return OrderService(
        OrderRepository(),
        OrderItemRepository(),
        ProductRepository(),
        AddressRepository(),
        ledger,
    )


@pytest.fixture()
def place_order(session, cart, checkout, make_address):
    """Fill the user's cart with (product, quantity) pairs and check out."""

    def _place(user: User, *lines: tuple[Product, int], shipping: str = "0.00"):
        for product, quantity in lines:
            cart.add_item(session, user.id, product.id, quantity)
        return checkout.create_order_from_cart(
            session, user.id, shipping, make_address(user).id
        )

    return _place


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------
@pytest.fixture()
def client(session):
    app.dependency_overrides[get_session] = lambda: session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    settings = get_settings()

    def _headers(user: User) -> dict[str, str]:
        token = jwt.encode(
            {"sub": str(user.id), "role": user.role, "email": user.email},
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALG,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers

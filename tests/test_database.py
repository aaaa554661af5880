"""Tests for the transaction scope and storage error translation."""

from decimal import Decimal

import pytest
from sqlalchemy import exc as sa_exc
from sqlmodel import select

from app.core.errors import Conflict, Internal, Unavailable
from app.database import transaction, translate_storage_error
from app.models.cart import CartItem
from app.models.product import Product
from app.repositories.cart_repo import CartRepository


def _products(session) -> list[Product]:
    return session.exec(select(Product)).all()


class TestTransaction:
    def test_commits_on_success(self, session):
        with transaction(session):
            session.add(Product(name="Tart", price=Decimal("3.00"), stock=1))

        session.rollback()
        assert [p.name for p in _products(session)] == ["Tart"]

    def test_plain_exception_is_reraised_and_rolled_back(self, session):
        with pytest.raises(ValueError, match="boom"):
            with transaction(session):
                session.add(Product(name="Tart", price=Decimal("3.00"), stock=1))
                session.flush()
                raise ValueError("boom")

        assert _products(session) == []

    @pytest.mark.parametrize(
        "raised, expected, retryable",
        [
            (sa_exc.IntegrityError("INSERT", {}, Exception("dup")), Conflict, False),
            (sa_exc.TimeoutError(), Unavailable, True),
            (sa_exc.OperationalError("SELECT 1", {}, Exception("down")), Unavailable, True),
        ],
    )
    def test_storage_errors_are_translated(self, session, raised, expected, retryable):
        with pytest.raises(expected) as exc:
            with transaction(session):
                session.add(Product(name="Tart", price=Decimal("3.00"), stock=1))
                session.flush()
                raise raised

        assert exc.value.retryable is retryable
        assert exc.value.__cause__ is raised
        assert _products(session) == []

    def test_unexpected_storage_error_hides_details(self, session):
        raised = sa_exc.ProgrammingError("SELECT secret", {}, Exception("boom"))

        with pytest.raises(Internal) as exc:
            with transaction(session):
                raise raised

        assert exc.value.status_code == 500
        assert "secret" not in exc.value.message
        assert "boom" not in exc.value.message

    def test_duplicate_cart_line_is_a_conflict(self, session, customer, make_product):
        user_id, product_id = customer.id, make_product().id
        repo = CartRepository()

        with pytest.raises(Conflict) as exc:
            with transaction(session):
                repo.add(session, CartItem(user_id=user_id, product_id=product_id, quantity=1))
                repo.add(session, CartItem(user_id=user_id, product_id=product_id, quantity=2))

        assert exc.value.status_code == 409
        assert session.exec(select(CartItem)).all() == []


class TestTranslateStorageError:
    def test_invalidated_connection_is_unavailable(self):
        err = sa_exc.DBAPIError("SELECT 1", {}, Exception("reset"), connection_invalidated=True)
        assert isinstance(translate_storage_error(err), Unavailable)

    def test_live_connection_dbapi_error_is_internal(self):
        err = sa_exc.DBAPIError("SELECT 1", {}, Exception("odd"))
        assert isinstance(translate_storage_error(err), Internal)

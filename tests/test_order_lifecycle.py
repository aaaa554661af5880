"""Tests for order reads, cancellation and admin status changes."""

import uuid
from decimal import Decimal

import pytest

from app.core.config import get_settings
from app.core.errors import Forbidden, InvalidStateError, NotFound, ValidationError


@pytest.fixture()
def product(make_product):
    return make_product(price="25.00", stock=10)


class TestReads:
    def test_owner_sees_order_with_items_and_address(
        self, orders, session, customer, product, place_order, as_requester
    ):
        placed = place_order(customer, (product, 4), shipping="5.00")

        order = orders.get_order(session, placed.id, as_requester(customer))

        assert order.total_price == Decimal("105.00")
        assert order.items_total == Decimal("100.00")
        assert order.address.city == "Springfield"
        assert [item.quantity for item in order.items] == [4]

    def test_other_user_is_forbidden(self, orders, session, make_user, product, place_order, as_requester):
        owner, stranger = make_user(), make_user()
        placed = place_order(owner, (product, 1))

        with pytest.raises(Forbidden):
            orders.get_order(session, placed.id, as_requester(stranger))
        with pytest.raises(Forbidden):
            orders.get_order_items(session, placed.id, as_requester(stranger))

    def test_admin_sees_any_order(self, orders, session, customer, admin, product, place_order, as_requester):
        placed = place_order(customer, (product, 1))

        assert orders.get_order(session, placed.id, as_requester(admin)).id == placed.id
        totals = orders.get_order_total(session, placed.id, as_requester(admin))
        assert totals.total_quantity == 1

    def test_missing_order(self, orders, session, customer, as_requester):
        with pytest.raises(NotFound):
            orders.get_order(session, uuid.uuid4(), as_requester(customer))

    def test_list_my_orders_paginates(self, orders, session, customer, make_user, product, place_order):
        for _ in range(3):
            place_order(customer, (product, 1))
        place_order(make_user(), (product, 1))

        page = orders.list_my_orders(session, customer.id, page=1, limit=2)

        assert len(page.orders) == 2
        assert page.orders[0].items_count == 1
        assert page.pagination.total_items == 3
        assert page.pagination.total_pages == 2
        assert page.pagination.has_next_page is True
        assert page.pagination.has_previous_page is False


class TestCancel:
    def test_cancel_restocks(self, orders, session, customer, product, place_order, as_requester):
        placed = place_order(customer, (product, 4))

        cancelled = orders.cancel_order(session, placed.id, as_requester(customer))

        assert cancelled.status == "cancelled"
        session.refresh(product)
        assert product.stock == 10

    def test_second_cancel_does_not_restock_twice(
        self, orders, session, customer, product, place_order, as_requester
    ):
        placed = place_order(customer, (product, 4))
        orders.cancel_order(session, placed.id, as_requester(customer))

        with pytest.raises(InvalidStateError):
            orders.cancel_order(session, placed.id, as_requester(customer))

        session.refresh(product)
        assert product.stock == 10

    @pytest.mark.parametrize("status", ["shipped", "delivered"])
    def test_cannot_cancel_after_shipping(
        self, orders, session, customer, admin, product, place_order, as_requester, status
    ):
        placed = place_order(customer, (product, 2))
        orders.admin_set_status(session, placed.id, status, as_requester(admin))

        with pytest.raises(InvalidStateError):
            orders.cancel_order(session, placed.id, as_requester(customer))

        session.refresh(product)
        assert product.stock == 8

    def test_stranger_cannot_cancel(self, orders, session, make_user, product, place_order, as_requester):
        owner, stranger = make_user(), make_user()
        placed = place_order(owner, (product, 1))

        with pytest.raises(Forbidden):
            orders.cancel_order(session, placed.id, as_requester(stranger))

        assert orders.get_order(session, placed.id, as_requester(owner)).status == "pending"

    def test_restock_can_be_disabled(
        self, orders, session, customer, product, place_order, as_requester, monkeypatch
    ):
        monkeypatch.setattr(get_settings(), "RESTOCK_ON_CANCEL", False)
        placed = place_order(customer, (product, 4))

        orders.cancel_order(session, placed.id, as_requester(customer))

        session.refresh(product)
        assert product.stock == 6


class TestAdminStatus:
    def test_forward_moves_may_skip_steps(self, orders, session, customer, admin, product, place_order, as_requester):
        placed = place_order(customer, (product, 1))

        updated = orders.admin_set_status(session, placed.id, "shipped", as_requester(admin))

        assert updated.status == "shipped"

    def test_backward_move_is_rejected(self, orders, session, customer, admin, product, place_order, as_requester):
        placed = place_order(customer, (product, 1))
        orders.admin_set_status(session, placed.id, "shipped", as_requester(admin))

        with pytest.raises(InvalidStateError):
            orders.admin_set_status(session, placed.id, "processing", as_requester(admin))

    def test_delivered_is_terminal(self, orders, session, customer, admin, product, place_order, as_requester):
        placed = place_order(customer, (product, 1))
        orders.admin_set_status(session, placed.id, "delivered", as_requester(admin))

        with pytest.raises(InvalidStateError):
            orders.admin_set_status(session, placed.id, "cancelled", as_requester(admin))

    def test_same_status_is_a_noop(self, orders, session, customer, admin, product, place_order, as_requester):
        placed = place_order(customer, (product, 1))

        assert orders.admin_set_status(session, placed.id, "pending", as_requester(admin)).status == "pending"

    def test_admin_cancel_restocks(self, orders, session, customer, admin, product, place_order, as_requester):
        placed = place_order(customer, (product, 3))

        orders.admin_set_status(session, placed.id, "cancelled", as_requester(admin))

        session.refresh(product)
        assert product.stock == 10

    def test_unknown_status(self, orders, session, customer, admin, product, place_order, as_requester):
        placed = place_order(customer, (product, 1))
        with pytest.raises(ValidationError):
            orders.admin_set_status(session, placed.id, "lost", as_requester(admin))

    def test_customers_cannot_set_status(self, orders, session, customer, product, place_order, as_requester):
        placed = place_order(customer, (product, 1))
        with pytest.raises(Forbidden):
            orders.admin_set_status(session, placed.id, "shipped", as_requester(customer))


class TestAdminList:
    def test_filter_by_status(self, orders, session, customer, admin, product, place_order, as_requester):
        first = place_order(customer, (product, 1))
        place_order(customer, (product, 1))
        orders.admin_set_status(session, first.id, "processing", as_requester(admin))

        page = orders.admin_list_orders(session, as_requester(admin), status="processing")

        assert [o.id for o in page.orders] == [first.id]

    def test_sort_by_total_ascending(self, orders, session, customer, admin, make_product, place_order, as_requester):
        cheap, pricey = make_product(price="1.00"), make_product(price="9.00")
        place_order(customer, (pricey, 1))
        place_order(customer, (cheap, 1))

        page = orders.admin_list_orders(
            session, as_requester(admin), sort_by="total_price", sort_order="asc"
        )

        assert [o.total_price for o in page.orders] == [Decimal("1.00"), Decimal("9.00")]

    def test_unknown_sort_field(self, orders, session, admin, as_requester):
        with pytest.raises(ValidationError):
            orders.admin_list_orders(session, as_requester(admin), sort_by="password")

    def test_customers_cannot_list_everything(self, orders, session, customer, as_requester):
        with pytest.raises(Forbidden):
            orders.admin_list_orders(session, as_requester(customer))


class TestMalformedIds:
    @pytest.fixture()
    def requesters(self, customer, admin, as_requester, statements):
        built = as_requester(customer), as_requester(admin)
        statements.clear()
        return built

    def test_reads_issue_no_query(self, orders, session, requesters, statements):
        owner, _ = requesters

        with pytest.raises(ValidationError):
            orders.get_order(session, "bad", owner)
        with pytest.raises(ValidationError):
            orders.get_order_items(session, "bad", owner)

        assert statements == []

    def test_cancel_issues_no_query(self, orders, session, requesters, statements):
        owner, _ = requesters

        with pytest.raises(ValidationError):
            orders.cancel_order(session, "bad", owner)

        assert statements == []

    def test_admin_status_issues_no_query(self, orders, session, requesters, statements):
        _, admin = requesters

        with pytest.raises(ValidationError):
            orders.admin_set_status(session, "bad", "shipped", admin)

        assert statements == []

    def test_ledger_mutations_issue_no_query(self, ledger, session, requesters, statements):
        with pytest.raises(ValidationError):
            ledger.update_quantity(session, "bad", 2)
        with pytest.raises(ValidationError):
            ledger.delete_item(session, "bad")

        assert statements == []

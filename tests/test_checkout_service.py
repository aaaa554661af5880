"""Tests for turning a cart into an order."""

import uuid
from decimal import Decimal

import pytest
from sqlmodel import select

from app.core.errors import EmptyCartError, InsufficientStock, NotFound, ValidationError
from app.models.cart import CartItem
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.repositories.product_repo import ProductRepository


def _count(session, model) -> int:
    return len(session.exec(select(model)).all())


class TestCreateOrderFromCart:
    def test_end_to_end_totals(self, cart, checkout, session, customer, make_product, make_address):
        product = make_product(price="25.00", stock=10)
        address = make_address(customer)
        cart.add_item(session, customer.id, product.id, 4)

        order = checkout.create_order_from_cart(session, customer.id, "5.00", address.id)

        assert order.status == "pending"
        assert order.total_price == Decimal("105.00")
        assert order.shipping_price == Decimal("5.00")
        assert order.address is not None and order.address.id == address.id
        assert len(order.items) == 1
        item = order.items[0]
        assert item.quantity == 4
        assert item.price == Decimal("25.00")
        assert item.subtotal == Decimal("100.00")

        session.refresh(product)
        assert product.stock == 6
        assert cart.get_cart(session, customer.id).items == []

    def test_total_is_shipping_plus_subtotals(self, cart, checkout, session, customer, make_product, make_address):
        cake = make_product("Cake", price="12.50", stock=5)
        pie = make_product("Pie", price="7.25", stock=5)
        address = make_address(customer)
        cart.add_item(session, customer.id, cake.id, 2)
        cart.add_item(session, customer.id, pie.id, 3)

        order = checkout.create_order_from_cart(session, customer.id, Decimal("4.99"), address.id)

        subtotals = sum(item.subtotal for item in order.items)
        assert subtotals == Decimal("46.75")
        assert order.total_price == Decimal("4.99") + subtotals
        for item in order.items:
            assert item.subtotal == item.price * item.quantity

        session.refresh(cake)
        session.refresh(pie)
        assert (cake.stock, pie.stock) == (3, 2)

    def test_price_is_snapshotted(self, cart, checkout, session, customer, make_product, make_address):
        product = make_product(price="10.00")
        address = make_address(customer)
        cart.add_item(session, customer.id, product.id, 1)
        order = checkout.create_order_from_cart(session, customer.id, 0, address.id)

        product.price = Decimal("99.00")
        session.add(product)
        session.commit()

        stored = session.exec(select(OrderItem).where(OrderItem.order_id == order.id)).one()
        assert stored.price == Decimal("10.00")

    def test_empty_cart(self, checkout, session, customer, make_address):
        address = make_address(customer)

        with pytest.raises(EmptyCartError):
            checkout.create_order_from_cart(session, customer.id, 0, address.id)

        assert _count(session, Order) == 0

    def test_address_of_another_user(self, cart, checkout, session, make_user, make_product, make_address):
        alice, bob = make_user(), make_user()
        product = make_product()
        bobs_address = make_address(bob)
        cart.add_item(session, alice.id, product.id, 1)

        with pytest.raises(NotFound):
            checkout.create_order_from_cart(session, alice.id, 0, bobs_address.id)

        assert _count(session, Order) == 0
        assert _count(session, CartItem) == 1

    def test_negative_shipping(self, checkout, session, customer, make_address):
        address = make_address(customer)
        with pytest.raises(ValidationError):
            checkout.create_order_from_cart(session, customer.id, "-1", address.id)

    def test_oversized_shipping_issues_no_query(self, checkout, session, customer, statements):
        customer_id = customer.id
        address_id = uuid.uuid4()

        with pytest.raises(ValidationError) as exc:
            checkout.create_order_from_cart(session, customer_id, "1e30", address_id)

        assert exc.value.details == {"field": "shipping_price"}
        assert statements == []

    def test_total_beyond_column_range(self, cart, checkout, session, customer, make_product, make_address):
        product = make_product(price="25.00", stock=10)
        address = make_address(customer)
        cart.add_item(session, customer.id, product.id, 4)

        with pytest.raises(ValidationError) as exc:
            checkout.create_order_from_cart(session, customer.id, "99999999.00", address.id)

        assert exc.value.details == {"field": "total_price"}
        assert _count(session, Order) == 0
        assert _count(session, OrderItem) == 0
        assert cart.get_cart(session, customer.id).items[0].quantity == 4
        session.refresh(product)
        assert product.stock == 10

    def test_malformed_address_id_issues_no_query(self, checkout, session, customer, statements):
        customer_id = customer.id

        with pytest.raises(ValidationError):
            checkout.create_order_from_cart(session, customer_id, 0, "nope")

        assert statements == []

    def test_stock_dropped_after_cart_add(self, cart, checkout, session, customer, make_product, make_address):
        product = make_product(stock=10)
        address = make_address(customer)
        cart.add_item(session, customer.id, product.id, 4)

        product.stock = 2
        session.add(product)
        session.commit()

        with pytest.raises(InsufficientStock) as exc:
            checkout.create_order_from_cart(session, customer.id, 0, address.id)
        assert product.name in exc.value.message

        assert _count(session, Order) == 0
        assert _count(session, CartItem) == 1


class TestCompetingCheckouts:
    def test_sequential_checkouts_cannot_oversell(self, cart, checkout, session, make_user, make_product, make_address):
        alice, bob = make_user(), make_user()
        product = make_product(stock=10)
        alice_address, bob_address = make_address(alice), make_address(bob)
        cart.add_item(session, alice.id, product.id, 6)
        cart.add_item(session, bob.id, product.id, 6)

        checkout.create_order_from_cart(session, alice.id, 0, alice_address.id)
        with pytest.raises(InsufficientStock):
            checkout.create_order_from_cart(session, bob.id, 0, bob_address.id)

        session.refresh(product)
        assert product.stock == 4
        assert _count(session, Order) == 1
        assert cart.get_cart(session, bob.id).items[0].quantity == 6

    def test_stale_stock_read_rolls_back(
        self, cart, checkout, session, customer, make_product, make_address, monkeypatch
    ):
        product = make_product(stock=3)
        address = make_address(customer)
        cart.add_item(session, customer.id, product.id, 3)

        # Another checkout takes the stock after our cart was read
        product.stock = 1
        session.add(product)
        session.commit()

        def stale_read(self, session, product_ids):
            return [
                Product(id=p.id, name=p.name, price=p.price, stock=p.stock + 100)
                for p in session.exec(select(Product).where(Product.id.in_(product_ids)))
            ]

        monkeypatch.setattr(ProductRepository, "list_by_ids_for_update", stale_read)

        with pytest.raises(InsufficientStock):
            checkout.create_order_from_cart(session, customer.id, 0, address.id)

        session.refresh(product)
        assert product.stock == 1
        assert _count(session, Order) == 0
        assert _count(session, OrderItem) == 0
        assert _count(session, CartItem) == 1

    def test_product_removed_from_catalog(
        self, cart, checkout, session, customer, make_product, make_address, monkeypatch
    ):
        product = make_product()
        address = make_address(customer)
        cart.add_item(session, customer.id, product.id, 1)

        monkeypatch.setattr(
            ProductRepository, "list_by_ids_for_update", lambda self, session, ids: []
        )

        with pytest.raises(NotFound):
            checkout.create_order_from_cart(session, customer.id, 0, address.id)

        assert _count(session, Order) == 0

"""Shared BDD fixtures and step definitions for checkout and the order lifecycle."""

import pytest
from inventory.stock.reservation import reserve_and_decrement
from ordering.order.order import Order
from pytest_bdd import given, parsers, then


@pytest.fixture()
def products():
    """Products seeded by the scenario, keyed by name."""
    return {}


@pytest.fixture()
def error():
    """Container for the error a rejected action raised."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced at {price} with {stock:d} units in stock'))
def _(seed, products, name, price, stock):
    products[name] = seed.product(name=name, price=price, stock=stock)


@given(parsers.cfparse('"{name}" is down to {stock:d} units in stock'))
def _(seed, products, name, stock):
    product = products[name]
    sold = seed.stock_of(product.id) - stock
    with seed.database.session_factory() as session, session.begin():
        reserve_and_decrement(session, product.id, sold)


@given("the customer has a delivery address", target_fixture="address")
def _(seed, customer):
    return seed.address(user_id=customer.user_id)


@given(parsers.cfparse('a flat coupon "{code}" worth {value} for orders of at least {minimum}'))
def _(seed, code, value, minimum):
    seed.coupon(code=code, type="FlatAmount", value=value, min_purchase_amount=minimum)


@given(parsers.cfparse('the cart holds {quantity:d} of "{name}"'))
def _(seed, products, customer, name, quantity):
    seed.cart_item(products[name].id, quantity, user_id=customer.user_id)


@given("an order was placed", target_fixture="order")
def _(seed, place_order):
    widget = seed.product(name="Widget", price="100.00", stock=10)
    return place_order((widget, 2))


@given(parsers.cfparse('the order was moved to "{status}"'), target_fixture="order")
def _(lifecycle, admin, order, status):
    return lifecycle.update_status(admin, order.id, status)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order, status):
    assert order.status == status


@then(parsers.cfparse('the stored order status is "{status}"'))
def _(seed, order, status):
    assert seed.order(order.id).status == status


@then(parsers.cfparse('the action is rejected as "{kind}"'))
def _(error, kind):
    assert error["exc"] is not None, "Expected the action to be rejected"
    assert error["exc"].kind == kind


@then(parsers.cfparse('the cart still holds {quantity:d} of "{name}"'))
def _(seed, products, customer, name, quantity):
    assert seed.cart_lines(user_id=customer.user_id) == [(products[name].id, quantity)]


@then(parsers.cfparse('"{name}" has {stock:d} units in stock'))
def _(seed, products, name, stock):
    assert seed.stock_of(products[name].id) == stock


@then("no order was created")
def _(seed):
    assert seed.count(Order) == 0

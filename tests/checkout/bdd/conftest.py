"""Shared BDD fixtures and step definitions for checkout."""

import pytest
from checkout.api.mutations import add_to_cart
from checkout.gateway.port import ChargeOutcome
from checkout.inventory.management import RegisterProduct
from checkout.utils.db import process
from pytest_bdd import given, parsers


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def session_id():
    return "sess-bdd"


@pytest.fixture()
def products():
    """Product name to id."""
    return {}


@pytest.fixture()
def outcome():
    """Container for the last mutation result."""
    return {"result": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced {price:f} with {count:d} in stock'))
def a_product(products, name, price, count):
    products[name] = process(RegisterProduct(name=name, price=price, inventory_count=count, category="Fitness"))


@given(parsers.cfparse('the shopper added {quantity:d} "{name}" to the cart'))
def shopper_added(products, session_id, quantity, name):
    result = add_to_cart(session_id, products[name], quantity)
    assert result.ok, result.errors


@given("the gateway approves charges")
def gateway_approves(gateway):
    gateway.configure(ChargeOutcome.APPROVED)


@given("the gateway declines charges")
def gateway_declines(gateway):
    gateway.configure(ChargeOutcome.DECLINED)

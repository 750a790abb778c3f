"""Shared BDD fixtures and step definitions for the Scheduling domain."""

from datetime import UTC, datetime

import pytest
from protean.utils.globals import current_domain
from pytest_bdd import given, parsers

from catalogue.product.creation import CreateProduct
from scheduling.rule.management import SeedDefaultRules


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def now():
    """Monday 2 November 2026, 10:00 in the business timezone."""
    return datetime(2026, 11, 2, 16, 0, tzinfo=UTC)


@pytest.fixture()
def catalogue():
    """Products created by the scenario, keyed by name."""
    return {}


@pytest.fixture()
def basket():
    """``(product_id, quantity)`` lines the customer wants to schedule."""
    return []


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("the default weekly scheduling rules")
def default_rules():
    current_domain.process(SeedDefaultRules(), asynchronous=False)


@given(parsers.cfparse('a product "{name}" priced at {price:f}'))
def product(catalogue, name, price):
    catalogue[name] = current_domain.process(
        CreateProduct(name=name, price=price, stock_quantity=100),
        asynchronous=False,
    )


@given(parsers.cfparse('the basket holds {quantity:d} "{name}"'))
def basket_line(basket, catalogue, name, quantity):
    basket.append((catalogue[name], quantity))

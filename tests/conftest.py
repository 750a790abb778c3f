import json
import os
import tempfile
from pathlib import Path

import pytest


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Point the domain at a throwaway sqlite file, then activate it by pushing its
    domain_context. The activated domain can then be referred to elsewhere as `current_domain`
    """
    database_path = Path(tempfile.mkdtemp(prefix="orderflow-tests-")) / "orderflow.db"
    os.environ["ORDERFLOW_ENV"] = "test"
    os.environ["ORDERFLOW_DATABASE_URI"] = f"sqlite:///{database_path}"

    from shared.config import get_settings
    from shared.domain import init_domain

    get_settings.cache_clear()
    domain = init_domain(get_settings())
    domain.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def setup_db(request):
    from shared.db import drop_db, setup_db
    from shared.domain import orderflow

    setup_db(orderflow)

    yield

    drop_db(orderflow)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()


@pytest.fixture()
def settings():
    from shared.config import get_settings

    return get_settings()


@pytest.fixture()
def product_factory():
    """Create a product through the CreateProduct command and return it."""
    from protean import current_domain

    from catalogue.product.creation import CreateProduct
    from catalogue.product.product import Product

    counter = {"n": 0}

    def make(**overrides):
        counter["n"] += 1
        data = {
            "name": f"Product {counter['n']}",
            "presentation": "Unit",
            "price": 50.0,
            "stock_quantity": 10,
            "min_stock": 0,
        }
        data.update(overrides)
        if isinstance(data.get("gifts"), list):
            data["gifts"] = json.dumps(data["gifts"])
        product_id = current_domain.process(CreateProduct(**data), asynchronous=False)
        return current_domain.repository_for(Product).get(product_id)

    return make

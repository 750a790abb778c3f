"""Domain initialization and configuration.

Catalogue, inventory, ordering and scheduling elements all register on one
Protean domain. Checkout writes product stock, inventory movements, the order
and the cart together, and a unit of work never spans two domains.

The database comes from ``ORDERFLOW_DATABASE_URI`` rather than ``domain.toml``
so that the API, the CLI and the test suite all point at the same store.
"""

import structlog
from protean.domain import Domain

from shared.config import get_settings

logger = structlog.get_logger(__name__)

# Domain Composition Root
orderflow = Domain(name="orderflow")

_initialized = False


def database_config(uri):
    """Protean provider settings for a SQLAlchemy database URI."""
    provider = "postgresql" if uri.startswith("postgresql") else "sqlite"
    return {"provider": provider, "database_uri": uri}


def _register_elements():
    # Importing element modules runs their @orderflow decorators
    import catalogue.product.creation  # noqa: F401
    import catalogue.product.details  # noqa: F401
    import catalogue.product.product  # noqa: F401
    import inventory.stock.adjustment  # noqa: F401
    import inventory.stock.movement  # noqa: F401
    import ordering.cart.cart  # noqa: F401
    import ordering.cart.items  # noqa: F401
    import ordering.order.cancellation  # noqa: F401
    import ordering.order.creation  # noqa: F401
    import ordering.order.order  # noqa: F401
    import ordering.order.status  # noqa: F401
    import scheduling.rule.management  # noqa: F401
    import scheduling.rule.rule  # noqa: F401


def init_domain(settings=None):
    """Point the default provider at the configured database and initialize the domain once."""
    global _initialized
    if _initialized:
        return orderflow

    settings = settings or get_settings()
    orderflow.config["databases"]["default"] = database_config(settings.database_uri)

    _register_elements()
    orderflow.init(traverse=False)
    _initialized = True

    logger.info("Domain initialized", domain=orderflow.name, provider=orderflow.config["databases"]["default"]["provider"])
    return orderflow

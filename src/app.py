"""Orderflow FastAPI application.

Serves the catalogue, inventory, scheduling and ordering contexts from one
process. Commands are processed synchronously through the ``orderflow``
domain; each request runs inside its domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from catalogue.api import product_router
from inventory.api import inventory_router
from ordering.api import cart_router, order_router
from scheduling.api import router as scheduling_router
from shared.api import register_error_handlers
from shared.config import get_settings
from shared.domain import init_domain
from shared.logging import configure_logging

logger = structlog.get_logger(__name__)


def create_app(settings=None):
    """Build the application.

    Args:
        settings: Settings instance; defaults to ``get_settings()``. The
            domain is initialized from it on first use.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, json=settings.log_json)
    domain = init_domain(settings)

    app = FastAPI(
        title="Orderflow API",
        description="Order fulfillment: carts, scheduling rules, checkout and order status",
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the Protean domain context for each request."""
        with domain.domain_context():
            response = await call_next(request)
        return response

    register_error_handlers(app)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    app.include_router(product_router)
    app.include_router(inventory_router)
    app.include_router(scheduling_router)
    app.include_router(cart_router)
    app.include_router(order_router)

    # -----------------------------------------------------------------------
    # Health / root
    # -----------------------------------------------------------------------
    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse(content={"status": "ok", "env": settings.env, "domain": domain.name})

    logger.info("Application created", env=settings.env)
    return app


app = create_app()

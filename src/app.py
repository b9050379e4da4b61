"""Marketplace FastAPI application.

Usage:
    uvicorn app:create_app --factory --app-dir src --host 0.0.0.0 --port 8000

``MARKETPLACE_ENV`` selects the configuration overlay (see ``shared.config``).
"""

from dataclasses import dataclass

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from inventory.api import inventory_router
from notifications.notification.dispatch import OrderMailer
from ordering.api import cart_router, coupon_router, order_router, report_router
from ordering.checkout.engine import CheckoutEngine
from ordering.order.lifecycle import OrderLifecycleManager
from ordering.projections.reports import ReportingAggregator
from shared.config import Config, load_config
from shared.db import Database, setup_db
from shared.errors import MarketplaceError
from shared.logging import add_context, clear_context, configure_logging

logger = structlog.get_logger(__name__)

HTTP_STATUS_BY_KIND = {
    "not_found": 404,
    "validation": 400,
    "empty_cart": 400,
    "coupon_invalid": 400,
    "insufficient_stock": 409,
    "invalid_transition": 409,
    "authorization": 403,
    "conflict": 409,
    "internal": 500,
    "checkout_timeout": 503,
}


@dataclass
class Services:
    config: Config
    database: Database
    checkout: CheckoutEngine
    lifecycle: OrderLifecycleManager
    reports: ReportingAggregator


def build_services(config: Config, database: Database | None = None, mailer=None) -> Services:
    database = database or Database(config.database_url, echo=config.echo_sql)
    mailer = mailer if mailer is not None else OrderMailer()
    return Services(
        config=config,
        database=database,
        checkout=CheckoutEngine(database.session_factory, config, mailer=mailer),
        lifecycle=OrderLifecycleManager(database.session_factory, mailer=mailer),
        reports=ReportingAggregator(database.read_session_factory, top_products=config.report_top_products),
    )


# ---------------------------------------------------------------------------
# Error rendering
# ---------------------------------------------------------------------------
async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    status_code = HTTP_STATUS_BY_KIND.get(exc.kind, 500)
    if status_code >= 500:
        logger.error("Request failed", path=request.url.path, kind=exc.kind, error=exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages: dict[str, list[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path", "header"))
        messages.setdefault(field or "request", []).append(error["msg"])
    return JSONResponse(
        status_code=400,
        content={"kind": "validation", "message": "Invalid request", "details": {"messages": messages}},
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------
def create_app(config: Config | None = None, services: Services | None = None) -> FastAPI:
    config = config or (services.config if services is not None else load_config())
    configure_logging(config)

    if services is None:
        services = build_services(config)
        setup_db(services.database)

    app = FastAPI(
        title="Marketplace API",
        description="Cart, checkout, order lifecycle and sales reports",
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        """Bind the request path and caller to every log line of the request."""
        clear_context()
        add_context(method=request.method, path=request.url.path, user_id=request.headers.get("x-user-id"))
        try:
            return await call_next(request)
        finally:
            clear_context()

    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(coupon_router)
    app.include_router(report_router)
    app.include_router(inventory_router)

    # -----------------------------------------------------------------------
    # Health
    # -----------------------------------------------------------------------
    @app.get("/health")
    def health():
        return JSONResponse(
            content={
                "status": "ok",
                "env": services.config.env,
                "database": services.database.engine.dialect.name,
            }
        )

    return app

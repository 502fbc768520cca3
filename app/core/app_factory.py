"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) to
improve testability and separation of concerns compared to a monolithic main.
"""

from __future__ import annotations

from fastapi import FastAPI

from app.api.routes import data_router, health_router
from app.core.auth import api_key_middleware
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Strategy Dashboard API",
        description=(
            "Backend for the corporate strategy dashboard: read/write JSON "
            "documents for strategic outcomes, revenue targets, priorities and "
            "KPI history. Requires X-API-Key on /api/* and applies per-endpoint "
            "sliding-window rate limits."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    # Middleware: the last registered runs first, so request ids wrap auth
    app.middleware("http")(api_key_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(data_router, prefix="/api")
    app.include_router(health_router, prefix="/api")

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app

"""FastAPI application entrypoint.

Configures CORS, includes routers, and exposes a healthcheck endpoint.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from .database import Base, engine
from .deps import get_settings
from .routers import attribution as attribution_router
from .routers import dashboard as dashboard_router
from .routers import orders as orders_router
from .telemetry import init_observability
from . import schemas

# Import models so metadata is populated before create_all
from . import models  # noqa: F401


def create_app() -> FastAPI:
    settings = get_settings()
    observability = init_observability(settings)
    logger.info(f"[STARTUP] Observability: {observability}")

    app = FastAPI(
        title="AI Attribution API",
        description="""
        Detects which Shopify orders came from AI assistants and aggregates
        them into a dashboard.

        This API provides endpoints for:
        - Classifying a single order's traffic signals
        - Ingesting Shopify Admin API order nodes
        - The aggregated dashboard (overview, channels, trend, products, customers)
        - CSV exports of AI orders, products and customers
        """,
        version="1.0.0",
    )

    # Trust X-Forwarded-Proto from the load balancer
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

    # BACKEND_CORS_ORIGINS can be a comma-separated list: "https://app.example.com,http://localhost:3000"
    allowed_origins = [origin.strip() for origin in settings.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]
    logger.info(f"[CORS] Allowed origins: {allowed_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(attribution_router.router)
    app.include_router(orders_router.router)
    app.include_router(dashboard_router.router)

    @app.get(
        "/health",
        response_model=schemas.HealthResponse,
        tags=["Health"],
        summary="Health check",
    )
    def health():
        return schemas.HealthResponse(status="ok")

    @app.on_event("startup")
    async def startup_event():
        """Create tables that do not exist yet."""
        Base.metadata.create_all(bind=engine)
        logging.info("[STARTUP] Database tables ready")

    return app


app = create_app()

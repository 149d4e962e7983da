"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import PlainTextResponse, Response

from retiro_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from retiro_gateway.api.v1 import admin, leads, payments, registrations, webhooks
from retiro_gateway.infrastructure.observability.logging import setup_logging
from retiro_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Retiro Gateway",
        description="Retreat registration and payment service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/", response_class=PlainTextResponse)
    def home():
        return "Backend Retiro rodando"

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(registrations.router, prefix="/v1", tags=["registrations"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(webhooks.router, prefix="/v1", tags=["webhooks"])
    app.include_router(leads.router, prefix="/v1", tags=["leads"])
    app.include_router(admin.router, prefix="/v1", tags=["admin"])

    return app


app = create_app()

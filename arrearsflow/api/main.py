"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from arrearsflow.api.middleware import RequestIDMiddleware, MetricsMiddleware
from arrearsflow.api.v1 import analysis, debtors, portfolio, rules
from arrearsflow.infrastructure.observability.logging import setup_logging
from arrearsflow.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="ArrearsFlow Risk Engine",
        description="Debtor risk grading and anti-spam contact gating",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(analysis.router, prefix="/v1", tags=["analysis"])
    app.include_router(debtors.router, prefix="/v1", tags=["debtors"])
    app.include_router(portfolio.router, prefix="/v1", tags=["portfolio"])
    app.include_router(rules.router, prefix="/v1", tags=["rules"])

    return app


app = create_app()

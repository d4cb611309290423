"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from finadvisor.api.middleware import RequestIDMiddleware, MetricsMiddleware
from finadvisor.api.v1 import advisor, credit_risk
from finadvisor.infrastructure.observability.logging import setup_logging
from finadvisor.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="FinAdvisor",
        description="Credit risk, loan affordability and financial advice service",
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

    app.include_router(credit_risk.router, prefix="/v1", tags=["credit-risk"])
    app.include_router(advisor.router, prefix="/v1", tags=["advisor"])

    return app


app = create_app()

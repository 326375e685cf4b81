"""FastAPI application factory"""

import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from crowdfund_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from crowdfund_gateway.api.v1 import businesses, distributions, investments, performance
from crowdfund_gateway.domain.exceptions import DomainException, ValidationError
from crowdfund_gateway.infrastructure.observability.logging import setup_logging
from crowdfund_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Crowdfund Gateway",
        description="Investment, quarterly performance and profit/loss distribution service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException):
        body = {"success": False, "error": exc.kind, "message": exc.message}
        if isinstance(exc, ValidationError):
            body["errors"] = exc.errors

        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            f"Request failed: {exc.message}",
            extra={
                "request_id": getattr(request.state, "request_id", "unknown"),
                "error": exc.kind,
                "path": request.url.path,
            },
        )
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error: {exc}",
            extra={"request_id": getattr(request.state, "request_id", "unknown"), "path": request.url.path},
        )
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "internal", "message": "Internal server error"},
        )

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(businesses.router, prefix="/v1", tags=["businesses"])
    app.include_router(investments.router, prefix="/v1", tags=["investments"])
    app.include_router(performance.router, prefix="/v1", tags=["performance"])
    app.include_router(distributions.router, prefix="/v1", tags=["distributions"])

    return app


app = create_app()

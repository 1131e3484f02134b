"""
FastAPI application entry point.

HTTP hosting surface for running the forwarder outside Lambda
(containers, local testing). Lambda uses `handler.handler` instead.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .api import healthz_router, invoke_router, metrics_router
from .config import Settings
from .core.exceptions import ForwarderException
from .core.metrics import MetricsCollector, get_metrics
from .core.pipeline import ForwardingPipeline
from .logging_setup import configure_logging


def create_lifespan_handler(
    pipeline: Optional[ForwardingPipeline],
    metrics: Optional[MetricsCollector],
) -> Any:
    """Create a lifespan handler owning the pipeline and metrics."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger = structlog.get_logger(__name__)
        logger.info("Starting LogDNA CloudWatch forwarder", version=app.version)

        metrics_collector = metrics or get_metrics()
        app.state.metrics = metrics_collector
        app.state.pipeline = pipeline or ForwardingPipeline(metrics=metrics_collector)

        try:
            yield
        finally:
            logger.info("Shutting down LogDNA CloudWatch forwarder")
            await app.state.pipeline.forwarder.close()

    return lifespan


def create_app(
    pipeline: Optional[ForwardingPipeline] = None,
    metrics: Optional[MetricsCollector] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    `pipeline` and `metrics` default to the process-wide instances.
    """
    settings = Settings()
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="LogDNA CloudWatch",
        description="CloudWatch Logs → LogDNA forwarder",
        version=__version__,
        lifespan=create_lifespan_handler(pipeline, metrics),
    )

    app.add_exception_handler(ForwarderException, forwarder_exception_handler)

    app.include_router(invoke_router, tags=["invoke"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(healthz_router, tags=["health"])

    @app.get("/", include_in_schema=False)
    async def root() -> Dict[str, str]:
        """Root endpoint with service information."""
        return {
            "service": "logdna-cloudwatch",
            "version": app.version,
            "docs": "/docs",
        }

    return app


async def forwarder_exception_handler(request: Request, exc: ForwarderException) -> JSONResponse:
    """Turn forwarder exceptions into structured error responses."""
    logger = structlog.get_logger(__name__)
    logger.error(
        "Forwarder exception occurred",
        error=str(exc),
        status_code=exc.status_code,
        path=request.url.path,
        method=request.method,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": str(exc),
            "details": exc.details,
        },
    )


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "logdna_cloudwatch.main:app",
        host="0.0.0.0",
        port=8080,
    )

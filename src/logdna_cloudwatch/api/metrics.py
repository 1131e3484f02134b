"""
Prometheus metrics endpoint.

Exposes metrics in Prometheus text format for scraping.
"""

import structlog
from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="""
    Prometheus metrics endpoint in standard text format.

    **Key Metrics:**
    - cloudwatch_batches_total{outcome} - Batches processed
    - logdna_delivery_attempts_total{outcome} - Ingestion requests
    - logdna_delivery_retries_total{reason} - Retries by reason
    - logdna_lines_delivered_total - Lines accepted by LogDNA
    - logdna_delivery_duration_seconds - Request latency histogram
    """,
)
async def get_metrics(request: Request) -> Response:
    """Return the metrics registered on the app's collector."""
    metrics_collector = getattr(request.app.state, "metrics", None)

    if not metrics_collector:
        logger.warning("Metrics collector not initialized")
        return Response(
            content="# Metrics collector not initialized\n",
            media_type=CONTENT_TYPE_LATEST,
        )

    metrics_data = generate_latest(metrics_collector.registry)
    logger.debug("Metrics scraped successfully", size_bytes=len(metrics_data))

    return Response(
        content=metrics_data,
        media_type=CONTENT_TYPE_LATEST,
    )

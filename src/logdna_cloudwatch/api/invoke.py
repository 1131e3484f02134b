"""
HTTP invocation endpoint.

Main endpoint: POST /invoke with a CloudWatch Logs subscription event as body.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, Request

from ..core.pipeline import ForwardingPipeline

logger = structlog.get_logger(__name__)

router = APIRouter()


async def get_forwarding_pipeline(request: Request) -> ForwardingPipeline:
    """Dependency to get the forwarding pipeline from app state."""
    return request.app.state.pipeline


@router.post(
    "/invoke",
    summary="Forward a CloudWatch Logs event",
    description="""
    Run the forwarder on one CloudWatch Logs subscription event.

    **Body:** `{"awslogs": {"data": "<base64 gzip JSON>"}}`

    **Errors:**
    - 400 malformed event
    - 401 no ingestion key configured or resolvable
    - 502 delivery failed after retries
    """,
)
async def invoke(
    event: Dict[str, Any],
    pipeline: ForwardingPipeline = Depends(get_forwarding_pipeline),
) -> Dict[str, Any]:
    """Forward the event and return the ingestion response body."""
    request_id = str(uuid.uuid4())
    start_time = datetime.now(timezone.utc)

    logger.info("Processing invocation", request_id=request_id)

    result = await pipeline.run(event)

    logger.info(
        "Invocation completed",
        request_id=request_id,
        processing_time_ms=(datetime.now(timezone.utc) - start_time).total_seconds() * 1000,
    )
    return {"request_id": request_id, "result": result}

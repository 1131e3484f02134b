"""
Function-call entry point for the forwarder.

`handler(event, context)` is the hosting boundary (e.g. AWS Lambda).
Invocations run on one long-lived event loop so the keep-alive
session outlives a single call.
"""

import asyncio
from typing import Any, Mapping, Optional

import structlog

from .config import Settings
from .core.metrics import get_metrics
from .core.pipeline import ForwardingPipeline
from .logging_setup import configure_logging

logger = structlog.get_logger(__name__)

_loop: Optional[asyncio.AbstractEventLoop] = None
_pipeline: Optional[ForwardingPipeline] = None


def _get_loop() -> asyncio.AbstractEventLoop:
    global _loop

    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()

    return _loop


def get_pipeline() -> ForwardingPipeline:
    """Get or create the process-wide pipeline, configuring logging once."""
    global _pipeline

    if _pipeline is None:
        settings = Settings()
        configure_logging(settings.log_level, settings.log_format)
        _pipeline = ForwardingPipeline(metrics=get_metrics())

    return _pipeline


async def handle_event(event: Mapping[str, Any]) -> Any:
    """Forward one awslogs event and return the ingestion response body."""
    return await get_pipeline().run(event)


def handler(event: Mapping[str, Any], context: Any = None) -> Any:
    """Synchronous entry point; raises on failure so the runtime reports it."""
    logger.debug("Invocation received", request_id=getattr(context, "aws_request_id", None))
    return _get_loop().run_until_complete(handle_event(event))

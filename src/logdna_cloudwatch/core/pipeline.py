"""
Forwarding pipeline.

Orchestrates one invocation:
1. Config resolution (env + optional SSM key lookup)
2. Event decoding
3. Normalization into LogDNA lines
4. Delivery with retry
"""

from typing import Any, Mapping, Optional

import structlog

from ..config import Config, ConfigResolver, Settings, get_config_resolver
from .decoder import decode_event
from .exceptions import ForwarderException
from .forwarder import LogDNAForwarder, get_forwarder
from .metrics import MetricsCollector
from .normalizer import prepare_logs

logger = structlog.get_logger(__name__)


class ForwardingPipeline:
    """
    Runs the decode → normalize → deliver sequence for one event.

    Holds no per-invocation state; the resolver key cache and the
    forwarder session are shared across runs.
    """

    def __init__(
        self,
        resolver: Optional[ConfigResolver] = None,
        forwarder: Optional[LogDNAForwarder] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.resolver = resolver or get_config_resolver()
        self.forwarder = forwarder or get_forwarder()
        self.metrics = metrics

    async def run(self, event: Mapping[str, Any], settings: Optional[Settings] = None) -> Any:
        """
        Forward one awslogs event.

        Returns:
            The ingestion endpoint's response body

        Raises:
            ForwarderException: the first failure of any stage
        """
        config: Config = await self.resolver.resolve(settings)

        try:
            batch = decode_event(event)
            normalized = prepare_logs(batch, config)

            logger.info(
                "Forwarding batch",
                log_group=batch.log_group,
                log_stream=batch.log_stream,
                lines_count=len(normalized.records),
            )

            result = await self.forwarder.send(normalized, config)
        except ForwarderException as e:
            logger.error(
                "Batch forwarding failed",
                error=str(e),
                error_code=e.error_code,
                details=e.details,
            )
            if self.metrics:
                self.metrics.record_batch(e.error_code)
            raise

        if self.metrics:
            self.metrics.record_batch("delivered", len(normalized.records))
        return result

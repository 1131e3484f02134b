"""
Async forwarder for sending normalized lines to LogDNA.

Features:
- One POST per CloudWatch batch, lines in input order
- Hostname derivation for Fargate, RDS and plain log groups
- Retry with exponential backoff on transient network errors and 5xx
- Keep-alive session shared across invocations
"""

import asyncio
import json
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import aiohttp
import structlog

from ..config import Config
from ..models.log_event import NormalizedBatch
from .exceptions import (
    MissingCredentialError,
    ServerError,
    TerminalDeliveryError,
    TransientNetworkError,
)
from .metrics import MetricsCollector, get_metrics
from .normalizer import RDS_ENGINE_INDEX, RDS_INSTANCE_INDEX, RDS_SERVICE_INDEX, path_segment
from .retry import backoff_delay, classify_transport_error

logger = structlog.get_logger(__name__)

INTERNAL_SERVER_ERROR = 500

SessionFactory = Callable[[Config], aiohttp.ClientSession]
Sleep = Callable[[float], Awaitable[None]]


def derive_hostname(batch: NormalizedBatch, config: Config) -> str:
    """
    Hostname reported to LogDNA, first match wins:

    1. Fargate: log group with the leading "/" dropped and "/" -> "-"
    2. RDS: "-" + <service>-<instance id>-<engine>
    3. LOGDNA_HOSTNAME override
    4. The log group itself
    Prefix and postfix wrap every variant.
    """
    if config.fargate:
        name = batch.log_group.removeprefix("/").replace("/", "-")
    elif batch.rds_sourced:
        group_parts = batch.log_group.split("/")
        name = "-" + "-".join([
            path_segment(group_parts, RDS_SERVICE_INDEX),
            path_segment(group_parts, RDS_INSTANCE_INDEX),
            path_segment(group_parts, RDS_ENGINE_INDEX),
        ])
    elif config.hostname:
        name = config.hostname
    else:
        name = batch.log_group

    return f"{config.hostname_prefix}{name}{config.hostname_postfix}"


def default_session_factory(config: Config) -> aiohttp.ClientSession:
    """Keep-alive session; idle sockets are closed after the free socket timeout."""
    connector = aiohttp.TCPConnector(keepalive_timeout=config.free_socket_timeout_ms / 1000)
    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=config.max_request_timeout_ms / 1000),
    )


class LogDNAForwarder:
    """
    Sends normalized batches to the LogDNA ingestion endpoint.

    The session is created lazily and reused for every request issued
    from the same event loop.
    """

    def __init__(
        self,
        metrics: Optional[MetricsCollector] = None,
        session_factory: SessionFactory = default_session_factory,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.metrics = metrics
        self.session_factory = session_factory
        self.sleep = sleep
        self.session: Optional[aiohttp.ClientSession] = None
        self._session_loop: Optional[asyncio.AbstractEventLoop] = None

    def _get_session(self, config: Config) -> aiohttp.ClientSession:
        loop = asyncio.get_running_loop()
        if self.session is None or self.session.closed or self._session_loop is not loop:
            self.session = self.session_factory(config)
            self._session_loop = loop
            logger.debug("Created ingestion session", url=config.url)
        return self.session

    async def close(self) -> None:
        """Close the shared session."""
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None
        self._session_loop = None

    async def send(self, batch: NormalizedBatch, config: Config) -> Any:
        """
        Deliver a batch in a single request.

        Returns:
            The response body (decoded JSON when the endpoint answers JSON)

        Raises:
            MissingCredentialError: no ingestion key, nothing is sent
            TerminalDeliveryError: retries exhausted or a non-retryable error,
                chained to the last underlying error
        """
        if not config.key:
            raise MissingCredentialError()

        hostname = derive_hostname(batch, config)
        params: Dict[str, str] = {"hostname": hostname}
        if config.tags:
            params["tags"] = config.tags

        body = json.dumps({"e": "ls", "ls": batch.payload()})
        headers = {
            "Content-Type": "application/json; charset=UTF-8",
            "User-Agent": config.user_agent,
        }
        max_attempts = max(1, config.max_request_retries)

        logger.debug(
            "Pushing logs",
            url=config.url,
            hostname=hostname,
            lines_count=len(batch.records),
            max_attempts=max_attempts,
        )

        last_error: Optional[Union[TransientNetworkError, ServerError]] = None
        for attempt in range(1, max_attempts + 1):
            started = time.monotonic()
            try:
                result = await self._post(config, params, body, headers, attempt)
            except (TransientNetworkError, ServerError) as e:
                last_error = e
                if self.metrics:
                    self.metrics.record_attempt("retryable", time.monotonic() - started)

                logger.warning(
                    "LogDNA delivery attempt failed",
                    attempt=attempt,
                    max_attempts=max_attempts,
                    reason=e.reason.value,
                    error=str(e),
                )

                if attempt < max_attempts:
                    delay = backoff_delay(attempt, config.request_retry_interval_ms)
                    if self.metrics:
                        self.metrics.record_retry(e.reason.value)
                    await self.sleep(delay)
                continue

            if self.metrics:
                self.metrics.record_attempt("success", time.monotonic() - started)
                self.metrics.record_delivered(len(batch.records))

            logger.info(
                "Delivered logs to LogDNA",
                hostname=hostname,
                lines_count=len(batch.records),
                attempts=attempt,
            )
            return result

        assert last_error is not None
        logger.error("Max retries exceeded", attempts=max_attempts, reason=last_error.reason.value)
        raise TerminalDeliveryError(
            f"Delivery failed after {max_attempts} attempts: {last_error}",
            attempts=max_attempts,
            details={"reason": last_error.reason.value},
        ) from last_error

    async def _post(
        self,
        config: Config,
        params: Dict[str, str],
        body: str,
        headers: Dict[str, str],
        attempt: int,
    ) -> Any:
        session = self._get_session(config)

        try:
            async with session.post(
                config.url,
                params=params,
                data=body,
                headers=headers,
                auth=aiohttp.BasicAuth(config.key or "", ""),
                timeout=aiohttp.ClientTimeout(total=config.max_request_timeout_ms / 1000),
            ) as response:
                text = await response.text()

                if response.status >= INTERNAL_SERVER_ERROR:
                    logger.debug("Server returned an internal server error", status=response.status, body=text)
                    raise ServerError(response.status, text)

                logger.debug("Non failure response", status=response.status, body=text)
                return _decode_body(response.content_type, text)

        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            reason = classify_transport_error(e)
            if reason is None:
                if self.metrics:
                    self.metrics.record_attempt("failed")
                raise TerminalDeliveryError(
                    f"Non-retryable transport error: {e}",
                    attempts=attempt,
                    details={"error_type": type(e).__name__},
                ) from e
            raise TransientNetworkError(reason, str(e) or reason.value) from e


def _decode_body(content_type: str, text: str) -> Any:
    if content_type == "application/json" and text:
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text
    return text


# Global forwarder instance
_forwarder: Optional[LogDNAForwarder] = None


def get_forwarder() -> LogDNAForwarder:
    """Get or create global forwarder instance."""
    global _forwarder

    if _forwarder is None:
        _forwarder = LogDNAForwarder(metrics=get_metrics())

    return _forwarder

"""
Pytest configuration and shared fixtures.

Contains the CloudWatch fixtures and the fake HTTP session used to
exercise delivery without network access.
"""

from typing import Any, Dict, List, Optional, Tuple

import pytest
from prometheus_client import CollectorRegistry

from logdna_cloudwatch.config import Config
from logdna_cloudwatch.core.forwarder import LogDNAForwarder
from logdna_cloudwatch.core.metrics import MetricsCollector
from logdna_cloudwatch.models import RawBatch

CONFIG_VARIABLES = [
    "LOGDNA_KEY",
    "LOGDNA_HOSTNAME",
    "LOGDNA_TAGS",
    "LOG_RAW_EVENT",
    "LOGDNA_URL",
    "LOGDNA_MAX_REQUEST_TIMEOUT",
    "LOGDNA_FREE_SOCKET_TIMEOUT",
    "LOGDNA_MAX_REQUEST_RETRIES",
    "LOGDNA_REQUEST_RETRY_INTERVAL",
    "HOSTNAME_PREFIX",
    "HOSTNAME_POSTFIX",
    "LOGDNA_APP_NAME",
    "LOGDNA_HOSTNAME_FOR_FARGATE",
    "SSM_SECRET_LOGNDA_KEY_NAME",
    "SSM_PARAMS_PATH",
    "LOG_LEVEL",
    "LOG_FORMAT",
]

# gzip + base64 of `event_data` below, as CloudWatch delivers it
RAW_EVENT_DATA = (
    "H4sIAAAAAAAAEzWQQW+DMAyF/wrKmaEkJCbhhjbWCzuBtMNUVSmkNBIQRMKqqep/X6Cb5Ivfs58++45G7ZzqdfMza5Sjt6IpTh9lXReHEsXI3ia9BJnQlHHIhMSEBnmw/WGx6xwcp8Z50M9uN2q/aDUGx2vn/5oYufXs2sXM3tjp3QxeLw7lX6hS47lTz6lTO9i1uynfXkOMe5lsp9Fxzyy/9eS3hTsyXYhOGVCaEsBSgsyEYBkGzrDMAIMQlAq+gQIQSjFhBFgqJOUMAog34WAfoFFOOM8kA0Y5SSH+f0SIb67GRaHq/baosn1UmUlHF7tErxvk5wa56b2Z+iRJ0OP4+AWj9ITzSgEAAA=="
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make every test start without forwarder variables in the environment."""
    for name in CONFIG_VARIABLES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def raw_event() -> Dict[str, Any]:
    """Sample awslogs event."""
    return {"awslogs": {"data": RAW_EVENT_DATA}}


@pytest.fixture
def event_data() -> Dict[str, Any]:
    """Decoded content of `raw_event`."""
    return {
        "messageType": "DATA_MESSAGE",
        "owner": "123456789012",
        "logGroup": "sampleGroup",
        "logStream": "testStream",
        "subscriptionFilters": ["LambdaStream_cloudwatchlogs-node"],
        "logEvents": [{
            "id": "34622316099697884706540976068822859012661220141643892546",
            "timestamp": 1557946425136,
            "message": "This is Sample Log Line for CloudWatch Logging...",
        }],
    }


@pytest.fixture
def event_data_rds() -> Dict[str, Any]:
    """Batch from an RDS PostgreSQL log group."""
    return {
        "messageType": "DATA_MESSAGE",
        "owner": "123456789012",
        "logGroup": "/aws/rds/instance/instanceid-123/postgresql",
        "logStream": "instanceid-123.0",
        "subscriptionFilters": ["LambdaStream_cloudwatchlogs-node"],
        "logEvents": [{
            "id": "34622316099697884706540976068822859012661220141643892546",
            "timestamp": 1557946425136,
            "message": "This is Sample Log Line for RDS CloudWatch Logging...",
        }],
    }


@pytest.fixture
def event_data_fargate() -> Dict[str, Any]:
    """Batch from an ECS Fargate awslogs driver stream."""
    return {
        "messageType": "DATA_MESSAGE",
        "owner": "123456789012",
        "logGroup": "/ecs/payments-api",
        "logStream": "ecs/payments/0f9c2b7e4d5a4c1b",
        "subscriptionFilters": ["LambdaStream_cloudwatchlogs-node"],
        "logEvents": [
            {"id": "1", "timestamp": 1557946425136, "message": "first"},
            {"id": "2", "timestamp": 1557946425137, "message": "second"},
        ],
    }


@pytest.fixture
def batch(event_data: Dict[str, Any]) -> RawBatch:
    return RawBatch.model_validate(event_data)


@pytest.fixture
def rds_batch(event_data_rds: Dict[str, Any]) -> RawBatch:
    return RawBatch.model_validate(event_data_rds)


@pytest.fixture
def fargate_batch(event_data_fargate: Dict[str, Any]) -> RawBatch:
    return RawBatch.model_validate(event_data_fargate)


@pytest.fixture
def config() -> Config:
    """Resolved configuration with an ingestion key."""
    return Config(key="0123456789", request_retry_interval_ms=100, max_request_retries=5)


@pytest.fixture
def metrics() -> MetricsCollector:
    """Collector on a private registry."""
    return MetricsCollector(registry=CollectorRegistry())


class FakeResponse:
    """Stand-in for aiohttp.ClientResponse."""

    def __init__(
        self,
        status: int = 200,
        body: str = '{"batchID":"b-1","status":"ok"}',
        content_type: str = "application/json",
    ) -> None:
        self.status = status
        self.body = body
        self.content_type = content_type

    async def text(self) -> str:
        return self.body


class _FakeRequestContext:
    def __init__(self, outcome: Any) -> None:
        self.outcome = outcome

    async def __aenter__(self) -> FakeResponse:
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


class FakeSession:
    """
    Stand-in for aiohttp.ClientSession.

    Each post() consumes the next outcome (a FakeResponse or an exception
    to raise); the last outcome repeats once the list runs out.
    """

    def __init__(self, outcomes: List[Any]) -> None:
        self.outcomes = list(outcomes)
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def post(self, url: str, **kwargs: Any) -> _FakeRequestContext:
        self.calls.append({"url": url, **kwargs})
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        return _FakeRequestContext(outcome)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_forwarder(metrics: MetricsCollector) -> Any:
    """Factory returning (forwarder, session, recorded backoff delays)."""

    def factory(
        outcomes: Optional[List[Any]] = None,
    ) -> Tuple[LogDNAForwarder, FakeSession, List[float]]:
        session = FakeSession(outcomes or [FakeResponse()])
        delays: List[float] = []

        async def record_sleep(delay: float) -> None:
            delays.append(delay)

        forwarder = LogDNAForwarder(
            metrics=metrics,
            session_factory=lambda config: session,
            sleep=record_sleep,
        )
        return forwarder, session, delays

    return factory

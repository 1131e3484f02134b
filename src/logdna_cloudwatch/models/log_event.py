"""
CloudWatch Logs batch and LogDNA line models.

- RawBatch: decoded subscription filter payload (wire names as aliases)
- NormalizedRecord: one LogDNA line with routing metadata
- NormalizedBatch: ordered records plus routing flags derived from the batch
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class LogEvent(BaseModel):
    """Single CloudWatch log event."""

    id: str = Field(description="CloudWatch event id")
    timestamp: int = Field(description="Event time in epoch milliseconds")
    message: str = Field(description="Raw log message")

    model_config = ConfigDict(frozen=True)


class RawBatch(BaseModel):
    """
    Decoded CloudWatch Logs subscription payload.

    Immutable once decoded.
    """

    message_type: str = Field(alias="messageType")
    owner: str = Field(description="AWS account id owning the log group")
    log_group: str = Field(alias="logGroup")
    log_stream: str = Field(alias="logStream")
    subscription_filters: List[str] = Field(alias="subscriptionFilters")
    log_events: List[LogEvent] = Field(alias="logEvents")

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
    )


class NormalizedRecord(BaseModel):
    """One outbound LogDNA line."""

    timestamp: int
    file: str
    app: str
    meta: Dict[str, Any]
    line: str


class NormalizedBatch(BaseModel):
    """Records for one delivery request, in input order."""

    records: List[NormalizedRecord]
    log_group: str
    log_stream: str
    rds_sourced: bool = False

    def payload(self) -> List[Dict[str, Any]]:
        """Records as plain dicts for the `ls` body field."""
        return [record.model_dump() for record in self.records]

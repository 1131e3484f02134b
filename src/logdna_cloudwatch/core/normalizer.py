"""
Normalization of CloudWatch log events into LogDNA lines.

App names come from the log stream path, except for RDS log groups
(/aws/rds/instance/<id>/<engine>) which are named <service>-<engine>-<id>.
"""

import json
from typing import Any, Dict, List

import structlog

from ..config import Config
from ..models.log_event import LogEvent, NormalizedBatch, NormalizedRecord, RawBatch

logger = structlog.get_logger(__name__)

# Path offsets in an RDS log group: ["", "aws", "rds", "instance", <id>, <engine>]
RDS_SERVICE_INDEX = 2
RDS_INSTANCE_INDEX = 4
RDS_ENGINE_INDEX = 5


def path_segment(parts: List[str], index: int) -> str:
    """Path component at `index`, or "" when the path is shorter."""
    if index < len(parts):
        return parts[index]
    return ""


def is_rds_group(group_parts: List[str]) -> bool:
    return path_segment(group_parts, RDS_SERVICE_INDEX).lower() == "rds"


def derive_app(batch: RawBatch, config: Config) -> str:
    """App name shared by every line of the batch."""
    if config.app_name:
        return config.app_name

    group_parts = batch.log_group.split("/")
    if is_rds_group(group_parts):
        instance_id = batch.log_stream.split(".")[0]
        return "-".join([
            path_segment(group_parts, RDS_SERVICE_INDEX),
            path_segment(group_parts, RDS_ENGINE_INDEX),
            instance_id,
        ])

    return batch.log_stream.split("/")[0]


def build_metadata(batch: RawBatch, event: LogEvent, config: Config) -> Dict[str, Any]:
    """Event and log identifiers attached to every line."""
    metadata: Dict[str, Any] = {
        "event": {
            "type": batch.message_type,
            "id": event.id,
        },
        "log": {
            "group": batch.log_group,
            "stream": batch.log_stream,
        },
    }

    if config.fargate:
        # Fargate streams are <prefix>/<container name>/<task id>
        stream_parts = batch.log_stream.split("/")
        metadata["fargate_log_prefix"] = path_segment(stream_parts, 0)
        metadata["fargate_task_name"] = path_segment(stream_parts, 1)
        metadata["fargate_task_id"] = path_segment(stream_parts, 2)

    return metadata


def prepare_logs(batch: RawBatch, config: Config) -> NormalizedBatch:
    """
    Normalize every event of a batch, preserving order.

    With `log_raw_event` the message is sent verbatim and the metadata is
    merged into `meta`; otherwise the line is a JSON document holding the
    message and the metadata.
    """
    app = derive_app(batch, config)
    records: List[NormalizedRecord] = []

    for event in batch.log_events:
        metadata = build_metadata(batch, event, config)
        meta: Dict[str, Any] = {
            "owner": batch.owner,
            "filters": list(batch.subscription_filters),
        }

        if config.log_raw_event:
            line = event.message
            meta.update(metadata)
        else:
            line = json.dumps({"message": event.message, **metadata})

        records.append(NormalizedRecord(
            timestamp=event.timestamp,
            file=batch.log_stream,
            app=app,
            meta=meta,
            line=line,
        ))

    normalized = NormalizedBatch(
        records=records,
        log_group=batch.log_group,
        log_stream=batch.log_stream,
        rds_sourced=is_rds_group(batch.log_group.split("/")),
    )

    logger.debug(
        "Prepared log lines",
        app=app,
        lines_count=len(records),
        rds_sourced=normalized.rds_sourced,
        raw_event=config.log_raw_event,
    )
    return normalized

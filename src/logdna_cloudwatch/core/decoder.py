"""
Decoder for CloudWatch Logs subscription events.

Event format: {"awslogs": {"data": base64(gzip(json))}}
"""

import base64
import binascii
import gzip
import json
import zlib
from typing import Any, Dict, Mapping

import structlog
from pydantic import ValidationError

from ..models.log_event import RawBatch
from .exceptions import MalformedInputError

logger = structlog.get_logger(__name__)

# Accept both gzip and zlib framing
_AUTO_DETECT_WBITS = 32 + zlib.MAX_WBITS


def decode_event(event: Mapping[str, Any]) -> RawBatch:
    """
    Decode an awslogs event into a RawBatch.

    Raises:
        MalformedInputError: if any of base64 decoding, decompression,
            JSON parsing or shape validation fails
    """
    try:
        data = event["awslogs"]["data"]
    except (KeyError, TypeError) as e:
        raise MalformedInputError(
            "Event has no awslogs.data payload",
            details={"error": str(e)},
        ) from e

    try:
        compressed = base64.b64decode(data, validate=True)
    except (binascii.Error, TypeError, ValueError) as e:
        raise MalformedInputError("Payload is not valid base64", details={"error": str(e)}) from e

    try:
        raw = zlib.decompress(compressed, _AUTO_DETECT_WBITS)
    except zlib.error as e:
        raise MalformedInputError("Payload is not valid compressed data", details={"error": str(e)}) from e

    try:
        parsed = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedInputError("Payload is not valid JSON", details={"error": str(e)}) from e

    try:
        batch = RawBatch.model_validate(parsed)
    except ValidationError as e:
        raise MalformedInputError(
            "Payload does not match the CloudWatch Logs batch shape",
            details={"error_count": e.error_count(), "error": str(e)},
        ) from e

    logger.debug(
        "Parsed event",
        log_group=batch.log_group,
        log_stream=batch.log_stream,
        events_count=len(batch.log_events),
    )
    return batch


def encode_batch(batch: RawBatch) -> Dict[str, Any]:
    """Build an awslogs event from a batch, as CloudWatch would deliver it."""
    body = json.dumps(batch.model_dump(by_alias=True)).encode("utf-8")
    data = base64.b64encode(gzip.compress(body)).decode("ascii")
    return {"awslogs": {"data": data}}

"""
Pydantic data models package.

Contains the models flowing through the forwarder:
- Decoded CloudWatch batches
- Normalized LogDNA lines
"""

from .log_event import LogEvent, NormalizedBatch, NormalizedRecord, RawBatch

__all__ = [
    "LogEvent",
    "NormalizedBatch",
    "NormalizedRecord",
    "RawBatch",
]

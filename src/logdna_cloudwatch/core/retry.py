"""
Retry classification and backoff for delivery attempts.

Transport failures are mapped onto a closed set of reasons; only
failures with a reason are retried.
"""

import asyncio
import errno
import socket
from enum import Enum
from typing import Optional

import aiohttp


class RetryReason(str, Enum):
    """Conditions that make a delivery attempt worth retrying."""

    ECONNRESET = "ECONNRESET"
    EHOSTUNREACH = "EHOSTUNREACH"
    ETIMEDOUT = "ETIMEDOUT"
    ESOCKETTIMEDOUT = "ESOCKETTIMEDOUT"
    ECONNREFUSED = "ECONNREFUSED"
    ENOTFOUND = "ENOTFOUND"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


_ERRNO_REASONS = {
    errno.ECONNRESET: RetryReason.ECONNRESET,
    errno.EHOSTUNREACH: RetryReason.EHOSTUNREACH,
    errno.ETIMEDOUT: RetryReason.ETIMEDOUT,
    errno.ECONNREFUSED: RetryReason.ECONNREFUSED,
}


def classify_transport_error(exc: BaseException) -> Optional[RetryReason]:
    """
    Map a transport exception raised by aiohttp to a retry reason.

    Returns None for errors that must not be retried.
    """
    # ServerTimeoutError is a TimeoutError subclass; check it first
    if isinstance(exc, aiohttp.ServerTimeoutError):
        return RetryReason.ESOCKETTIMEDOUT
    if isinstance(exc, asyncio.TimeoutError):
        return RetryReason.ETIMEDOUT
    if isinstance(exc, aiohttp.ServerDisconnectedError):
        return RetryReason.ECONNRESET

    if isinstance(exc, aiohttp.ClientConnectorError):
        if isinstance(exc.os_error, socket.gaierror):
            return RetryReason.ENOTFOUND
        exc = exc.os_error

    if isinstance(exc, socket.gaierror):
        return RetryReason.ENOTFOUND
    if isinstance(exc, ConnectionResetError):
        return RetryReason.ECONNRESET
    if isinstance(exc, ConnectionRefusedError):
        return RetryReason.ECONNREFUSED
    if isinstance(exc, OSError) and exc.errno is not None:
        return _ERRNO_REASONS.get(exc.errno)
    return None


def backoff_delay(attempt: int, interval_ms: int) -> float:
    """
    Seconds to wait after `attempt` failed attempts (1-based).

    interval * 2^attempt, so the first wait is twice the base interval.
    """
    return interval_ms * (2 ** attempt) / 1000.0

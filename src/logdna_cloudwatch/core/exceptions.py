"""
Custom exceptions for the LogDNA CloudWatch forwarder.

Every error carries an HTTP status code and error code so the
invocation surface can turn it into a structured error response.
"""

from typing import Any, Dict, Optional

from .retry import RetryReason


class ForwarderException(Exception):
    """Base exception for the forwarder."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class MalformedInputError(ForwarderException):
    """Raised when the inbound event cannot be decoded into a batch."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="malformed_input",
            details=details,
        )


class MissingCredentialError(ForwarderException):
    """Raised when no ingestion key is available at delivery time."""

    def __init__(self, message: str = "Missing LogDNA Ingestion Key") -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_code="missing_credential",
        )


class SecretResolutionError(ForwarderException):
    """Raised by a secret resolver when the lookup fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code="secret_resolution_error",
            details=details,
        )


class TransientNetworkError(ForwarderException):
    """Raised when a transport error maps to a retryable reason."""

    def __init__(self, reason: RetryReason, message: Optional[str] = None) -> None:
        super().__init__(
            message=message or reason.value,
            status_code=503,
            error_code="transient_network_error",
            details={"reason": reason.value},
        )
        self.reason = reason


class ServerError(ForwarderException):
    """Raised when the ingestion endpoint answers with a 5xx status."""

    reason = RetryReason.INTERNAL_SERVER_ERROR

    def __init__(self, status: int, body: str = "") -> None:
        super().__init__(
            message=f"Ingestion endpoint returned HTTP {status}",
            status_code=502,
            error_code="server_error",
            details={"status": status, "body": body[:512]},
        )
        self.status = status
        self.body = body


class TerminalDeliveryError(ForwarderException):
    """Raised when delivery gives up: retries exhausted or a non-retryable error."""

    def __init__(
        self,
        message: str,
        attempts: int,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        details = dict(details or {})
        details["attempts"] = attempts
        super().__init__(
            message=message,
            status_code=502,
            error_code="terminal_delivery_error",
            details=details,
        )
        self.attempts = attempts

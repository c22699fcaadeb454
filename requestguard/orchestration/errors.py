"""Error taxonomy for the request pipeline.

Exception Hierarchy:
    RequestGuardError (base)
    ├── RequestCanceledError - Superseded or explicitly canceled requests
    ├── EncryptionError - Cipher or serialization failures
    ├── RequestTimeoutError - Transport-reported timeouts
    ├── ResponseProcessingError - Masking or caching failed after a good response
    └── TransportError - Any other network/status failure (retryable)

Classification happens once, in the orchestrator's failure branch, through
classify_error(). Policy managers raise but never classify.
"""

import asyncio
from enum import Enum
from typing import Any

import httpx


class RequestGuardError(Exception):
    """Base exception for all requestguard errors.

    Attributes:
        message: Human-readable error message.
        details: Additional error details.
        recoverable: Whether a retry could succeed.
    """

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class RequestCanceledError(RequestGuardError):
    """Request was superseded by a newer identical request or canceled.

    Attributes:
        request_key: Fingerprint of the canceled request.
    """

    def __init__(
        self,
        message: str = "canceled",
        *,
        request_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details, recoverable=False)
        self.request_key = request_key

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        base = super().to_dict()
        base["request_key"] = self.request_key
        return base


class EncryptionError(RequestGuardError):
    """Encrypting or decrypting a payload failed.

    Raised for malformed ciphertext, unsupported algorithms, bad keys and
    serialization failures. Never retried.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str = "encrypt",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details, recoverable=False)
        self.operation = operation

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        base = super().to_dict()
        base["operation"] = self.operation
        return base


class RequestTimeoutError(RequestGuardError):
    """The transport reported a timeout. Never retried."""

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details, recoverable=False)
        self.url = url

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        base = super().to_dict()
        base["url"] = self.url
        return base


class ResponseProcessingError(RequestGuardError):
    """Post-processing of a delivered response failed. Never retried.

    The transport succeeded; a masking rule or the cache write raised.

    Attributes:
        stage: Processing step that failed ("mask" or "cache").
    """

    def __init__(
        self,
        message: str,
        *,
        stage: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details, recoverable=False)
        self.stage = stage

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        base = super().to_dict()
        base["stage"] = self.stage
        return base


class TransportError(RequestGuardError):
    """Network or HTTP status failure. The only retryable class.

    Attributes:
        status_code: HTTP status code, if the server answered.
        url: Target URL of the failed request.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details, recoverable=True)
        self.status_code = status_code
        self.url = url

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        base = super().to_dict()
        base.update({"status_code": self.status_code, "url": self.url})
        return base


class ErrorKind(str, Enum):
    """Classification of a failed request."""

    CANCELED = "canceled"
    ENCRYPTION = "encryption"
    TIMEOUT = "timeout"
    PROCESSING = "processing"
    TRANSPORT = "transport"


def classify_error(error: BaseException) -> ErrorKind:
    """Classify an error raised while a request was in flight.

    Args:
        error: The error to classify.

    Returns:
        The error kind. Anything unrecognised is a transport failure.
    """
    if isinstance(error, (RequestCanceledError, asyncio.CancelledError)):
        return ErrorKind.CANCELED
    if isinstance(error, EncryptionError):
        return ErrorKind.ENCRYPTION
    if isinstance(error, (RequestTimeoutError, httpx.TimeoutException, TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(error, ResponseProcessingError):
        return ErrorKind.PROCESSING
    return ErrorKind.TRANSPORT


def is_retryable(error: BaseException) -> bool:
    """Check if an error may be handed to the retry policy."""
    return classify_error(error) is ErrorKind.TRANSPORT


def to_transport_error(error: Exception, url: str | None = None) -> TransportError:
    """Wrap a raw transport failure into a TransportError.

    Args:
        error: The exception raised by the transport.
        url: Target URL of the request.

    Returns:
        The error to surface to the caller.
    """
    if isinstance(error, TransportError):
        return error
    status_code = None
    if isinstance(error, httpx.HTTPStatusError):
        status_code = error.response.status_code
    return TransportError(
        str(error) or type(error).__name__,
        status_code=status_code,
        url=url,
        details={"cause": type(error).__name__},
    )

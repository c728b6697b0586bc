"""
Failure taxonomy for the upload client.

Transport problems are classified once, at the TransferChannel boundary, into
one of these types. Everything above that boundary matches on ``kind``.
"""
from enum import Enum
from typing import Any

RETRYABLE_STATUSES = frozenset({500, 502, 503, 504})


class FailureKind(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    SERVER = "server"
    VALIDATION = "validation"
    CANCELLED = "cancelled"


class UploadFailure(Exception):
    """Base class for every way an upload can fail on the client."""

    kind: FailureKind

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(UploadFailure):
    kind = FailureKind.VALIDATION

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class NetworkError(UploadFailure):
    kind = FailureKind.NETWORK


class TransferTimeoutError(UploadFailure):
    kind = FailureKind.TIMEOUT


class CancelledError(UploadFailure):
    kind = FailureKind.CANCELLED

    def __init__(self, message: str = "Upload cancelled"):
        super().__init__(message)


class ServerError(UploadFailure):
    """Non-2xx answer from the API. body is the parsed or synthesized JSON body."""

    kind = FailureKind.SERVER

    def __init__(self, status: int, body: dict[str, Any] | None = None):
        self.status = status
        self.body = body or {}
        self.error = str(self.body.get("error") or "Failed to upload paper")
        self.details = str(self.body.get("details") or "")
        super().__init__(f"{status}: {self.error}" + (f" ({self.details})" if self.details else ""))

    @property
    def file_url(self) -> str | None:
        """URL of an object that was stored although its record was not."""
        return self.body.get("fileUrl")


def is_retryable(failure: UploadFailure) -> bool:
    """
    Whether an automatic retry may help.

    Network drops, timeouts and 500/502/503/504 qualify. A server error that
    reports a stored file (partial success) is never retried: a new attempt
    would store a second object.
    """
    if failure.kind in (FailureKind.NETWORK, FailureKind.TIMEOUT):
        return True
    if isinstance(failure, ServerError):
        return failure.status in RETRYABLE_STATUSES and not failure.file_url
    return False


def describe_failure(failure: UploadFailure) -> str:
    """User-facing message for a failed upload."""
    if failure.kind == FailureKind.CANCELLED:
        return "File upload was cancelled"
    if failure.kind == FailureKind.TIMEOUT:
        return (
            "The upload took too long and timed out. "
            "Please try again with a smaller file or check your connection."
        )
    if failure.kind == FailureKind.NETWORK:
        return (
            "Network error occurred during upload. This appears to be a network issue. "
            "Please check your internet connection and try again."
        )
    if not isinstance(failure, ServerError):
        return failure.message

    text = f"{failure.error} {failure.details}".lower()
    if failure.file_url:
        return (
            "Database error: Your file was uploaded but couldn't be saved in our records. "
            f"Stored file: {failure.file_url}"
        )
    if "storage" in text:
        if "row-level security policy" in text:
            return "Storage permission error: The system doesn't have permission to save files. Please contact support."
        if "bucket" in text:
            return "Storage configuration error: The storage bucket is not properly configured. Please contact support."
        return "Storage error: The file couldn't be saved. Please try again or contact support."
    if "database" in text:
        return "Database error: Your file was uploaded but couldn't be saved in our records. Please try again."
    if failure.status == 413:
        return "The file is too large for the server to process. Please try a smaller file."
    if failure.status in (502, 504):
        return "The server took too long to respond. This might happen with large files. Please try again."
    return failure.details or failure.error

from .errors import (
    CancelledError,
    FailureKind,
    NetworkError,
    ServerError,
    TransferTimeoutError,
    UploadFailure,
    ValidationError,
    describe_failure,
    is_retryable,
)
from .transfer import ParsedResponse, TransferChannel, UploadMetadata
from .uploader import (
    LocalFile,
    SubjectInfo,
    TransferAttempt,
    UploadClient,
    UploadInProgressError,
    UploadRequest,
    UploadResult,
    UploadState,
)

__all__ = [
    "CancelledError",
    "FailureKind",
    "LocalFile",
    "NetworkError",
    "ParsedResponse",
    "ServerError",
    "SubjectInfo",
    "TransferAttempt",
    "TransferChannel",
    "TransferTimeoutError",
    "UploadClient",
    "UploadFailure",
    "UploadInProgressError",
    "UploadMetadata",
    "UploadRequest",
    "UploadResult",
    "UploadState",
    "ValidationError",
    "describe_failure",
    "is_retryable",
]

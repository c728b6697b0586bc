from .admin import AdminSource, AdminStatus
from .paper import Paper, SubCategory, Subject, UploadFields, UploadResponse
from .storage import BucketConfig, ProvisionResult, StorageInitResponse

__all__ = [
    "AdminSource",
    "AdminStatus",
    "BucketConfig",
    "Paper",
    "ProvisionResult",
    "StorageInitResponse",
    "SubCategory",
    "Subject",
    "UploadFields",
    "UploadResponse",
]

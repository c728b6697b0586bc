"""Idempotent provisioning of the papers bucket."""
import logging

from app.config import MAX_FILE_SIZE, PAPERS_BUCKET
from db import StorageQueries
from errors import StorageProvisionError
from models import BucketConfig, ProvisionResult

logger = logging.getLogger(__name__)


def is_already_exists(exc: Exception) -> bool:
    """True when a storage error reports that the bucket is already there."""
    status = getattr(exc, "status", None) or getattr(exc, "status_code", None)
    if str(status) == "409":
        return True
    text = str(exc).lower()
    return "already exists" in text or "duplicate" in text


class StorageProvisioner:
    """
    Ensures the papers bucket exists with the expected configuration.

    Safe to call from any number of concurrent requests: nothing is locked,
    and losing a create race counts as success.
    """

    def __init__(self, storage: StorageQueries | None = None, config: BucketConfig | None = None):
        self.storage = storage or StorageQueries(PAPERS_BUCKET)
        self.config = config or BucketConfig(public=True, file_size_limit=MAX_FILE_SIZE)

    @property
    def bucket_name(self) -> str:
        return self.storage.bucket

    def _bucket_listed(self) -> bool | None:
        """Whether the bucket is listed; None when listing itself failed."""
        try:
            names = self.storage.list_bucket_names()
        except Exception as e:
            logger.error(f"Error listing buckets, will try to create '{self.bucket_name}': {e}")
            return None
        exists = self.bucket_name in names
        logger.info(f"Bucket '{self.bucket_name}' exists: {'Yes' if exists else 'No'}")
        return exists

    def ensure_bucket(self) -> ProvisionResult:
        """
        Make sure the bucket exists and is configured.

        - Listed: apply the configuration again and report success
        - Not listed (or listing failed): create it, then best-effort attach
          the public-read policy
        - "Already exists" from the create call: another caller won the race

        Raises:
            StorageProvisionError: If the bucket cannot be created or updated
        """
        if self._bucket_listed():
            return self._update()
        return self._create()

    def _update(self) -> ProvisionResult:
        try:
            self.storage.update_bucket(self.config.public, self.config.file_size_limit)
        except Exception as e:
            logger.error(f"Error updating bucket '{self.bucket_name}': {e}")
            raise StorageProvisionError(
                "Failed to update bucket configuration", details=str(e)
            ) from e

        return ProvisionResult(
            bucket_name=self.bucket_name,
            created=False,
            message="Bucket configuration updated successfully",
        )

    def _create(self) -> ProvisionResult:
        logger.info(f"Bucket '{self.bucket_name}' doesn't exist, creating it...")
        try:
            self.storage.create_bucket(self.config.public, self.config.file_size_limit)
        except Exception as e:
            if is_already_exists(e):
                logger.info(f"Bucket '{self.bucket_name}' was created concurrently, reusing it")
                return ProvisionResult(
                    bucket_name=self.bucket_name,
                    created=False,
                    message="Bucket already exists",
                )
            logger.error(f"Error creating bucket '{self.bucket_name}': {e}")
            raise StorageProvisionError(
                details=f"Could not create storage bucket: {e}. Please try initializing storage first."
            ) from e

        logger.info(f"Bucket '{self.bucket_name}' created successfully")
        return ProvisionResult(
            bucket_name=self.bucket_name,
            created=True,
            message="Bucket created successfully",
            policy_attached=self._attach_policy(),
        )

    def _attach_policy(self) -> bool:
        # The bucket is usable without the policy, so failures only warn
        try:
            response = self.storage.attach_public_policy()
        except Exception as e:
            logger.warning(f"Could not create public policy for bucket '{self.bucket_name}': {e}")
            return False

        if not response.ok:
            logger.warning(
                f"Could not create public policy for bucket '{self.bucket_name}': {response.text}"
            )
            return False
        return True

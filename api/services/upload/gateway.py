"""Server-side orchestration of a single paper upload."""
import logging
import re
import time
from typing import Callable

from models import Paper, ProvisionResult, UploadFields
from services.papers import MetadataStore
from services.storage import ObjectStore, StorageProvisioner

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_filename(filename: str) -> str:
    """Replace everything except letters, digits, dots and dashes with underscores."""
    return _UNSAFE_CHARS.sub("_", filename)


def generate_object_key(filename: str, now: float) -> str:
    """Object key: <epoch millis>_<sanitized original name>."""
    return f"{int(now * 1000)}_{sanitize_filename(filename)}"


class UploadGateway:
    """
    Runs an authorized upload from parsed form to paper record.

    The object is always written before the record. The two stores are not
    wrapped in a transaction: if the record fails after the write, the error
    carries the object's URL instead of rolling anything back.
    """

    def __init__(
        self,
        provisioner: StorageProvisioner | None = None,
        object_store: ObjectStore | None = None,
        metadata: MetadataStore | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.provisioner = provisioner or StorageProvisioner()
        self.object_store = object_store or ObjectStore()
        self.metadata = metadata or MetadataStore()
        self.clock = clock

    def init_storage(self) -> ProvisionResult:
        return self.provisioner.ensure_bucket()

    def upload(self, fields: UploadFields, user_id: str) -> Paper:
        """
        Store the file and record the paper.

        Steps:
        1. Check the subject (and subcategory, if given) exist
        2. Ensure the bucket exists
        3. Write the object with bounded retry
        4. Compute the public URL
        5. Create the paper record

        Raises:
            NotFoundError: Unknown subject or subcategory
            StorageProvisionError: Bucket could not be provisioned
            ObjectWriteError: Every write attempt failed; no record is created
            MetadataPersistError: Object stored but record failed; carries fileUrl
        """
        self.metadata.require_subject(fields.subject_id)
        if fields.sub_category_id:
            self.metadata.require_sub_category(fields.sub_category_id, fields.subject_id)

        self.provisioner.ensure_bucket()

        key = generate_object_key(fields.filename, self.clock())
        logger.info(
            f"Uploading file to storage: key={key}, size={len(fields.content)}, "
            f"content_type={fields.content_type}, original={fields.filename}"
        )
        self.object_store.put_with_retry(fields.content, key, fields.content_type)

        file_url = self.object_store.public_url(key)
        logger.info(f"Generated public URL: {file_url}")

        return self.metadata.create(
            year=fields.year,
            file_url=file_url,
            subject_id=fields.subject_id,
            user_id=user_id,
            topic=fields.topic,
            sub_category_id=fields.sub_category_id,
        )

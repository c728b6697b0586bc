"""Storage bucket queries."""
import requests
from supabase import Client

from app.config import PAPERS_BUCKET, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_URL, public_object_url
from db import get_supabase_client


class StorageQueries:
    """
    Single-shot calls against Supabase storage.

    Nothing here retries; callers decide what a failure means.
    """

    def __init__(self, bucket: str = PAPERS_BUCKET, db: Client | None = None):
        self.db = db or get_supabase_client()
        self.bucket = bucket

    # --- Buckets ---

    def list_bucket_names(self) -> list[str]:
        """Names of all buckets visible to the service role."""
        return [bucket.name for bucket in self.db.storage.list_buckets()]

    def create_bucket(self, public: bool, file_size_limit: int) -> None:
        """Create the bucket. Raises if it exists or creation fails."""
        self.db.storage.create_bucket(
            self.bucket,
            options={"public": public, "file_size_limit": file_size_limit},
        )

    def update_bucket(self, public: bool, file_size_limit: int) -> None:
        """Apply configuration to an existing bucket."""
        self.db.storage.update_bucket(
            self.bucket,
            {"public": public, "file_size_limit": file_size_limit},
        )

    def attach_public_policy(self, timeout: float = 10.0) -> requests.Response:
        """POST a public-read policy for the bucket. The response is returned unchecked."""
        return requests.post(
            f"{SUPABASE_URL}/storage/v1/bucket/{self.bucket}/policy",
            headers={
                "Authorization": f"Bearer {SUPABASE_SERVICE_ROLE_KEY}",
                "Content-Type": "application/json",
            },
            json={
                "name": "public-access",
                "definition": {"type": "object", "properties": {"name": {"type": "string"}}},
                "allow": "select",
            },
            timeout=timeout,
        )

    # --- Objects ---

    def upload(self, path: str, content: bytes, content_type: str, upsert: bool = False) -> None:
        """Write one object in a single request."""
        self.db.storage.from_(self.bucket).upload(
            path=path,
            file=content,
            file_options={
                "content-type": content_type,
                "cache-control": "3600",
                "upsert": "true" if upsert else "false",
            },
        )

    def public_url(self, path: str) -> str:
        """Deterministic public URL for an object in this bucket."""
        return public_object_url(self.bucket, path)

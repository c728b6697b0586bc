"""Environment-backed settings shared by the API and the upload pipeline."""
import os

from dotenv import load_dotenv

load_dotenv()

MIB = 1024 * 1024

SUPABASE_URL = (os.getenv("SUPABASE_URL") or "").rstrip("/")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

# Admin identity marker, used as a fallback by /admin/check
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")

PAPERS_BUCKET = os.getenv("PAPERS_BUCKET", "papers")
ACCEPTED_CONTENT_TYPE = "application/pdf"

MAX_FILE_SIZE = int(os.getenv("MAX_FILE_SIZE", str(50 * MIB)))
MAX_FIELD_SIZE = int(os.getenv("MAX_FIELD_SIZE", str(10 * MIB)))

OBJECT_WRITE_ATTEMPTS = int(os.getenv("OBJECT_WRITE_ATTEMPTS", "3"))
OBJECT_WRITE_RETRY_DELAY = float(os.getenv("OBJECT_WRITE_RETRY_DELAY", "1.0"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def public_object_url(bucket: str, key: str) -> str:
    """Public URL of an object in a public-read bucket."""
    return f"{SUPABASE_URL}/storage/v1/object/public/{bucket}/{key}"

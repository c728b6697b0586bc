from functools import lru_cache

from supabase import create_client, Client

from app.config import SUPABASE_SERVICE_ROLE_KEY, SUPABASE_URL
from errors import ConfigurationError


@lru_cache()
def get_supabase_client() -> Client:
    """Get cached Supabase client instance (service role, bypasses RLS)."""
    if not SUPABASE_URL or not SUPABASE_SERVICE_ROLE_KEY:
        raise ConfigurationError(details="SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

    return create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)

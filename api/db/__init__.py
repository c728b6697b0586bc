from .supabase_client import get_supabase_client
from .queries import PaperQueries, StorageQueries, UserQueries

__all__ = ["get_supabase_client", "PaperQueries", "StorageQueries", "UserQueries"]

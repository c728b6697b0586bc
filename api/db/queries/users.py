"""Database queries for application users."""
from supabase import Client

from db import get_supabase_client


class UserQueries:
    """Queries for the users table (admin flag lookups)."""

    def __init__(self, db: Client | None = None):
        self.db = db or get_supabase_client()

    def is_admin(self, user_id: str) -> bool:
        """True when the user row exists and carries is_admin."""
        result = self.db.table("users").select("is_admin").eq("id", user_id).execute()
        if not result.data:
            return False
        return bool(result.data[0].get("is_admin"))

"""Database queries for papers and the subjects they are filed under."""
from typing import Any

from supabase import Client

from db import get_supabase_client


class PaperQueries:
    """Centralized queries for the papers, subjects and sub_categories tables."""

    def __init__(self, db: Client | None = None):
        self.db = db or get_supabase_client()

    def get_subject(self, subject_id: str) -> dict | None:
        """Get a subject by ID."""
        result = self.db.table("subjects").select("*").eq("id", subject_id).execute()
        return result.data[0] if result.data else None

    def get_sub_category(self, sub_category_id: str) -> dict | None:
        """Get a subcategory by ID."""
        result = self.db.table("sub_categories").select("*").eq("id", sub_category_id).execute()
        return result.data[0] if result.data else None

    def get_by_file_url(self, file_url: str) -> dict | None:
        """Find a paper by the URL of its stored object."""
        result = self.db.table("papers").select("*").eq("file_url", file_url).execute()
        return result.data[0] if result.data else None

    def create(self, fields: dict[str, Any]) -> dict:
        """Insert a paper record and return the stored row."""
        result = self.db.table("papers").insert(fields).execute()
        if not result.data:
            raise RuntimeError("Insert into papers returned no row")
        return result.data[0]

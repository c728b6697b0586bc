import logging

from db import PaperQueries
from errors import MetadataPersistError, NotFoundError
from models import Paper, SubCategory, Subject

logger = logging.getLogger(__name__)


class MetadataStore:
    """Service for reading subjects and recording uploaded papers."""

    def __init__(self, queries: PaperQueries | None = None):
        self.queries = queries or PaperQueries()

    def require_subject(self, subject_id: str) -> Subject:
        """Get a subject or raise NotFoundError."""
        row = self.queries.get_subject(subject_id)
        if not row:
            raise NotFoundError("Subject not found")
        return Subject(**row)

    def require_sub_category(self, sub_category_id: str, subject_id: str) -> SubCategory:
        """Get a subcategory that belongs to subject_id or raise NotFoundError."""
        row = self.queries.get_sub_category(sub_category_id)
        if not row or row.get("subject_id") != subject_id:
            raise NotFoundError("Subcategory not found")
        return SubCategory(**row)

    def create(
        self,
        year: int,
        file_url: str,
        subject_id: str,
        user_id: str,
        topic: str | None = None,
        sub_category_id: str | None = None,
    ) -> Paper:
        """
        Record a paper whose object has already been written.

        A record that already points at file_url is returned as-is, so a
        repeated call never creates a second paper for the same object.

        Raises:
            MetadataPersistError: If the record cannot be read or written.
                The error carries file_url so the object is not lost.
        """
        try:
            existing = self.queries.get_by_file_url(file_url)
            if existing:
                logger.info(f"Paper record for {file_url} already exists: {existing['id']}")
                return Paper(**existing)

            row = self.queries.create({
                "year": year,
                "topic": topic or None,
                "file_url": file_url,
                "subject_id": subject_id,
                "sub_category_id": sub_category_id or None,
                "user_id": user_id,
            })
            paper = Paper(**row)
        except Exception as e:
            logger.error(f"Error creating paper record for {file_url}: {e}")
            raise MetadataPersistError(file_url, details=str(e)) from e

        logger.info(f"Paper record created in database: {paper.id}")
        return paper

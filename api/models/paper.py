from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python and the database, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Subject(CamelModel):
    """Subject record from database."""
    id: str
    name: str
    has_subcategories: bool = False


class SubCategory(CamelModel):
    """SubCategory record from database."""
    id: str
    name: str
    subject_id: str


class Paper(CamelModel):
    """Paper record from database."""
    id: UUID | str
    year: int
    topic: str | None = None
    file_url: str
    subject_id: str
    sub_category_id: str | None = None
    user_id: str
    created_at: datetime | None = None


class UploadFields(BaseModel):
    """Validated multipart form of an upload request."""
    filename: str
    content: bytes
    content_type: str
    subject_id: str
    year: int
    topic: str | None = None
    sub_category_id: str | None = None


class UploadResponse(CamelModel):
    """Response for a successful upload."""
    success: bool = True
    paper: Paper

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class AdminSource(str, Enum):
    DATABASE = "database"
    EMAIL_MATCH = "email_match"
    NONE = "none"
    EMAIL_MATCH_FALLBACK = "email_match_fallback"


class AdminStatus(BaseModel):
    """Response for GET /admin/check."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    is_admin: bool
    source: AdminSource

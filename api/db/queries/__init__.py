from .papers import PaperQueries
from .storage import StorageQueries
from .users import UserQueries

__all__ = [
    "PaperQueries",
    "StorageQueries",
    "UserQueries",
]

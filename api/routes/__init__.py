from .admin import router as admin_router
from .papers import router as papers_router
from .storage import router as storage_router

__all__ = ["admin_router", "papers_router", "storage_router"]

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app import __version__, __release_notes__
from app.config import LOG_LEVEL
from errors import register_exception_handlers
from routes import admin_router, papers_router, storage_router

logger = logging.getLogger(__name__)


def configure_logging():
    """Configure logging for the API process."""
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


configure_logging()

app = FastAPI(
    title="Exam Papers Upload API",
    version=__version__,
    description=f"<p>{__release_notes__.strip()}</p>" if __release_notes__.strip() else None,
)

# Include routers
app.include_router(admin_router)
app.include_router(papers_router)
app.include_router(storage_router)

register_exception_handlers(app)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for local dev
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
async def health():
    return {"status": "healthy", "version": __version__}

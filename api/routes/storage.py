from fastapi import APIRouter, Depends, Response
from fastapi.concurrency import run_in_threadpool

from dependencies.auth import UserContext, require_admin
from errors import NO_CACHE_HEADERS
from models import StorageInitResponse
from services.storage import StorageProvisioner

router = APIRouter(prefix="/storage", tags=["storage"])


def get_provisioner() -> StorageProvisioner:
    return StorageProvisioner()


@router.post("/init", response_model=StorageInitResponse)
async def init_storage(
    response: Response,
    user: UserContext = Depends(require_admin),
    provisioner: StorageProvisioner = Depends(get_provisioner),
):
    """Create the papers bucket (201) or re-apply its configuration (200)."""
    response.headers.update(NO_CACHE_HEADERS)

    result = await run_in_threadpool(provisioner.ensure_bucket)
    response.status_code = 201 if result.created else 200

    return StorageInitResponse(message=result.message, bucket_name=result.bucket_name)

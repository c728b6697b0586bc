from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from dependencies.auth import UserContext, get_authorizer, get_current_user
from models import AdminStatus
from services.auth import Authorizer

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/check", response_model=AdminStatus)
async def check_admin(
    user: UserContext = Depends(get_current_user),
    authorizer: Authorizer = Depends(get_authorizer),
):
    """Whether the caller is an admin, and where that answer came from."""
    return await run_in_threadpool(authorizer.admin_status, user.user_id, user.email)

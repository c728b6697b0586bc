from fastapi import APIRouter, Depends, Request, Response
from fastapi.concurrency import run_in_threadpool

from dependencies.auth import UserContext, require_admin
from errors import NO_CACHE_HEADERS
from models import UploadResponse
from services.upload import UploadGateway, parse_upload_form

router = APIRouter(tags=["papers"])


def get_gateway() -> UploadGateway:
    return UploadGateway()


@router.post("/upload", response_model=UploadResponse)
async def upload_paper(
    request: Request,
    response: Response,
    user: UserContext = Depends(require_admin),
    gateway: UploadGateway = Depends(get_gateway),
):
    """
    Upload one exam paper PDF (admin only).

    - Multipart fields: file, subjectId, year, topic?, subCategoryId?
    - Creates the papers bucket on first use
    - Writes the file with bounded retry, then records the paper
    - A record failure after the write returns 500 with the stored fileUrl
    """
    response.headers.update(NO_CACHE_HEADERS)

    fields = await parse_upload_form(request)
    paper = await run_in_threadpool(gateway.upload, fields, user.user_id)

    return UploadResponse(success=True, paper=paper)

"""Bounded parsing of the multipart upload form."""
import logging
import re
from datetime import date
from typing import AsyncIterator

from fastapi import Request
from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import FormParser, MultiPartException, MultiPartParser

from app.config import ACCEPTED_CONTENT_TYPE, MAX_FIELD_SIZE, MAX_FILE_SIZE
from errors import PayloadError, PayloadTooLarge
from models import UploadFields

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 1024 * 1024
MIN_YEAR = 2000

_YEAR_RE = re.compile(r"^\d{4}$")


def _text_field(form, name: str) -> str | None:
    value = form.get(name)
    if value is None or isinstance(value, UploadFile):
        return None
    value = value.strip()
    return value or None


def parse_year(raw: str, today: date | None = None) -> int:
    """Parse a 4-digit year in [2000, current year]."""
    current_year = (today or date.today()).year
    if not _YEAR_RE.match(raw):
        raise PayloadError("Invalid year", details="Year must be a 4-digit number")
    year = int(raw)
    if not MIN_YEAR <= year <= current_year:
        raise PayloadError("Invalid year", details=f"Year must be between {MIN_YEAR} and {current_year}")
    return year


def _translate_form_error(message: str) -> PayloadError | PayloadTooLarge:
    if "maximum size" in message.lower():
        return PayloadTooLarge("Form field too large", details=message)
    return PayloadError("Malformed form data", details=message)


async def _read_bounded(file: UploadFile, max_file_size: int) -> bytes:
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > max_file_size:
            raise PayloadTooLarge(
                "File too large",
                details=f"Maximum file size is {max_file_size // (1024 * 1024)}MB",
            )
        chunks.append(chunk)
    return b"".join(chunks)


async def bounded_stream(chunks: AsyncIterator[bytes], limit: int) -> AsyncIterator[bytes]:
    """Pass body chunks through, failing as soon as more than limit bytes arrived."""
    received = 0
    async for chunk in chunks:
        received += len(chunk)
        if received > limit:
            raise PayloadTooLarge(
                "File too large",
                details=f"Request body exceeds the upload limit of {limit} bytes",
            )
        yield chunk


async def _read_form(request: Request, limit: int, max_field_size: int) -> FormData:
    """Parse the body from a byte-counting stream, so undeclared lengths are bounded too."""
    media_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    stream = bounded_stream(request.stream(), limit)

    if media_type == "multipart/form-data":
        parser = MultiPartParser(request.headers, stream, max_files=1, max_fields=16, max_part_size=max_field_size)
    elif media_type == "application/x-www-form-urlencoded":
        parser = FormParser(request.headers, stream)
    elif not media_type:
        raise PayloadError("Missing required fields", details="Expected a multipart/form-data body")
    else:
        raise PayloadError("Malformed form data", details=f"Unsupported content type: {media_type}")

    try:
        return await parser.parse()
    except MultiPartException as e:
        raise _translate_form_error(e.message) from e


async def parse_upload_form(
    request: Request,
    max_file_size: int | None = None,
    max_field_size: int | None = None,
    today: date | None = None,
) -> UploadFields:
    """
    Read the upload form without accepting unbounded input.

    Fields: file (required), subjectId (required), year (required),
    topic (optional), subCategoryId (optional).

    Raises:
        PayloadTooLarge: Declared length, a field, or the file exceeds its ceiling
        PayloadError: Missing or malformed fields
    """
    max_file_size = max_file_size or MAX_FILE_SIZE
    max_field_size = max_field_size or MAX_FIELD_SIZE

    limit = max_file_size + max_field_size
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLarge(
            "File too large",
            details=f"Request body of {declared} bytes exceeds the upload limit",
        )

    form = await _read_form(request, limit, max_field_size)

    try:
        file = form.get("file")
        subject_id = _text_field(form, "subjectId")
        year_raw = _text_field(form, "year")

        if not isinstance(file, UploadFile) or not subject_id or not year_raw:
            raise PayloadError("Missing required fields")

        year = parse_year(year_raw, today)
        content = await _read_bounded(file, max_file_size)
        if not content:
            raise PayloadError("Missing required fields", details="Uploaded file is empty")

        return UploadFields(
            filename=file.filename or "document.pdf",
            content=content,
            content_type=file.content_type or ACCEPTED_CONTENT_TYPE,
            subject_id=subject_id,
            year=year,
            topic=_text_field(form, "topic"),
            sub_category_id=_text_field(form, "subCategoryId"),
        )
    finally:
        await form.close()

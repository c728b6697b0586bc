"""
Error taxonomy for the upload API and the handlers that render it.

Every failure leaves the API as JSON shaped like:
    {"error": str, "details"?: str, "fileUrl"?: str}
"""
import json
import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}

FALLBACK_BODY = b'{"error": "Internal server error", "details": "Failed to process request"}'


class UploadError(Exception):
    """Base class for failures that map onto a single HTTP response."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        details: str | None = None,
        file_url: str | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message or self.default_message
        self.details = details
        self.file_url = file_url
        self.headers = headers or {}
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        if self.file_url:
            body["fileUrl"] = self.file_url
        return body


class AuthError(UploadError):
    status_code = 401
    default_message = "Unauthorized"

    def __init__(self, message: str | None = None, details: str | None = None):
        super().__init__(message, details, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(UploadError):
    status_code = 403
    default_message = "Forbidden: Admin access required"


class PayloadError(UploadError):
    status_code = 400
    default_message = "Missing required fields"


class NotFoundError(UploadError):
    status_code = 404
    default_message = "Not found"


class PayloadTooLarge(UploadError):
    status_code = 413
    default_message = "Payload too large"


class ConfigurationError(UploadError):
    default_message = "Server configuration error"


class StorageProvisionError(UploadError):
    default_message = "Failed to create storage bucket"


class ObjectWriteError(UploadError):
    """All object-write attempts failed; the last error is kept for the response."""

    default_message = "Failed to upload file to storage"

    def __init__(self, last_error: Exception | None = None, attempts: int = 0):
        self.last_error = last_error
        self.attempts = attempts
        details = str(last_error) if last_error else "Unknown upload error"
        super().__init__(details=details)


class MetadataPersistError(UploadError):
    """The object was written but its paper record was not; file_url is always surfaced."""

    default_message = "Failed to create paper record in database"

    def __init__(self, file_url: str, details: str | None = None):
        super().__init__(details=details or "Unknown database error", file_url=file_url)


# ---- Rendering ----------------------------------------------------------------


def error_response(status_code: int, body: dict[str, Any], headers: dict[str, str] | None = None) -> Response:
    """Render an error body, degrading to a fixed JSON body if it cannot be serialized."""
    merged = {**NO_CACHE_HEADERS, **(headers or {})}
    try:
        return JSONResponse(status_code=status_code, content=body, headers=merged)
    except (TypeError, ValueError) as exc:
        logger.error(f"Could not serialize error body for status {status_code}: {exc}")
        return Response(
            content=FALLBACK_BODY,
            status_code=500,
            media_type="application/json",
            headers=NO_CACHE_HEADERS,
        )


async def _upload_error_handler(request: Request, exc: UploadError) -> Response:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.details})")
    return error_response(exc.status_code, exc.to_body(), exc.headers)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    detail = exc.detail if isinstance(exc.detail, str) else json.dumps(exc.detail)
    return error_response(exc.status_code, {"error": detail}, getattr(exc, "headers", None))


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
    return error_response(400, {"error": "Invalid request", "details": "; ".join(messages)})


async def _unhandled_error_handler(request: Request, exc: Exception) -> Response:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(500, {"error": "Internal server error", "details": str(exc) or type(exc).__name__})


def register_exception_handlers(app: FastAPI) -> None:
    """Install JSON error rendering for the whole application."""
    app.add_exception_handler(UploadError, _upload_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

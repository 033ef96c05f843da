import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("docshare")


class DocShareError(Exception):
    """Base error surfaced to clients as ``{"error": message}``."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(DocShareError):
    status_code = 400
    default_message = "Bad request"


class NotFound(DocShareError):
    status_code = 404
    default_message = "File not found"


class FileTooLarge(DocShareError):
    status_code = 413
    default_message = "File exceeds 100MB limit"


class QuotaExceeded(DocShareError):
    status_code = 413
    default_message = "Storage limit exceeded (5GB max)"


class StorageUnavailable(DocShareError):
    status_code = 500


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DocShareError)
    async def docshare_error_handler(request: Request, exc: DocShareError):
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("event=unhandled_error method=%s path=%s", request.method, request.url.path)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

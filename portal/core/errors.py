"""
Error kinds surfaced to the HTTP layer.

Controllers never format errors themselves: they raise a PortalError and the
handler registered in portal.main turns it into a JSON response.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PortalError(Exception):
    """Base error carrying an HTTP status and a stable error code."""

    status_code: int = 500
    code: str = "UnknownError"

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class UnknownError(PortalError):
    status_code = 500
    code = "UnknownError"


class JobServiceError(PortalError):
    """The external job REST server failed or is unreachable."""

    status_code = 502
    code = "JobServiceError"


def unknown(error: BaseException) -> UnknownError:
    """Wrap any accessor failure into the single undifferentiated error kind."""
    message = str(error) or type(error).__name__
    err = UnknownError(message, cause=error)
    err.__cause__ = error
    return err


async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    logger.warning(
        "portal_error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status_code": exc.status_code,
            "error_code": exc.code,
            "error": exc.message,
        },
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

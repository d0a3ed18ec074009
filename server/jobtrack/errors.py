import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException


logger = logging.getLogger(__name__)


class JobTrackError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(JobTrackError):
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(JobTrackError):
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(JobTrackError):
    status_code = status.HTTP_400_BAD_REQUEST


class PermissionDeniedError(JobTrackError):
    status_code = status.HTTP_403_FORBIDDEN


class InsufficientQuantityError(ValidationError):
    def __init__(self, available: int, needed: int):
        self.available = available
        self.needed = needed
        super().__init__(f"Insufficient quantity. Available: {available}, Needed: {needed}")


def _envelope(message: str, **extra) -> dict:
    return {"success": False, "message": message, **extra}


async def jobtrack_error_handler(request: Request, exc: JobTrackError):
    return JSONResponse(status_code=exc.status_code, content=_envelope(exc.message))


async def http_error_handler(request: Request, exc: HTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(status_code=exc.status_code, content=_envelope(message), headers=exc.headers)


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in error["loc"] if part != "body"), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope("Invalid request payload", errors=errors),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope("Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(JobTrackError, jobtrack_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

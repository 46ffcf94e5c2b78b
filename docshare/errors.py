import enum
import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorKind(enum.Enum):
    not_found = "not_found"
    validation = "validation"
    forbidden = "forbidden"
    conflict = "conflict"


_STATUS_BY_KIND = {
    ErrorKind.not_found: 404,
    ErrorKind.validation: 400,
    ErrorKind.forbidden: 403,
    ErrorKind.conflict: 409,
}


class ServiceError(HTTPException):
    """Typed failure raised by the service layer.

    ``kind`` is the tag callers branch on; the HTTP status is derived from it
    so routers can let these propagate untouched.
    """

    kind: ErrorKind = ErrorKind.validation

    def __init__(self, message: str):
        super().__init__(status_code=_STATUS_BY_KIND[self.kind], detail=message)
        self.message = message


class NotFoundError(ServiceError):
    kind = ErrorKind.not_found


class ValidationError(ServiceError):
    kind = ErrorKind.validation


class ForbiddenError(ServiceError):
    kind = ErrorKind.forbidden


class ConflictError(ServiceError):
    kind = ErrorKind.conflict


def _error_payload(code: str, message: str, details):
    return {"code": code, "message": message, "details": details}


def register_error_handlers(app) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        detail = exc.detail
        code = f"http_{exc.status_code}"
        if isinstance(exc, ServiceError):
            code = exc.kind.value
        message = "Request failed"
        details = None
        if isinstance(detail, dict):
            code = detail.get("code", code)
            message = detail.get("message", message)
            details = detail.get("details")
        elif isinstance(detail, str):
            message = detail
        else:
            details = detail
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(code, message, details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        # exc.errors() ctx may contain raw Exception objects (not JSON-serialisable).
        errors = [
            {k: str(v) if k == "ctx" else v for k, v in err.items()}
            for err in exc.errors(include_url=False)
        ]
        return JSONResponse(
            status_code=422,
            content=_error_payload("validation_error", "Validation error", errors),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_payload("internal_error", "Internal server error", None),
        )

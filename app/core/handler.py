"""Exception handlers rendering every failure as an ErrorResponse envelope."""
import logging
from fastapi import Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse

from app.core.constants import ERROR_MESSAGES, ErrorCode
from app.core.exceptions import AppException
from app.schemas.response import ErrorResponse

logger = logging.getLogger(__name__)

# Framework-raised HTTP errors that have a dedicated public code
_HTTP_STATUS_CODES = {
    status.HTTP_401_UNAUTHORIZED: ErrorCode.INVALID_ACCESS_TOKEN,
    status.HTTP_429_TOO_MANY_REQUESTS: ErrorCode.RATE_LIMIT_EXCEEDED,
}

_PYDANTIC_VALUE_ERROR_PREFIX = "Value error, "


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    data: dict | None = None,
    headers: dict | None = None,
) -> JSONResponse:
    body = ErrorResponse(code=code, message=message, data=data)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def _field_errors(exc: RequestValidationError) -> list[dict]:
    """Flatten pydantic errors to ``{field, message}`` pairs keyed by wire name."""
    details = []
    for error in exc.errors():
        location = error.get("loc") or ("unknown",)
        message = error.get("msg", "").removeprefix(_PYDANTIC_VALUE_ERROR_PREFIX)
        details.append({"field": location[-1], "message": message})
    return details


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if exc.status_code in _HTTP_STATUS_CODES:
        code = _HTTP_STATUS_CODES[exc.status_code]
    elif exc.status_code >= 500:
        code = ErrorCode.INTERNAL_ERROR
    else:
        code = ErrorCode.VALIDATION_ERROR
    return create_error_response(exc.status_code, code, str(exc.detail), headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body/query validation failures become VAL001 with per-field details."""
    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code=ErrorCode.VALIDATION_ERROR,
        message=ERROR_MESSAGES[ErrorCode.VALIDATION_ERROR],
        data={"validation_errors": _field_errors(exc)},
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return create_error_response(exc.status_code, exc.code, exc.message, exc.data or None)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the stack trace; the caller only sees SRV001."""
    logger.exception(
        "Unhandled exception occurred",
        extra={"path": request.url.path, "method": request.method}
    )

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code=ErrorCode.INTERNAL_ERROR,
        message=ERROR_MESSAGES[ErrorCode.INTERNAL_ERROR]
    )

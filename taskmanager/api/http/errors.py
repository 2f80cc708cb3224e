import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from taskmanager.domain.errors import (
    DomainError,
    TaskAuthorizationError,
    TaskNotFoundError,
    TaskValidationError,
)

logger = logging.getLogger(__name__)

### COMMENTS
# Jedyne miejsce tłumaczenia błędów domenowych na kody HTTP:
#   TaskValidationError / RequestValidationError → 400
#   TaskAuthorizationError                       → 403
#   TaskNotFoundError                            → 404
#   pozostałe (TaskStorageError, nieoczekiwane)  → 500 + stacktrace w logu
# Ciało odpowiedzi zawsze: {"error": "<komunikat>"}

_STATUS_BY_ERROR = (
    (TaskValidationError, 400),
    (TaskAuthorizationError, 403),
    (TaskNotFoundError, 404),
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return _error(status_code, str(exc))
    logger.error("Domain failure on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return _error(500, "Internal server error")


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    return _error(400, f"Invalid request: {details}")


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

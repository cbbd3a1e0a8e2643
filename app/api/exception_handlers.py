"""
Exception handlers for the orchestrator's HTTP surface.

Domain errors raised while serving the webhook or the status probe are mapped
to a JSON body built from `DomainException.to_dict()`.
"""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.domain import (
    DomainException,
    MessengerError,
    PatientNotFoundError,
    RegistryError,
    StaleHandleError,
    StateStoreError,
)

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins.
DOMAIN_STATUS_CODES: list[tuple[type[DomainException], int]] = [
    (PatientNotFoundError, status.HTTP_404_NOT_FOUND),
    (StaleHandleError, status.HTTP_409_CONFLICT),
    (RegistryError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (MessengerError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (StateStoreError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_code_for(exc: DomainException) -> int:
    for exc_type, code in DOMAIN_STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def domain_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a DomainException with its code, message and details."""
    if not isinstance(exc, DomainException):
        return await global_exception_handler(request, exc)

    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(status_code=status_code, content={**exc.to_dict(), "status_code": status_code})


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    http_exc = exc if isinstance(exc, HTTPException) else HTTPException(status_code=500, detail=str(exc))
    return JSONResponse(
        status_code=http_exc.status_code,
        content={"error": True, "message": http_exc.detail, "status_code": http_exc.status_code},
        headers=http_exc.headers,
    )


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Malformed query strings on the verification handshake end up here."""
    errors = []
    if isinstance(exc, RequestValidationError):
        errors = [
            {"field": ".".join(str(loc) for loc in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
    logger.warning(f"Validation error on {request.url.path}: {errors}")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": True,
            "message": "Validation error",
            "details": errors,
            "status_code": status.HTTP_422_UNPROCESSABLE_ENTITY,
        },
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc!s}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": True, "message": "Internal server error", "status_code": 500},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    logger.info("Exception handlers registered")

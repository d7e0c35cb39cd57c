"""Error kinds raised by the service and how they map to HTTP responses.

Every failure the API reports falls into one of four kinds. Authentication
errors always carry the same body so callers cannot tell which check failed.
"""
from __future__ import annotations

from enum import Enum

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from patient_api.services.logger import get_logger

logger = get_logger("errors")

ACCESS_DENIED = "Access denied"
GENERIC_FAILURE = "Something went wrong!"


class ErrorKind(str, Enum):
    AUTH = "AuthError"
    NOT_FOUND = "NotFound"
    DEPENDENCY = "DependencyError"
    VALIDATION = "ValidationError"


class PatientApiError(Exception):
    kind: ErrorKind
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def public_detail(self) -> str:
        return self.message


class AuthError(PatientApiError):
    kind = ErrorKind.AUTH
    status_code = 401

    def __init__(self, reason: str = ACCESS_DENIED):
        # reason is for the logs only
        super().__init__(reason)

    @property
    def public_detail(self) -> str:
        return ACCESS_DENIED


class NotFoundError(PatientApiError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class DependencyError(PatientApiError):
    kind = ErrorKind.DEPENDENCY
    status_code = 500


class ValidationError(PatientApiError):
    kind = ErrorKind.VALIDATION
    status_code = 422


PROTECTED_PREFIX = "/patients"


async def patient_api_error_handler(request: Request, exc: PatientApiError):
    logger.info(
        "%s on %s %s: %s", exc.kind.value, request.method, request.url.path, exc.message
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_detail})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """422 for bad input, unless the caller is not authenticated at all.

    FastAPI decodes the JSON body before it resolves dependencies, so an
    unreadable body would otherwise be reported ahead of a missing token.
    """
    if request.url.path.startswith(PROTECTED_PREFIX):
        verifier = request.app.state.token_verifier
        try:
            await run_in_threadpool(verifier.verify, request.headers.get("Authorization"))
        except AuthError as auth_exc:
            return await patient_api_error_handler(request, auth_exc)
    return await request_validation_exception_handler(request, exc)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": GENERIC_FAILURE})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PatientApiError, patient_api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

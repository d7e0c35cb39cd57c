"""
API dependencies (Cognito token verification, injected AWS adapters).

Adapters and the token verifier are built once at startup and kept on
``app.state``; routes reach them through these dependencies so tests can
swap in fakes.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.security import APIKeyHeader

from patient_api.core.auth_utils import TokenVerifier
from patient_api.services.patient_store import PatientStore
from patient_api.services.search_index import SearchIndex

# Cognito access tokens are sent as-is, so a plain header scheme rather than
# HTTPBearer (which insists on the "Bearer " prefix)
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


def get_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier


def get_patient_store(request: Request) -> PatientStore:
    return request.app.state.patient_store


def get_search_index(request: Request) -> SearchIndex:
    return request.app.state.search_index


async def get_current_user(
    authorization: Optional[str] = Depends(authorization_header),
    verifier: TokenVerifier = Depends(get_verifier),
):
    """
    Verify the Cognito access token from the Authorization header.

    Raises AuthError (401, "Access denied") on any failure.
    """
    return await run_in_threadpool(verifier.verify, authorization)

"""
Cognito access-token verification.

Callers authenticate with an access token issued by the configured Cognito
user pool. The backend never sees passwords; it only checks that the token
was signed by one of the pool's published keys and that its claims match
this deployment.

Verification runs in fixed steps and stops at the first failure:

1. extract the token from the Authorization header
2. read the unverified header and its ``kid``
3. resolve the signing key for ``kid`` from the pool's jwks.json
4. verify the RS256 signature, issuer and ``token_use``
5. check ``client_id``, ``iss`` and ``exp`` against this deployment

Every failure raises ``AuthError``; the step that failed is only logged.
"""
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

import jwt
import requests

from patient_api.core.config import Settings
from patient_api.core.errors import AuthError
from patient_api.services.logger import get_logger, log_debug

logger = get_logger("auth")

BEARER_SCHEME = "Bearer"


class SigningKeyNotFound(Exception):
    pass


def fetch_jwks(url: str, timeout: float = 5.0) -> Dict[str, Any]:
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return response.json()


class SigningKeyCache:
    """Public signing keys by ``kid``, fetched from a jwks.json URL.

    Entries expire after ``max_age`` seconds and at most ``max_entries`` are
    kept; the oldest entry is evicted first. The network fetch happens
    outside the lock so a slow key-set endpoint does not serialize readers.
    """

    def __init__(
        self,
        jwks_url: str,
        max_entries: int = 5,
        max_age: float = 600,
        fetch: Optional[Callable[[str], Dict[str, Any]]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.jwks_url = jwks_url
        self.max_entries = max_entries
        self.max_age = max_age
        self._fetch = fetch or fetch_jwks
        self._clock = clock
        self._keys: Dict[str, Tuple[jwt.PyJWK, float]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._keys)

    def get(self, kid: str) -> jwt.PyJWK:
        now = self._clock()
        with self._lock:
            cached = self._keys.get(kid)
            if cached is not None and now - cached[1] < self.max_age:
                return cached[0]

        jwks = self._fetch(self.jwks_url)
        key_data = next(
            (k for k in jwks.get("keys", []) if k.get("kid") == kid),
            None,
        )
        if key_data is None or key_data.get("kty") != "RSA":
            raise SigningKeyNotFound(kid)
        key = jwt.PyJWK(key_data)

        with self._lock:
            self._keys[kid] = (key, now)
            while len(self._keys) > self.max_entries:
                oldest = min(self._keys, key=lambda k: self._keys[k][1])
                del self._keys[oldest]
        return key


def extract_token(authorization: Optional[str]) -> str:
    """Return the raw token from an Authorization header value.

    The value is normally the bare token; a ``Bearer `` scheme is stripped
    when present.
    """
    if not authorization or not authorization.strip():
        raise AuthError("Missing Authorization header")
    token = authorization.strip()
    scheme, _, rest = token.partition(" ")
    if scheme == BEARER_SCHEME:
        token = rest.strip()
    if not token:
        raise AuthError("Empty bearer token")
    return token


class TokenVerifier:
    def __init__(
        self,
        issuer: str,
        client_id: str,
        key_cache: SigningKeyCache,
        clock: Callable[[], float] = time.time,
    ):
        self.issuer = issuer
        self.client_id = client_id
        self.key_cache = key_cache
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenVerifier":
        timeout = settings.JWKS_FETCH_TIMEOUT
        key_cache = SigningKeyCache(
            settings.jwks_url,
            max_entries=settings.JWKS_CACHE_MAX_ENTRIES,
            max_age=settings.JWKS_CACHE_MAX_AGE,
            fetch=lambda url: fetch_jwks(url, timeout=timeout),
        )
        return cls(settings.token_issuer, settings.AWS_POOL_CLIENT_ID, key_cache)

    def verify(self, authorization: Optional[str]) -> Dict[str, Any]:
        """Run every verification step and return the token claims."""
        token = extract_token(authorization)
        kid = self._read_kid(token)
        key = self._resolve_key(kid)
        claims = self._verify_signature(token, key)
        self._validate_claims(claims)
        logger.info("All set. The access token is valid. Proceeding with authorization")
        return claims

    def _read_kid(self, token: str) -> str:
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as exc:
            logger.info("Invalid JWT token, could not decode header: %s", exc)
            raise AuthError("Malformed token") from exc
        kid = header.get("kid")
        if not kid:
            logger.info("No 'kid' found in JWT header")
            raise AuthError("Missing kid")
        return kid

    def _resolve_key(self, kid: str) -> jwt.PyJWK:
        try:
            return self.key_cache.get(kid)
        except SigningKeyNotFound as exc:
            logger.info("Signing key %s is not published by the user pool", kid)
            raise AuthError("Unknown kid") from exc
        except (requests.RequestException, ValueError, jwt.PyJWTError) as exc:
            logger.warning("Error fetching jwks.json from the user pool: %s", exc)
            raise AuthError("Signing key unavailable") from exc

    def _verify_signature(self, token: str, key: jwt.PyJWK) -> Dict[str, Any]:
        try:
            claims = jwt.decode(
                token,
                key.key,
                algorithms=["RS256"],
                issuer=self.issuer,
                options={
                    # access tokens carry client_id instead of aud
                    "verify_aud": False,
                    # expiry is checked once, against our clock, in _validate_claims
                    "verify_exp": False,
                    "require": ["exp", "iss", "client_id", "token_use"],
                },
            )
        except jwt.PyJWTError as exc:
            logger.info("Invalid JWT token, verification failed: %s", exc)
            raise AuthError("Signature verification failed") from exc
        if claims.get("token_use") != "access":
            logger.info("Token use %r is not 'access'", claims.get("token_use"))
            raise AuthError("Wrong token use")
        return claims

    def _validate_claims(self, claims: Dict[str, Any]) -> None:
        now = round(self._clock())
        exp = claims.get("exp")
        log_debug("token_claims", {"now": now, "claims": claims})
        if (
            claims.get("client_id") == self.client_id
            and claims.get("iss") == self.issuer
            and isinstance(exp, (int, float))
            and not isinstance(exp, bool)
            and now <= exp
        ):
            return
        logger.info("Token verification failed. The token is either invalid or has expired")
        raise AuthError("Claims mismatch")

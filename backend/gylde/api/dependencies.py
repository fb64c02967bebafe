"""
API Dependencies

FastAPI dependency injection for authentication and common services.

Security: JWT tokens are verified cryptographically against the identity
provider's JWKS (ES256/RS256), with an HS256 fallback through the shared
JWT secret. Never decode without verification.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Optional

import jwt
from jwt import PyJWKClient
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from gylde.config.settings import get_settings


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ASYMMETRIC_ALGORITHMS = ["ES256", "RS256"]
REQUIRED_CLAIMS = ["exp", "sub", "iss"]

# PyJWKClient caches keys internally and refreshes them on a kid miss.
_jwks_client: Optional[PyJWKClient] = None


@dataclass(frozen=True)
class AuthenticatedUser:
    """Verified caller identity."""
    user_id: str
    email: Optional[str] = None


def _get_jwks_client() -> PyJWKClient:
    """Return a singleton PyJWKClient for the configured JWKS endpoint."""
    global _jwks_client
    if _jwks_client is None:
        _jwks_client = PyJWKClient(get_settings().jwks_url, cache_keys=True)
    return _jwks_client


def _decode_with_jwks(token: str, issuer: str, audience: str) -> dict:
    """Verify JWT using the JWKS endpoint (asymmetric keys)."""
    client = _get_jwks_client()
    signing_key = client.get_signing_key_from_jwt(token)
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=ASYMMETRIC_ALGORITHMS,
        issuer=issuer,
        audience=audience,
        options={"require": REQUIRED_CLAIMS},
    )


def _decode_with_secret(token: str, secret: str, issuer: str, audience: str) -> dict:
    """Verify JWT using the HS256 shared secret."""
    return jwt.decode(
        token,
        secret,
        algorithms=["HS256"],
        issuer=issuer,
        audience=audience,
        options={"require": REQUIRED_CLAIMS},
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_token(token: str) -> dict:
    """
    Verify a bearer token and return its claims.

    Verification strategy (in order):
      1. JWKS (ES256/RS256), which follows key rotation.
      2. HS256 with ``AUTH_JWT_SECRET`` when configured.

    Raises:
        HTTPException 401: token expired or invalid.
    """
    settings = get_settings()
    issuer = settings.auth_issuer
    audience = settings.auth_audience

    payload: Optional[dict] = None

    try:
        payload = _decode_with_jwks(token, issuer, audience)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except (jwt.exceptions.PyJWKClientError, jwt.InvalidTokenError) as jwks_err:
        logger.debug("JWKS verification failed, trying HS256 fallback: %s", jwks_err)

    if payload is None and settings.auth_jwt_secret:
        try:
            payload = _decode_with_secret(token, settings.auth_jwt_secret, issuer, audience)
        except jwt.ExpiredSignatureError:
            raise _unauthorized("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.warning("HS256 JWT verification also failed: %s", e)

    if payload is None:
        raise _unauthorized("Invalid or unverifiable token")

    if not payload.get("sub"):
        raise _unauthorized("Invalid token: missing user ID")

    return payload


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthenticatedUser:
    """
    Verified identity of the caller.

    Raises:
        HTTPException 401: token missing, expired, or invalid.
    """
    if not credentials:
        raise _unauthorized("Missing authorization token")

    payload = verify_token(credentials.credentials)
    return AuthenticatedUser(user_id=payload["sub"], email=payload.get("email"))


async def get_current_user_id(
    user: AuthenticatedUser = Depends(get_current_user),
) -> str:
    """Authenticated user ID (``sub`` claim)."""
    return user.user_id


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
CurrentUserId = Annotated[str, Depends(get_current_user_id)]


# =============================================================================
# Re-export DB dependencies for a single import source
# Routers should import from api.dependencies, not db.dependencies directly.
# =============================================================================
from gylde.infrastructure.db.dependencies import (  # noqa: E402, F401
    SessionDep,
    StripeServiceDep,
    EntitlementServiceDep,
    PrivateAccessServiceDep,
    PhotoServiceDep,
    ReputationServiceDep,
    SubscriptionServiceDep,
    get_entitlement_service,
    get_photo_service,
    get_private_access_service,
    get_reputation_service,
    get_subscription_service,
)

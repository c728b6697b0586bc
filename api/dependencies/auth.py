"""
Auth dependencies:
- get_current_user: validates Supabase JWT from Authorization header, returns UserContext
- require_admin: get_current_user plus the admin flag check used by the upload path
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from app.config import SUPABASE_URL
from errors import AuthError, AuthorizationError
from services.auth import Authorizer

# ---- Settings ----------------------------------------------------------------

if not SUPABASE_URL:
    raise RuntimeError("Missing SUPABASE_URL for auth verification")

# JWKS endpoint served by Supabase Auth
JWKS_URL = f"{SUPABASE_URL}/auth/v1/keys"
# Expected audience in Supabase JWTs (default "authenticated")
JWT_AUDIENCE = os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")

_jwks_client = PyJWKClient(JWKS_URL)
_auth_scheme = HTTPBearer(auto_error=False)


# ---- Data model ---------------------------------------------------------------


@dataclass(frozen=True)
class UserContext:
    user_id: str
    jwt: str
    email: Optional[str] = None
    role: Optional[str] = None  # e.g., "authenticated"


# ---- Core verification --------------------------------------------------------


def _verify_supabase_jwt(token: str) -> UserContext:
    """
    Verify RS256 Supabase JWT against project JWKS.
    Raises AuthError on failure; returns a minimal UserContext on success.
    """
    try:
        signing_key = _jwks_client.get_signing_key_from_jwt(token).key
        claims = jwt.decode(
            token,
            signing_key,
            algorithms=["RS256"],
            audience=JWT_AUDIENCE,
            options={
                "require": ["sub", "exp"],
                "verify_signature": True,
                "verify_aud": True,
            },
        )
    except jwt.PyJWTError as exc:
        raise AuthError(details="Invalid or expired token") from exc

    return UserContext(
        user_id=claims["sub"],
        jwt=token,
        email=claims.get("email"),
        role=claims.get("role"),
    )


# ---- FastAPI dependencies -----------------------------------------------------


def get_current_user(
    creds: HTTPAuthorizationCredentials = Depends(_auth_scheme),
) -> UserContext:
    """
    Extracts and verifies the Supabase JWT from Authorization: Bearer <token>.
    Returns a UserContext for downstream dependencies/services.
    """
    if not creds or not creds.scheme.lower() == "bearer" or not creds.credentials:
        raise AuthError(details="Missing Authorization Bearer token")
    return _verify_supabase_jwt(creds.credentials)


def get_authorizer() -> Authorizer:
    return Authorizer()


async def require_admin(
    user: UserContext = Depends(get_current_user),
    authorizer: Authorizer = Depends(get_authorizer),
) -> UserContext:
    """
    Admits only callers whose user row is flagged admin.
    Typical endpoint usage:
        def handler(user: UserContext = Depends(require_admin)):
            ...
    """
    if not await run_in_threadpool(authorizer.is_admin, user.user_id):
        raise AuthorizationError()
    return user

"""Security helpers for Auth0 integration."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import httpx
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from ..db import get_session_dependency
from ..models import User
from ..services.admin_users import provision_user
from .config import get_settings
from .enums import UserRole

LOGGER = structlog.get_logger(__name__)

ALGORITHMS = ["RS256"]
EMAIL_CLAIMS = ("email", "https://nexo-api/email")
_scheme = HTTPBearer(auto_error=False)


# -------------------------------------------------------
# JWKS + Token Utilities
# -------------------------------------------------------

@lru_cache()
def _fetch_jwks(domain: str) -> dict[str, Any]:
    """Fetch (and cache) the JWKS for the given Auth0 domain."""
    jwks_url = f"https://{domain}/.well-known/jwks.json"
    try:
        with httpx.Client(timeout=5.0) as client:
            response = client.get(jwks_url)
            response.raise_for_status()
            return response.json()
    except httpx.HTTPError as exc:
        LOGGER.error("jwks_fetch_failed", domain=domain, error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Unable to retrieve JWKS",
        ) from exc


def _get_rsa_key(token: str, domain: str) -> dict[str, str] | None:
    """Return the RSA key that matches the token header."""
    try:
        unverified_header = jwt.get_unverified_header(token)
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
        ) from exc

    kid = unverified_header.get("kid")
    if not kid:
        return None

    for key in _fetch_jwks(domain).get("keys", []):
        if key.get("kid") == kid:
            return {name: key.get(name) for name in ("kty", "kid", "use", "n", "e")}
    return None


def _audiences(raw_value: str | None) -> list[str]:
    """Split a comma or whitespace separated audience setting."""
    if not raw_value:
        return []
    values: list[str] = []
    for part in raw_value.replace(",", " ").split():
        trimmed = part.strip().rstrip("/")
        if trimmed and trimmed not in values:
            values.append(trimmed)
    return values


def _decode_token(token: str, *, domain: str, audiences: list[str]) -> dict[str, Any]:
    """Decode and validate an Auth0 access token."""
    rsa_key = _get_rsa_key(token, domain)
    if not rsa_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unable to validate token",
        )

    try:
        payload = jwt.decode(
            token,
            rsa_key,
            algorithms=ALGORITHMS,
            issuer=f"https://{domain}/",
            options={"verify_aud": False},
        )
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from exc

    claim = payload.get("aud")
    token_audiences = [claim] if isinstance(claim, str) else list(claim or [])
    normalized = {value.rstrip("/") for value in token_audiences if isinstance(value, str)}
    if not normalized & set(audiences):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token audience",
        )
    return payload


# -------------------------------------------------------
# User Resolution
# -------------------------------------------------------

def _resolve_user(session: Session, payload: dict[str, Any]) -> User:
    """Map a verified Auth0 payload to an application user.

    Users are matched by subject, then by email; unknown staff are
    provisioned with the default ``user`` role.
    """
    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing subject",
        )

    user = session.query(User).filter(User.auth0_sub == subject).one_or_none()
    if user:
        return user

    email = next((payload[claim] for claim in EMAIL_CLAIMS if payload.get(claim)), None)
    if not email:
        LOGGER.warning("token_missing_email", subject=subject)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User record not found",
        )

    email = email.strip().lower()
    user = session.query(User).filter(User.email == email).one_or_none()
    if user:
        if user.auth0_sub != subject:
            user.auth0_sub = subject
            session.commit()
            LOGGER.info("auth0_subject_linked", user_id=user.id)
        return user

    display_name = (payload.get("name") or payload.get("nickname") or email).strip()
    user = provision_user(session, email=email, name=display_name, auth0_sub=subject)
    session.commit()
    LOGGER.info("user_provisioned_from_token", user_id=user.id, display_id=user.display_id)
    return user


# -------------------------------------------------------
# Current User + Role Enforcement
# -------------------------------------------------------

def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_scheme),
    session: Session = Depends(get_session_dependency),
) -> User:
    """Resolve the authenticated user from the Auth0 bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing",
        )

    settings = get_settings()
    audiences = _audiences(settings.auth0_audience)
    if not settings.auth0_domain or not audiences:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Auth0 configuration is incomplete",
        )

    payload = _decode_token(
        credentials.credentials,
        domain=settings.auth0_domain,
        audiences=audiences,
    )
    user = _resolve_user(session, payload)

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )
    return user


def _enforce_roles(user: User, allowed_roles: set[str]) -> User:
    """Ensure the authenticated user has one of the allowed roles."""
    if (user.role or "").lower() in allowed_roles:
        return user
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Insufficient permissions",
    )


def require_admin_user(user: User = Depends(get_current_user)) -> User:
    """Dependency ensuring the caller is an administrator."""
    return _enforce_roles(user, {UserRole.ADMIN.value})


def require_approver_user(user: User = Depends(get_current_user)) -> User:
    """Dependency ensuring the caller may decide approval requests."""
    return _enforce_roles(user, {UserRole.ADMIN.value, UserRole.PRESIDENT.value})


__all__ = [
    "get_current_user",
    "require_admin_user",
    "require_approver_user",
]

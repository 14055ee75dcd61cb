"""Utilities for seeding development data."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from ..core.enums import UserRole
from ..models import User
from .admin_users import provision_user

DEFAULT_ADMIN_EMAIL = "admin@ieq-nexo.org"
DEFAULT_ADMIN_NAME = "IT Admin"
DEFAULT_PRESIDENT_EMAIL = "presidencia@ieq-nexo.org"
DEFAULT_PRESIDENT_NAME = "Presidencia IEQ"


@dataclass
class SeedResult:
    """Information about the seeded accounts."""

    admin: User
    president: User
    admin_created: bool
    president_created: bool


def _ensure_user(
    session: Session,
    *,
    email: str,
    name: str,
    role: str,
    auth0_sub: str | None,
) -> tuple[User, bool]:
    user = session.query(User).filter(User.email == email).one_or_none()
    if user is None:
        return (
            provision_user(session, email=email, name=name, role=role, auth0_sub=auth0_sub),
            True,
        )

    if user.role != role:
        user.role = role
    if user.name != name:
        user.name = name
    if auth0_sub and user.auth0_sub != auth0_sub:
        user.auth0_sub = auth0_sub
    return user, False


def seed_development_users(
    session: Session,
    *,
    admin_email: str = DEFAULT_ADMIN_EMAIL,
    admin_name: str = DEFAULT_ADMIN_NAME,
    president_email: str = DEFAULT_PRESIDENT_EMAIL,
    president_name: str = DEFAULT_PRESIDENT_NAME,
    admin_auth0_sub: str | None = None,
) -> SeedResult:
    """Ensure an admin and a president account exist for local development.

    Existing accounts keep their ids and get their role and name refreshed.
    """

    admin, admin_created = _ensure_user(
        session,
        email=admin_email,
        name=admin_name,
        role=UserRole.ADMIN.value,
        auth0_sub=admin_auth0_sub,
    )
    president, president_created = _ensure_user(
        session,
        email=president_email,
        name=president_name,
        role=UserRole.PRESIDENT.value,
        auth0_sub=None,
    )
    return SeedResult(
        admin=admin,
        president=president,
        admin_created=admin_created,
        president_created=president_created,
    )


__all__ = ["SeedResult", "seed_development_users"]

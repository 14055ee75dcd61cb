"""Service layer functions for user administration."""

from __future__ import annotations

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.enums import UserRole
from ..core.errors import ActionError, NotFoundError, ReferentialError, UniquenessError
from ..models import ApprovalRequest, Comment, Ticket, User
from ..schemas.common import ActionResult
from ..schemas.user import UserCreate, UserUpdate
from .actions import action_boundary
from .audit import record_audit_event
from .display_ids import USER_ENTITY, allocate_display_id

LOGGER = structlog.get_logger(__name__)

USER_IN_USE_MESSAGE = (
    "This user has tickets, comments or approval requests and cannot be deleted."
)


def _get_user_or_404(session: Session, user_id: int) -> User:
    user = session.query(User).filter(User.id == user_id).one_or_none()
    if not user:
        raise NotFoundError("User not found.")
    return user


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _email_taken(session: Session, email: str, *, exclude_id: int | None = None) -> bool:
    query = session.query(User.id).filter(func.lower(User.email) == email)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def provision_user(
    session: Session,
    *,
    email: str,
    name: str,
    role: str = UserRole.USER.value,
    auth0_sub: str | None = None,
    department: str | None = None,
) -> User:
    """Insert a user with a fresh display id; the caller commits."""

    user = User(
        display_id=allocate_display_id(session, USER_ENTITY),
        email=_normalize_email(email),
        name=name,
        role=role,
        auth0_sub=auth0_sub,
        department=department,
    )
    session.add(user)
    session.flush()
    return user


@action_boundary("user_register")
def register_user(session: Session, actor: User, payload: dict) -> ActionResult:
    """Create a user account; emails are unique case-insensitively."""

    data = UserCreate.model_validate(payload)
    email = _normalize_email(data.email)
    if _email_taken(session, email):
        raise UniquenessError("A user with this email already exists.")

    try:
        user = provision_user(
            session,
            email=email,
            name=data.name,
            role=data.role.value,
            auth0_sub=data.auth0_sub,
            department=data.department,
        )
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise UniquenessError("A user with this email already exists.") from exc

    record_audit_event(actor.email, "User Registered", f"User {user.display_id}: {user.email}")
    return ActionResult.ok(
        f"User {user.name} registered.", entity_id=user.id, display_id=user.display_id
    )


def list_users(session: Session) -> list[User]:
    """Return all users ordered by creation time descending."""

    return session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


@action_boundary("user_update")
def update_user(session: Session, actor: User, user_id: int, payload: dict) -> ActionResult:
    data = UserUpdate.model_validate(payload)
    user = _get_user_or_404(session, user_id)
    old_role = user.role
    user.name = data.name
    user.role = data.role.value
    session.commit()

    record_audit_event(
        actor.email,
        "User Updated",
        f"User {user.display_id}: name {user.name}, role {old_role} -> {user.role}",
    )
    return ActionResult.ok(
        f"User {user.name} updated.", entity_id=user.id, display_id=user.display_id
    )


def _owns_records(session: Session, user_id: int) -> bool:
    for model, column in (
        (Ticket, Ticket.user_id),
        (Comment, Comment.user_id),
        (ApprovalRequest, ApprovalRequest.requester_id),
    ):
        if session.query(model.id).filter(column == user_id).first() is not None:
            return True
    return False


@action_boundary("user_delete")
def delete_user(session: Session, actor: User, user_id: int) -> ActionResult:
    """Delete a user that owns nothing; the acting admin cannot delete themselves."""

    if user_id == actor.id:
        raise ActionError("You cannot delete your own account.")
    user = _get_user_or_404(session, user_id)
    if _owns_records(session, user.id):
        raise ReferentialError(USER_IN_USE_MESSAGE)

    display_id, email = user.display_id, user.email
    session.delete(user)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        LOGGER.warning("user_delete_blocked", user_id=user_id, error=str(exc))
        raise ReferentialError(USER_IN_USE_MESSAGE) from exc

    record_audit_event(actor.email, "User Deleted", f"User {display_id}: {email}")
    return ActionResult.ok("User deleted.", entity_id=user_id, display_id=display_id)


__all__ = [
    "USER_IN_USE_MESSAGE",
    "delete_user",
    "list_users",
    "provision_user",
    "register_user",
    "update_user",
]

"""Attachment uploads for tickets and approval requests."""

from __future__ import annotations

import structlog
from sqlalchemy.orm import Session

from ..core.errors import ActionError, NotFoundError
from ..core.redis_cache import APPROVALS_VIEW, TICKETS_VIEW, invalidate_views
from ..models import ApprovalRequest, Attachment, Ticket, User
from ..schemas.common import ActionResult
from . import s3
from .actions import action_boundary
from .audit import record_audit_event
from .display_ids import ATTACHMENT_ENTITY, allocate_display_id

LOGGER = structlog.get_logger(__name__)

MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024


@action_boundary("attachment_upload")
def upload_attachment(
    session: Session,
    actor: User,
    *,
    filename: str,
    content: bytes,
    content_type: str | None = None,
    ticket_id: int | None = None,
    approval_request_id: int | None = None,
) -> ActionResult:
    """Store the bytes, then record the metadata on exactly one owner."""

    if (ticket_id is None) == (approval_request_id is None):
        raise ActionError("Attach the file to either a ticket or an approval request.")
    if not content:
        raise ActionError("The uploaded file is empty.")
    if len(content) > MAX_ATTACHMENT_BYTES:
        raise ActionError("Attachments are limited to 10 MB.")

    if ticket_id is not None:
        if session.get(Ticket, ticket_id) is None:
            raise NotFoundError("Ticket not found.")
        folder = f"tickets/{ticket_id}"
    else:
        if session.get(ApprovalRequest, approval_request_id) is None:
            raise NotFoundError("Approval request not found.")
        folder = f"approvals/{approval_request_id}"

    name = s3.safe_filename(filename)
    resolved_type = s3.determine_content_type(name, content_type)
    try:
        key = s3.upload_bytes(
            content, key=s3.build_object_key(name, folder=folder), content_type=resolved_type
        )
    except s3.StorageError as exc:
        LOGGER.error("attachment_storage_failed", filename=name, error=str(exc))
        return ActionResult.server_error()

    attachment = Attachment(
        display_id=allocate_display_id(session, ATTACHMENT_ENTITY),
        file_name=name,
        size=len(content),
        content_type=resolved_type,
        storage_key=key,
        ticket_id=ticket_id,
        approval_request_id=approval_request_id,
        uploaded_by_id=actor.id,
    )
    session.add(attachment)
    session.commit()

    record_audit_event(
        actor.email,
        "Attachment Uploaded",
        f"Attachment {attachment.display_id}: {name} ({folder})",
    )
    invalidate_views(TICKETS_VIEW if ticket_id is not None else APPROVALS_VIEW)
    return ActionResult.ok(
        f"File {name} uploaded.", entity_id=attachment.id, display_id=attachment.display_id
    )


def get_attachment(session: Session, attachment_id: int) -> Attachment | None:
    return session.get(Attachment, attachment_id)


def download_url(attachment: Attachment, *, expires_in: int = 3600) -> str:
    return s3.generate_presigned_url(
        attachment.storage_key,
        expires_in=expires_in,
        download_name=attachment.file_name,
    )


__all__ = [
    "MAX_ATTACHMENT_BYTES",
    "download_url",
    "get_attachment",
    "upload_attachment",
]

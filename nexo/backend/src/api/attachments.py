"""Attachment upload and download endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.security import get_current_user
from ..db import get_session_dependency
from ..models import ApprovalRequest, Ticket, User
from ..schemas.attachment import AttachmentDownload
from ..schemas.common import ActionResult
from ..services import attachments as attachment_service
from .responses import action_response

router = APIRouter(prefix="/attachments", tags=["Attachments"])

SessionDep = Annotated[Session, Depends(get_session_dependency)]


def _can_access(session: Session, user: User, ticket_id: int | None, request_id: int | None) -> bool:
    if user.is_admin:
        return True
    if ticket_id is not None:
        ticket = session.get(Ticket, ticket_id)
        return ticket is None or ticket.user_id == user.id
    if request_id is not None:
        request = session.get(ApprovalRequest, request_id)
        return request is None or user.is_approver or request.requester_id == user.id
    return True


@router.post("", response_model=ActionResult)
async def upload(
    session: SessionDep,
    user: Annotated[User, Depends(get_current_user)],
    file: UploadFile = File(...),
    ticket_id: int | None = Form(default=None),
    approval_request_id: int | None = Form(default=None),
) -> JSONResponse:
    if not _can_access(session, user, ticket_id, approval_request_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Owner not found")
    content = await file.read()
    return action_response(
        attachment_service.upload_attachment(
            session,
            user,
            filename=file.filename or "",
            content=content,
            content_type=file.content_type,
            ticket_id=ticket_id,
            approval_request_id=approval_request_id,
        )
    )


@router.get("/{attachment_id}/download", response_model=AttachmentDownload)
def download(
    attachment_id: int,
    session: SessionDep,
    user: Annotated[User, Depends(get_current_user)],
) -> AttachmentDownload:
    attachment = attachment_service.get_attachment(session, attachment_id)
    if attachment is None or not _can_access(
        session, user, attachment.ticket_id, attachment.approval_request_id
    ):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found")
    return AttachmentDownload(
        id=attachment.id,
        file_name=attachment.file_name,
        url=attachment_service.download_url(attachment),
    )

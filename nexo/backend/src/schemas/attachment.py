"""Attachment metadata schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AttachmentInput(BaseModel):
    """Metadata for a file that was already uploaded to storage."""

    file_name: str = Field(min_length=1, max_length=255)
    size: int = Field(default=0, ge=0)
    content_type: str | None = Field(default=None, max_length=255)
    storage_key: str = Field(min_length=1, max_length=512)


class AttachmentRead(BaseModel):
    id: int
    display_id: str
    file_name: str
    size: int
    content_type: str | None
    storage_key: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AttachmentDownload(BaseModel):
    id: int
    file_name: str
    url: str


__all__ = ["AttachmentDownload", "AttachmentInput", "AttachmentRead"]

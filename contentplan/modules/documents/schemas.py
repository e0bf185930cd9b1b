"""Document Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from contentplan.core.config import settings
from contentplan.models.enums import DocumentKind


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    workspace_id: uuid.UUID
    video_id: uuid.UUID
    kind: DocumentKind
    content: str
    version: int
    created_at: datetime
    updated_at: datetime
    updated_by: uuid.UUID | None


class DocumentListResponse(BaseModel):
    items: list[DocumentResponse]
    total: int


class CreateDocumentRequest(BaseModel):
    video_id: uuid.UUID
    kind: DocumentKind
    content: str = Field("", max_length=settings.MAX_DOCUMENT_CONTENT_CHARS)


class SaveDocumentRequest(BaseModel):
    content: str = Field(..., max_length=settings.MAX_DOCUMENT_CONTENT_CHARS)
    expected_version: int = Field(..., ge=1)


class RestoreRevisionRequest(BaseModel):
    expected_version: int = Field(..., ge=1)


class SaveResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    document_id: uuid.UUID
    version: int
    previous_version: int
    saved_at: datetime


class ConflictDetail(BaseModel):
    """Body of ``detail`` in a 409 version_conflict response."""
    current_version: int
    expected_version: int
    content_preview: str | None = None

"""Revision history: Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class RevisionSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    version: int
    created_at: datetime
    created_by: uuid.UUID | None
    content_preview: str


class RevisionListResponse(BaseModel):
    items: list[RevisionSummaryResponse]
    # Pass as before_version to fetch the next (older) page; null when exhausted
    next_before_version: int | None


class RevisionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    document_id: uuid.UUID
    version: int
    content: str
    created_at: datetime
    created_by: uuid.UUID | None

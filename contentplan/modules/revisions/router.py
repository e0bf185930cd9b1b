"""Revision history API router."""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from contentplan.auth.dependencies import EDITOR_ROLES, get_current_user, require_role
from contentplan.core.config import settings
from contentplan.core.database import get_db
from contentplan.modules.documents.dependencies import get_version_gate
from contentplan.modules.documents.gate import VersionGate
from contentplan.modules.documents.restore import restore_revision
from contentplan.modules.documents.schemas import RestoreRevisionRequest, SaveResponse
from contentplan.modules.revisions import store
from contentplan.modules.revisions.schemas import (
    RevisionListResponse,
    RevisionResponse,
    RevisionSummaryResponse,
)
from contentplan.schemas.auth import CurrentUser

logger = structlog.get_logger()

router = APIRouter(prefix="/documents", tags=["revisions"])


@router.get("/{document_id}/revisions", response_model=RevisionListResponse)
async def list_revisions(
    document_id: uuid.UUID,
    limit: int = Query(settings.REVISION_PAGE_SIZE_MAX, ge=1, le=settings.REVISION_PAGE_SIZE_MAX),
    before_version: int | None = Query(None, ge=1, description="Only versions older than this"),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List revisions newest first, without full content."""
    await store.ensure_document(db, document_id, current_user.workspace_id)
    page = await store.fetch_page(db, document_id, limit, before_version)
    next_before = page[-1].version if len(page) == limit and page[-1].version > 1 else None
    return RevisionListResponse(
        items=[RevisionSummaryResponse.model_validate(entry) for entry in page],
        next_before_version=next_before,
    )


@router.get("/{document_id}/revisions/{version}", response_model=RevisionResponse)
async def get_revision(
    document_id: uuid.UUID,
    version: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await store.ensure_document(db, document_id, current_user.workspace_id)
    revision = await store.get_revision(db, document_id, version)
    return RevisionResponse.model_validate(revision)


@router.post("/{document_id}/revisions/{version}/restore", response_model=SaveResponse)
async def restore(
    document_id: uuid.UUID,
    version: int,
    body: RestoreRevisionRequest,
    current_user: CurrentUser = Depends(require_role(EDITOR_ROLES)),
    gate: VersionGate = Depends(get_version_gate),
):
    """Make an old revision the new current version; history is kept."""
    outcome = await restore_revision(
        gate,
        document_id,
        version,
        body.expected_version,
        current_user.user_id,
        workspace_id=current_user.workspace_id,
    )
    logger.info(
        "revision.restored",
        document_id=str(document_id),
        restored_from=version,
        version=outcome.version,
    )
    return SaveResponse.model_validate(outcome)

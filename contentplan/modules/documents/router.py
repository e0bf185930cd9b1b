"""Documents API router.

Every route is scoped to the caller's workspace: documents of other
workspaces are reported as not found. Reads are open to every member;
writes require an editor role.
A stale ``expected_version`` returns 409 version_conflict with the current
version and a content preview, enough to render the conflict dialog.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, Response, status

from contentplan.auth.dependencies import (
    ADMIN_ROLES,
    EDITOR_ROLES,
    get_current_user,
    require_role,
)
from contentplan.models.enums import DocumentKind
from contentplan.modules.documents.dependencies import get_version_gate
from contentplan.modules.documents.gate import VersionGate
from contentplan.modules.documents.schemas import (
    CreateDocumentRequest,
    DocumentListResponse,
    DocumentResponse,
    SaveDocumentRequest,
    SaveResponse,
)
from contentplan.schemas.auth import CurrentUser

logger = structlog.get_logger()

router = APIRouter(tags=["documents"])


@router.post(
    "/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_document(
    body: CreateDocumentRequest,
    current_user: CurrentUser = Depends(require_role(EDITOR_ROLES)),
    gate: VersionGate = Depends(get_version_gate),
):
    state = await gate.create(
        current_user.workspace_id, body.video_id, body.kind, current_user.user_id, body.content
    )
    return DocumentResponse.model_validate(state)


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    gate: VersionGate = Depends(get_version_gate),
):
    state = await gate.read(document_id, workspace_id=current_user.workspace_id)
    return DocumentResponse.model_validate(state)


@router.put("/documents/{document_id}", response_model=SaveResponse)
async def save_document(
    document_id: uuid.UUID,
    body: SaveDocumentRequest,
    current_user: CurrentUser = Depends(require_role(EDITOR_ROLES)),
    gate: VersionGate = Depends(get_version_gate),
):
    """Save with optimistic concurrency control."""
    outcome = await gate.save(
        document_id,
        body.content,
        body.expected_version,
        current_user.user_id,
        workspace_id=current_user.workspace_id,
    )
    return SaveResponse.model_validate(outcome)


@router.get("/videos/{video_id}/documents", response_model=DocumentListResponse)
async def list_video_documents(
    video_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    gate: VersionGate = Depends(get_version_gate),
):
    states = await gate.list_for_video(current_user.workspace_id, video_id)
    return DocumentListResponse(
        items=[DocumentResponse.model_validate(s) for s in states],
        total=len(states),
    )


@router.post("/videos/{video_id}/documents", response_model=DocumentListResponse)
async def ensure_video_documents(
    video_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_role(EDITOR_ROLES)),
    gate: VersionGate = Depends(get_version_gate),
):
    """Create whichever of the four document kinds the video is missing."""
    states = await gate.ensure_for_video(
        current_user.workspace_id, video_id, current_user.user_id
    )
    return DocumentListResponse(
        items=[DocumentResponse.model_validate(s) for s in states],
        total=len(states),
    )


@router.get("/videos/{video_id}/documents/{kind}", response_model=DocumentResponse)
async def get_video_document(
    video_id: uuid.UUID,
    kind: DocumentKind,
    current_user: CurrentUser = Depends(get_current_user),
    gate: VersionGate = Depends(get_version_gate),
):
    state = await gate.get_by_video(current_user.workspace_id, video_id, kind)
    return DocumentResponse.model_validate(state)


@router.delete("/videos/{video_id}/documents", status_code=status.HTTP_204_NO_CONTENT)
async def purge_video_documents(
    video_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_role(ADMIN_ROLES)),
    gate: VersionGate = Depends(get_version_gate),
):
    """Called by the video service when a video is deleted."""
    count = await gate.purge_video(current_user.workspace_id, video_id)
    logger.info(
        "documents.purge_requested",
        video_id=str(video_id),
        count=count,
        actor_id=str(current_user.user_id),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""Revision store: append-only persistence and retrieval of document snapshots.

``append_revision`` is only called by the version gate inside its save
transaction. Listing never loads full content: previews are computed in SQL.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from contentplan.core.config import settings
from contentplan.core.errors import NotFoundError, RevisionIntegrityError
from contentplan.models.base import utcnow
from contentplan.models.documents import Document, DocumentRevision

logger = structlog.get_logger()

_DEFAULT_BATCH_SIZE = 50


def content_preview(content: str | None, limit: int | None = None) -> str:
    """Truncate content to the preview shown in conflicts and history listings."""
    limit = settings.CONTENT_PREVIEW_CHARS if limit is None else limit
    return (content or "")[:limit]


@dataclass(frozen=True)
class RevisionSummary:
    """History entry without the full content blob."""

    id: uuid.UUID
    document_id: uuid.UUID
    version: int
    created_at: datetime
    created_by: uuid.UUID | None
    content_preview: str


# ── Append ────────────────────────────────────────────────────────────────────


async def latest_version(db: AsyncSession, document_id: uuid.UUID) -> int | None:
    result = await db.execute(
        select(func.max(DocumentRevision.version)).where(
            DocumentRevision.document_id == document_id
        )
    )
    return result.scalar_one_or_none()


async def append_revision(
    db: AsyncSession,
    document_id: uuid.UUID,
    version: int,
    content: str,
    actor_id: uuid.UUID | None,
    created_at: datetime | None = None,
) -> DocumentRevision:
    """Write the snapshot for ``version``. Must run inside the gate's transaction.

    Raises RevisionIntegrityError for a duplicate or non-sequential version so
    the enclosing transaction rolls back as a whole.
    """
    latest = await latest_version(db, document_id)
    expected_next = 1 if latest is None else latest + 1
    if version != expected_next:
        logger.error(
            "revision.integrity_violation",
            document_id=str(document_id),
            version=version,
            expected=expected_next,
        )
        raise RevisionIntegrityError(
            f"Revision {version} for document {document_id} is not sequential "
            f"(next is {expected_next})"
        )

    revision = DocumentRevision(
        document_id=document_id,
        version=version,
        content=content,
        created_by=actor_id,
        created_at=created_at or utcnow(),
    )
    db.add(revision)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise RevisionIntegrityError(
            f"Revision {version} already exists for document {document_id}"
        ) from exc
    return revision


# ── Read ──────────────────────────────────────────────────────────────────────


async def ensure_document(
    db: AsyncSession, document_id: uuid.UUID, workspace_id: uuid.UUID | None = None
) -> None:
    """Raise NotFoundError unless the document exists (in the workspace, when given)."""
    stmt = select(Document.id).where(Document.id == document_id)
    if workspace_id is not None:
        stmt = stmt.where(Document.workspace_id == workspace_id)
    exists = await db.scalar(stmt)
    if exists is None:
        raise NotFoundError("document", document_id)


async def get_revision(
    db: AsyncSession, document_id: uuid.UUID, version: int
) -> DocumentRevision:
    result = await db.execute(
        select(DocumentRevision).where(
            DocumentRevision.document_id == document_id,
            DocumentRevision.version == version,
        )
    )
    revision = result.scalar_one_or_none()
    if revision is None:
        raise NotFoundError("revision", f"{document_id}@{version}")
    return revision


async def fetch_page(
    db: AsyncSession,
    document_id: uuid.UUID,
    limit: int,
    before_version: int | None = None,
) -> list[RevisionSummary]:
    """One page of history, newest first, keyset-paginated on version."""
    stmt = select(
        DocumentRevision.id,
        DocumentRevision.document_id,
        DocumentRevision.version,
        DocumentRevision.created_at,
        DocumentRevision.created_by,
        func.substr(DocumentRevision.content, 1, settings.CONTENT_PREVIEW_CHARS).label(
            "content_preview"
        ),
    ).where(DocumentRevision.document_id == document_id)
    if before_version is not None:
        stmt = stmt.where(DocumentRevision.version < before_version)
    stmt = stmt.order_by(DocumentRevision.version.desc()).limit(limit)

    result = await db.execute(stmt)
    return [
        RevisionSummary(
            id=row.id,
            document_id=row.document_id,
            version=row.version,
            created_at=row.created_at,
            created_by=row.created_by,
            content_preview=row.content_preview or "",
        )
        for row in result
    ]


class RevisionHistory:
    """Lazy, restartable view over a document's history (newest first).

    Each ``async for`` starts again from the head and pulls batches on demand.
    """

    def __init__(
        self,
        db: AsyncSession,
        document_id: uuid.UUID,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self._db = db
        self.document_id = document_id
        self.batch_size = batch_size

    async def __aiter__(self) -> AsyncIterator[RevisionSummary]:
        before: int | None = None
        while True:
            page = await fetch_page(self._db, self.document_id, self.batch_size, before)
            for entry in page:
                yield entry
            if len(page) < self.batch_size:
                return
            before = page[-1].version

    async def to_list(self) -> list[RevisionSummary]:
        return [entry async for entry in self]


def list_revisions(
    db: AsyncSession, document_id: uuid.UUID, batch_size: int = _DEFAULT_BATCH_SIZE
) -> RevisionHistory:
    return RevisionHistory(db, document_id, batch_size)

"""Version gate: the only code path that mutates a document's content and version.

Every write is a single transaction:

1. ``UPDATE documents SET version = version + 1 ... WHERE id = :id AND version = :expected``
2. append the revision snapshot for the new version

Zero rows from step 1 means the document is missing or the caller's version
is stale. The conditional update is the compare-and-swap, so concurrent
writers on the same version get exactly one winner even across processes.
The audit event is emitted only after the transaction commits.

Documents belong to a workspace. Video-level operations always take the
workspace; reads and writes addressed by document id accept it as a filter,
and a document outside that workspace is reported as not found.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from contentplan.core.errors import ConflictError, DocumentExistsError, NotFoundError
from contentplan.models.base import utcnow
from contentplan.models.documents import Document, DocumentRevision
from contentplan.models.enums import AuditAction, DocumentKind
from contentplan.modules.revisions import store
from contentplan.services.audit_trail import AuditEvent, AuditTrailEmitter

logger = structlog.get_logger()

ContentSource = Callable[[AsyncSession], Awaitable[str]]


@dataclass(frozen=True)
class DocumentState:
    id: uuid.UUID
    workspace_id: uuid.UUID
    video_id: uuid.UUID
    kind: DocumentKind
    content: str
    version: int
    created_at: datetime
    updated_at: datetime
    updated_by: uuid.UUID | None

    @classmethod
    def from_model(cls, doc: Document) -> DocumentState:
        return cls(
            id=doc.id,
            workspace_id=doc.workspace_id,
            video_id=doc.video_id,
            kind=doc.kind,
            content=doc.content,
            version=doc.version,
            created_at=doc.created_at,
            updated_at=doc.updated_at,
            updated_by=doc.updated_by,
        )


@dataclass(frozen=True)
class SaveOutcome:
    document_id: uuid.UUID
    version: int
    previous_version: int
    saved_at: datetime


def _scoped(stmt, workspace_id: uuid.UUID | None):
    if workspace_id is None:
        return stmt
    return stmt.where(Document.workspace_id == workspace_id)


class VersionGate:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        audit: AuditTrailEmitter | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._audit = audit

    # ── Reads ─────────────────────────────────────────────────────────────────

    async def read(
        self, document_id: uuid.UUID, *, workspace_id: uuid.UUID | None = None
    ) -> DocumentState:
        """Current content and version; no locking, no side effects."""
        async with self._session_factory() as db:
            result = await db.execute(
                _scoped(select(Document).where(Document.id == document_id), workspace_id)
            )
            doc = result.scalar_one_or_none()
            if doc is None:
                raise NotFoundError("document", document_id)
            return DocumentState.from_model(doc)

    async def get_by_video(
        self, workspace_id: uuid.UUID, video_id: uuid.UUID, kind: DocumentKind
    ) -> DocumentState:
        async with self._session_factory() as db:
            result = await db.execute(
                select(Document).where(
                    Document.workspace_id == workspace_id,
                    Document.video_id == video_id,
                    Document.kind == kind,
                )
            )
            doc = result.scalar_one_or_none()
            if doc is None:
                raise NotFoundError("document", f"{video_id}/{kind.value}")
            return DocumentState.from_model(doc)

    async def list_for_video(
        self, workspace_id: uuid.UUID, video_id: uuid.UUID
    ) -> list[DocumentState]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(Document)
                .where(Document.workspace_id == workspace_id, Document.video_id == video_id)
                .order_by(Document.kind)
            )
            return [DocumentState.from_model(d) for d in result.scalars().all()]

    # ── Writes ────────────────────────────────────────────────────────────────

    async def create(
        self,
        workspace_id: uuid.UUID,
        video_id: uuid.UUID,
        kind: DocumentKind,
        actor_id: uuid.UUID,
        content: str = "",
    ) -> DocumentState:
        """Create a document at version 1 together with revision 1."""
        now = utcnow()
        async with self._session_factory() as db:
            try:
                async with db.begin():
                    doc = await self._insert(
                        db, workspace_id, video_id, kind, actor_id, content, now
                    )
                    state = DocumentState.from_model(doc)
            except IntegrityError as exc:
                raise DocumentExistsError(video_id, kind.value) from exc

        logger.info(
            "document.created",
            document_id=str(state.id),
            workspace_id=str(workspace_id),
            video_id=str(video_id),
            kind=kind.value,
            actor_id=str(actor_id),
        )
        self._emit(AuditAction.DOCUMENT_CREATED, actor_id, state.id, None, 1, now,
                   {"video_id": str(video_id), "kind": kind.value})
        return state

    async def ensure_for_video(
        self, workspace_id: uuid.UUID, video_id: uuid.UUID, actor_id: uuid.UUID
    ) -> list[DocumentState]:
        """Create any missing document kinds for a video. Idempotent."""
        existing = {d.kind for d in await self.list_for_video(workspace_id, video_id)}
        for kind in DocumentKind:
            if kind in existing:
                continue
            try:
                await self.create(workspace_id, video_id, kind, actor_id)
            except DocumentExistsError:
                # Created concurrently by another request
                continue
        return await self.list_for_video(workspace_id, video_id)

    async def purge_video(self, workspace_id: uuid.UUID, video_id: uuid.UUID) -> int:
        """Delete every document of a video and its history (parent deletion)."""
        in_video = (Document.workspace_id == workspace_id, Document.video_id == video_id)
        async with self._session_factory() as db:
            async with db.begin():
                doc_ids = select(Document.id).where(*in_video)
                await db.execute(
                    delete(DocumentRevision).where(DocumentRevision.document_id.in_(doc_ids))
                )
                result = await db.execute(delete(Document).where(*in_video))
        logger.info(
            "documents.purged",
            workspace_id=str(workspace_id),
            video_id=str(video_id),
            count=result.rowcount,
        )
        return result.rowcount

    async def save(
        self,
        document_id: uuid.UUID,
        content: str,
        expected_version: int,
        actor_id: uuid.UUID,
        *,
        workspace_id: uuid.UUID | None = None,
    ) -> SaveOutcome:
        """Compare-and-swap write. Raises NotFoundError or ConflictError."""

        async def _content(_db: AsyncSession) -> str:
            return content

        return await self.write(
            document_id,
            expected_version,
            actor_id,
            _content,
            action=AuditAction.DOCUMENT_UPDATED,
            metadata={"content_length": len(content)},
            workspace_id=workspace_id,
        )

    async def write(
        self,
        document_id: uuid.UUID,
        expected_version: int,
        actor_id: uuid.UUID,
        source: ContentSource,
        action: AuditAction,
        metadata: dict[str, Any] | None = None,
        *,
        workspace_id: uuid.UUID | None = None,
    ) -> SaveOutcome:
        """Run one atomic write whose payload is resolved inside the transaction.

        ``source`` may read from the same session (restore uses it to load the
        target revision) and may raise NotFoundError to abort.
        """
        if expected_version < 1:
            raise ValueError("expected_version must be a positive integer")

        now = utcnow()
        async with self._session_factory() as db:
            try:
                async with db.begin():
                    content = await source(db)
                    new_version = await self._advance(
                        db, document_id, content, expected_version, actor_id, now, workspace_id
                    )
                    owner = (
                        await db.execute(
                            select(Document.video_id, Document.kind).where(
                                Document.id == document_id
                            )
                        )
                    ).one()
                    await store.append_revision(
                        db, document_id, new_version, content, actor_id, created_at=now
                    )
            except ConflictError as exc:
                logger.info(
                    "document.conflict",
                    document_id=str(document_id),
                    expected_version=expected_version,
                    current_version=exc.current_version,
                    actor_id=str(actor_id),
                )
                raise

        logger.info(
            "document.saved",
            document_id=str(document_id),
            action=action.value,
            version=new_version,
            actor_id=str(actor_id),
        )
        self._emit(
            action,
            actor_id,
            document_id,
            expected_version,
            new_version,
            now,
            {"video_id": str(owner.video_id), "kind": owner.kind.value, **(metadata or {})},
        )
        return SaveOutcome(
            document_id=document_id,
            version=new_version,
            previous_version=expected_version,
            saved_at=now,
        )

    # ── Internals ─────────────────────────────────────────────────────────────

    async def _insert(
        self,
        db: AsyncSession,
        workspace_id: uuid.UUID,
        video_id: uuid.UUID,
        kind: DocumentKind,
        actor_id: uuid.UUID,
        content: str,
        now: datetime,
    ) -> Document:
        doc = Document(
            workspace_id=workspace_id,
            video_id=video_id,
            kind=kind,
            content=content,
            version=1,
            created_at=now,
            updated_at=now,
            updated_by=actor_id,
        )
        db.add(doc)
        await db.flush()
        await store.append_revision(db, doc.id, 1, content, actor_id, created_at=now)
        return doc

    async def _advance(
        self,
        db: AsyncSession,
        document_id: uuid.UUID,
        content: str,
        expected_version: int,
        actor_id: uuid.UUID,
        now: datetime,
        workspace_id: uuid.UUID | None,
    ) -> int:
        stmt = update(Document).where(
            Document.id == document_id, Document.version == expected_version
        )
        result = await db.execute(
            _scoped(stmt, workspace_id)
            .values(
                content=content,
                version=Document.version + 1,
                updated_at=now,
                updated_by=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return expected_version + 1

        current = select(Document.version, Document.content).where(Document.id == document_id)
        row = (await db.execute(_scoped(current, workspace_id))).one_or_none()
        if row is None:
            raise NotFoundError("document", document_id)
        raise ConflictError(
            document_id=document_id,
            expected_version=expected_version,
            current_version=row.version,
            content_preview=store.content_preview(row.content),
        )

    def _emit(
        self,
        action: AuditAction,
        actor_id: uuid.UUID,
        document_id: uuid.UUID,
        old_version: int | None,
        new_version: int,
        timestamp: datetime,
        metadata: dict[str, Any] | None,
    ) -> None:
        if self._audit is None:
            return
        self._audit.emit(
            AuditEvent(
                action=action,
                actor_id=actor_id,
                document_id=document_id,
                old_version=old_version,
                new_version=new_version,
                timestamp=timestamp,
                metadata=metadata or {},
            )
        )

"""Versioned documents and their append-only revision history."""

import uuid

from sqlalchemy import Enum, ForeignKey, Index, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from contentplan.models.base import MutableModel, TimestampedModel
from contentplan.models.enums import DocumentKind


class Document(MutableModel):
    """One editable artifact of a video.

    ``version`` only ever moves through the version gate's conditional
    update; it always equals the version of the newest revision.
    """

    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("video_id", "kind", name="uq_documents_video_kind"),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    video_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    kind: Mapped[DocumentKind] = mapped_column(
        Enum(
            DocumentKind,
            name="document_kind",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, kind={self.kind.value}, v={self.version})>"


class DocumentRevision(TimestampedModel):
    """Write-once snapshot of a document at one version."""

    __tablename__ = "document_revisions"
    __table_args__ = (
        UniqueConstraint("document_id", "version", name="uq_document_revisions_doc_version"),
        Index("ix_document_revisions_document_id", "document_id"),
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<DocumentRevision(id={self.id}, document_id={self.document_id}, "
            f"v={self.version})>"
        )

"""SQLAlchemy models package; import all models so Base.metadata is populated."""

from contentplan.models.base import ModelMixin, MutableModel, TimestampedModel
from contentplan.models.enums import AuditAction, DocumentKind, WorkspaceRole

from contentplan.models.audit import AuditLog
from contentplan.models.documents import Document, DocumentRevision

__all__ = [
    "AuditAction",
    "AuditLog",
    "Document",
    "DocumentKind",
    "DocumentRevision",
    "ModelMixin",
    "MutableModel",
    "TimestampedModel",
    "WorkspaceRole",
]

"""Enums shared by models, schemas and auth."""

import enum


class DocumentKind(str, enum.Enum):
    SCRIPT = "script"
    DESCRIPTION = "description"
    NOTES = "notes"
    THUMBNAIL_IDEAS = "thumbnail_ideas"


class WorkspaceRole(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class AuditAction(str, enum.Enum):
    DOCUMENT_CREATED = "document.created"
    DOCUMENT_UPDATED = "document.updated"
    DOCUMENT_REVISION_RESTORED = "document.revision_restored"

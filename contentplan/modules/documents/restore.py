"""Restore: promote a historical revision to a brand-new head version.

History is never rewritten: restoring version 3 of a document at version 10
writes version 11 with version 3's content, and 4..10 stay queryable.
"""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from contentplan.core.errors import NotFoundError
from contentplan.models.enums import AuditAction
from contentplan.modules.documents.gate import SaveOutcome, VersionGate
from contentplan.modules.revisions import store


async def restore_revision(
    gate: VersionGate,
    document_id: uuid.UUID,
    target_version: int,
    expected_version: int,
    actor_id: uuid.UUID,
    *,
    workspace_id: uuid.UUID | None = None,
) -> SaveOutcome:
    """Write revision ``target_version``'s content as the next version.

    Uses the same compare-and-swap as a regular save, guarded by
    ``expected_version``. Raises NotFoundError (document or revision) or
    ConflictError. With ``workspace_id``, a document outside that workspace
    is not found.
    """

    async def _target_content(db: AsyncSession) -> str:
        try:
            revision = await store.get_revision(db, document_id, target_version)
        except NotFoundError:
            # Report the missing document rather than the missing revision
            await store.ensure_document(db, document_id, workspace_id)
            raise
        return revision.content

    return await gate.write(
        document_id,
        expected_version,
        actor_id,
        _target_content,
        action=AuditAction.DOCUMENT_REVISION_RESTORED,
        metadata={"restored_from": target_version},
        workspace_id=workspace_id,
    )

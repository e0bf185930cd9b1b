"""Restoring an old revision writes a new head version and keeps history."""

import uuid

import pytest

from contentplan.core.errors import ConflictError, NotFoundError
from contentplan.models.enums import AuditAction
from contentplan.modules.documents.restore import restore_revision
from contentplan.modules.revisions import store
from tests.conftest import EDITOR_ID, OTHER_EDITOR_ID, VIDEO_ID

pytestmark = pytest.mark.anyio


@pytest.fixture
async def ten_versions(gate, document):
    for n in range(2, 11):
        await gate.save(document.id, f"script v{n}", n - 1, EDITOR_ID)
    return document


async def test_restore_creates_new_version_with_old_content(gate, ten_versions, session_factory):
    outcome = await restore_revision(gate, ten_versions.id, 3, 10, EDITOR_ID)

    assert outcome.version == 11
    assert outcome.previous_version == 10
    state = await gate.read(ten_versions.id)
    assert state.version == 11
    assert state.content == "script v3"

    async with session_factory() as db:
        history = await store.list_revisions(db, ten_versions.id).to_list()
        v5 = await store.get_revision(db, ten_versions.id, 5)
        v11 = await store.get_revision(db, ten_versions.id, 11)
    assert [e.version for e in history] == list(range(11, 0, -1))
    assert v5.content == "script v5"
    assert v11.content == "script v3"


async def test_restore_with_stale_version_conflicts(gate, ten_versions, session_factory):
    with pytest.raises(ConflictError) as exc_info:
        await restore_revision(gate, ten_versions.id, 3, 9, OTHER_EDITOR_ID)

    assert exc_info.value.current_version == 10
    assert (await gate.read(ten_versions.id)).version == 10
    async with session_factory() as db:
        assert await store.latest_version(db, ten_versions.id) == 10


async def test_restore_current_version_still_advances(gate, document):
    outcome = await restore_revision(gate, document.id, 1, 1, EDITOR_ID)

    assert outcome.version == 2
    assert (await gate.read(document.id)).content == "Cold open: v1"


async def test_restore_unknown_revision(gate, document):
    with pytest.raises(NotFoundError) as exc_info:
        await restore_revision(gate, document.id, 42, 1, EDITOR_ID)

    assert exc_info.value.entity == "revision"
    assert (await gate.read(document.id)).version == 1


async def test_restore_unknown_document(gate):
    with pytest.raises(NotFoundError) as exc_info:
        await restore_revision(gate, uuid.uuid4(), 1, 1, EDITOR_ID)
    assert exc_info.value.entity == "document"


async def test_restore_emits_restored_audit_event(gate, document, audit_emitter, audit_sink):
    await gate.save(document.id, "v2", 1, EDITOR_ID)
    await restore_revision(gate, document.id, 1, 2, OTHER_EDITOR_ID)
    await audit_emitter.drain()

    restored = [e for e in audit_sink.events if e.action is AuditAction.DOCUMENT_REVISION_RESTORED]
    assert len(restored) == 1
    assert restored[0].actor_id == OTHER_EDITOR_ID
    assert restored[0].old_version == 2
    assert restored[0].new_version == 3
    assert restored[0].metadata == {
        "video_id": str(VIDEO_ID),
        "kind": "script",
        "restored_from": 1,
    }


async def test_restore_from_another_workspace_is_not_found(gate, document):
    await gate.save(document.id, "v2", 1, EDITOR_ID)
    foreign = uuid.UUID("00000000-0000-0000-0000-0000000000aa")

    for target in (1, 42):
        with pytest.raises(NotFoundError) as exc_info:
            await restore_revision(
                gate, document.id, target, 2, OTHER_EDITOR_ID, workspace_id=foreign
            )
        assert exc_info.value.entity == "document"

    state = await gate.read(document.id)
    assert state.version == 2
    assert state.content == "v2"

"""HTTP API tests for documents and revision history."""

import uuid

import httpx
import pytest
from httpx import AsyncClient

from contentplan.auth.tokens import create_access_token
from contentplan.client import DocumentsClient
from contentplan.core.errors import ConflictError, NotFoundError
from contentplan.models.enums import DocumentKind, WorkspaceRole
from contentplan.modules.documents.protocol import EditingSession, Resolution, SessionState
from tests.conftest import (
    ADMIN_ID,
    EDITOR_ID,
    OTHER_EDITOR_ID,
    VIDEO_ID,
    VIEWER_ID,
    WORKSPACE_ID,
    auth_headers,
)

pytestmark = pytest.mark.anyio

MISSING_ID = uuid.UUID("00000000-0000-0000-0000-0000000000ff")


async def _save(client: AsyncClient, document_id, content: str, expected: int):
    return await client.put(
        f"/v1/documents/{document_id}",
        json={"content": content, "expected_version": expected},
    )


# ── documents ────────────────────────────────────────────────────────────────


async def test_create_document(editor_client):
    resp = await editor_client.post(
        "/v1/documents",
        json={"video_id": str(VIDEO_ID), "kind": "notes", "content": "B-roll list"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["version"] == 1
    assert body["kind"] == "notes"
    assert body["content"] == "B-roll list"
    assert body["updated_by"] == str(EDITOR_ID)


async def test_create_duplicate_returns_409(editor_client, document):
    resp = await editor_client.post(
        "/v1/documents", json={"video_id": str(VIDEO_ID), "kind": "script"}
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "document_exists"


async def test_get_document(editor_client, document):
    resp = await editor_client.get(f"/v1/documents/{document.id}")
    assert resp.status_code == 200
    assert resp.json()["content"] == "Cold open: v1"
    assert resp.headers["X-API-Version"] == "v1"


async def test_get_missing_document_returns_404(editor_client):
    resp = await editor_client.get(f"/v1/documents/{MISSING_ID}")
    assert resp.status_code == 404
    body = resp.json()
    assert body["error"] == "not_found"
    assert body["detail"]["entity"] == "document"


async def test_save_document(editor_client, document):
    resp = await _save(editor_client, document.id, "Cold open: v2", 1)
    assert resp.status_code == 200
    body = resp.json()
    assert body["version"] == 2
    assert body["previous_version"] == 1


async def test_stale_save_returns_conflict_payload(editor_client, document):
    await _save(editor_client, document.id, "Alice's edit", 1)

    resp = await _save(editor_client, document.id, "Bob's edit", 1)

    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "version_conflict"
    assert body["detail"] == {
        "current_version": 2,
        "expected_version": 1,
        "content_preview": "Alice's edit",
    }


async def test_save_over_size_limit_is_rejected(editor_client, document):
    resp = await _save(editor_client, document.id, "a" * 512_001, 1)
    assert resp.status_code == 422
    assert (await editor_client.get(f"/v1/documents/{document.id}")).json()["version"] == 1


async def test_save_requires_positive_expected_version(editor_client, document):
    resp = await _save(editor_client, document.id, "x", 0)
    assert resp.status_code == 422


async def test_viewer_cannot_save(client, document):
    client.headers.update(auth_headers(VIEWER_ID, WorkspaceRole.VIEWER))

    assert (await client.get(f"/v1/documents/{document.id}")).status_code == 200
    resp = await _save(client, document.id, "viewer edit", 1)
    assert resp.status_code == 403


async def test_missing_token_is_rejected(client, document):
    resp = await client.get(f"/v1/documents/{document.id}")
    assert resp.status_code in (401, 403)


async def test_garbage_token_returns_401(client, document):
    client.headers["Authorization"] = "Bearer not-a-jwt"
    resp = await client.get(f"/v1/documents/{document.id}")
    assert resp.status_code == 401


# ── videos ───────────────────────────────────────────────────────────────────


async def test_ensure_and_list_video_documents(editor_client, document):
    resp = await editor_client.post(f"/v1/videos/{VIDEO_ID}/documents")
    assert resp.status_code == 200
    assert resp.json()["total"] == len(DocumentKind)

    resp = await editor_client.get(f"/v1/videos/{VIDEO_ID}/documents")
    kinds = {item["kind"] for item in resp.json()["items"]}
    assert kinds == {k.value for k in DocumentKind}

    resp = await editor_client.get(f"/v1/videos/{VIDEO_ID}/documents/script")
    assert resp.json()["id"] == str(document.id)


async def test_purge_requires_admin(client, document):
    client.headers.update(auth_headers(EDITOR_ID, WorkspaceRole.EDITOR))
    assert (await client.delete(f"/v1/videos/{VIDEO_ID}/documents")).status_code == 403

    client.headers.update(auth_headers(ADMIN_ID, WorkspaceRole.ADMIN))
    assert (await client.delete(f"/v1/videos/{VIDEO_ID}/documents")).status_code == 204
    assert (await client.get(f"/v1/documents/{document.id}")).status_code == 404


# ── revisions ────────────────────────────────────────────────────────────────


async def test_list_revisions_paginates_newest_first(editor_client, document):
    for n in range(2, 6):
        await _save(editor_client, document.id, f"v{n}", n - 1)

    resp = await editor_client.get(f"/v1/documents/{document.id}/revisions", params={"limit": 3})
    assert resp.status_code == 200
    page = resp.json()
    assert [item["version"] for item in page["items"]] == [5, 4, 3]
    assert page["items"][0]["content_preview"] == "v5"
    assert "content" not in page["items"][0]
    assert page["next_before_version"] == 3

    resp = await editor_client.get(
        f"/v1/documents/{document.id}/revisions",
        params={"limit": 3, "before_version": page["next_before_version"]},
    )
    page = resp.json()
    assert [item["version"] for item in page["items"]] == [2, 1]
    assert page["next_before_version"] is None


async def test_list_revisions_limit_bounds(editor_client, document):
    url = f"/v1/documents/{document.id}/revisions"
    assert (await editor_client.get(url, params={"limit": 0})).status_code == 422
    assert (await editor_client.get(url, params={"limit": 101})).status_code == 422
    assert (await editor_client.get(url, params={"limit": 100})).status_code == 200


async def test_list_revisions_for_missing_document_returns_404(editor_client):
    resp = await editor_client.get(f"/v1/documents/{MISSING_ID}/revisions")
    assert resp.status_code == 404


async def test_get_revision(editor_client, document):
    await _save(editor_client, document.id, "v2", 1)

    resp = await editor_client.get(f"/v1/documents/{document.id}/revisions/1")
    assert resp.status_code == 200
    assert resp.json()["content"] == "Cold open: v1"

    resp = await editor_client.get(f"/v1/documents/{document.id}/revisions/9")
    assert resp.status_code == 404
    assert resp.json()["detail"]["entity"] == "revision"


async def test_restore_revision(editor_client, document):
    await _save(editor_client, document.id, "v2", 1)

    resp = await editor_client.post(
        f"/v1/documents/{document.id}/revisions/1/restore", json={"expected_version": 2}
    )
    assert resp.status_code == 200
    assert resp.json()["version"] == 3

    current = (await editor_client.get(f"/v1/documents/{document.id}")).json()
    assert current["content"] == "Cold open: v1"

    resp = await editor_client.post(
        f"/v1/documents/{document.id}/revisions/1/restore", json={"expected_version": 2}
    )
    assert resp.status_code == 409
    assert resp.json()["detail"]["current_version"] == 3


# ── client ───────────────────────────────────────────────────────────────────


async def test_client_maps_errors(editor_client, document):
    api = DocumentsClient(editor_client)

    with pytest.raises(NotFoundError):
        await api.read(MISSING_ID)

    await api.save(document.id, "v2", 1)
    with pytest.raises(ConflictError) as exc_info:
        await api.save(document.id, "stale", 1)
    assert exc_info.value.current_version == 2
    assert exc_info.value.content_preview == "v2"


async def test_editing_session_over_http(editor_client, document):
    api = DocumentsClient(editor_client)
    session = await EditingSession.open(api, document.id)

    # Another editor saves first
    await api.save(document.id, "Someone else's edit", 1)

    session.edit("My edit")
    assert await session.save() is SessionState.CONFLICTED
    assert await session.resolve(Resolution.FORCE_SAVE) is SessionState.SAVED

    history = await api.list_revisions(document.id)
    assert [item.version for item in history.items] == [3, 2, 1]
    assert (await api.get_revision(document.id, 2)).content == "Someone else's edit"
    assert (await api.read(document.id)).content == "My edit"

    restored = await api.restore(document.id, 2, 3)
    assert restored.version == 4


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["service"] == "contentplan-api"


# ── workspace isolation ──────────────────────────────────────────────────────

FOREIGN_WORKSPACE_ID = uuid.UUID("00000000-0000-0000-0000-0000000000aa")


async def test_other_workspace_cannot_reach_document(client, document):
    token = create_access_token(OTHER_EDITOR_ID, FOREIGN_WORKSPACE_ID, WorkspaceRole.OWNER)
    client.headers["Authorization"] = f"Bearer {token}"
    base = f"/v1/documents/{document.id}"

    assert (await client.get(base)).status_code == 404
    assert (await _save(client, document.id, "hijack", 1)).status_code == 404
    assert (await client.get(f"{base}/revisions")).status_code == 404
    assert (await client.get(f"{base}/revisions/1")).status_code == 404
    resp = await client.post(f"{base}/revisions/1/restore", json={"expected_version": 1})
    assert resp.status_code == 404
    assert (await client.get(f"/v1/videos/{VIDEO_ID}/documents/script")).status_code == 404
    assert (await client.get(f"/v1/videos/{VIDEO_ID}/documents")).json()["total"] == 0
    assert (await client.delete(f"/v1/videos/{VIDEO_ID}/documents")).status_code == 204

    client.headers.update(auth_headers(EDITOR_ID, WorkspaceRole.EDITOR))
    resp = await client.get(base)
    assert resp.status_code == 200
    assert resp.json()["version"] == 1
    assert resp.json()["content"] == "Cold open: v1"
    assert resp.json()["workspace_id"] == str(WORKSPACE_ID)


async def test_created_document_belongs_to_callers_workspace(editor_client):
    resp = await editor_client.post(
        "/v1/documents", json={"video_id": str(VIDEO_ID), "kind": "description"}
    )
    assert resp.json()["workspace_id"] == str(WORKSPACE_ID)


async def test_client_routing_404_is_an_http_error(editor_client, document):
    api = DocumentsClient(editor_client, prefix="/v2")

    with pytest.raises(httpx.HTTPStatusError) as exc_info:
        await api.read(document.id)
    assert exc_info.value.response.status_code == 404

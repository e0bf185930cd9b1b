"""Async HTTP client for the documents API.

Implements the gateway used by ``EditingSession`` so the conflict
resolution protocol runs the same way against a remote server as against
an in-process ``VersionGate``.
"""

from __future__ import annotations

import uuid

import httpx
import structlog

from contentplan.core.errors import ConflictError, NotFoundError
from contentplan.modules.documents.schemas import ConflictDetail, DocumentResponse, SaveResponse
from contentplan.modules.revisions.schemas import RevisionListResponse, RevisionResponse

logger = structlog.get_logger()

_DEFAULT_TIMEOUT = 30.0


class DocumentsClient:
    def __init__(self, http: httpx.AsyncClient, prefix: str = "/v1") -> None:
        self._http = http
        self._prefix = prefix.rstrip("/")

    @classmethod
    def connect(cls, base_url: str, token: str, timeout: float = _DEFAULT_TIMEOUT) -> DocumentsClient:
        http = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
        )
        return cls(http)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> DocumentsClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ── Documents ─────────────────────────────────────────────────────────────

    async def read(self, document_id: uuid.UUID) -> DocumentResponse:
        resp = await self._http.get(f"{self._prefix}/documents/{document_id}")
        self._raise_for_error(resp, document_id)
        return DocumentResponse.model_validate(resp.json())

    async def save(
        self, document_id: uuid.UUID, content: str, expected_version: int
    ) -> SaveResponse:
        resp = await self._http.put(
            f"{self._prefix}/documents/{document_id}",
            json={"content": content, "expected_version": expected_version},
        )
        self._raise_for_error(resp, document_id)
        return SaveResponse.model_validate(resp.json())

    # ── Revisions ─────────────────────────────────────────────────────────────

    async def list_revisions(
        self,
        document_id: uuid.UUID,
        limit: int | None = None,
        before_version: int | None = None,
    ) -> RevisionListResponse:
        params: dict[str, int] = {}
        if limit is not None:
            params["limit"] = limit
        if before_version is not None:
            params["before_version"] = before_version
        resp = await self._http.get(
            f"{self._prefix}/documents/{document_id}/revisions", params=params
        )
        self._raise_for_error(resp, document_id)
        return RevisionListResponse.model_validate(resp.json())

    async def get_revision(self, document_id: uuid.UUID, version: int) -> RevisionResponse:
        resp = await self._http.get(f"{self._prefix}/documents/{document_id}/revisions/{version}")
        self._raise_for_error(resp, document_id)
        return RevisionResponse.model_validate(resp.json())

    async def restore(
        self, document_id: uuid.UUID, target_version: int, expected_version: int
    ) -> SaveResponse:
        resp = await self._http.post(
            f"{self._prefix}/documents/{document_id}/revisions/{target_version}/restore",
            json={"expected_version": expected_version},
        )
        self._raise_for_error(resp, document_id)
        return SaveResponse.model_validate(resp.json())

    # ── Errors ────────────────────────────────────────────────────────────────

    @staticmethod
    def _raise_for_error(resp: httpx.Response, document_id: uuid.UUID) -> None:
        if resp.status_code not in (404, 409):
            resp.raise_for_status()
            return
        try:
            body = resp.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            resp.raise_for_status()
        detail = body.get("detail")
        if resp.status_code == 404:
            if body.get("error") != "not_found" or not isinstance(detail, dict):
                # Routing 404 (wrong prefix, proxy), not a missing entity
                resp.raise_for_status()
            raise NotFoundError(detail.get("entity", "document"), detail.get("id", document_id))
        if body.get("error") == "version_conflict":
            conflict = ConflictDetail.model_validate(detail)
            logger.info(
                "documents_client.conflict",
                document_id=str(document_id),
                current_version=conflict.current_version,
            )
            raise ConflictError(
                document_id=document_id,
                expected_version=conflict.expected_version,
                current_version=conflict.current_version,
                content_preview=conflict.content_preview,
            )
        resp.raise_for_status()

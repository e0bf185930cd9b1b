"""Conflict resolution protocol for a single editor.

An ``EditingSession`` holds the editor's draft and the version it was based
on. A rejected save moves it to ``CONFLICTED``; from there the human picks
one of two outcomes and nothing is retried automatically:

* reload-and-discard: take the server's content, drop the local draft
* force-save: write the local draft on top of the server's current version,
  leaving the other editor's work in history as the previous revision
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from typing import Protocol

import structlog

from contentplan.core.errors import ConflictError
from contentplan.modules.documents.gate import VersionGate

logger = structlog.get_logger()


class Snapshot(Protocol):
    content: str
    version: int


class Saved(Protocol):
    version: int


class DocumentGateway(Protocol):
    """What an editing session needs from the server (in-process or HTTP)."""

    async def read(self, document_id: uuid.UUID) -> Snapshot: ...

    async def save(
        self, document_id: uuid.UUID, content: str, expected_version: int
    ) -> Saved: ...


class GateGateway:
    """Binds an in-process VersionGate to the acting user and their workspace."""

    def __init__(
        self,
        gate: VersionGate,
        actor_id: uuid.UUID,
        workspace_id: uuid.UUID | None = None,
    ) -> None:
        self._gate = gate
        self._actor_id = actor_id
        self._workspace_id = workspace_id

    async def read(self, document_id: uuid.UUID) -> Snapshot:
        return await self._gate.read(document_id, workspace_id=self._workspace_id)

    async def save(self, document_id: uuid.UUID, content: str, expected_version: int) -> Saved:
        return await self._gate.save(
            document_id, content, expected_version, self._actor_id, workspace_id=self._workspace_id
        )


class SessionState(str, enum.Enum):
    EDITING = "editing"
    CONFLICTED = "conflicted"
    SAVED = "saved"


class Resolution(str, enum.Enum):
    RELOAD_AND_DISCARD = "reload_and_discard"
    FORCE_SAVE = "force_save"


@dataclass(frozen=True)
class ResolutionOption:
    resolution: Resolution
    label: str
    description: str


class InvalidTransitionError(RuntimeError):
    pass


class EditingSession:
    def __init__(
        self,
        gateway: DocumentGateway,
        document_id: uuid.UUID,
        content: str,
        version: int,
    ) -> None:
        self._gateway = gateway
        self.document_id = document_id
        self.draft = content
        self.expected_version = version
        self.state = SessionState.EDITING
        self.conflict: ConflictError | None = None
        self.saved_version: int | None = None

    @classmethod
    async def open(cls, gateway: DocumentGateway, document_id: uuid.UUID) -> EditingSession:
        snapshot = await gateway.read(document_id)
        return cls(gateway, document_id, snapshot.content, snapshot.version)

    def _require(self, state: SessionState, operation: str) -> None:
        if self.state is not state:
            raise InvalidTransitionError(
                f"Cannot {operation} while {self.state.value} (requires {state.value})"
            )

    def _pending_conflict(self, operation: str) -> ConflictError:
        self._require(SessionState.CONFLICTED, operation)
        if self.conflict is None:
            raise InvalidTransitionError(f"Cannot {operation}: no conflict recorded")
        return self.conflict

    def edit(self, content: str) -> None:
        self._require(SessionState.EDITING, "edit")
        self.draft = content

    async def save(self) -> SessionState:
        self._require(SessionState.EDITING, "save")
        return await self._attempt(self.expected_version)

    async def reload_and_discard(self) -> SessionState:
        """Replace the draft with the server's current content."""
        self._require(SessionState.CONFLICTED, "reload")
        snapshot = await self._gateway.read(self.document_id)
        logger.info(
            "editing_session.discarded",
            document_id=str(self.document_id),
            discarded_base_version=self.expected_version,
            reloaded_version=snapshot.version,
        )
        self.draft = snapshot.content
        self.expected_version = snapshot.version
        self.conflict = None
        self.state = SessionState.EDITING
        return self.state

    async def force_save(self) -> SessionState:
        """Save the local draft as a new version on top of the current one."""
        conflict = self._pending_conflict("force save")
        return await self._attempt(conflict.current_version)

    def resolution_options(self) -> list[ResolutionOption]:
        current = self._pending_conflict("list resolutions").current_version
        return [
            ResolutionOption(
                resolution=Resolution.RELOAD_AND_DISCARD,
                label="Reload and discard my changes",
                description=(
                    f"Load version {current} saved by the other editor. "
                    "Your unsaved changes will be lost; their work is kept as is."
                ),
            ),
            ResolutionOption(
                resolution=Resolution.FORCE_SAVE,
                label="Save my version anyway",
                description=(
                    f"Save your draft as version {current + 1}. The other editor's "
                    f"version {current} is replaced as the current content but stays "
                    "in the revision history and can be restored."
                ),
            ),
        ]

    async def resolve(self, resolution: Resolution) -> SessionState:
        if resolution is Resolution.RELOAD_AND_DISCARD:
            return await self.reload_and_discard()
        return await self.force_save()

    async def _attempt(self, expected_version: int) -> SessionState:
        try:
            outcome = await self._gateway.save(self.document_id, self.draft, expected_version)
        except ConflictError as exc:
            self.conflict = exc
            self.expected_version = expected_version
            self.state = SessionState.CONFLICTED
            return self.state
        self.saved_version = outcome.version
        self.expected_version = outcome.version
        self.conflict = None
        self.state = SessionState.SAVED
        return self.state

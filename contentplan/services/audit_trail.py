"""Audit trail emitter.

Accepted writes are reported here after their transaction commits. Delivery
runs as a fire-and-forget task with its own DB session, so a failing sink can
never roll back or delay a save.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from contentplan.models.audit import AuditLog
from contentplan.models.enums import AuditAction

logger = structlog.get_logger()


@dataclass(frozen=True)
class AuditEvent:
    action: AuditAction
    actor_id: uuid.UUID | None
    document_id: uuid.UUID
    old_version: int | None
    new_version: int
    timestamp: datetime
    metadata: dict[str, Any] = field(default_factory=dict)

    def changes(self) -> dict[str, Any]:
        return {
            "old_version": self.old_version,
            "new_version": self.new_version,
            **self.metadata,
        }


class AuditSink(Protocol):
    async def write(self, event: AuditEvent) -> None: ...


class DatabaseAuditSink:
    """Persists events to audit_logs in a session of its own."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def write(self, event: AuditEvent) -> None:
        async with self._session_factory() as db:
            db.add(
                AuditLog(
                    actor_id=event.actor_id,
                    action=event.action.value,
                    entity_type="document",
                    entity_id=event.document_id,
                    changes=event.changes(),
                    timestamp=event.timestamp,
                )
            )
            await db.commit()


class AuditTrailEmitter:
    def __init__(self, sink: AuditSink) -> None:
        self._sink = sink
        self._pending: set[asyncio.Task[None]] = set()

    def emit(self, event: AuditEvent) -> None:
        """Schedule delivery and return immediately."""
        task = asyncio.create_task(self._deliver(event))
        # Keep a strong reference until the task finishes
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, event: AuditEvent) -> None:
        try:
            await self._sink.write(event)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "audit.emit_failed",
                action=event.action.value,
                document_id=str(event.document_id),
                new_version=event.new_version,
                error=str(exc),
            )

    async def drain(self) -> None:
        """Wait for every scheduled delivery (shutdown, tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    @property
    def pending(self) -> int:
        return len(self._pending)

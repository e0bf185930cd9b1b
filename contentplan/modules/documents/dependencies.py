"""Process-wide version gate wired to the primary database and the audit log."""

from contentplan.core.database import async_session_factory
from contentplan.modules.documents.gate import VersionGate
from contentplan.services.audit_trail import AuditTrailEmitter, DatabaseAuditSink

audit_emitter = AuditTrailEmitter(DatabaseAuditSink(async_session_factory))

version_gate = VersionGate(async_session_factory, audit_emitter)


def get_version_gate() -> VersionGate:
    return version_gate

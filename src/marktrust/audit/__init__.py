"""Audit sinks and event construction."""

from marktrust.audit.events import (
    ADMIN_ADJUSTMENT,
    SCORE_CALCULATED,
    TRUST_SCORE_RESOURCE,
    build_trust_score_event,
)
from marktrust.audit.sink import (
    AUDIT_LOG_PATH_ENV,
    DEFAULT_AUDIT_LOG_PATH,
    AuditSink,
    AuditSinkError,
    InMemoryAuditSink,
    JsonlFileAuditSink,
    get_audit_sink,
)

__all__ = [
    "ADMIN_ADJUSTMENT",
    "AUDIT_LOG_PATH_ENV",
    "DEFAULT_AUDIT_LOG_PATH",
    "SCORE_CALCULATED",
    "TRUST_SCORE_RESOURCE",
    "AuditSink",
    "AuditSinkError",
    "InMemoryAuditSink",
    "JsonlFileAuditSink",
    "build_trust_score_event",
    "get_audit_sink",
]

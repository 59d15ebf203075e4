"""Audit event sinks for the trust score engine.

Every sink implements the AuditSink protocol. Sinks are append-only and
raise AuditSinkError on any failure; callers in the engine log and
swallow that error so a broken sink never blocks a score update.

Serialization is deterministic: sorted keys, no extra whitespace.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

AUDIT_LOG_PATH_ENV = "MARKTRUST_AUDIT_LOG_PATH"
DEFAULT_AUDIT_LOG_PATH = "./var/audit/audit_events.jsonl"


class AuditSinkError(Exception):
    """Raised when audit event emission fails."""


@runtime_checkable
class AuditSink(Protocol):
    """Protocol for audit event sinks."""

    def emit(self, event: dict[str, Any]) -> None:
        """Emit an audit event to the sink.

        Args:
            event: Audit event dict (see marktrust.audit.events)

        Raises:
            AuditSinkError: If emission fails for any reason
        """
        ...


def _serialize(event: dict[str, Any]) -> str:
    try:
        return json.dumps(event, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise AuditSinkError(f"Failed to serialize audit event: {e}") from e


class JsonlFileAuditSink:
    """Append-only JSONL file sink.

    The path comes from MARKTRUST_AUDIT_LOG_PATH, falling back to
    ./var/audit/audit_events.jsonl. Parent directories are created on
    first write. Existing content is never truncated.
    """

    def __init__(self, file_path: str | None = None) -> None:
        """Initialize the JSONL file sink.

        Args:
            file_path: Override path for the audit log file.
        """
        if file_path is not None:
            self._file_path = Path(file_path)
        else:
            self._file_path = Path(os.environ.get(AUDIT_LOG_PATH_ENV) or DEFAULT_AUDIT_LOG_PATH)
        self._lock = threading.Lock()

    @property
    def file_path(self) -> Path:
        """Return the configured file path."""
        return self._file_path

    def _ensure_parent_directory(self) -> None:
        parent = self._file_path.parent
        if not parent.exists():
            try:
                parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise AuditSinkError(f"Failed to create audit log directory {parent}: {e}") from e

    def emit(self, event: dict[str, Any]) -> None:
        """Append one event as a single JSON line.

        Raises:
            AuditSinkError: If serialization or file write fails
        """
        line = _serialize(event) + "\n"
        self._ensure_parent_directory()

        with self._lock:
            try:
                with open(self._file_path, mode="a", encoding="utf-8") as f:
                    f.write(line)
            except OSError as e:
                raise AuditSinkError(
                    f"Failed to write audit event to {self._file_path}: {e}"
                ) from e


class InMemoryAuditSink:
    """In-memory audit sink for tests and offline scoring.

    Events are round-tripped through JSON so that anything a file sink
    would reject is rejected here as well.
    """

    def __init__(self) -> None:
        self._events: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def emit(self, event: dict[str, Any]) -> None:
        """Store the event in memory."""
        line = _serialize(event)
        with self._lock:
            self._events.append(json.loads(line))

    @property
    def events(self) -> list[dict[str, Any]]:
        """Return all emitted events."""
        with self._lock:
            return list(self._events)

    def events_of_type(self, event_type: str) -> list[dict[str, Any]]:
        """Return emitted events with the given event_type."""
        return [e for e in self.events if e.get("event_type") == event_type]

    def clear(self) -> None:
        """Clear all stored events."""
        with self._lock:
            self._events.clear()


def get_audit_sink() -> AuditSink:
    """Return the configured audit sink.

    Postgres when MARKTRUST_DATABASE_URL is set, JSONL file otherwise.
    """
    from marktrust.persistence.db import is_postgres_configured

    if is_postgres_configured():
        from marktrust.audit.postgres_sink import PostgresAuditSink

        return PostgresAuditSink()
    return JsonlFileAuditSink()

"""Postgres audit sink.

Rows go to audit_events, which rejects UPDATE and DELETE through a trigger.
The resource, entity and actor columns are lifted out of the event so score
audits can be queried without unpacking the JSONB body.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from marktrust.audit.sink import AuditSinkError, _serialize

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)

_INSERT_SQL = text(
    """
    INSERT INTO audit_events
    (event_id, occurred_at, event_type, resource_type, resource_id, actor_id, event)
    VALUES
    (:event_id, :occurred_at, :event_type, :resource_type, :resource_id, :actor_id,
     CAST(:event AS JSONB))
    """
)


def _event_row(event: dict[str, Any]) -> dict[str, Any]:
    """Map an audit event dict onto audit_events column parameters.

    Raises:
        AuditSinkError: If event_id, occurred_at or event_type is missing,
            or the event cannot be serialized.
    """
    missing = [k for k in ("event_id", "occurred_at", "event_type") if not event.get(k)]
    if missing:
        raise AuditSinkError(f"Audit event missing required fields: {', '.join(missing)}")

    occurred_at = event["occurred_at"]
    if isinstance(occurred_at, str):
        occurred_at = datetime.fromisoformat(occurred_at.replace("Z", "+00:00"))
    elif not isinstance(occurred_at, datetime):
        occurred_at = datetime.now(UTC)

    resource = event.get("resource") or {}
    actor = event.get("actor") or {}
    return {
        "event_id": event["event_id"],
        "occurred_at": occurred_at,
        "event_type": event["event_type"],
        "resource_type": resource.get("resource_type"),
        "resource_id": resource.get("resource_id"),
        "actor_id": actor.get("actor_id"),
        "event": _serialize(event),
    }


class PostgresAuditSink:
    """Append-only audit sink backed by the audit_events table.

    emit() opens its own app-role transaction. emit_in_tx() writes on the
    caller's connection so the audit row commits or rolls back together
    with the score change it records.
    """

    def emit(self, event: dict[str, Any]) -> None:
        """Insert one event in a fresh transaction.

        Raises:
            AuditSinkError: On a missing field, a database error or
                missing database configuration.
        """
        from marktrust.persistence.db import DatabaseConfigError, begin_app_conn

        row = _event_row(event)
        try:
            with begin_app_conn() as conn:
                conn.execute(_INSERT_SQL, row)
        except (SQLAlchemyError, DatabaseConfigError) as e:
            raise AuditSinkError(f"Failed to emit audit event {row['event_id']}: {e}") from e
        logger.debug("Emitted audit event %s (%s)", row["event_id"], row["event_type"])

    def emit_in_tx(self, conn: Connection, event: dict[str, Any]) -> None:
        """Insert one event on an existing connection.

        Raises:
            AuditSinkError: On a missing field or a database error.
        """
        row = _event_row(event)
        try:
            conn.execute(_INSERT_SQL, row)
        except SQLAlchemyError as e:
            raise AuditSinkError(
                f"Failed to emit audit event {row['event_id']} in transaction: {e}"
            ) from e
        logger.debug(
            "Emitted audit event %s (%s) in transaction", row["event_id"], row["event_type"]
        )

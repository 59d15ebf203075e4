"""Audit event construction for trust score operations."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

TRUST_SCORE_RESOURCE = "TRUST_SCORE"

SCORE_CALCULATED = "SCORE_CALCULATED"
ADMIN_ADJUSTMENT = "ADMIN_ADJUSTMENT"


def build_trust_score_event(
    *,
    action: str,
    entity_type: str,
    entity_id: str,
    actor_id: str,
    severity: str = "LOW",
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Build an audit event dict for an action on an entity's trust score.

    Args:
        action: SCORE_CALCULATED or ADMIN_ADJUSTMENT.
        entity_type: "project" or "business".
        entity_id: Entity whose score the action concerns.
        actor_id: User id of the owner (recompute) or admin (adjustment).
        severity: Audit severity label.
        details: Optional action-specific payload.
        request_id: Correlation id; generated when absent.
    """
    event: dict[str, Any] = {
        "event_id": str(uuid.uuid4()),
        "occurred_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "event_type": action,
        "severity": severity,
        "resource": {
            "resource_type": TRUST_SCORE_RESOURCE,
            "resource_id": entity_id,
            "entity_type": entity_type,
        },
        "actor": {
            "actor_type": "USER",
            "actor_id": actor_id,
        },
        "request": {
            "request_id": request_id or str(uuid.uuid4()),
            "method": "SERVICE",
            "path": f"/internal/trust-score/{entity_type}/{entity_id}",
        },
        "summary": f"{action} for {entity_type} {entity_id}",
        "payload": {
            "refs": [f"{entity_type}_id:{entity_id}"],
        },
    }
    if details:
        event["payload"]["details"] = details
    return event

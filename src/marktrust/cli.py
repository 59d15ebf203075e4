"""marktrust CLI - deterministic command-line access to the trust score engine.

Usage:
    marktrust tiers
    marktrust tier --score N
    marktrust score [--input PATH]

`score` reads an entity snapshot as JSON (from PATH or stdin) and scores
it offline against in-memory stores:

    {
        "entity": {"kind": "project", "id": "...", "user_id": "...", ...},
        "context": {
            "identity": {"user_id": "...", "status": "VERIFIED"},
            "documents": [{"document_id": "...", "doc_type": "audit", ...}],
            "founders": [{"founder_id": "...", "name": "...", ...}]
        },
        "ledger": [{"event_type": "PENALTY_APPLIED", "points": -15, "reason": "..."}]
    }

Exit codes:
    0: Success
    1: Internal error
    2: Invalid input
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import TypeAdapter, ValidationError

from marktrust.audit.sink import InMemoryAuditSink
from marktrust.models.entity import (
    BusinessFounder,
    EntityDocument,
    EntityType,
    IdentityVerification,
    ScoredEntity,
)
from marktrust.models.ledger_event import LedgerEvent
from marktrust.persistence.repositories import (
    clear_all_in_memory_stores,
    seed_document_in_memory,
    seed_entity_in_memory,
    seed_founder_in_memory,
    seed_identity_in_memory,
    seed_ledger_event_in_memory,
)
from marktrust.scoring.config import ScoringConfigError, load_scoring_config
from marktrust.scoring.tiers import get_tier_info, tier_table
from marktrust.services.trust_score.service import TrustScoreService

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_entity_adapter: TypeAdapter[Any] = TypeAdapter(ScoredEntity)


class InvalidInputError(Exception):
    """Raised when CLI input cannot be parsed into a snapshot."""


def _output_json(data: Any) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2))


def _error(code: str, message: str) -> dict[str, Any]:
    return {"error": {"code": code, "message": message}}


def _load_json_input(input_path: str | None) -> Any:
    """Load JSON from a file or stdin.

    Raises:
        InvalidInputError: If the input is missing, empty or not JSON.
    """
    try:
        if input_path:
            with open(input_path, encoding="utf-8") as f:
                content = f.read()
        else:
            content = sys.stdin.read()
    except FileNotFoundError as e:
        raise InvalidInputError(f"File not found: {input_path}") from e
    except OSError as e:
        raise InvalidInputError(f"Cannot read input: {e}") from e

    if not content.strip():
        raise InvalidInputError("Empty input")

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"Invalid JSON: {e}") from e


def _seed_snapshot(snapshot: Any) -> tuple[EntityType, str]:
    """Load a snapshot into the in-memory stores.

    Returns:
        (entity_type, entity_id) of the seeded entity.

    Raises:
        InvalidInputError: If the snapshot shape is wrong.
        ValidationError: If a record fails model validation.
    """
    if not isinstance(snapshot, dict) or not isinstance(snapshot.get("entity"), dict):
        raise InvalidInputError("Input must be an object with an 'entity' object")

    entity = _entity_adapter.validate_python(snapshot["entity"])
    entity_type = EntityType(entity.kind)
    seed_entity_in_memory(entity)

    context = snapshot.get("context") or {}
    if not isinstance(context, dict):
        raise InvalidInputError("'context' must be an object")

    identity = context.get("identity")
    if identity is not None:
        seed_identity_in_memory(
            IdentityVerification.model_validate({"user_id": entity.user_id, **identity})
        )

    for i, doc in enumerate(context.get("documents") or []):
        seed_document_in_memory(
            EntityDocument.model_validate(
                {
                    "document_id": f"doc-{i}",
                    "entity_type": entity_type,
                    "entity_id": entity.id,
                    **doc,
                }
            )
        )

    for i, founder in enumerate(context.get("founders") or []):
        seed_founder_in_memory(
            BusinessFounder.model_validate(
                {"founder_id": f"founder-{i}", "business_id": entity.id, **founder}
            )
        )

    now = datetime.now(UTC)
    for seq, raw in enumerate(snapshot.get("ledger") or [], start=1):
        seed_ledger_event_in_memory(
            LedgerEvent.model_validate(
                {
                    "event_id": str(uuid.uuid4()),
                    "seq": seq,
                    "entity_type": entity_type,
                    "entity_id": entity.id,
                    "created_at": now,
                    **raw,
                }
            )
        )

    return entity_type, entity.id


def cmd_tiers(args: argparse.Namespace) -> int:
    """Print the tier table."""
    _output_json({"tiers": [band.model_dump(mode="json") for band in tier_table()]})
    return 0


def cmd_tier(args: argparse.Namespace) -> int:
    """Print tier info for a score."""
    if not 0 <= args.score <= 100:
        _output_json(_error("INVALID_SCORE", f"Score must be within 0-100, got {args.score}"))
        return 2
    info = get_tier_info(args.score)
    _output_json({"score": args.score, **info.model_dump(mode="json")})
    return 0


def cmd_score(args: argparse.Namespace) -> int:
    """Score an entity snapshot offline."""
    try:
        snapshot = _load_json_input(args.input)
        config = load_scoring_config()
    except (InvalidInputError, ScoringConfigError) as e:
        _output_json(_error("INVALID_INPUT", str(e)))
        return 2

    clear_all_in_memory_stores()
    try:
        try:
            entity_type, entity_id = _seed_snapshot(snapshot)
        except (InvalidInputError, ValidationError, TypeError, ValueError) as e:
            _output_json(_error("INVALID_INPUT", str(e)))
            return 2

        service = TrustScoreService(audit_sink=InMemoryAuditSink(), config=config)
        result = service.get_score(entity_id, entity_type)
        _output_json(result.to_public_dict())
        return 0
    finally:
        clear_all_in_memory_stores()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="marktrust",
        description="MARK trust score engine CLI",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        help="Logging level written to stderr (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("tiers", help="Print the tier table")

    tier_parser = subparsers.add_parser("tier", help="Print the tier for a score")
    tier_parser.add_argument("--score", type=int, required=True, help="Score between 0 and 100")

    score_parser = subparsers.add_parser(
        "score",
        help="Score an entity snapshot offline",
    )
    score_parser.add_argument(
        "--input",
        required=False,
        default=None,
        metavar="PATH",
        help="Path to snapshot JSON (reads from stdin if omitted)",
    )

    return parser


COMMANDS = {
    "tiers": cmd_tiers,
    "tier": cmd_tier,
    "score": cmd_score,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success
        1: Internal error (unexpected)
        2: Invalid input
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return COMMANDS[args.command](args)
    except Exception as e:
        logger.debug("Unhandled CLI error", exc_info=True)
        _output_json(_error("INTERNAL_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())

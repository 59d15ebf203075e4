"""Programmatic schema migration without the alembic CLI."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import text

from marktrust.persistence.db import get_admin_engine

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def get_alembic_config() -> Config:
    """Create an Alembic config pointing at the migrations directory."""
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    return config


def get_current_revision(engine: Engine) -> str | None:
    """Return the revision currently applied to the database."""
    with engine.connect() as conn:
        ctx = MigrationContext.configure(conn)
        return ctx.get_current_revision()


def get_head_revision() -> str | None:
    """Return the head revision of the migration scripts."""
    script = ScriptDirectory.from_config(get_alembic_config())
    return script.get_current_head()


def run_upgrade(engine: Engine | None = None, revision: str = "head") -> None:
    """Upgrade the schema to the given revision (admin engine by default)."""
    if engine is None:
        engine = get_admin_engine()

    config = get_alembic_config()

    with engine.begin() as conn:
        config.attributes["connection"] = conn
        command.upgrade(config, revision)

    logger.info("Migrations upgraded to %s", revision)


def run_downgrade(engine: Engine | None = None, revision: str = "base") -> None:
    """Downgrade the schema to the given revision (admin engine by default)."""
    if engine is None:
        engine = get_admin_engine()

    config = get_alembic_config()

    with engine.begin() as conn:
        config.attributes["connection"] = conn
        command.downgrade(config, revision)

    logger.info("Migrations downgraded to %s", revision)


# The app role may update score columns but only append to the ledger and audit log.
_APP_ROLE_GRANTS = (
    "GRANT SELECT, INSERT, UPDATE ON crypto_projects, businesses TO {role}",
    "GRANT SELECT, INSERT ON business_founders, entity_documents, identity_verifications TO {role}",
    "GRANT SELECT, INSERT ON trust_score_events, audit_events TO {role}",
    "GRANT USAGE ON SEQUENCE trust_score_events_seq_seq TO {role}",
)


def grant_app_role(engine: Engine, role_name: str) -> None:
    """Grant the application role access to the migrated tables."""
    quoted = '"' + role_name.replace('"', '""') + '"'
    with engine.begin() as conn:
        for statement in _APP_ROLE_GRANTS:
            conn.execute(text(statement.format(role=quoted)))
    logger.info("Granted table access to role %s", role_name)

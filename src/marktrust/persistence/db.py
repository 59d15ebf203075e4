"""Postgres engines and transactional connections for the score stores.

Two roles are supported:

    MARKTRUST_DATABASE_URL: app role used by the service and repositories
    MARKTRUST_DATABASE_ADMIN_URL: owner role used for migrations and test setup

The repositories use in-memory stores whenever MARKTRUST_DATABASE_URL is
unset, so nothing here is imported eagerly by the engine.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import create_engine

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine

logger = logging.getLogger(__name__)

MARKTRUST_DATABASE_URL_ENV = "MARKTRUST_DATABASE_URL"
MARKTRUST_DATABASE_ADMIN_URL_ENV = "MARKTRUST_DATABASE_ADMIN_URL"

# role -> (env var, pool_size, max_overflow)
_ROLES: dict[str, tuple[str, int, int]] = {
    "app": (MARKTRUST_DATABASE_URL_ENV, 5, 10),
    "admin": (MARKTRUST_DATABASE_ADMIN_URL_ENV, 2, 5),
}

_engines: dict[str, Engine] = {}


class DatabaseConfigError(Exception):
    """Raised when a database URL is missing for the requested role."""


def is_postgres_configured() -> bool:
    """True when the app-role URL is set."""
    return bool(os.environ.get(MARKTRUST_DATABASE_URL_ENV))


def get_database_url(admin: bool = False) -> str:
    """Return the connection URL for the app or admin role.

    The legacy postgres:// scheme is rewritten to postgresql://.

    Raises:
        DatabaseConfigError: If the role's environment variable is unset.
    """
    env_var = _ROLES["admin" if admin else "app"][0]
    url = os.environ.get(env_var)
    if not url:
        raise DatabaseConfigError(f"{env_var} is not set; cannot connect to Postgres")

    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://") :]
    return url


def _engine_for(role: str) -> Engine:
    engine = _engines.get(role)
    if engine is None:
        _, pool_size, max_overflow = _ROLES[role]
        engine = create_engine(
            get_database_url(admin=role == "admin"),
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
        )
        _engines[role] = engine
        logger.info("Created %s database engine", role)
    return engine


def get_app_engine() -> Engine:
    """Cached engine for the app role."""
    return _engine_for("app")


def get_admin_engine() -> Engine:
    """Cached engine for the admin role."""
    return _engine_for("admin")


@contextmanager
def begin_app_conn() -> Generator[Connection, None, None]:
    """App-role connection inside a transaction.

    The transaction commits when the block exits normally and rolls back
    if it raises. Pass the connection to TrustScoreService so the ledger
    append, the row lock and the score update share it.

    Raises:
        DatabaseConfigError: If MARKTRUST_DATABASE_URL is unset.
    """
    with get_app_engine().begin() as conn:
        yield conn


@contextmanager
def begin_admin_conn() -> Generator[Connection, None, None]:
    """Admin-role connection inside a transaction."""
    with get_admin_engine().begin() as conn:
        yield conn


def reset_engines() -> None:
    """Dispose every cached engine. Used by tests."""
    while _engines:
        _, engine = _engines.popitem()
        engine.dispose()

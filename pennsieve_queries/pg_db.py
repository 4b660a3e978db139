"""Postgres query base: statement helpers, organisation scoping and connection settings."""

from __future__ import annotations

import logging
import os
from contextlib import closing
from typing import Any, Iterable

log = logging.getLogger(__name__)

PASSWORD = "password"


class RowNotFoundError(LookupError):
    """Raised when a query that must return a row returns none."""

    def __init__(self, message: str = "sql: no rows in result set") -> None:
        super().__init__(message)


class MultipleRowsAffectedError(RuntimeError):
    """Raised when a statement meant to change one row changed several."""


def _execute(db: Any, query: str, params: Iterable[Any] = ()) -> tuple[list[tuple], int]:
    """Run one statement on a DB-API connection; return its rows and row count."""
    with closing(db.cursor()) as cursor:
        cursor.execute(query, tuple(params))
        rows = cursor.fetchall() if cursor.description is not None else []
        return [tuple(row) for row in rows], cursor.rowcount


def get_env(key: str, fallback: str) -> str:
    """Return the environment variable ``key``, or ``fallback`` when unset or empty."""
    return os.environ.get(key) or fallback


def build_dsn(host: str, port: str, user: str, password: str, db_name: str, ssl_mode: str) -> str:
    """Build a libpq connection string; sslmode is added only when given."""
    dsn = f"host={host} port={port} user={user} password={password} dbname={db_name}"
    if ssl_mode:
        dsn = f"{dsn} sslmode={ssl_mode}"
    return dsn


def env_dsn() -> str:
    """Build a connection string from the POSTGRES_* and PENNSIEVE_DB environment variables."""
    return build_dsn(
        get_env("POSTGRES_HOST", "localhost"),
        get_env("POSTGRES_PORT", "5432"),
        get_env("POSTGRES_USER", "postgres"),
        get_env("POSTGRES_PASSWORD", PASSWORD),
        get_env("PENNSIEVE_DB", "postgres"),
        get_env("POSTGRES_SSL_MODE", "disable"),
    )


def set_org_search_path(db: Any, org_id: int) -> None:
    """Point the session's search_path at the organisation's schema."""
    try:
        _execute(db, f'SET search_path = "{int(org_id)}";')
    except Exception:
        log.error("Unable to set search_path to %d.", org_id)
        raise


class PgQueries:
    """Queries run on a DB-API connection or on a transaction with the same interface."""

    def __init__(self, db: Any) -> None:
        self.db = db

    def with_tx(self, tx: Any) -> "PgQueries":
        """Return the same kind of queries object running inside ``tx``."""
        return type(self)(tx)

    def with_org(self, org_id: int) -> "PgQueries":
        """Scope the connection to an organisation and return a queries object on it."""
        set_org_search_path(self.db, org_id)
        return type(self)(self.db)

    def show_search_path(self, location: str) -> str:
        """Print and return the current search_path, labelled with ``location``."""
        try:
            current = str(self._query_row("show search_path")[0])
        except RowNotFoundError:
            current = ""
        print(f"{location}: Search Path: {current}")
        return current

    def _exec(self, query: str, *params: Any) -> int:
        return _execute(self.db, query, params)[1]

    def _query(self, query: str, *params: Any) -> list[tuple]:
        return _execute(self.db, query, params)[0]

    def _query_row(self, query: str, *params: Any) -> tuple:
        rows = self._query(query, *params)
        if not rows:
            raise RowNotFoundError()
        return rows[0]
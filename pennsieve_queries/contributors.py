"""Queries on the contributors table."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Callable

from .pg_db import PgQueries, RowNotFoundError


class ContributorNotFoundError(RowNotFoundError):
    """Raised when no contributor matches a lookup."""

    def __init__(self, detail: str = "sql: no rows in result set") -> None:
        super().__init__(f"contributor was not found (error: {detail})")


@dataclass
class NewContributor:
    """A contributor to add, or the criteria to search for one."""

    first_name: str = ""
    middle_initial: str = ""
    last_name: str = ""
    degree: str = ""
    email_address: str = ""
    orcid: str = ""
    user_id: int = 0


@dataclass
class Contributor:
    """A row of the contributors table, fields in column order."""

    id: int
    first_name: str
    last_name: str
    email: str
    orcid: str | None
    user_id: int | None
    updated_at: dt.datetime | None
    created_at: dt.datetime | None
    middle_initial: str | None
    degree: str | None


def contributor_columns() -> list[str]:
    """Columns of the contributors table in the order they are read."""
    return [
        "id",
        "first_name",
        "last_name",
        "email",
        "orcid",
        "user_id",
        "updated_at",
        "created_at",
        "middle_initial",
        "degree",
    ]


def read_contributor_columns() -> str:
    """Column list for SELECT statements."""
    return ",".join(contributor_columns())


def write_contributor_columns() -> str:
    """Column list for write statements."""
    return ",".join(contributor_columns())


class ContributorQueries(PgQueries):
    """Lookup and creation of contributors."""

    def _get_contributor(self, column: str, value: object) -> Contributor:
        query = f"SELECT {read_contributor_columns()} FROM contributors WHERE {column}=%s"
        try:
            row = self._query_row(query, value)
        except RowNotFoundError as exc:
            raise ContributorNotFoundError(str(exc)) from exc
        return Contributor(*row)

    def add_contributor(self, new_contributor: NewContributor) -> Contributor:
        """Return the matching contributor, creating it first if none exists."""
        try:
            existing = self.find_contributor(new_contributor)
        except ContributorNotFoundError:
            existing = None
        if existing is not None:
            return existing

        c = new_contributor
        if c.user_id > 0:
            self._exec(
                "INSERT INTO contributors (first_name, middle_initial, last_name, degree, email, orcid, user_id)"
                " VALUES(%s, %s, %s, NULLIF(%s, ''), %s, %s, %s)",
                c.first_name, c.middle_initial, c.last_name, c.degree, c.email_address, c.orcid, c.user_id,
            )
        else:
            self._exec(
                "INSERT INTO contributors (first_name, middle_initial, last_name, degree, email, orcid)"
                " VALUES(%s, %s, %s, NULLIF(%s, ''), %s, %s)",
                c.first_name, c.middle_initial, c.last_name, c.degree, c.email_address, c.orcid,
            )
        return self.get_contributor_by_email(c.email_address)

    def find_contributor(self, search: NewContributor) -> Contributor | None:
        """Find a contributor by user id, then email, then ORCID.

        Returns None when ``search`` holds none of these; raises
        ContributorNotFoundError when none of the given ones match.
        """
        lookups: list[tuple[Callable[[object], Contributor], object]] = []
        if search.user_id > 0:
            lookups.append((self.get_contributor_by_user_id, search.user_id))
        if search.email_address:
            lookups.append((self.get_contributor_by_email, search.email_address))
        if search.orcid:
            lookups.append((self.get_contributor_by_orcid, search.orcid))
        if not lookups:
            return None

        error: ContributorNotFoundError | None = None
        for lookup, value in lookups:
            try:
                return lookup(value)
            except ContributorNotFoundError as exc:
                error = exc
        assert error is not None
        raise error

    def get_contributor(self, contributor_id: int) -> Contributor:
        """Return the contributor with this contributor id (not user id)."""
        return self._get_contributor("id", int(contributor_id))

    def get_contributor_by_user_id(self, user_id: int) -> Contributor:
        """Return the contributor linked to this user."""
        return self._get_contributor("user_id", int(user_id))

    def get_contributor_by_email(self, email: str) -> Contributor:
        """Return the contributor with this email address."""
        return self._get_contributor("email", email)

    def get_contributor_by_orcid(self, orcid: str) -> Contributor:
        """Return the contributor with this ORCID iD."""
        return self._get_contributor("orcid", orcid)
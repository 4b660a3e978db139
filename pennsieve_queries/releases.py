"""Queries on the dataset_release table."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any

from .pg_db import PgQueries, RowNotFoundError

_RELEASE_COLUMNS = (
    "id, dataset_id, origin, url, label, marker, release_date, release_status, "
    "publishing_status, created_at, updated_at"
)


class DatasetReleaseNotFoundError(RowNotFoundError):
    """Raised when no dataset release matches a lookup."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"dataset release was not found (error: {detail})")


@dataclass
class DatasetRelease:
    """A release of a dataset; the first fields follow the table's column order."""

    id: int = 0
    dataset_id: int = 0
    origin: str = ""
    url: str = ""
    label: str | None = None
    marker: str | None = None
    release_date: dt.datetime | None = None
    release_status: str = ""
    publishing_status: str = ""
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    properties: list[Any] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)


class DatasetReleaseQueries(PgQueries):
    """Creation, update and lookup of dataset releases."""

    def add_dataset_release(self, release: DatasetRelease) -> DatasetRelease:
        """Insert a release and return it as stored."""
        statement = (
            "INSERT INTO dataset_release "
            "(dataset_id, origin, url, label, marker, release_date, release_status, publishing_status) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s) returning id;"
        )
        try:
            (release_id,) = self._query_row(
                statement,
                release.dataset_id,
                release.origin,
                release.url,
                release.label,
                release.marker,
                release.release_date,
                release.release_status,
                release.publishing_status,
            )
        except Exception as exc:
            raise RuntimeError(f"database error on insert: {exc}") from exc
        return self.get_dataset_release_by_id(release_id)

    def update_dataset_release(self, release: DatasetRelease) -> DatasetRelease:
        """Update label, marker, date and statuses of a release and return it."""
        statement = (
            "UPDATE dataset_release SET label=%s, marker=%s, release_date=%s, "
            "release_status=%s, publishing_status=%s WHERE id=%s;"
        )
        try:
            self._exec(
                statement,
                release.label,
                release.marker,
                release.release_date,
                release.release_status,
                release.publishing_status,
                release.id,
            )
        except Exception as exc:
            raise RuntimeError(f"database error on update: {exc}") from exc
        return self.get_dataset_release_by_id(release.id)

    def get_dataset_release_by_id(self, release_id: int) -> DatasetRelease:
        """Return the release with this id."""
        return self._get_release("id = %s", f"id = {int(release_id)}", int(release_id))

    def get_dataset_release(self, dataset_id: int, label: str, marker: str) -> DatasetRelease:
        """Return the release of a dataset with this label and marker."""
        description = f"dataset_id = {int(dataset_id)} AND label = '{label}' AND marker = '{marker}'"
        return self._get_release(
            "dataset_id = %s AND label = %s AND marker = %s", description, int(dataset_id), label, marker
        )

    def _get_release(self, predicate: str, description: str, *params: Any) -> DatasetRelease:
        query = f"SELECT {_RELEASE_COLUMNS} FROM dataset_release WHERE {predicate};"
        try:
            row = self._query_row(query, *params)
        except RowNotFoundError as exc:
            raise DatasetReleaseNotFoundError(f"dataset release not found where {description}") from exc
        except Exception as exc:
            raise RuntimeError(f"database error on query: {exc}") from exc
        return DatasetRelease(*row)
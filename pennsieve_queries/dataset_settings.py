"""Organisation defaults for datasets and per-dataset storage accounting."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass

from .pg_db import PgQueries, RowNotFoundError

log = logging.getLogger(__name__)


@dataclass
class DataUseAgreement:
    """A row of an organisation's data_use_agreements table."""

    id: int
    name: str
    body: str
    created_at: dt.datetime | None
    is_default: bool
    description: str


@dataclass
class DatasetStatus:
    """A row of an organisation's dataset_status table."""

    id: int
    name: str
    display_name: str
    original_name: str | None
    color: str
    created_at: dt.datetime | None
    updated_at: dt.datetime | None


class DatasetSettingsQueries(PgQueries):
    """Default agreement and status lookups and dataset storage size updates."""

    def get_default_data_use_agreement(self, organization_id: int) -> DataUseAgreement:
        """Return the organisation's default data use agreement."""
        query = (
            "SELECT id, name, body, created_at, is_default, description"
            f' FROM "{int(organization_id)}".data_use_agreements where is_default = true;'
        )
        try:
            row = self._query_row(query)
        except RowNotFoundError:
            log.error("No rows were returned!")
            raise
        return DataUseAgreement(*row)

    def get_default_dataset_status(self, organization_id: int) -> DatasetStatus:
        """Return the organisation's default dataset status, the one with the lowest id."""
        query = (
            "SELECT id, name, display_name, original_name, color, created_at, updated_at"
            f' FROM "{int(organization_id)}".dataset_status order by id limit 1;'
        )
        try:
            row = self._query_row(query)
        except RowNotFoundError:
            log.error("No rows were returned!")
            raise
        return DatasetStatus(*row)

    def increment_dataset_storage(self, dataset_id: int, size: int) -> None:
        """Add ``size`` (which may be negative) to the storage recorded for a dataset."""
        query = (
            "INSERT INTO dataset_storage "
            "AS dataset_storage (dataset_id, size) "
            "VALUES (%s, %s) ON CONFLICT (dataset_id) "
            "DO UPDATE SET size = COALESCE(dataset_storage.size, 0) + EXCLUDED.size"
        )
        try:
            self._exec(query, dataset_id, size)
        except Exception as exc:
            log.error("Error incrementing dataset size: %s", exc)
            raise

    def get_dataset_storage_by_id(self, dataset_id: int) -> int:
        """Return the storage recorded for a dataset."""
        try:
            row = self._query_row(
                "select p.size from dataset_storage as p where p.dataset_id = %s;", dataset_id
            )
        except RowNotFoundError as exc:
            log.error("unable to get dataset size %s", exc)
            raise
        return int(row[0])
"""The combined Postgres store and dataset contributor links."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass

from .contributors import Contributor, ContributorQueries
from .dataset_settings import DatasetSettingsQueries
from .datasets import Dataset, DatasetQueries
from .feature_flags import FeatureFlagQueries
from .releases import DatasetReleaseQueries


@dataclass
class DatasetContributor:
    """A contributor's place in a dataset's contributor list."""

    dataset_id: int
    contributor_id: int
    created_at: dt.datetime | None
    updated_at: dt.datetime | None
    contributor_order: int


class PgStore(
    DatasetQueries,
    DatasetReleaseQueries,
    ContributorQueries,
    DatasetSettingsQueries,
    FeatureFlagQueries,
):
    """All Postgres queries on one connection or transaction."""

    def get_dataset_contributor(self, dataset_id: int, contributor_id: int) -> DatasetContributor:
        """Return the link between a dataset and a contributor."""
        row = self._query_row(
            "SELECT dataset_id, contributor_id, created_at, updated_at, contributor_order "
            "FROM dataset_contributor WHERE dataset_id=%s and contributor_id=%s",
            dataset_id,
            contributor_id,
        )
        return DatasetContributor(*row)

    def add_dataset_contributor(self, dataset: Dataset, contributor: Contributor) -> DatasetContributor:
        """Link a contributor to a dataset at position 1 and return the link."""
        self._exec(
            "INSERT INTO dataset_contributor(dataset_id, contributor_id, contributor_order) VALUES(%s, %s, %s)",
            dataset.id,
            contributor.id,
            1,
        )
        return self.get_dataset_contributor(dataset.id, contributor.id)
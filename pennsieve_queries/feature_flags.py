"""Queries on the organisation feature flags table."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass

from .pg_db import PgQueries

_BASE_QUERY = (
    "SELECT organization_id, feature, enabled,created_at, updated_at"
    " FROM pennsieve.feature_flags WHERE organization_id=%s"
)


class FeatureFlagQueryError(RuntimeError):
    """Raised when feature flags cannot be queried or read."""


@dataclass
class FeatureFlag:
    """A feature flag of an organisation."""

    organization_id: int
    feature: str
    enabled: bool
    created_at: dt.datetime | None
    updated_at: dt.datetime | None


class FeatureFlagQueries(PgQueries):
    """Lookup of an organisation's feature flags."""

    def _feature_flags(self, query: str, organization_id: int) -> list[FeatureFlag]:
        try:
            rows = self._query(query, organization_id)
        except Exception as exc:
            raise FeatureFlagQueryError(f"error getting feature flags with query {query}: {exc}") from exc
        try:
            return [FeatureFlag(*row) for row in rows]
        except TypeError as exc:
            raise FeatureFlagQueryError(
                f"error scanning feature flag rows with query {query}: {exc}"
            ) from exc

    def get_feature_flags(self, organization_id: int) -> list[FeatureFlag]:
        """Return every feature flag of the organisation."""
        return self._feature_flags(_BASE_QUERY, organization_id)

    def get_enabled_feature_flags(self, organization_id: int) -> list[FeatureFlag]:
        """Return the organisation's enabled feature flags."""
        return self._feature_flags(f"{_BASE_QUERY} AND enabled = true", organization_id)
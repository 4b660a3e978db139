import datetime as dt

import pytest

from pennsieve_queries.feature_flags import FeatureFlagQueries, FeatureFlagQueryError

NOW = dt.datetime(2024, 1, 1, 12, 0, 0)


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.description = None
        self.rowcount = -1
        self._rows = []

    def execute(self, query, params=()):
        self.conn.executed.append((query, tuple(params)))
        result = self.conn.handle(query, tuple(params))
        self.description = [("column",)]
        self._rows = list(result)
        self.rowcount = len(self._rows)

    def fetchall(self):
        return self._rows

    def close(self):
        pass


class FakeFlagDb:
    def __init__(self, fail=False, malformed=False):
        self.executed = []
        self.fail = fail
        self.malformed = malformed
        self.flags = [
            (402, "disabled feature", False),
            (402, "feature one", True),
            (402, "feature two", True),
            (402, "feature three", True),
            (402, "feature four", True),
            (403, "disabled feature", False),
        ]

    def cursor(self):
        return FakeCursor(self)

    def handle(self, query, params):
        if self.fail:
            raise RuntimeError("connection lost")
        if self.malformed:
            return [(402, "feature one")]
        (org,) = params
        rows = [(o, f, e, NOW, NOW) for o, f, e in self.flags if o == org]
        if "enabled = true" in query:
            rows = [r for r in rows if r[2]]
        return rows


@pytest.fixture
def store():
    return FeatureFlagQueries(FakeFlagDb())


def test_no_feature_flags(store):
    assert store.get_feature_flags(2) == []


def test_some_feature_flags(store):
    flags = store.get_feature_flags(402)
    assert len(flags) == 5
    assert any(f.feature == "disabled feature" and not f.enabled for f in flags)
    for name in ["one", "two", "three", "four"]:
        assert any(f.enabled and f.feature == f"feature {name}" for f in flags)


def test_no_feature_flags_get_enabled(store):
    assert store.get_enabled_feature_flags(2) == []


def test_no_enabled_feature_flags(store):
    assert store.get_enabled_feature_flags(403) == []


def test_some_enabled_feature_flags(store):
    flags = store.get_enabled_feature_flags(402)
    assert len(flags) == 4
    for name in ["one", "two", "three", "four"]:
        assert any(f.enabled and f.feature == f"feature {name}" for f in flags)


def test_query_error_is_wrapped():
    with pytest.raises(FeatureFlagQueryError, match="error getting feature flags"):
        FeatureFlagQueries(FakeFlagDb(fail=True)).get_feature_flags(402)


def test_malformed_row_is_reported():
    with pytest.raises(FeatureFlagQueryError, match="error scanning feature flag rows"):
        FeatureFlagQueries(FakeFlagDb(malformed=True)).get_feature_flags(402)
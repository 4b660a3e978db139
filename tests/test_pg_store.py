import datetime as dt

import pytest

from pennsieve_queries.contributors import Contributor
from pennsieve_queries.datasets import Dataset
from pennsieve_queries.pg_db import RowNotFoundError
from pennsieve_queries.pg_store import DatasetContributor, PgStore

STAMP = dt.datetime(2024, 1, 1, 9, 30, 0)


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.description = None
        self.rowcount = -1
        self._rows = []

    def execute(self, query, params=()):
        self.conn.executed.append((query, tuple(params)))
        result = self.conn.results.pop(0)
        if isinstance(result, Exception):
            raise result
        if isinstance(result, int):
            self.description = None
            self.rowcount = result
            self._rows = []
        else:
            self.description = (("col",),)
            self._rows = list(result)
            self.rowcount = len(self._rows)

    def fetchall(self):
        return self._rows

    def close(self):
        pass


class FakeConnection:
    def __init__(self, *results):
        self.results = list(results)
        self.executed = []

    def cursor(self):
        return FakeCursor(self)


def contributor(contributor_id=12, user_id=1004):
    return Contributor(contributor_id, "Jane", "Doe", "jane@example.com", None, user_id,
                       STAMP, STAMP, None, None)


def test_add_dataset_contributor():
    ds = Dataset(id=8, name="Test Dataset - AddDatasetContributor")
    contrib = contributor()
    conn = FakeConnection(1, [(8, 12, STAMP, STAMP, 1)])
    link = PgStore(conn).add_dataset_contributor(ds, contrib)
    assert link.dataset_id == ds.id
    assert link.contributor_id == contrib.id
    assert link.contributor_order == 1
    assert conn.executed[0][1] == (8, 12, 1)
    assert conn.executed[1][1] == (8, 12)


def test_get_dataset_contributor():
    conn = FakeConnection([(3, 4, STAMP, STAMP, 2)])
    link = PgStore(conn).get_dataset_contributor(3, 4)
    assert link == DatasetContributor(3, 4, STAMP, STAMP, 2)


def test_get_dataset_contributor_missing():
    with pytest.raises(RowNotFoundError):
        PgStore(FakeConnection([])).get_dataset_contributor(3, 4)


def test_add_dataset_contributor_propagates_insert_error():
    conn = FakeConnection(RuntimeError("duplicate key"))
    with pytest.raises(RuntimeError, match="duplicate key"):
        PgStore(conn).add_dataset_contributor(Dataset(id=1), contributor())
    assert len(conn.executed) == 1


def test_store_with_tx_keeps_all_queries():
    tx = FakeConnection([(5, "READY")])
    store = PgStore(FakeConnection()).with_tx(tx)
    assert isinstance(store, PgStore)
    assert store.db is tx
    datasets = store.get_datasets(1)
    assert [(d.name, d.state) for d in datasets] == [(5, "READY")]
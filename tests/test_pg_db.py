import pytest

from pennsieve_queries.pg_db import (
    PgQueries,
    RowNotFoundError,
    build_dsn,
    env_dsn,
    get_env,
    set_org_search_path,
)


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.description = None
        self.rowcount = -1
        self._rows = []

    def execute(self, query, params=()):
        self.conn.executed.append((query, tuple(params)))
        result = self.conn.handle(query, tuple(params))
        if result is None:
            self.description = None
            self._rows = []
            self.rowcount = 1
        else:
            self.description = [("column",)]
            self._rows = list(result)
            self.rowcount = len(self._rows)

    def fetchall(self):
        return self._rows

    def close(self):
        pass


class FakeDb:
    def __init__(self, search_path=None, fail=False):
        self.executed = []
        self.search_path = search_path
        self.fail = fail

    def cursor(self):
        return FakeCursor(self)

    def handle(self, query, params):
        if self.fail:
            raise RuntimeError("connection lost")
        if query == "show search_path":
            return [] if self.search_path is None else [(self.search_path,)]
        return None


ENV_KEYS = [
    "POSTGRES_HOST",
    "POSTGRES_PORT",
    "POSTGRES_USER",
    "POSTGRES_PASSWORD",
    "PENNSIEVE_DB",
    "POSTGRES_SSL_MODE",
]


def test_get_env_returns_value(monkeypatch):
    monkeypatch.setenv("PQ_TEST_KEY", "value")
    assert get_env("PQ_TEST_KEY", "fallback") == "value"


def test_get_env_falls_back_when_empty_or_unset(monkeypatch):
    monkeypatch.setenv("PQ_TEST_KEY", "")
    assert get_env("PQ_TEST_KEY", "fallback") == "fallback"
    monkeypatch.delenv("PQ_TEST_KEY")
    assert get_env("PQ_TEST_KEY", "fallback") == "fallback"


def test_build_dsn_without_ssl_mode():
    password = "password"
    dsn = build_dsn("localhost", "5432", "postgres", password, "postgres", "")
    assert dsn == "host=localhost port=5432 user=postgres password=password dbname=postgres"


def test_build_dsn_with_ssl_mode():
    password = "password"
    dsn = build_dsn("localhost", "5432", "postgres", password, "postgres", "disable")
    assert dsn.endswith(" sslmode=disable")
    assert dsn.startswith("host=localhost port=5432")


def test_env_dsn_defaults(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    assert env_dsn() == (
        "host=localhost port=5432 user=postgres password=password dbname=postgres sslmode=disable"
    )


def test_env_dsn_reads_environment(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("POSTGRES_HOST", "db.example.com")
    monkeypatch.setenv("PENNSIEVE_DB", "pennsieve")
    dsn = env_dsn()
    assert "host=db.example.com" in dsn
    assert "dbname=pennsieve" in dsn


def test_set_org_search_path_executes_statement():
    db = FakeDb()
    set_org_search_path(db, 3)
    assert db.executed == [('SET search_path = "3";', ())]


def test_set_org_search_path_propagates_errors():
    with pytest.raises(RuntimeError):
        set_org_search_path(FakeDb(fail=True), 3)


def test_with_org_sets_path_and_shares_connection():
    db = FakeDb()
    queries = PgQueries(db)
    scoped = queries.with_org(7)
    assert scoped.db is db
    assert db.executed[-1][0] == 'SET search_path = "7";'


def test_with_org_raises_on_failure():
    with pytest.raises(RuntimeError):
        PgQueries(FakeDb(fail=True)).with_org(7)


def test_with_tx_uses_transaction():
    db, tx = FakeDb(), FakeDb()
    queries = PgQueries(db)
    scoped = queries.with_tx(tx)
    assert scoped.db is tx
    assert queries.db is db


def test_show_search_path_returns_and_prints(capsys):
    queries = PgQueries(FakeDb(search_path='"3", public'))
    assert queries.show_search_path("here") == '"3", public'
    assert capsys.readouterr().out == 'here: Search Path: "3", public\n'


def test_show_search_path_without_row_is_empty(capsys):
    assert PgQueries(FakeDb()).show_search_path("there") == ""
    assert capsys.readouterr().out == "there: Search Path: \n"


def test_row_not_found_default_message():
    error = RowNotFoundError()
    assert "no rows in result set" in str(error)
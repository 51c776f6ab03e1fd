"""Tests for the SQLite and PostgreSQL connection adapters."""

from __future__ import annotations

import sqlite3

import psycopg2
import pytest

from migrator.core.pg_conn import PostgresConnection
from migrator.core.protocols import Connection
from migrator.core.sqlite_conn import SqliteConnection


class TestSqliteConnection:
    def test_satisfies_protocol(self, conn):
        assert isinstance(conn, Connection)

    def test_execute_and_fetch(self, conn):
        conn.execute("CREATE TABLE t (id INTEGER, label TEXT)")
        conn.execute("INSERT INTO t VALUES (?, ?)", (1, "one"))
        conn.commit()
        conn.execute("SELECT id, label FROM t")
        row = conn.fetchone()
        assert row[0] == 1
        assert row["label"] == "one"

    def test_executescript_runs_multiple_statements(self, conn):
        conn.executescript(
            "CREATE TABLE a (id INTEGER); CREATE TABLE b (id INTEGER); INSERT INTO a VALUES (1);"
        )
        conn.execute("SELECT count(*) FROM a")
        assert conn.fetchone()[0] == 1

    def test_rollback_discards_uncommitted(self, conn):
        conn.execute("CREATE TABLE t (id INTEGER)")
        conn.commit()
        conn.execute("INSERT INTO t VALUES (1)")
        conn.rollback()
        conn.execute("SELECT count(*) FROM t")
        assert conn.fetchone()[0] == 0

    def test_in_transaction_tracks_dml(self, conn):
        conn.execute("CREATE TABLE t (id INTEGER)")
        conn.commit()
        assert conn.in_transaction is False
        conn.execute("INSERT INTO t VALUES (1)")
        assert conn.in_transaction is True
        conn.commit()
        assert conn.in_transaction is False

    def test_executescript_keeps_statements_before_failure(self, conn):
        with pytest.raises(sqlite3.OperationalError):
            conn.executescript("CREATE TABLE a (id INTEGER); NOT VALID SQL;")
        conn.rollback()
        conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        assert [row[0] for row in conn.fetchall()] == ["a"]

    def test_executescript_explicit_transaction_is_atomic(self, conn):
        with pytest.raises(sqlite3.OperationalError):
            conn.executescript("BEGIN; CREATE TABLE a (id INTEGER); NOT VALID SQL; COMMIT;")
        conn.rollback()
        conn.execute("SELECT count(*) FROM sqlite_master WHERE type = 'table'")
        assert conn.fetchone()[0] == 0

    def test_rollback_without_transaction_is_noop(self, conn):
        assert conn.in_transaction is False
        conn.rollback()
        assert conn.in_transaction is False

    def test_raw(self):
        c = SqliteConnection()
        try:
            assert isinstance(c.raw, sqlite3.Connection)
        finally:
            c.close()


class _FakeCursor:
    def __init__(self):
        self.calls: list[tuple] = []
        self.closed = False

    def execute(self, sql, params=None):
        self.calls.append((sql, params))

    def fetchone(self):
        return (1,)

    def fetchall(self):
        return [(1,), (2,)]

    def close(self):
        self.closed = True


class _FakePgConnection:
    dsn = "host=localhost dbname=app"

    def __init__(self):
        self.cursor_obj = _FakeCursor()
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def cursor(self):
        return self.cursor_obj

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True


@pytest.fixture()
def fake_pg(monkeypatch) -> _FakePgConnection:
    fake = _FakePgConnection()
    captured = {}

    def connect(dsn, **kwargs):
        captured["dsn"] = dsn
        captured.update(kwargs)
        return fake

    monkeypatch.setattr(psycopg2, "connect", connect)
    fake.captured = captured
    return fake


class TestPostgresConnection:
    def test_connect_passes_timeout(self, fake_pg):
        PostgresConnection("postgresql://h/db", connect_timeout=3)
        assert fake_pg.captured == {"dsn": "postgresql://h/db", "connect_timeout": 3}

    def test_satisfies_protocol(self, fake_pg):
        assert isinstance(PostgresConnection("postgresql://h/db"), Connection)

    def test_empty_params_sent_as_none(self, fake_pg):
        pg = PostgresConnection("postgresql://h/db")
        pg.execute("SELECT 1")
        pg.execute("SELECT %s", (5,))
        assert fake_pg.cursor_obj.calls == [("SELECT 1", None), ("SELECT %s", (5,))]

    def test_executescript_sends_raw_text(self, fake_pg):
        pg = PostgresConnection("postgresql://h/db")
        pg.executescript("CREATE TABLE a (id int); CREATE TABLE b (id int);")
        assert fake_pg.cursor_obj.calls == [
            ("CREATE TABLE a (id int); CREATE TABLE b (id int);", None)
        ]

    def test_transaction_and_close(self, fake_pg):
        pg = PostgresConnection("postgresql://h/db")
        pg.commit()
        pg.rollback()
        pg.close()
        assert fake_pg.commits == 1
        assert fake_pg.rollbacks == 1
        assert fake_pg.cursor_obj.closed
        assert fake_pg.closed

    def test_fetch(self, fake_pg):
        pg = PostgresConnection("postgresql://h/db")
        assert pg.fetchone() == (1,)
        assert pg.fetchall() == [(1,), (2,)]

"""SQLite connection adapter.

Transaction behaviour the runner relies on:

* ``execute()`` goes through the stdlib driver's implicit transactions.
  A DML statement opens one, and ``commit()`` / ``rollback()`` end it.
  The ledger's INSERT and DELETE use this path.
* ``executescript()`` commits whatever is open first, then runs the
  script statement by statement in autocommit mode. A migration body
  that fails half way keeps the statements before the failure. Only a
  body that wraps itself in ``BEGIN; ... COMMIT;`` is all-or-nothing.
  ``rollback()`` afterwards only discards what the script left open.

Rows come back as :class:`sqlite3.Row`, so callers may index by
position (``row[0]``) or by column name (``row["version"]``).
"""

from __future__ import annotations

import sqlite3
from typing import Any


class SqliteConnection:
    """``Connection`` over one ``sqlite3`` connection and a shared cursor."""

    def __init__(self, path: str = ":memory:", *, row_factory: Any = sqlite3.Row) -> None:
        raw = sqlite3.connect(path, check_same_thread=False)
        raw.row_factory = row_factory
        self._raw = raw
        self._cur = raw.cursor()

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        return self._cur.execute(sql, params)

    def executescript(self, sql: str) -> None:
        self._cur.executescript(sql)

    def fetchone(self) -> Any:
        return self._cur.fetchone()

    def fetchall(self) -> list:
        return self._cur.fetchall()

    def commit(self) -> None:
        self._raw.commit()

    def rollback(self) -> None:
        if self._raw.in_transaction:
            self._raw.rollback()

    def close(self) -> None:
        self._cur.close()
        self._raw.close()

    @property
    def in_transaction(self) -> bool:
        return self._raw.in_transaction

    @property
    def raw(self) -> sqlite3.Connection:
        return self._raw

    def __repr__(self) -> str:
        return f"SqliteConnection(in_transaction={self._raw.in_transaction})"

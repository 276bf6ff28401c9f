"""SQLite connections and a bounded, thread-safe connection pool."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections import deque
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from skybooking.errors import SQLException

log = logging.getLogger(__name__)


class Connection:
    """One connection to an SQLite database file."""

    def __init__(self, database: str) -> None:
        self.database = str(database)
        self.last_error = ""
        self._conn: sqlite3.Connection | None = None

    def _fail(self, context: str, exc: BaseException) -> SQLException:
        self.last_error = f"[{context}] {exc}"
        log.error(self.last_error)
        return SQLException(self.last_error)

    def _require(self) -> sqlite3.Connection:
        if self._conn is None:
            raise SQLException("[not connected] connection is closed")
        return self._conn

    def connect(self) -> None:
        """Open the database; raises SQLException if it cannot be opened."""
        try:
            self._conn = sqlite3.connect(
                self.database, isolation_level=None, check_same_thread=False
            )
        except sqlite3.Error as exc:
            raise self._fail("failed to connect to database", exc) from exc

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def ping(self) -> bool:
        """Return whether the connection is open and answering."""
        if self._conn is None:
            return False
        try:
            self._conn.execute("SELECT 1").fetchall()
        except sqlite3.Error:
            return False
        return True

    def _run_plain(self, statement: str, context: str) -> None:
        conn = self._require()
        try:
            conn.execute(statement)
        except sqlite3.Error as exc:
            raise self._fail(context, exc) from exc

    def begin(self) -> None:
        self._run_plain("BEGIN", "begin error")

    def commit(self) -> None:
        self._run_plain("COMMIT", "commit error")

    def rollback(self) -> None:
        self._run_plain("ROLLBACK", "rollback error")

    def execute(self, sql: str, params: Sequence[Any] = ()) -> tuple[int, int]:
        """Run a statement; return the affected row count and last inserted id."""
        conn = self._require()
        try:
            cursor = conn.execute(sql, tuple(params))
        except sqlite3.Error as exc:
            raise self._fail("execute error", exc) from exc
        return cursor.rowcount, cursor.lastrowid or 0

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Run a query; return each row as a dict keyed by column name."""
        conn = self._require()
        try:
            cursor = conn.execute(sql, tuple(params))
            rows = cursor.fetchall()
        except sqlite3.Error as exc:
            raise self._fail("query error", exc) from exc
        names = [description[0] for description in cursor.description or ()]
        return [dict(zip(names, row)) for row in rows]


class ConnectionPool:
    """Hands out connections, creating them up to a maximum and reusing released ones."""

    def __init__(
        self,
        database: str,
        min_connections: int = 1,
        max_connections: int = 20,
        max_wait: float = 10.0,
    ) -> None:
        self.database = str(database)
        self.max_connections = max_connections
        self.max_wait = max_wait
        self._idle: deque[Connection] = deque()
        self._cond = threading.Condition()
        self._count = 0
        for _ in range(min_connections):
            try:
                self._idle.append(self._create())
            except SQLException as exc:
                log.error("could not open initial connection: %s", exc)

    def _create(self) -> Connection:
        connection = Connection(self.database)
        connection.connect()
        self._count += 1
        return connection

    def get_connection(self) -> Connection:
        """Take a live connection, waiting up to ``max_wait`` seconds if all are busy."""
        with self._cond:
            while self._idle and not self._idle[0].ping():
                self._idle.popleft().close()
                self._count -= 1
            if self._idle:
                return self._idle.popleft()
            if self._count < self.max_connections:
                return self._create()
            if not self._cond.wait_for(lambda: bool(self._idle), timeout=self.max_wait):
                log.error("wait for a connection timeout")
                raise SQLException("wait for a connection timeout")
            return self._idle.popleft()

    def release_connection(self, connection: Connection | None) -> None:
        """Return a connection to the pool and wake one waiter."""
        if connection is None:
            return
        with self._cond:
            self._idle.append(connection)
            self._cond.notify()

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Borrow a connection for the duration of a ``with`` block."""
        borrowed = self.get_connection()
        try:
            yield borrowed
        finally:
            self.release_connection(borrowed)

    def execute(self, sql: str, params: Sequence[Any] = ()) -> tuple[int, int]:
        with self.connection() as conn:
            return conn.execute(sql, params)

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        with self.connection() as conn:
            return conn.query(sql, params)

    def close(self) -> None:
        """Close every idle connection."""
        with self._cond:
            while self._idle:
                self._idle.popleft().close()
                self._count -= 1
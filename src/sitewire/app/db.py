"""SQLite access for models."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator
import sqlite3

from ..core.error import (
    DBError,
    DBMConnectionInvalidError,
    DBOperationalError,
    DBIntegrityError,
    DBProgrammingError
)
from ..core.log import get_logger


def _translate(e: sqlite3.Error) -> DBError:
    if isinstance(e, sqlite3.IntegrityError):
        return DBIntegrityError(str(e))
    if isinstance(e, sqlite3.ProgrammingError):
        return DBProgrammingError(str(e))
    if isinstance(e, sqlite3.OperationalError):
        return DBOperationalError(str(e))
    return DBMConnectionInvalidError(str(e))


class DatabaseManager:
    """
    One SQLite connection, shared by the models bound to it.

    - rows are returned as column -> value dicts
    - sqlite3 errors are raised as DBError subclasses
    - execute() commits by itself unless auto_commit is off;
      transaction() groups statements and rolls back on errors
    """

    PRAGMAS: tuple[str, ...] = (
        "foreign_keys = ON",
        "journal_mode = WAL",
        "busy_timeout = 3000",
        "synchronous = NORMAL",
    )

    def __init__(self, db_file: str | Path, auto_commit: bool = True) -> None:
        self.db_file: str = str(db_file)
        self.auto_commit: bool = auto_commit
        self.logger = get_logger(self)
        self._conn: sqlite3.Connection | None = None
        self.connect()

    @contextmanager
    def _errors(self) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as e:
            if self._conn is not None and self._conn.in_transaction:
                self._conn.rollback()
            raise _translate(e) from e

    def connect(self) -> None:
        with self._errors():
            conn = sqlite3.connect(self.db_file)
            for pragma in self.PRAGMAS:
                conn.execute(f"PRAGMA {pragma}")
            conn.commit()
        self._conn = conn
        self.logger.debug("Connected to %s", self.db_file)

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DBMConnectionInvalidError()
        return self._conn

    def close(self) -> None:
        self.connection.close()
        self._conn = None

    def commit(self) -> None:
        self.connection.commit()

    @contextmanager
    def transaction(self) -> Iterator["DatabaseManager"]:
        """Commit the statements in the block together, or none of them."""
        conn = self.connection
        auto_commit, self.auto_commit = self.auto_commit, False
        try:
            yield self
        except BaseException:
            conn.rollback()
            raise
        else:
            conn.commit()
        finally:
            self.auto_commit = auto_commit

    # -------------------------
    # statements
    # -------------------------

    def execute(self, sql: str, *args: Any) -> int:
        """Run one statement; returns the number of changed rows."""
        conn = self.connection
        with self._errors():
            cur = conn.execute(sql, args)
            if self.auto_commit:
                conn.commit()
        return cur.rowcount

    def execute_many(self, statements: Iterable[tuple[str, tuple]]) -> None:
        """Run several statements in a single transaction."""
        conn = self.connection
        with self._errors():
            for sql, values in statements:
                conn.execute(sql, values)
            if self.auto_commit:
                conn.commit()

    def query(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        conn = self.connection
        with self._errors():
            cur = conn.execute(sql, args)
            columns = [d[0] for d in cur.description or ()]
            return [dict(zip(columns, row)) for row in cur.fetchall()]

    def query_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        rows = self.query(sql, *args)
        return rows[0] if rows else None

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, *exc: Any) -> None:
        if self._conn is not None:
            self.close()

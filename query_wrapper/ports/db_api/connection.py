"""DB-API adapter implementing the connection, statement, and cursor ports."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar

from ...core.bindings import coerce_value
from ...core.contracts import NO_MORE_ROWS
from ...core.errors import DatabaseExecutionError, QueryWrapperError
from ...core.fetch_modes import FetchMode, ParamType, normalize_param_type
from ...core.records import row_to_record
from ...core.types import AssocRow, NumericRow
from .dialects import Dialect

logger = logging.getLogger(__name__)

R = TypeVar("R")


class DBAPIConnection:
    """Wrap one DB-API connection for the duration of a single facade call."""

    def __init__(
        self,
        conn: Any,
        dialect: Dialect,
        *,
        autocommit: bool = True,
        on_release: Optional[Callable[[Any], None]] = None,
    ):
        """Create connection adapter.

        Args:
            conn: DB-API connection object.
            dialect: Concrete SQL dialect instance.
            autocommit: Commit pending work on release and before the
                last-insert-id lookup, and roll back failed statements, the
                way a driver in autocommit mode would.
            on_release: Called with the raw connection once this adapter is
                released, e.g. to close it or hand it back to a pool.
        """

        self.conn: Any | None = conn
        self.dialect = dialect
        self.autocommit = autocommit
        self._on_release = on_release
        self._last_cursor: Any = None

    def _require_open_connection(self) -> Any:
        if self.conn is None:
            raise RuntimeError("connection is released")
        return self.conn

    def prepare(self, query: str) -> DBAPIStatement:
        self._require_open_connection()
        return DBAPIStatement(self, query)

    def run(self, query: str, params: Mapping[str, Any]) -> DBAPICursor:
        """Compile and execute `query` with already-bound `params`."""

        conn = self._require_open_connection()
        cur = self.call_driver(conn.cursor)
        try:
            sql, driver_params = self.dialect.compile(query, params)
            if driver_params is None:
                cur.execute(sql)
            else:
                cur.execute(sql, driver_params)
        except Exception as exc:
            _close_quietly(cur)
            self._rollback_failed_statement()
            raise DatabaseExecutionError.from_driver(exc) from exc
        self._last_cursor = cur
        return DBAPICursor(cur, self)

    def last_insert_id(self) -> Any:
        """Return the id generated by the last statement.

        In autocommit mode the statement is committed first, so a failing
        lookup never takes the caller's write down with it.
        """

        conn = self._require_open_connection()
        if self.autocommit:
            self._commit(conn)
        return self.call_driver(
            self.dialect.last_insert_id, conn, self._last_cursor, rollback=False
        )

    def call_driver(self, func: Callable[..., R], *args: Any, rollback: bool = True) -> R:
        """Invoke a driver call, surfacing driver failures as `DatabaseExecutionError`.

        Args:
            func: Driver callable.
            *args: Arguments for `func`.
            rollback: Roll back (in autocommit mode) when `func` fails.
        """

        try:
            return func(*args)
        except QueryWrapperError:
            raise
        except Exception as exc:
            if rollback:
                self._rollback_failed_statement()
            raise DatabaseExecutionError.from_driver(exc) from exc

    def _commit(self, conn: Any) -> None:
        commit = getattr(conn, "commit", None)
        if callable(commit):
            self.call_driver(commit)

    def _rollback_failed_statement(self) -> None:
        if not self.autocommit or self.conn is None:
            return
        rollback = getattr(self.conn, "rollback", None)
        if not callable(rollback):
            return
        try:
            rollback()
        except Exception:
            logger.debug("rollback after failed statement also failed", exc_info=True)

    def release(self, *, rollback: bool = False) -> None:
        """Finish pending work (in autocommit mode) and hand the raw connection back.

        Args:
            rollback: Roll back instead of committing, for calls that failed
                after their statement ran.
        """

        conn = self.conn
        if conn is None:
            return
        self._last_cursor = None
        try:
            if rollback:
                self._rollback_failed_statement()
            elif self.autocommit:
                self._commit(conn)
        finally:
            self.conn = None
            if self._on_release is not None:
                self._on_release(conn)

    def __enter__(self) -> DBAPIConnection:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.release(rollback=exc_type is not None)


class DBAPIStatement:
    """Query text plus the values bound to its named placeholders."""

    def __init__(self, connection: DBAPIConnection, query: str):
        self._connection = connection
        self.query = query
        self._params: Dict[str, Any] = {}

    @property
    def params(self) -> Dict[str, Any]:
        return dict(self._params)

    def bind(self, name: str, value: Any, param_type: ParamType = ParamType.STRING) -> None:
        key = name.lstrip(":")
        self._params[key] = coerce_value(key, value, normalize_param_type(param_type))

    def execute(self) -> DBAPICursor:
        return self._connection.run(self.query, self._params)


class DBAPICursor:
    """Read rows from an executed DB-API cursor in the requested shape."""

    def __init__(self, cursor: Any, connection: DBAPIConnection):
        self._cursor = cursor
        self._connection = connection

    def _columns(self) -> List[str]:
        desc = getattr(self._cursor, "description", None)
        if not desc:
            return []
        return [d[0] for d in desc]

    def column_count(self) -> int:
        return len(self._columns())

    def _fetchone(self) -> Any:
        # Statements without a result set (INSERT/UPDATE/DDL) have no rows.
        if not self._columns():
            return None
        return self._connection.call_driver(self._cursor.fetchone)

    def fetch_row(self, mode: FetchMode = FetchMode.ASSOCIATIVE) -> Any:
        row = self._fetchone()
        if row is None:
            return None
        return self._shape(row, mode)

    def fetch_all_rows(self, mode: FetchMode = FetchMode.ASSOCIATIVE) -> List[Any]:
        if not self._columns():
            return []
        rows = self._connection.call_driver(self._cursor.fetchall)
        return [self._shape(row, mode) for row in rows]

    def fetch_column_value(self, index: int = 0) -> Any:
        row = self._fetchone()
        if row is None:
            return NO_MORE_ROWS
        return self._row_to_tuple(row)[index]

    def close(self) -> None:
        _close_quietly(self._cursor)

    def _shape(self, row: Any, mode: FetchMode) -> Any:
        if mode == FetchMode.NUMERIC_INDEXED:
            return self._row_to_tuple(row)
        mapping = self._row_to_mapping(row)
        if mode == FetchMode.OBJECT:
            return row_to_record(mapping)
        return mapping

    def _row_to_tuple(self, row: Any) -> NumericRow:
        if isinstance(row, Mapping):
            return tuple(row.values())
        return tuple(row)

    def _row_to_mapping(self, row: Any) -> AssocRow:
        """Normalize row object to mapping.

        Supports mapping rows directly and tuple/list rows via
        `cursor.description`.
        """

        if isinstance(row, Mapping):
            return dict(row)

        if isinstance(row, (tuple, list)):
            cols = self._columns()
            if not cols:
                raise TypeError(
                    "Cursor has no description; cannot map tuple rows to dict."
                )
            return dict(zip(cols, row))

        try:
            return dict(row)
        except (TypeError, ValueError):
            pass

        raise TypeError(f"Unsupported row type: {type(row)}")


def _close_quietly(cur: Any) -> None:
    close = getattr(cur, "close", None)
    if callable(close):
        try:
            close()
        except Exception:
            logger.debug("cursor close failed", exc_info=True)

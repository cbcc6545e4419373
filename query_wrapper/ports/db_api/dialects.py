"""Concrete SQL dialect implementations for DB-API adapters."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

DriverParams = Union[Dict[str, Any], List[Any], None]


class Dialect:
    """Base dialect that defines placeholder rewriting and last-insert-id lookup."""

    name: str = "generic"
    paramstyle: str = "named"

    def placeholder(self, key: str) -> str:
        """Return parameter placeholder for current param style."""

        if self.paramstyle == "named":
            return f":{key}"
        if self.paramstyle == "pyformat":
            return f"%({key})s"
        if self.paramstyle == "qmark":
            return "?"
        if self.paramstyle == "format":
            return "%s"
        raise ValueError(f"Unsupported paramstyle: {self.paramstyle}")

    def compile(self, sql: str, params: Mapping[str, Any]) -> Tuple[str, DriverParams]:
        """Rewrite `:name` placeholders for the driver and order the values.

        Text inside quotes and `::` casts is left alone. Without params the
        query is returned unchanged so the driver does no interpolation.
        """

        if not params:
            return sql, None
        if self.paramstyle == "named":
            return sql, dict(params)

        positional = self.paramstyle in ("qmark", "format")
        escape_percent = self.paramstyle in ("format", "pyformat")
        names: List[str] = []
        out: List[str] = []
        i = 0
        n = len(sql)
        while i < n:
            ch = sql[i]
            if ch in ("'", '"', "`"):
                end = _closing_quote(sql, i)
                literal = sql[i:end]
                out.append(literal.replace("%", "%%") if escape_percent else literal)
                i = end
                continue
            if ch == ":" and i + 1 < n and sql[i + 1] == ":":
                out.append("::")
                i += 2
                continue
            if ch == ":" and i + 1 < n and _is_name_start(sql[i + 1]):
                j = i + 1
                while j < n and _is_name_char(sql[j]):
                    j += 1
                key = sql[i + 1 : j]
                names.append(key)
                out.append(self.placeholder(key))
                i = j
                continue
            if ch == "%" and escape_percent:
                out.append("%%")
            else:
                out.append(ch)
            i += 1

        compiled = "".join(out)
        if not positional:
            return compiled, {key: params[key] for key in names if key in params}

        missing = [key for key in names if key not in params]
        if missing:
            raise ValueError(f"No value bound for placeholder(s): {sorted(set(missing))}")
        return compiled, [params[key] for key in names]

    def last_insert_id(self, conn: Any, cursor: Any) -> Optional[Any]:
        """Extract `lastrowid` from DB-API cursor when available."""

        return getattr(cursor, "lastrowid", None)


class SQLiteDialect(Dialect):
    """SQLite dialect (`:name` parameters)."""

    name = "sqlite"
    paramstyle = "named"


class PostgresDialect(Dialect):
    """PostgreSQL dialect (`%s` positional parameters, `lastval()` ids)."""

    name = "postgres"
    paramstyle = "format"

    def last_insert_id(self, conn: Any, cursor: Any) -> Optional[Any]:
        """Return `lastval()`, or `None` when no sequence was used in the session.

        Outside driver autocommit the lookup runs in a savepoint so a failure
        leaves the surrounding transaction usable.
        """

        use_savepoint = not getattr(conn, "autocommit", False)
        cur = conn.cursor()
        try:
            if use_savepoint:
                cur.execute(f"SAVEPOINT {_LASTVAL_SAVEPOINT}")
            try:
                cur.execute("SELECT lastval()")
                row = cur.fetchone()
            except Exception as exc:
                if use_savepoint:
                    cur.execute(f"ROLLBACK TO SAVEPOINT {_LASTVAL_SAVEPOINT}")
                if _sqlstate(exc) == _LASTVAL_NOT_DEFINED:
                    return None
                raise
            if use_savepoint:
                cur.execute(f"RELEASE SAVEPOINT {_LASTVAL_SAVEPOINT}")
        finally:
            close = getattr(cur, "close", None)
            if callable(close):
                close()
        if row is None:
            return None
        return row[0]


class MySQLDialect(Dialect):
    """MySQL dialect (`%s` positional parameters)."""

    name = "mysql"
    paramstyle = "format"


# "lastval is not yet defined in this session" (object_not_in_prerequisite_state).
_LASTVAL_NOT_DEFINED = "55000"
_LASTVAL_SAVEPOINT = "query_wrapper_lastval"


def _sqlstate(exc: BaseException) -> Optional[str]:
    # psycopg exposes `sqlstate`, psycopg2 `pgcode`.
    return getattr(exc, "sqlstate", None) or getattr(exc, "pgcode", None)


def _is_name_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def _is_name_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _closing_quote(sql: str, start: int) -> int:
    """Return the index just past the quoted section starting at `start`."""

    quote = sql[start]
    i = start + 1
    n = len(sql)
    while i < n:
        if sql[i] == quote:
            # Doubled quote is an escaped quote inside the literal.
            if i + 1 < n and sql[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return n

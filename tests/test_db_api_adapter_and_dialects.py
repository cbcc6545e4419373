from __future__ import annotations

import sqlite3
import unittest

from query_wrapper.core.contracts import NO_MORE_ROWS
from query_wrapper.core.errors import DatabaseExecutionError, InvalidColumnIndex
from query_wrapper.core.fetch_modes import FetchMode, ParamType
from query_wrapper.core.query_wrapper import QueryWrapper
from query_wrapper.core.records import Record
from query_wrapper.ports.db_api.connection import DBAPIConnection, DBAPICursor
from query_wrapper.ports.db_api.dialects import Dialect, MySQLDialect, PostgresDialect, SQLiteDialect
from query_wrapper.ports.db_api.providers import SingleConnectionProvider


class _QmarkDialect(Dialect):
    paramstyle = "qmark"


class _PyformatDialect(Dialect):
    paramstyle = "pyformat"


class _InvalidDialect(Dialect):
    paramstyle = "invalid"


class _DummyCursor:
    def __init__(self, description=None, lastrowid=None, rows=None):  # noqa: ANN001
        self.description = description
        self.lastrowid = lastrowid
        self._rows = list(rows or [])
        self.executed: list[tuple[str, object]] = []
        self.closed = False

    def execute(self, sql, params=None):  # noqa: ANN001,ANN201
        self.executed.append((sql, params))

    def fetchone(self):  # noqa: ANN201
        return self._rows.pop(0) if self._rows else None

    def fetchall(self):  # noqa: ANN201
        rows, self._rows = self._rows, []
        return rows

    def close(self) -> None:
        self.closed = True


class _FailingCursor(_DummyCursor):
    def execute(self, sql, params=None):  # noqa: ANN001,ANN201
        raise RuntimeError("relation \"missing\" does not exist")


class _FakeConn:
    def __init__(self, cursor: _DummyCursor) -> None:
        self._cursor = cursor
        self.commit_calls = 0
        self.rollback_calls = 0

    def cursor(self) -> _DummyCursor:
        return self._cursor

    def commit(self) -> None:
        self.commit_calls += 1

    def rollback(self) -> None:
        self.rollback_calls += 1


class DialectTests(unittest.TestCase):
    def test_builtin_dialect_properties(self) -> None:
        self.assertEqual(SQLiteDialect().placeholder("x"), ":x")
        self.assertEqual(PostgresDialect().placeholder("x"), "%s")
        self.assertEqual(MySQLDialect().placeholder("x"), "%s")
        self.assertEqual(_QmarkDialect().placeholder("x"), "?")
        self.assertEqual(_PyformatDialect().placeholder("x"), "%(x)s")
        self.assertEqual(SQLiteDialect().name, "sqlite")
        self.assertEqual(PostgresDialect().name, "postgres")
        self.assertEqual(MySQLDialect().name, "mysql")

    def test_invalid_paramstyle_raises(self) -> None:
        with self.assertRaises(ValueError):
            _InvalidDialect().placeholder("x")

    def test_named_style_keeps_query_and_mapping(self) -> None:
        sql, params = SQLiteDialect().compile("SELECT * FROM t WHERE a = :a", {"a": 1})
        self.assertEqual(sql, "SELECT * FROM t WHERE a = :a")
        self.assertEqual(params, {"a": 1})

    def test_no_params_leaves_query_untouched(self) -> None:
        sql, params = PostgresDialect().compile("SELECT '100%' AS pct", {})
        self.assertEqual(sql, "SELECT '100%' AS pct")
        self.assertIsNone(params)

    def test_format_style_orders_values_by_occurrence(self) -> None:
        sql, params = PostgresDialect().compile(
            "SELECT * FROM t WHERE a = :a AND b = :b OR c = :a", {"a": 1, "b": 2}
        )
        self.assertEqual(sql, "SELECT * FROM t WHERE a = %s AND b = %s OR c = %s")
        self.assertEqual(params, [1, 2, 1])

    def test_casts_and_quoted_text_are_not_placeholders(self) -> None:
        sql, params = PostgresDialect().compile(
            "SELECT :v::int, ':not_a_param', \"col:x\", '12:30' FROM t", {"v": "5"}
        )
        self.assertEqual(sql, "SELECT %s::int, ':not_a_param', \"col:x\", '12:30' FROM t")
        self.assertEqual(params, ["5"])

    def test_percent_signs_are_escaped_for_format_styles(self) -> None:
        sql, params = MySQLDialect().compile(
            "SELECT * FROM t WHERE name LIKE 'a%' AND pct > 5 % 2 AND id = :id", {"id": 3}
        )
        self.assertEqual(sql, "SELECT * FROM t WHERE name LIKE 'a%%' AND pct > 5 %% 2 AND id = %s")
        self.assertEqual(params, [3])

    def test_escaped_quote_inside_literal(self) -> None:
        sql, params = _QmarkDialect().compile("SELECT 'it''s :x', :y", {"y": 1})
        self.assertEqual(sql, "SELECT 'it''s :x', ?")
        self.assertEqual(params, [1])

    def test_pyformat_style_returns_mapping(self) -> None:
        sql, params = _PyformatDialect().compile(
            "SELECT * FROM t WHERE a = :a AND b = :a", {"a": 1, "unused": 2}
        )
        self.assertEqual(sql, "SELECT * FROM t WHERE a = %(a)s AND b = %(a)s")
        self.assertEqual(params, {"a": 1})

    def test_missing_positional_value_raises(self) -> None:
        with self.assertRaises(ValueError):
            _QmarkDialect().compile("SELECT :a, :b", {"a": 1})

    def test_lastrowid_from_cursor(self) -> None:
        self.assertEqual(SQLiteDialect().last_insert_id(None, _DummyCursor(lastrowid=99)), 99)
        self.assertIsNone(MySQLDialect().last_insert_id(None, object()))

    def test_postgres_last_insert_id_uses_lastval_in_a_savepoint(self) -> None:
        cursor = _DummyCursor(description=[("lastval",)], rows=[(42,)])
        conn = _FakeConn(cursor)
        self.assertEqual(PostgresDialect().last_insert_id(conn, None), 42)
        self.assertEqual(
            [sql for sql, _ in cursor.executed],
            [
                "SAVEPOINT query_wrapper_lastval",
                "SELECT lastval()",
                "RELEASE SAVEPOINT query_wrapper_lastval",
            ],
        )
        self.assertTrue(cursor.closed)

    def test_postgres_last_insert_id_skips_savepoint_under_driver_autocommit(self) -> None:
        cursor = _DummyCursor(description=[("lastval",)], rows=[(7,)])
        conn = _FakeConn(cursor)
        conn.autocommit = True
        self.assertEqual(PostgresDialect().last_insert_id(conn, None), 7)
        self.assertEqual(cursor.executed, [("SELECT lastval()", None)])


class DBAPIConnectionTests(unittest.TestCase):
    def test_prepare_bind_execute_on_sqlite(self) -> None:
        raw = sqlite3.connect(":memory:")
        self.addCleanup(raw.close)
        raw.execute('CREATE TABLE "t" ("id" INTEGER, "name" TEXT);')
        conn = DBAPIConnection(raw, SQLiteDialect())

        stmt = conn.prepare('INSERT INTO "t" ("id", "name") VALUES (:id, :name);')
        stmt.bind(":id", "7", ParamType.INTEGER)
        stmt.bind("name", 123)
        self.assertEqual(stmt.params, {"id": 7, "name": "123"})
        stmt.execute().close()
        self.assertEqual(conn.last_insert_id(), 1)

        cursor = conn.prepare('SELECT "id", "name" FROM "t";').execute()
        self.assertEqual(cursor.column_count(), 2)
        self.assertEqual(cursor.fetch_row(FetchMode.ASSOCIATIVE), {"id": 7, "name": "123"})
        self.assertIsNone(cursor.fetch_row())
        conn.release()
        self.assertFalse(raw.in_transaction)

    def test_release_is_idempotent_and_blocks_prepare(self) -> None:
        released = []
        raw = sqlite3.connect(":memory:")
        self.addCleanup(raw.close)
        conn = DBAPIConnection(raw, SQLiteDialect(), on_release=released.append)
        conn.release()
        conn.release()
        self.assertEqual(released, [raw])
        with self.assertRaises(RuntimeError):
            conn.prepare("SELECT 1")

    def test_context_manager_releases(self) -> None:
        released = []
        raw = sqlite3.connect(":memory:")
        self.addCleanup(raw.close)
        with DBAPIConnection(raw, SQLiteDialect(), on_release=released.append) as conn:
            conn.prepare("SELECT 1").execute().close()
        self.assertEqual(released, [raw])

    def test_driver_error_is_wrapped_and_rolled_back(self) -> None:
        cursor = _FailingCursor()
        raw = _FakeConn(cursor)
        conn = DBAPIConnection(raw, PostgresDialect())
        with self.assertRaises(DatabaseExecutionError) as ctx:
            conn.prepare("SELECT * FROM missing").execute()
        self.assertEqual(str(ctx.exception), 'relation "missing" does not exist')
        self.assertIsInstance(ctx.exception.driver_error, RuntimeError)
        self.assertTrue(cursor.closed)
        self.assertEqual(raw.rollback_calls, 1)

    def test_driver_error_without_autocommit_does_not_roll_back(self) -> None:
        raw = _FakeConn(_FailingCursor())
        conn = DBAPIConnection(raw, PostgresDialect(), autocommit=False)
        with self.assertRaises(DatabaseExecutionError):
            conn.prepare("SELECT * FROM missing").execute()
        conn.release()
        self.assertEqual(raw.rollback_calls, 0)
        self.assertEqual(raw.commit_calls, 0)

    def test_missing_positional_binding_is_execution_error(self) -> None:
        raw = _FakeConn(_DummyCursor())
        conn = DBAPIConnection(raw, PostgresDialect())
        stmt = conn.prepare("SELECT :a, :b")
        stmt.bind("a", 1, ParamType.INTEGER)
        with self.assertRaises(DatabaseExecutionError):
            stmt.execute()

    def test_format_dialect_sends_positional_params(self) -> None:
        cursor = _DummyCursor()
        conn = DBAPIConnection(_FakeConn(cursor), MySQLDialect())
        stmt = conn.prepare("UPDATE t SET name = :name WHERE id = :id")
        stmt.bind("id", 3, ParamType.INTEGER)
        stmt.bind("name", "x")
        stmt.execute()
        self.assertEqual(cursor.executed, [("UPDATE t SET name = %s WHERE id = %s", ["x", 3])])

    def test_release_commit_failure_is_wrapped(self) -> None:
        class _CommitFails(_FakeConn):
            def commit(self) -> None:
                raise RuntimeError("could not serialize access")

        released = []
        conn = DBAPIConnection(_CommitFails(_DummyCursor()), SQLiteDialect(), on_release=released.append)
        with self.assertRaises(DatabaseExecutionError):
            conn.release()
        self.assertEqual(len(released), 1)


class DBAPICursorTests(unittest.TestCase):
    def _cursor(self, rows, description=(("id",), ("name",))):  # noqa: ANN001,ANN202
        raw = _DummyCursor(description=description, rows=rows)
        return DBAPICursor(raw, DBAPIConnection(_FakeConn(raw), SQLiteDialect()))

    def test_tuple_rows_are_shaped_per_mode(self) -> None:
        cursor = self._cursor([(1, "a"), (2, "b"), (3, "c")])
        self.assertEqual(cursor.fetch_row(FetchMode.NUMERIC_INDEXED), (1, "a"))
        record = cursor.fetch_row(FetchMode.OBJECT)
        self.assertIsInstance(record, Record)
        self.assertEqual(record.name, "b")
        self.assertEqual(cursor.fetch_all_rows(FetchMode.ASSOCIATIVE), [{"id": 3, "name": "c"}])
        self.assertEqual(cursor.fetch_all_rows(), [])

    def test_mapping_rows_are_shaped_per_mode(self) -> None:
        cursor = self._cursor([{"id": 1, "name": "a"}, {"id": 2, "name": "b"}])
        self.assertEqual(cursor.fetch_row(FetchMode.ASSOCIATIVE), {"id": 1, "name": "a"})
        self.assertEqual(cursor.fetch_row(FetchMode.NUMERIC_INDEXED), (2, "b"))

    def test_fetch_column_value_until_exhausted(self) -> None:
        cursor = self._cursor([(1, "a"), (0, "")])
        self.assertEqual(cursor.fetch_column_value(1), "a")
        self.assertEqual(cursor.fetch_column_value(0), 0)
        self.assertIs(cursor.fetch_column_value(0), NO_MORE_ROWS)
        self.assertFalse(NO_MORE_ROWS)

    def test_statement_without_result_set_has_no_rows(self) -> None:
        cursor = self._cursor([(1,)], description=None)
        self.assertEqual(cursor.column_count(), 0)
        self.assertIsNone(cursor.fetch_row())
        self.assertEqual(cursor.fetch_all_rows(), [])
        self.assertIs(cursor.fetch_column_value(), NO_MORE_ROWS)

    def test_row_to_mapping_tuple_without_description_raises(self) -> None:
        cursor = self._cursor([], description=None)
        with self.assertRaises(TypeError):
            cursor._row_to_mapping((1,))  # noqa: SLF001

    def test_row_to_mapping_fallback_dict_and_unsupported_type(self) -> None:
        cursor = self._cursor([])
        mapped = cursor._row_to_mapping({("id", 1)})  # noqa: SLF001
        self.assertEqual(mapped["id"], 1)
        with self.assertRaises(TypeError):
            cursor._row_to_mapping(12345)  # noqa: SLF001

    def test_fetch_errors_are_wrapped(self) -> None:
        class _BrokenFetch(_DummyCursor):
            def fetchall(self):  # noqa: ANN201
                raise RuntimeError("connection reset")

        raw = _BrokenFetch(description=(("id",),))
        cursor = DBAPICursor(raw, DBAPIConnection(_FakeConn(raw), SQLiteDialect()))
        with self.assertRaises(DatabaseExecutionError):
            cursor.fetch_all_rows()


class _PgError(Exception):
    def __init__(self, message: str, sqlstate: str) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


class _LoggingPgCursor:
    def __init__(self, conn: _LoggingPgConn) -> None:
        self._conn = conn
        self.description = None
        self._row = None

    def execute(self, sql, params=None):  # noqa: ANN001,ANN201
        self._conn.log.append(("execute", sql))
        if sql == "SELECT lastval()":
            if self._conn.lastval_error is not None:
                raise self._conn.lastval_error
            self._row = (self._conn.lastval,)
        elif sql.startswith("SELECT"):
            self.description = (("x",),)
            self._row = (1,)

    def fetchone(self):  # noqa: ANN201
        row, self._row = self._row, None
        return row

    def close(self) -> None:
        pass


class _LoggingPgConn:
    """Postgres-like connection recording statements and transaction calls."""

    def __init__(self, *, lastval=None, lastval_error=None) -> None:  # noqa: ANN001
        self.log: list[tuple] = []
        self.lastval = lastval
        self.lastval_error = lastval_error

    def cursor(self) -> _LoggingPgCursor:
        return _LoggingPgCursor(self)

    def commit(self) -> None:
        self.log.append(("commit",))

    def rollback(self) -> None:
        self.log.append(("rollback",))


class PostgresExecuteTests(unittest.TestCase):
    def _wrapper(self, conn: _LoggingPgConn) -> QueryWrapper:
        return QueryWrapper(SingleConnectionProvider(conn, PostgresDialect()))

    def test_update_without_sequence_is_committed_and_returns_none(self) -> None:
        conn = _LoggingPgConn(
            lastval_error=_PgError("lastval is not yet defined in this session", "55000")
        )
        result = self._wrapper(conn).execute('UPDATE "t" SET "x" = 1')

        self.assertIsNone(result)
        self.assertEqual(
            conn.log,
            [
                ("execute", 'UPDATE "t" SET "x" = 1'),
                ("commit",),
                ("execute", "SAVEPOINT query_wrapper_lastval"),
                ("execute", "SELECT lastval()"),
                ("execute", "ROLLBACK TO SAVEPOINT query_wrapper_lastval"),
                ("commit",),
            ],
        )
        self.assertNotIn(("rollback",), conn.log)

    def test_insert_returns_lastval(self) -> None:
        conn = _LoggingPgConn(lastval=12)
        self.assertEqual(self._wrapper(conn).execute('INSERT INTO "t" DEFAULT VALUES'), 12)
        self.assertEqual(conn.log[:2], [("execute", 'INSERT INTO "t" DEFAULT VALUES'), ("commit",)])

    def test_other_lookup_errors_propagate_after_the_write_is_committed(self) -> None:
        conn = _LoggingPgConn(lastval_error=_PgError("server closed the connection", "08006"))
        with self.assertRaises(DatabaseExecutionError) as ctx:
            self._wrapper(conn).execute('DELETE FROM "t"')

        self.assertEqual(str(ctx.exception), "server closed the connection")
        self.assertEqual(conn.log[:2], [("execute", 'DELETE FROM "t"'), ("commit",)])
        self.assertIn(("execute", "ROLLBACK TO SAVEPOINT query_wrapper_lastval"), conn.log)


class FailedCallReleaseTests(unittest.TestCase):
    def test_error_after_execution_rolls_back_instead_of_committing(self) -> None:
        raw = _FakeConn(_DummyCursor(description=(("id",),), rows=[(1,)]))
        qw = QueryWrapper(SingleConnectionProvider(raw, SQLiteDialect()))
        with self.assertRaises(InvalidColumnIndex):
            qw.fetch_column("SELECT id FROM t", column_index=3)
        self.assertEqual((raw.commit_calls, raw.rollback_calls), (0, 1))

    def test_successful_call_commits(self) -> None:
        raw = _FakeConn(_DummyCursor(description=(("id",),), rows=[(1,)]))
        qw = QueryWrapper(SingleConnectionProvider(raw, SQLiteDialect()))
        self.assertEqual(qw.fetch_column("SELECT id FROM t"), [1])
        self.assertEqual((raw.commit_calls, raw.rollback_calls), (1, 0))

    def test_context_manager_rolls_back_when_block_raises(self) -> None:
        raw = _FakeConn(_DummyCursor())
        with self.assertRaises(KeyError):
            with DBAPIConnection(raw, SQLiteDialect()):
                raise KeyError("boom")
        self.assertEqual((raw.commit_calls, raw.rollback_calls), (0, 1))


if __name__ == "__main__":
    unittest.main()

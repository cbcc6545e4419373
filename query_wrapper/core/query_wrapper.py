"""Query facade that runs parameterized SQL and reshapes the results."""

from __future__ import annotations

import contextlib
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Type, TypeVar, Union

from .bindings import ParameterBinding, normalize_bindings
from .contracts import NO_MORE_ROWS, ConnectionPort, ConnectionProviderPort, CursorPort
from .errors import InvalidColumnIndex
from .fetch_modes import FetchMode, FetchModeInput, normalize_fetch_mode
from .records import Record, row_to_model
from .types import BindingsInput, ResultRow

T = TypeVar("T")


class QueryWrapper:
    """Stateless helper exposing fixed-shape fetch operations.

    Build one instance per process (or per request) around a connection
    provider and pass it to callers. Every call acquires its own connection
    from the provider and releases it before returning.
    """

    __slots__ = ("_provider",)

    def __init__(self, provider: ConnectionProviderPort):
        """Create query wrapper.

        Args:
            provider: Object whose `connect()` returns a `ConnectionPort`.
        """

        self._provider = provider

    @classmethod
    def from_env(cls, prefix: str = "QUERY_WRAPPER_") -> QueryWrapper:
        """Build a wrapper from `ConnectionSettings.from_env(prefix)`."""

        from ..config import ConnectionSettings, build_provider

        return cls(build_provider(ConnectionSettings.from_env(prefix)))

    @property
    def provider(self) -> ConnectionProviderPort:
        return self._provider

    def fetch_all(
        self,
        query: str,
        params: BindingsInput = (),
        mode: FetchModeInput = FetchMode.ASSOCIATIVE,
    ) -> List[ResultRow]:
        """Run a query and return every row shaped per `mode`."""

        fetch_mode = normalize_fetch_mode(mode)
        with self._run_query(query, params) as (_, cursor):
            return cursor.fetch_all_rows(fetch_mode)

    def fetch_objects(
        self,
        query: str,
        params: BindingsInput = (),
        model: Optional[Type[T]] = None,
    ) -> Union[List[Record], List[T]]:
        """Run a query and return every row as a `Record`, or as `model(**row)`."""

        with self._run_query(query, params) as (_, cursor):
            if model is None:
                return cursor.fetch_all_rows(FetchMode.OBJECT)
            rows = cursor.fetch_all_rows(FetchMode.ASSOCIATIVE)
        return [row_to_model(model, row) for row in rows]

    def fetch_assoc(
        self,
        query: str,
        params: BindingsInput = (),
        mode: FetchModeInput = FetchMode.ASSOCIATIVE,
    ) -> Union[Dict[Any, Any], List[ResultRow]]:
        """Return `{col0: col1}` for two-column results, otherwise like `fetch_all`.

        Duplicate first-column values collapse; the last row wins.
        """

        fetch_mode = normalize_fetch_mode(mode)
        with self._run_query(query, params) as (_, cursor):
            if cursor.column_count() != 2:
                return cursor.fetch_all_rows(fetch_mode)

            answer: Dict[Any, Any] = {}
            while True:
                row = cursor.fetch_row(FetchMode.NUMERIC_INDEXED)
                if row is None:
                    return answer
                answer[row[0]] = row[1]

    def fetch_column(
        self,
        query: str,
        params: BindingsInput = (),
        column_index: int = 0,
        *,
        stop_at_falsy: bool = True,
    ) -> List[Any]:
        """Collect one column from each row.

        Collection stops at the first falsy value (`None`, `0`, `""`), which
        is not included, unless `stop_at_falsy=False`.
        """

        index = _coerce_column_index(column_index)
        with self._run_query(query, params) as (_, cursor):
            count = cursor.column_count()
            if not 0 <= index < count:
                raise InvalidColumnIndex(
                    f"Column index {index} is out of range for {count} result columns."
                )

            values: List[Any] = []
            while True:
                value = cursor.fetch_column_value(index)
                if value is NO_MORE_ROWS:
                    break
                if stop_at_falsy and not value:
                    break
                values.append(value)
            return values

    def fetch_one(self, query: str, params: BindingsInput = ()) -> Any:
        """Return the first column of the first row, or `None` when no row."""

        with self._run_query(_with_limit_one(query), params) as (_, cursor):
            row = cursor.fetch_row(FetchMode.NUMERIC_INDEXED)
        if not row:
            return None
        return row[0]

    def fetch_row(
        self,
        query: str,
        params: BindingsInput = (),
        mode: FetchModeInput = FetchMode.ASSOCIATIVE,
    ) -> ResultRow:
        """Return the first row shaped per `mode`, or an empty row."""

        fetch_mode = normalize_fetch_mode(mode)
        with self._run_query(query, params) as (_, cursor):
            row = cursor.fetch_row(fetch_mode)
        if row is None:
            return {} if fetch_mode is FetchMode.ASSOCIATIVE else ()
        return row

    def execute(self, query: str, params: BindingsInput = ()) -> Any:
        """Run a statement and return the connection's last-insert identifier."""

        with self._run_query(query, params) as (conn, _):
            return conn.last_insert_id()

    @contextlib.contextmanager
    def _run_query(
        self, query: str, params: BindingsInput
    ) -> Iterator[Tuple[ConnectionPort, CursorPort]]:
        bindings = _prepare_bindings(params)
        conn = self._provider.connect()
        failed = True
        try:
            statement = conn.prepare(query)
            for binding in bindings:
                statement.bind(binding.name, binding.value, binding.param_type)
            cursor = statement.execute()
            try:
                yield conn, cursor
            finally:
                cursor.close()
            failed = False
        finally:
            conn.release(rollback=failed)


def _prepare_bindings(params: BindingsInput) -> Sequence[ParameterBinding]:
    """Validate bindings and their values before any connection is acquired."""

    bindings = normalize_bindings(params)
    return [
        ParameterBinding(b.name, b.coerced_value(), b.param_type) for b in bindings
    ]


def _with_limit_one(query: str) -> str:
    if query.lower().find(" limit") >= 1:
        return query
    return query.rstrip().removesuffix(";").rstrip() + " LIMIT 1"


def _coerce_column_index(column_index: Any) -> int:
    if isinstance(column_index, bool):
        raise InvalidColumnIndex(f"{column_index!r} is not a column index.")
    try:
        return int(column_index)
    except (TypeError, ValueError):
        raise InvalidColumnIndex(f"{column_index!r} is not a column index.") from None

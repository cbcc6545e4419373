"""Core port contracts implemented by connection adapters and providers."""

from __future__ import annotations

from typing import Any, List, Optional, Protocol

from .fetch_modes import FetchMode, ParamType
from .types import ResultRow


class _NoMoreRows:
    """Sentinel type returned by `fetch_column_value` once rows run out."""

    _instance: Optional[_NoMoreRows] = None

    def __new__(cls) -> _NoMoreRows:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_MORE_ROWS"

    def __bool__(self) -> bool:
        return False


NO_MORE_ROWS = _NoMoreRows()


class CursorPort(Protocol):
    """Executed statement result that can be read row by row."""

    def fetch_row(self, mode: FetchMode = FetchMode.ASSOCIATIVE) -> Optional[ResultRow]: ...

    def fetch_all_rows(self, mode: FetchMode = FetchMode.ASSOCIATIVE) -> List[ResultRow]: ...

    def column_count(self) -> int: ...

    def fetch_column_value(self, index: int = 0) -> Any: ...

    def close(self) -> None: ...


class PreparedStatementPort(Protocol):
    """Query text awaiting bound values."""

    def bind(self, name: str, value: Any, param_type: ParamType = ParamType.STRING) -> None: ...

    def execute(self) -> CursorPort: ...


class ConnectionPort(Protocol):
    """One usable database connection handed out by a provider."""

    def prepare(self, query: str) -> PreparedStatementPort: ...

    def last_insert_id(self) -> Any: ...

    def release(self, *, rollback: bool = False) -> None: ...


class ConnectionProviderPort(Protocol):
    """Source of ready-to-use connections."""

    def connect(self) -> ConnectionPort: ...

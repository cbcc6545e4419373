"""Bounded thread-safe pool of DB-API connections for pooled providers."""

from __future__ import annotations

import collections
import contextlib
import functools
import logging
import threading
import time
from collections.abc import Callable, Iterator
from typing import Any

logger = logging.getLogger(__name__)

_GUARDS = ("rollback", "discard")


class PoolConnector:
    """Lend DB-API connections to concurrent callers, opening at most `max_size`.

    Connections are opened lazily. One handed back with an open transaction is
    rolled back, then kept (`transaction_guard="rollback"`) or closed
    (`transaction_guard="discard"`).
    """

    def __init__(
        self,
        connect: Callable[..., Any],
        *connect_args: Any,
        max_size: int = 5,
        transaction_guard: str = "rollback",
        **connect_kwargs: Any,
    ):
        """Create pool.

        Args:
            connect: Driver `connect` callable (e.g. `sqlite3.connect`).
            *connect_args: Positional arguments for `connect`.
            max_size: Upper bound on open connections.
            transaction_guard: What to do with a connection released mid-transaction.
            **connect_kwargs: Keyword arguments for `connect`.
        """

        if max_size < 1:
            raise ValueError("max_size must be >= 1.")
        if transaction_guard not in _GUARDS:
            raise ValueError(f"transaction_guard must be one of: {', '.join(_GUARDS)}.")
        _check_sqlite_target(connect, connect_args, connect_kwargs, max_size)

        self._factory = functools.partial(connect, *connect_args, **connect_kwargs)
        self._max_size = max_size
        self._guard = transaction_guard

        self._lock = threading.Condition()
        self._free: collections.deque[Any] = collections.deque()
        self._lent: dict[int, Any] = {}
        self._opened = 0
        self._closed = False

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def in_use(self) -> int:
        with self._lock:
            return len(self._lent)

    def acquire(self, timeout: float | None = None) -> Any:
        """Borrow a connection, waiting up to `timeout` seconds when all are lent."""

        deadline = None if timeout is None else time.monotonic() + timeout
        with self._lock:
            while True:
                self._ensure_open()
                if self._free:
                    return self._lend(self._free.popleft())
                if self._opened < self._max_size:
                    # Slot is reserved here; the driver connect runs unlocked.
                    self._opened += 1
                    break
                self._wait(deadline)

        conn = self._open()
        with self._lock:
            if not self._closed:
                return self._lend(conn)
            self._opened -= 1
            self._lock.notify()
        _close_connection(conn)
        raise RuntimeError("PoolConnector is closed.")

    def release(self, conn: Any) -> None:
        """Take back a borrowed connection, cleaning up any open transaction."""

        with self._lock:
            if id(conn) not in self._lent:
                raise ValueError("Connection was not acquired from this pool or already released.")
            del self._lent[id(conn)]

        try:
            reusable = self._reset(conn)
        except Exception as exc:
            self._retire(conn)
            raise RuntimeError("Failed to clean pooled DB connection before returning it.") from exc

        with self._lock:
            if reusable and not self._closed:
                self._free.append(conn)
                self._lock.notify()
                return
        self._retire(conn)

    @contextlib.contextmanager
    def connection(self, timeout: float | None = None) -> Iterator[Any]:
        """Borrow one connection for the `with` block."""

        conn = self.acquire(timeout=timeout)
        try:
            yield conn
        finally:
            self.release(conn)

    def close(self) -> None:
        """Close idle connections and refuse further `acquire` calls.

        Connections still lent out are closed when they are released.
        """

        with self._lock:
            if self._closed:
                return
            self._closed = True
            idle = list(self._free)
            self._free.clear()
            self._opened -= len(idle)
            self._lock.notify_all()

        for conn in idle:
            _close_connection(conn)
        logger.debug("pool closed (%d idle connections closed)", len(idle))

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("PoolConnector is closed.")

    def _wait(self, deadline: float | None) -> None:
        if deadline is None:
            self._lock.wait()
            return
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TimeoutError("Timed out waiting for a pooled DB connection.")
        self._lock.wait(remaining)

    def _lend(self, conn: Any) -> Any:
        self._lent[id(conn)] = conn
        return conn

    def _open(self) -> Any:
        try:
            conn = self._factory()
        except BaseException:
            with self._lock:
                self._opened -= 1
                self._lock.notify()
            raise
        logger.debug("opened pooled connection (%d/%d)", self._opened, self._max_size)
        return conn

    def _reset(self, conn: Any) -> bool:
        """Roll back an open transaction; return whether `conn` may be reused."""

        if not _has_open_transaction(conn):
            return True
        rollback = getattr(conn, "rollback", None)
        if not callable(rollback):
            raise RuntimeError("Connection has no rollback() for transaction cleanup.")
        rollback()
        logger.debug("rolled back pooled connection released mid-transaction")
        return self._guard == "rollback"

    def _retire(self, conn: Any) -> None:
        with self._lock:
            self._opened -= 1
            self._lock.notify()
        _close_connection(conn)
        logger.debug("closed pooled connection")


def _check_sqlite_target(
    connect: Callable[..., Any],
    connect_args: tuple[Any, ...],
    connect_kwargs: dict[str, Any],
    max_size: int,
) -> None:
    if max_size <= 1:
        return
    module_name = getattr(connect, "__module__", "") or ""
    if not module_name.lstrip("_").startswith("sqlite3"):
        return

    database = connect_args[0] if connect_args else connect_kwargs.get("database")
    if database == ":memory:":
        raise ValueError(
            "sqlite ':memory:' databases are private to one connection; "
            "pool them with max_size=1 or use a file path."
        )
    if connect_kwargs.get("check_same_thread", True):
        raise ValueError(
            "Pooling sqlite with max_size > 1 hands connections across threads; "
            "pass check_same_thread=False."
        )


def _has_open_transaction(conn: Any) -> bool:
    flag = getattr(conn, "in_transaction", None)
    if isinstance(flag, bool):
        return flag

    # psycopg 3: libpq transaction status, 0 is idle.
    tx_status = getattr(getattr(conn, "info", None), "transaction_status", None)
    if tx_status is not None:
        return tx_status != 0

    # psycopg2: connection status, 1 (STATUS_READY) is idle.
    if "psycopg2" in type(conn).__module__.lower():
        status = getattr(conn, "status", None)
        return status is not None and status != 1

    return False


def _close_connection(conn: Any) -> None:
    close = getattr(conn, "close", None)
    if callable(close):
        close()

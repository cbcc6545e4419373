"""Connection providers handing DB-API connections to the query wrapper."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .connection import DBAPIConnection
from .dialects import Dialect
from .pool_connector import PoolConnector

logger = logging.getLogger(__name__)


class SingleConnectionProvider:
    """Hand out one shared connection; releasing a call never closes it."""

    def __init__(self, conn: Any, dialect: Dialect, *, autocommit: bool = True):
        self.conn = conn
        self.dialect = dialect
        self.autocommit = autocommit
        self._closed = False

    def connect(self) -> DBAPIConnection:
        if self._closed:
            raise RuntimeError("provider is closed")
        return DBAPIConnection(self.conn, self.dialect, autocommit=self.autocommit)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        close = getattr(self.conn, "close", None)
        if callable(close):
            close()
        logger.debug("closed shared %s connection", self.dialect.name)

    def __enter__(self) -> SingleConnectionProvider:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()


class ConnectPerCallProvider:
    """Open a fresh connection for every call and close it on release."""

    def __init__(
        self,
        connect: Callable[..., Any],
        *connect_args: Any,
        dialect: Dialect,
        autocommit: bool = True,
        **connect_kwargs: Any,
    ):
        self._connect = connect
        self._connect_args = connect_args
        self._connect_kwargs = connect_kwargs
        self.dialect = dialect
        self.autocommit = autocommit

    def connect(self) -> DBAPIConnection:
        conn = self._connect(*self._connect_args, **self._connect_kwargs)
        logger.debug("opened %s connection", self.dialect.name)
        return DBAPIConnection(
            conn,
            self.dialect,
            autocommit=self.autocommit,
            on_release=self._close,
        )

    def _close(self, conn: Any) -> None:
        close = getattr(conn, "close", None)
        if callable(close):
            close()
        logger.debug("closed %s connection", self.dialect.name)

    def close(self) -> None:
        """Nothing is held between calls."""


class PooledConnectionProvider:
    """Borrow a connection from a `PoolConnector` per call and return it on release."""

    def __init__(
        self,
        pool: PoolConnector,
        dialect: Dialect,
        *,
        autocommit: bool = True,
        acquire_timeout: float | None = None,
    ):
        self.pool = pool
        self.dialect = dialect
        self.autocommit = autocommit
        self.acquire_timeout = acquire_timeout

    def connect(self) -> DBAPIConnection:
        conn = self.pool.acquire(timeout=self.acquire_timeout)
        return DBAPIConnection(
            conn,
            self.dialect,
            autocommit=self.autocommit,
            on_release=self.pool.release,
        )

    def close(self) -> None:
        self.pool.close()

    def __enter__(self) -> PooledConnectionProvider:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

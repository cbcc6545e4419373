"""Connection settings read from the environment and provider construction."""

from __future__ import annotations

import importlib
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from .ports.db_api.dialects import Dialect, MySQLDialect, PostgresDialect, SQLiteDialect
from .ports.db_api.pool_connector import PoolConnector
from .ports.db_api.providers import (
    ConnectPerCallProvider,
    PooledConnectionProvider,
    SingleConnectionProvider,
)

logger = logging.getLogger(__name__)

_DRIVER_MODULES = {
    "sqlite": ("sqlite3",),
    "postgres": ("psycopg", "psycopg2"),
    "mysql": ("pymysql", "MySQLdb"),
}

_DRIVER_ALIASES = {
    "sqlite": "sqlite",
    "sqlite3": "sqlite",
    "postgres": "postgres",
    "postgresql": "postgres",
    "pg": "postgres",
    "mysql": "mysql",
    "mariadb": "mysql",
}

_DIALECTS: Mapping[str, Callable[[], Dialect]] = {
    "sqlite": SQLiteDialect,
    "postgres": PostgresDialect,
    "mysql": MySQLDialect,
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ConnectionSettings:
    """Where and how to connect. `pool_size=0` disables pooling."""

    driver: str = "sqlite"
    database: str = ":memory:"
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = None
    pool_size: int = 0
    autocommit: bool = True

    def __post_init__(self) -> None:
        key = self.driver.strip().lower()
        if key not in _DRIVER_ALIASES:
            raise ValueError(
                f"Unsupported driver: {self.driver}. Supported: {sorted(_DRIVER_ALIASES)}"
            )
        object.__setattr__(self, "driver", _DRIVER_ALIASES[key])
        if self.pool_size < 0:
            raise ValueError("pool_size must be >= 0.")

    @classmethod
    def from_env(
        cls,
        prefix: str = "QUERY_WRAPPER_",
        environ: Optional[Mapping[str, str]] = None,
    ) -> ConnectionSettings:
        """Read settings from `{prefix}DRIVER`, `{prefix}DATABASE`, and friends."""

        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(prefix + name)
            if value is None or not value.strip():
                return None
            return value.strip()

        port = get("PORT")
        pool_size = get("POOL_SIZE")
        return cls(
            driver=get("DRIVER") or "sqlite",
            database=get("DATABASE") or ":memory:",
            host=get("HOST"),
            port=_parse_int(prefix + "PORT", port) if port is not None else None,
            user=get("USER"),
            password=env.get(prefix + "PASSWORD"),
            pool_size=_parse_int(prefix + "POOL_SIZE", pool_size) if pool_size is not None else 0,
            autocommit=_parse_bool(prefix + "AUTOCOMMIT", get("AUTOCOMMIT"), default=True),
        )

    def dialect(self) -> Dialect:
        return _DIALECTS[self.driver]()

    def connect_kwargs(self, module_name: str) -> dict[str, Any]:
        """Keyword arguments for the driver module's `connect()`."""

        if self.driver == "sqlite":
            return {}
        kwargs: dict[str, Any] = {}
        if self.host is not None:
            kwargs["host"] = self.host
        if self.port is not None:
            kwargs["port"] = self.port
        if self.user is not None:
            kwargs["user"] = self.user
        if self.password is not None:
            kwargs["password"] = self.password
        if self.driver == "postgres":
            kwargs["dbname"] = self.database
        elif module_name == "MySQLdb":
            kwargs["db"] = self.database
        else:
            kwargs["database"] = self.database
        return kwargs


def load_driver(driver: str) -> tuple[str, Any]:
    """Import the first available DB-API module for `driver`."""

    modules = _DRIVER_MODULES[driver]
    for module_name in modules:
        try:
            module = importlib.import_module(module_name)
        except ImportError:
            continue
        if getattr(module, "connect", None) is not None:
            logger.debug("using %s driver module %s", driver, module_name)
            return module_name, module
    raise ImportError(
        f"No DB-API driver found for {driver}. Install one of: {', '.join(modules)}."
    )


def build_provider(settings: ConnectionSettings) -> Any:
    """Build a connection provider matching `settings`.

    - `pool_size > 0`: `PooledConnectionProvider` over a `PoolConnector`.
    - sqlite without pool: one shared connection (an in-memory database
      only exists on the connection that created it).
    - anything else: a fresh connection per call.
    """

    module_name, module = load_driver(settings.driver)
    dialect = settings.dialect()
    kwargs = settings.connect_kwargs(module_name)

    if settings.driver == "sqlite":
        if settings.pool_size > 0:
            pool = PoolConnector(
                module.connect,
                settings.database,
                max_size=settings.pool_size,
                check_same_thread=False,
            )
            return PooledConnectionProvider(pool, dialect, autocommit=settings.autocommit)
        conn = module.connect(settings.database)
        return SingleConnectionProvider(conn, dialect, autocommit=settings.autocommit)

    if settings.pool_size > 0:
        pool = PoolConnector(module.connect, max_size=settings.pool_size, **kwargs)
        return PooledConnectionProvider(pool, dialect, autocommit=settings.autocommit)
    return ConnectPerCallProvider(
        module.connect,
        dialect=dialect,
        autocommit=settings.autocommit,
        **kwargs,
    )


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}.") from None


def _parse_bool(name: str, value: Optional[str], *, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {value!r}.")

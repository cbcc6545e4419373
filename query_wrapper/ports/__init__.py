"""Public port exports for concrete adapter implementations."""

from .db_api import (
    ConnectPerCallProvider,
    DBAPIConnection,
    Dialect,
    MySQLDialect,
    PoolConnector,
    PooledConnectionProvider,
    PostgresDialect,
    SingleConnectionProvider,
    SQLiteDialect,
)

__all__ = [
    "DBAPIConnection",
    "Dialect",
    "SQLiteDialect",
    "PostgresDialect",
    "MySQLDialect",
    "PoolConnector",
    "SingleConnectionProvider",
    "ConnectPerCallProvider",
    "PooledConnectionProvider",
]

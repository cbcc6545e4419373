"""DB-API adapter, dialect, pool, and provider exports."""

from .connection import DBAPIConnection, DBAPICursor, DBAPIStatement
from .dialects import Dialect, MySQLDialect, PostgresDialect, SQLiteDialect
from .pool_connector import PoolConnector
from .providers import ConnectPerCallProvider, PooledConnectionProvider, SingleConnectionProvider

__all__ = [
    "ConnectPerCallProvider",
    "DBAPIConnection",
    "DBAPICursor",
    "DBAPIStatement",
    "Dialect",
    "MySQLDialect",
    "PoolConnector",
    "PooledConnectionProvider",
    "PostgresDialect",
    "SQLiteDialect",
    "SingleConnectionProvider",
]

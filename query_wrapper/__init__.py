"""Run parameterized SQL over DB-API drivers and reshape the results."""

import logging

from .config import ConnectionSettings, build_provider
from .core import (
    DatabaseExecutionError,
    FetchMode,
    InvalidColumnIndex,
    InvalidFetchMode,
    InvalidParameter,
    InvalidParameterType,
    ParameterBinding,
    ParamType,
    QueryWrapper,
    QueryWrapperError,
    Record,
)
from .ports import (
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

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "QueryWrapper",
    "FetchMode",
    "ParamType",
    "ParameterBinding",
    "Record",
    "QueryWrapperError",
    "InvalidFetchMode",
    "InvalidParameterType",
    "InvalidParameter",
    "InvalidColumnIndex",
    "DatabaseExecutionError",
    "ConnectionSettings",
    "build_provider",
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

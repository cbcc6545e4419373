"""Public core API for fetch modes, bindings, errors, and the query wrapper."""

from .bindings import ParameterBinding, make_binding, normalize_bindings
from .contracts import (
    NO_MORE_ROWS,
    ConnectionPort,
    ConnectionProviderPort,
    CursorPort,
    PreparedStatementPort,
)
from .errors import (
    DatabaseExecutionError,
    InvalidColumnIndex,
    InvalidFetchMode,
    InvalidParameter,
    InvalidParameterType,
    QueryWrapperError,
)
from .fetch_modes import FetchMode, ParamType, normalize_fetch_mode, normalize_param_type
from .query_wrapper import QueryWrapper
from .records import Record, row_to_model, row_to_record

__all__ = [
    "NO_MORE_ROWS",
    "ConnectionPort",
    "ConnectionProviderPort",
    "CursorPort",
    "PreparedStatementPort",
    "DatabaseExecutionError",
    "InvalidColumnIndex",
    "InvalidFetchMode",
    "InvalidParameter",
    "InvalidParameterType",
    "QueryWrapperError",
    "FetchMode",
    "ParamType",
    "ParameterBinding",
    "QueryWrapper",
    "Record",
    "make_binding",
    "normalize_bindings",
    "normalize_fetch_mode",
    "normalize_param_type",
    "row_to_model",
    "row_to_record",
]

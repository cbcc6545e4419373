"""Exception types raised by the query wrapper."""

from __future__ import annotations


class QueryWrapperError(Exception):
    """Base class for every error raised by `query_wrapper`."""


class InvalidFetchMode(QueryWrapperError, ValueError):
    """Raised when an operation is asked for a fetch mode it does not support."""


class InvalidParameterType(QueryWrapperError, ValueError):
    """Raised when a binding carries a type hint outside the supported set."""


class InvalidParameter(QueryWrapperError, ValueError):
    """Raised for malformed bindings or values that cannot be bound."""


class InvalidColumnIndex(QueryWrapperError, IndexError):
    """Raised when a column index falls outside the result columns."""


class DatabaseExecutionError(QueryWrapperError):
    """Raised when the driver fails to prepare, execute, or fetch a statement.

    The message is the driver's own message; the original exception is kept
    on `driver_error` and chained as `__cause__`.
    """

    def __init__(self, message: str, driver_error: BaseException | None = None):
        super().__init__(message)
        self.driver_error = driver_error

    @classmethod
    def from_driver(cls, exc: BaseException) -> DatabaseExecutionError:
        message = str(exc) or type(exc).__name__
        return cls(message, driver_error=exc)

"""Fetch mode and parameter type definitions with normalization helpers."""

from __future__ import annotations

from enum import IntEnum
from typing import Iterable

from .errors import InvalidFetchMode, InvalidParameterType


class FetchMode(IntEnum):
    """Row shape policy. Values follow the classic driver integer codes."""

    ASSOCIATIVE = 2
    NUMERIC_INDEXED = 3
    OBJECT = 5


class ParamType(IntEnum):
    """Bind type hint for one placeholder."""

    INTEGER = 1
    STRING = 2


FetchModeInput = FetchMode | int
ParamTypeInput = ParamType | int | str | None

ROW_MODES = frozenset({FetchMode.ASSOCIATIVE, FetchMode.NUMERIC_INDEXED})

_PARAM_TYPE_ALIASES = {
    "string": ParamType.STRING,
    "str": ParamType.STRING,
    "integer": ParamType.INTEGER,
    "int": ParamType.INTEGER,
}


def normalize_fetch_mode(
    mode: FetchModeInput,
    *,
    supported: Iterable[FetchMode] = ROW_MODES,
) -> FetchMode:
    """Normalize an integer-coded fetch mode and check it against `supported`."""

    # bool is an int subclass; True/False are never fetch modes.
    if isinstance(mode, bool) or not isinstance(mode, int):
        raise InvalidFetchMode(f"{mode!r} is not a valid fetch mode.")
    try:
        normalized = FetchMode(mode)
    except ValueError:
        raise InvalidFetchMode(f"{mode!r} is not a valid fetch mode.") from None

    supported_set = set(supported)
    if normalized not in supported_set:
        allowed = sorted(item.name for item in supported_set)
        raise InvalidFetchMode(
            f"{normalized.name} is not a valid fetch mode here. Supported: {allowed}"
        )
    return normalized


def normalize_param_type(param_type: ParamTypeInput) -> ParamType:
    """Normalize a binding type hint; `None` means the STRING default."""

    if param_type is None:
        return ParamType.STRING
    if isinstance(param_type, ParamType):
        return param_type
    if isinstance(param_type, bool):
        raise InvalidParameterType(f"{param_type!r} is not an accepted data type.")
    if isinstance(param_type, int):
        if param_type in ParamType._value2member_map_:
            return ParamType(param_type)
    elif isinstance(param_type, str):
        key = param_type.strip().lower()
        if key in _PARAM_TYPE_ALIASES:
            return _PARAM_TYPE_ALIASES[key]
    raise InvalidParameterType(f"{param_type!r} is not an accepted data type.")


"""Placeholder binding normalization and bind-time value coercion."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, List

from .errors import InvalidParameter
from .fetch_modes import ParamType, ParamTypeInput, normalize_param_type
from .types import BindingsInput


@dataclass(frozen=True)
class ParameterBinding:
    """One `(name, value, type)` binding for a named placeholder."""

    name: str
    value: Any
    param_type: ParamType = ParamType.STRING

    @property
    def placeholder(self) -> str:
        return f":{self.name}"

    def coerced_value(self) -> Any:
        """Return the value converted for its type hint. `None` stays NULL."""

        return coerce_value(self.name, self.value, self.param_type)


def make_binding(name: Any, value: Any, param_type: ParamTypeInput = None) -> ParameterBinding:
    """Validate and build one binding. Leading `:` on the name is optional."""

    if not isinstance(name, str) or not name.lstrip(":"):
        raise InvalidParameter(f"Placeholder name must be a non-empty string, got {name!r}.")
    return ParameterBinding(
        name=name.lstrip(":"),
        value=value,
        param_type=normalize_param_type(param_type),
    )


def normalize_bindings(params: BindingsInput) -> List[ParameterBinding]:
    """Turn user binding input into a list of validated bindings.

    Accepted shapes:
    - `None` or empty sequence: no bindings.
    - one flat triple or pair, e.g. `("id", 5, ParamType.INTEGER)`.
    - a sequence of triples/pairs, one per placeholder.
    - a mapping `{name: value}`; `int` values bind as INTEGER.
    - a `ParameterBinding`, or a sequence of them (mixing with triples is fine).
    """

    if params is None:
        return []

    if isinstance(params, ParameterBinding):
        return [_binding_from_entry(params)]

    if isinstance(params, Mapping):
        return [
            make_binding(name, value, _infer_param_type(value))
            for name, value in params.items()
        ]

    if isinstance(params, (str, bytes)) or not isinstance(params, Sequence):
        raise InvalidParameter(
            f"Bindings must be a sequence of triples or a mapping, got {type(params).__name__}."
        )

    if not params:
        return []

    nested = [_is_binding_entry(item) for item in params]
    if all(nested):
        return [_binding_from_entry(item) for item in params]
    if not any(nested):
        # A flat triple is bound once.
        return [_binding_from_entry(params)]
    raise InvalidParameter(
        "Bindings mix flat values and nested triples; pass a sequence of triples."
    )


def coerce_value(name: str, value: Any, param_type: ParamType) -> Any:
    if value is None:
        return None

    if param_type is ParamType.INTEGER:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise InvalidParameter(
                f"Value {value!r} for :{name} cannot be bound as INTEGER."
            ) from exc

    if isinstance(value, (str, bytes)):
        return value
    return str(value)


def _is_binding_entry(item: Any) -> bool:
    if isinstance(item, ParameterBinding):
        return True
    return isinstance(item, Sequence) and not isinstance(item, (str, bytes))


def _binding_from_entry(entry: ParameterBinding | Sequence[Any]) -> ParameterBinding:
    if isinstance(entry, ParameterBinding):
        return make_binding(entry.name, entry.value, entry.param_type)
    if len(entry) not in (2, 3):
        raise InvalidParameter(
            f"Binding must be (name, value) or (name, value, type), got {len(entry)} items."
        )
    param_type = entry[2] if len(entry) == 3 else None
    return make_binding(entry[0], entry[1], param_type)


def _infer_param_type(value: Any) -> ParamType:
    if isinstance(value, int) and not isinstance(value, bool):
        return ParamType.INTEGER
    return ParamType.STRING

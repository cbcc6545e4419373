"""Shared core type aliases used across contracts, bindings, and ports."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Mapping, Sequence, Tuple, Union

if TYPE_CHECKING:
    from .bindings import ParameterBinding

BindingTriple = Sequence[Any]
BindingsInput = Union[
    "ParameterBinding",
    BindingTriple,
    Sequence[Union[BindingTriple, "ParameterBinding"]],
    Mapping[str, Any],
    None,
]

AssocRow = Dict[str, Any]
NumericRow = Tuple[Any, ...]
ResultRow = Union[AssocRow, NumericRow]

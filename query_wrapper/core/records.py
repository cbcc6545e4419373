"""Row record type and row-to-object mapping helpers."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, Mapping, Type, TypeVar

T = TypeVar("T")


class Record(SimpleNamespace):
    """Named-field row where each column is an attribute.

    Column names that are not valid identifiers (e.g. `COUNT(*)`) are
    reachable through item access: `record["COUNT(*)"]`.
    """

    def __getitem__(self, key: str) -> Any:
        try:
            return self.__dict__[key]
        except KeyError:
            raise KeyError(key) from None

    def __contains__(self, key: object) -> bool:
        return key in self.__dict__

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


def row_to_record(row: Mapping[str, Any]) -> Record:
    """Map one row mapping to a `Record`."""

    return Record(**dict(row))


def row_to_model(cls: Type[T], row: Mapping[str, Any]) -> T:
    """Map one row mapping to a model instance."""

    return cls(**dict(row))  # type: ignore[call-arg]

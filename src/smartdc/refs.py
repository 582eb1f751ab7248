"""References to CloudAPI resources by name or by fetched object."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ByName:
    """A resource identified directly by its name or id."""

    name: str

    def ident(self, field: str = "id") -> str:
        del field
        return self.name


@dataclass(frozen=True)
class ByObject:
    """A resource given as a previously fetched object."""

    resource: Mapping[str, Any]

    def ident(self, field: str = "id") -> str:
        value = self.resource.get(field)
        if value is None or value == "":
            raise TypeError(f"resource object has no {field!r}")
        return str(value)


ResourceRef = ByName | ByObject


def as_ref(value: str | int | Mapping[str, Any] | ResourceRef) -> ResourceRef:
    """Wrap a caller-supplied identifier into a ``ResourceRef``."""
    if isinstance(value, (ByName, ByObject)):
        return value
    if isinstance(value, bool):
        raise TypeError("resource reference must be a string, number or object")
    if isinstance(value, (str, int)):
        if value == "":
            raise TypeError("resource reference must not be empty")
        return ByName(str(value))
    if isinstance(value, Mapping):
        return ByObject(value)
    raise TypeError("resource reference must be a string, number or object")


def resolve(value: str | int | Mapping[str, Any] | ResourceRef, field: str = "id") -> str:
    """Resolve a reference to the identifier used in request paths."""
    return as_ref(value).ident(field)

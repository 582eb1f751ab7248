"""Argument validation for resource operations."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from smartdc.util.parsing import parse_csv

NETWORK_STRING_FIELDS = (
    "gateway",
    "provision_end_ip",
    "provision_start_ip",
    "subnet",
    "description",
    "name",
)


def options(value: Any, name: str = "options") -> dict[str, Any]:
    """Require a mapping and return a shallow copy."""
    if not isinstance(value, Mapping):
        raise TypeError(f"{name} (object) required")
    return dict(value)


def non_empty_string(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise TypeError(f"{name} (string) required")
    return value


def vlan_id(value: Any) -> int:
    """Accept a number or numeric string and return the VLAN id as int."""
    if isinstance(value, bool):
        raise TypeError("vlan_id (number) required")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise TypeError("vlan_id (number) required") from exc
    if number != number or not number.is_integer():
        raise TypeError("vlan_id (number) required")
    return int(number)


def resolvers(value: Any) -> list[str]:
    """Accept a comma-separated string or a list of strings."""
    if isinstance(value, str):
        items = parse_csv(value)
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        raise TypeError("resolvers (array of strings) required")
    for item in items:
        if not isinstance(item, str):
            raise TypeError("resolvers (array of strings) required")
    return items


def vlan_options(value: Any) -> dict[str, Any]:
    raw = options(value)
    opts: dict[str, Any] = {}
    if "vlan_id" in raw:
        opts["vlan_id"] = vlan_id(raw["vlan_id"])
    for key in ("name", "description"):
        if key in raw:
            opts[key] = raw[key]
    return opts


def network_options(value: Any) -> dict[str, Any]:
    raw = options(value)
    opts: dict[str, Any] = {}
    if "vlan_id" in raw:
        opts["vlan_id"] = vlan_id(raw["vlan_id"])
    for key in NETWORK_STRING_FIELDS:
        if key in raw:
            if not isinstance(raw[key], str):
                raise TypeError(f"options.{key} (string) required")
            opts[key] = raw[key]
    if "resolvers" in raw:
        opts["resolvers"] = resolvers(raw["resolvers"])
    return opts

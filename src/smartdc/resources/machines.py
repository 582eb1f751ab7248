"""Machine lifecycle, snapshot, tag, metadata, usage and audit operations."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from smartdc import paths, validate
from smartdc.core import CloudAPICore
from smartdc.refs import resolve

MACHINE_CACHE_TTL_MS = 15 * 1000
USAGE_PERIOD_RE = re.compile(r"^[0-9]{4}-[0-9]{1,2}$")
ALL = "*"


def _period(value: str) -> str:
    if not isinstance(value, str) or not USAGE_PERIOD_RE.match(value):
        raise TypeError("period (YYYY-MM string) required")
    return value


def machine_filters(
    filters: Mapping[str, Any] | None, tags: Mapping[str, Any] | str | None
) -> dict[str, Any]:
    """Merge listing filters with ``tag.<name>`` filters (or ``tags=*``)."""
    query = validate.options(filters, "filters") if filters is not None else {}
    if tags == ALL:
        query["tags"] = ALL
    elif tags is not None:
        for key, value in validate.options(tags, "tags").items():
            query[f"tag.{key}"] = value
    return query


class MachineResources(CloudAPICore):
    async def create_machine(self, options: Mapping[str, Any], *, account: Any = None) -> Any:
        """Provision a machine; ``image`` and ``package`` may be ids or fetched objects."""
        body = validate.options(options, "options")
        if "name" in body and not isinstance(body["name"], str):
            raise TypeError("options.name must be a string")
        if "image" not in body and "dataset" in body:
            body["image"] = body.pop("dataset")
        if "image" in body:
            body["image"] = resolve(body["image"])
        if "package" in body:
            body["package"] = resolve(body["package"])
        req = await self._request(self._path(paths.MACHINES, self._account(account)), body)
        return await self._post(req)

    async def count_machines(
        self,
        filters: Mapping[str, Any] | None = None,
        *,
        tags: Mapping[str, Any] | str | None = None,
        account: Any = None,
    ) -> tuple[int, bool]:
        """Return ``(count, done)`` for a machine listing without fetching it."""
        req = await self._request(
            self._path(paths.MACHINES, self._account(account)),
            query=machine_filters(filters, tags),
            cache_ttl=MACHINE_CACHE_TTL_MS,
        )
        return await self._head(req)

    async def list_machines(
        self,
        filters: Mapping[str, Any] | None = None,
        *,
        tags: Mapping[str, Any] | str | None = None,
        account: Any = None,
    ) -> tuple[Any, bool]:
        """Return ``(machines, done)``; listings are never cached.

        When ``done`` is False call again with ``offset=len(machines)``.
        """
        req = await self._request(
            self._path(paths.MACHINES, self._account(account)),
            query=machine_filters(filters, tags),
        )
        return await self._get_page(req)

    async def get_machine(
        self,
        machine: Any,
        *,
        credentials: bool = False,
        account: Any = None,
        no_cache: bool = False,
    ) -> Any:
        path = self._path(paths.MACHINE, self._account(account), resolve(machine))
        query = {"credentials": True} if credentials else None
        req = await self._request(path, query=query, cache_ttl=MACHINE_CACHE_TTL_MS)
        return await self._get(req, no_cache=no_cache or credentials)

    async def _update_machine(
        self,
        machine: Any,
        action: str,
        params: Mapping[str, Any] | None = None,
        *,
        account: Any = None,
    ) -> Any:
        query = dict(params or {})
        query["action"] = action
        path = self._path(paths.MACHINE, self._account(account), resolve(machine))
        req = await self._request(path, query=query, expect=202)
        return await self._post(req)

    async def reboot_machine(self, machine: Any, *, account: Any = None) -> Any:
        return await self._update_machine(machine, "reboot", account=account)

    async def stop_machine(self, machine: Any, *, account: Any = None) -> Any:
        return await self._update_machine(machine, "stop", account=account)

    async def start_machine(self, machine: Any, *, account: Any = None) -> Any:
        return await self._update_machine(machine, "start", account=account)

    async def resize_machine(self, machine: Any, package: Any, *, account: Any = None) -> Any:
        params = {"package": resolve(package)}
        return await self._update_machine(machine, "resize", params, account=account)

    async def rename_machine(self, machine: Any, name: str, *, account: Any = None) -> Any:
        params = {"name": validate.non_empty_string(name, "name")}
        return await self._update_machine(machine, "rename", params, account=account)

    async def enable_firewall(self, machine: Any, *, account: Any = None) -> Any:
        return await self._update_machine(machine, "enable_firewall", account=account)

    async def disable_firewall(self, machine: Any, *, account: Any = None) -> Any:
        return await self._update_machine(machine, "disable_firewall", account=account)

    async def delete_machine(self, machine: Any, *, account: Any = None) -> None:
        path = self._path(paths.MACHINE, self._account(account), resolve(machine))
        await self._del(await self._request(path))

    # --- snapshots

    async def create_machine_snapshot(
        self, machine: Any, *, name: str | None = None, account: Any = None
    ) -> Any:
        body = {"name": name} if name is not None else {}
        path = self._path(paths.SNAPSHOTS, self._account(account), resolve(machine))
        return await self._post(await self._request(path, body))

    async def list_machine_snapshots(self, machine: Any, *, account: Any = None) -> Any:
        path = self._path(paths.SNAPSHOTS, self._account(account), resolve(machine))
        return await self._get(await self._request(path), no_cache=True)

    async def get_machine_snapshot(
        self, machine: Any, snapshot: Any, *, account: Any = None, no_cache: bool = False
    ) -> Any:
        path = self._path(
            paths.SNAPSHOT, self._account(account), resolve(machine), resolve(snapshot, "name")
        )
        return await self._get(await self._request(path), no_cache=no_cache)

    async def start_machine_from_snapshot(
        self, machine: Any, snapshot: Any, *, account: Any = None
    ) -> Any:
        path = self._path(
            paths.SNAPSHOT, self._account(account), resolve(machine), resolve(snapshot, "name")
        )
        return await self._post(await self._request(path, expect=202))

    async def delete_machine_snapshot(
        self, machine: Any, snapshot: Any, *, account: Any = None
    ) -> None:
        path = self._path(
            paths.SNAPSHOT, self._account(account), resolve(machine), resolve(snapshot, "name")
        )
        await self._del(await self._request(path))

    # --- tags

    async def add_machine_tags(
        self, machine: Any, tags: Mapping[str, Any], *, account: Any = None
    ) -> Any:
        body = validate.options(tags, "tags")
        path = self._path(paths.TAGS, self._account(account), resolve(machine))
        return await self._post(await self._request(path, body))

    async def replace_machine_tags(
        self, machine: Any, tags: Mapping[str, Any], *, account: Any = None
    ) -> Any:
        body = validate.options(tags, "tags")
        path = self._path(paths.TAGS, self._account(account), resolve(machine))
        return await self._put(await self._request(path, body))

    async def list_machine_tags(
        self, machine: Any, *, account: Any = None, no_cache: bool = False
    ) -> Any:
        path = self._path(paths.TAGS, self._account(account), resolve(machine))
        return await self._get(await self._request(path), no_cache=no_cache)

    async def get_machine_tag(
        self, machine: Any, tag: str, *, account: Any = None, no_cache: bool = False
    ) -> Any:
        tag = validate.non_empty_string(tag, "tag")
        path = self._path(paths.TAG, self._account(account), resolve(machine), tag)
        req = await self._request(path, headers={"accept": "text/plain"})
        return await self._get(req, no_cache=no_cache)

    async def delete_machine_tags(self, machine: Any, *, account: Any = None) -> None:
        path = self._path(paths.TAGS, self._account(account), resolve(machine))
        await self._del(await self._request(path))

    async def delete_machine_tag(self, machine: Any, tag: str, *, account: Any = None) -> None:
        tag = validate.non_empty_string(tag, "tag")
        path = self._path(paths.TAG, self._account(account), resolve(machine), tag)
        await self._del(await self._request(path))

    # --- metadata

    async def get_machine_metadata(
        self,
        machine: Any,
        *,
        credentials: bool = False,
        account: Any = None,
        no_cache: bool = False,
    ) -> Any:
        path = self._path(paths.METADATA, self._account(account), resolve(machine))
        query = {"credentials": True} if credentials else None
        req = await self._request(path, query=query)
        return await self._get(req, no_cache=no_cache or credentials)

    async def update_machine_metadata(
        self, machine: Any, metadata: Mapping[str, Any], *, account: Any = None
    ) -> Any:
        body = validate.options(metadata, "metadata")
        path = self._path(paths.METADATA, self._account(account), resolve(machine))
        return await self._post(await self._request(path, body))

    async def delete_machine_metadata(self, machine: Any, key: str, *, account: Any = None) -> None:
        """Delete one metadata key, or all of them when ``key`` is ``"*"``."""
        validate.non_empty_string(key, "key")
        if key == ALL:
            path = self._path(paths.METADATA, self._account(account), resolve(machine))
        else:
            path = self._path(paths.METADATA_KEY, self._account(account), resolve(machine), key)
        await self._del(await self._request(path))

    # --- usage and audit

    async def get_usage(self, period: str, *, account: Any = None, no_cache: bool = False) -> Any:
        path = self._path(paths.USAGE, self._account(account), _period(period))
        return await self._get(await self._request(path), no_cache=no_cache)

    async def get_machine_usage(
        self, machine: Any, period: str, *, account: Any = None, no_cache: bool = False
    ) -> Any:
        path = self._path(
            paths.MACHINE_USAGE, self._account(account), resolve(machine), _period(period)
        )
        return await self._get(await self._request(path), no_cache=no_cache)

    async def get_machine_audit(self, machine: Any, *, account: Any = None) -> Any:
        path = self._path(paths.AUDIT, self._account(account), resolve(machine))
        return await self._get(await self._request(path), no_cache=True)

"""Account, SSH key and account config operations."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from smartdc import paths, validate
from smartdc.core import CloudAPICore
from smartdc.refs import resolve


class AccountResources(CloudAPICore):
    async def get_account(self, *, account: Any = None, no_cache: bool = False) -> Any:
        """Look up the account record."""
        req = await self._request(self._path(paths.ROOT, self._account(account)))
        return await self._get(req, no_cache=no_cache)

    async def update_account(self, changes: Mapping[str, Any], *, account: Any = None) -> Any:
        body = validate.options(changes, "changes")
        req = await self._request(self._path(paths.ROOT, self._account(account)), body)
        return await self._post(req)

    async def create_key(
        self, key: str | Mapping[str, Any], *, name: str | None = None, account: Any = None
    ) -> Any:
        """Upload an SSH public key; ``key`` is the key text or a ``{name, key}`` object."""
        if isinstance(key, str):
            body: dict[str, Any] = {"key": validate.non_empty_string(key, "key")}
        else:
            body = validate.options(key, "key")
        if name is not None:
            body["name"] = name
        req = await self._request(self._path(paths.KEYS, self._account(account)), body)
        return await self._post(req)

    async def list_keys(self, *, account: Any = None, no_cache: bool = False) -> Any:
        query = {"sync": True} if no_cache else None
        req = await self._request(self._path(paths.KEYS, self._account(account)), query=query)
        return await self._get(req, no_cache=no_cache)

    async def get_key(self, key: Any, *, account: Any = None, no_cache: bool = False) -> Any:
        query = {"sync": True} if no_cache else None
        path = self._path(paths.KEY, self._account(account), resolve(key, "name"))
        req = await self._request(path, query=query)
        return await self._get(req, no_cache=no_cache)

    async def delete_key(self, key: Any, *, account: Any = None) -> None:
        path = self._path(paths.KEY, self._account(account), resolve(key, "name"))
        req = await self._request(path)
        await self._del(req)

    async def get_config(self, *, account: Any = None, no_cache: bool = False) -> Any:
        req = await self._request(self._path(paths.CONFIG, self._account(account)))
        return await self._get(req, no_cache=no_cache)

    async def update_config(self, changes: Mapping[str, Any], *, account: Any = None) -> Any:
        body = validate.options(changes, "changes")
        req = await self._request(self._path(paths.CONFIG, self._account(account)), body)
        return await self._put(req)

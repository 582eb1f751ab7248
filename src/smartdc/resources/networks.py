"""Network, fabric VLAN and fabric network operations."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from smartdc import paths, validate
from smartdc.core import CloudAPICore
from smartdc.refs import resolve


class NetworkResources(CloudAPICore):
    async def list_networks(self, *, account: Any = None, no_cache: bool = False) -> Any:
        req = await self._request(self._path(paths.NETWORKS, self._account(account)))
        return await self._get(req, no_cache=no_cache)

    async def get_network(
        self, network: Any, *, account: Any = None, no_cache: bool = False
    ) -> Any:
        path = self._path(paths.NETWORK, self._account(account), resolve(network))
        return await self._get(await self._request(path), no_cache=no_cache)

    # --- fabric VLANs

    async def create_fabric_vlan(self, options: Mapping[str, Any], *, account: Any = None) -> Any:
        """Create a VLAN from ``vlan_id``, ``name`` and optional ``description``."""
        body = validate.vlan_options(options)
        req = await self._request(self._path(paths.VLANS, self._account(account)), body)
        return await self._post(req)

    async def list_fabric_vlans(self, *, account: Any = None, no_cache: bool = False) -> Any:
        req = await self._request(self._path(paths.VLANS, self._account(account)))
        return await self._get(req, no_cache=no_cache)

    async def get_fabric_vlan(
        self, vlan_id: int | str, *, account: Any = None, no_cache: bool = False
    ) -> Any:
        path = self._path(paths.VLAN, self._account(account), validate.vlan_id(vlan_id))
        return await self._get(await self._request(path), no_cache=no_cache)

    async def update_fabric_vlan(
        self, vlan_id: int | str, changes: Mapping[str, Any], *, account: Any = None
    ) -> Any:
        body = validate.vlan_options(changes)
        path = self._path(paths.VLAN, self._account(account), validate.vlan_id(vlan_id))
        return await self._put(await self._request(path, body))

    async def delete_fabric_vlan(self, vlan_id: int | str, *, account: Any = None) -> None:
        path = self._path(paths.VLAN, self._account(account), validate.vlan_id(vlan_id))
        await self._del(await self._request(path))

    # --- fabric networks

    async def create_fabric_network(
        self, options: Mapping[str, Any], *, account: Any = None
    ) -> Any:
        body = validate.network_options(options)
        if "vlan_id" not in body:
            raise TypeError("options.vlan_id (number) required")
        path = self._path(paths.FABRIC_NETWORKS, self._account(account), body["vlan_id"])
        return await self._post(await self._request(path, body))

    async def list_fabric_networks(
        self,
        vlan_id: int | str | None = None,
        *,
        account: Any = None,
        no_cache: bool = False,
    ) -> Any:
        """Networks on one VLAN, or every network on the account when ``vlan_id`` is None."""
        if vlan_id is None:
            path = self._path(paths.NETWORKS, self._account(account))
        else:
            path = self._path(
                paths.FABRIC_NETWORKS, self._account(account), validate.vlan_id(vlan_id)
            )
        return await self._get(await self._request(path), no_cache=no_cache)

    async def get_fabric_network(
        self, network: Any, *, account: Any = None, no_cache: bool = False
    ) -> Any:
        return await self.get_network(network, account=account, no_cache=no_cache)

    async def delete_fabric_network(
        self, vlan_id: int | str, network: str, *, account: Any = None
    ) -> None:
        path = self._path(
            paths.FABRIC_NETWORK,
            self._account(account),
            validate.vlan_id(vlan_id),
            validate.non_empty_string(network, "network"),
        )
        await self._del(await self._request(path))

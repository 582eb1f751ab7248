"""Cloud analytics instrumentation operations."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from smartdc import paths, validate
from smartdc.core import CloudAPICore
from smartdc.refs import resolve


class AnalyticsResources(CloudAPICore):
    async def describe_analytics(self, *, account: Any = None, no_cache: bool = False) -> Any:
        """Metrics, fields and transformations available to instrumentations."""
        req = await self._request(self._path(paths.ANALYTICS, self._account(account)))
        return await self._get(req, no_cache=no_cache)

    async def create_instrumentation(
        self, options: Mapping[str, Any], *, account: Any = None
    ) -> Any:
        body = validate.options(options, "options")
        req = await self._request(self._path(paths.INSTS, self._account(account)), body)
        return await self._post(req)

    async def list_instrumentations(self, *, account: Any = None, no_cache: bool = False) -> Any:
        req = await self._request(self._path(paths.INSTS, self._account(account)))
        return await self._get(req, no_cache=no_cache)

    async def get_instrumentation(
        self, inst: Any, *, account: Any = None, no_cache: bool = False
    ) -> Any:
        path = self._path(paths.INST, self._account(account), resolve(inst))
        return await self._get(await self._request(path), no_cache=no_cache)

    async def _instrumentation_value(
        self, template: str, inst: Any, params: Mapping[str, Any] | None, account: Any
    ) -> Any:
        query = validate.options(params, "params") if params is not None else None
        path = self._path(template, self._account(account), resolve(inst))
        return await self._get(await self._request(path, query=query), no_cache=True)

    async def get_instrumentation_value(
        self, inst: Any, params: Mapping[str, Any] | None = None, *, account: Any = None
    ) -> Any:
        return await self._instrumentation_value(paths.INST_RAW, inst, params, account)

    async def get_instrumentation_heatmap(
        self, inst: Any, params: Mapping[str, Any] | None = None, *, account: Any = None
    ) -> Any:
        return await self._instrumentation_value(paths.INST_HMAP, inst, params, account)

    async def get_instrumentation_heatmap_details(
        self, inst: Any, params: Mapping[str, Any] | None = None, *, account: Any = None
    ) -> Any:
        return await self._instrumentation_value(paths.INST_HMAP_DETAILS, inst, params, account)

    async def delete_instrumentation(self, inst: Any, *, account: Any = None) -> None:
        path = self._path(paths.INST, self._account(account), resolve(inst))
        await self._del(await self._request(path))

"""Package, dataset, image and datacenter operations."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from smartdc import paths, validate
from smartdc.core import CloudAPICore
from smartdc.errors import CloudAPIError
from smartdc.refs import resolve


class ImageResources(CloudAPICore):
    async def list_packages(self, *, account: Any = None, no_cache: bool = False) -> Any:
        req = await self._request(self._path(paths.PACKAGES, self._account(account)))
        return await self._get(req, no_cache=no_cache)

    async def get_package(
        self, package: Any, *, account: Any = None, no_cache: bool = False
    ) -> Any:
        path = self._path(paths.PACKAGE, self._account(account), resolve(package, "name"))
        req = await self._request(path)
        return await self._get(req, no_cache=no_cache)

    async def list_datasets(self, *, account: Any = None, no_cache: bool = False) -> Any:
        req = await self._request(self._path(paths.DATASETS, self._account(account)))
        return await self._get(req, no_cache=no_cache)

    async def get_dataset(
        self, dataset: Any, *, account: Any = None, no_cache: bool = False
    ) -> Any:
        path = self._path(paths.DATASET, self._account(account), resolve(dataset))
        req = await self._request(path)
        return await self._get(req, no_cache=no_cache)

    async def list_images(
        self,
        filters: Mapping[str, Any] | None = None,
        *,
        account: Any = None,
        no_cache: bool = False,
    ) -> Any:
        """List images, optionally filtered by ``public``, ``state`` or ``type``."""
        query = validate.options(filters, "filters") if filters is not None else None
        req = await self._request(
            self._path(paths.IMAGES, self._account(account)), query=query
        )
        return await self._get(req, no_cache=no_cache)

    async def get_image(
        self, image: Any, *, account: Any = None, no_cache: bool = False
    ) -> Any:
        path = self._path(paths.IMAGE, self._account(account), resolve(image))
        req = await self._request(path)
        return await self._get(req, no_cache=no_cache)

    async def create_image_from_machine(
        self,
        machine: Any,
        *,
        name: str,
        version: str,
        description: str | None = None,
        extra: Mapping[str, Any] | None = None,
        account: Any = None,
    ) -> Any:
        """Create a custom image from a prepared, stopped machine."""
        body: dict[str, Any] = dict(extra or {})
        body["machine"] = resolve(machine)
        body["name"] = validate.non_empty_string(name, "name")
        body["version"] = validate.non_empty_string(version, "version")
        if description is not None:
            body["description"] = description
        req = await self._request(self._path(paths.IMAGES, self._account(account)), body)
        return await self._post(req)

    async def update_image(
        self, image: Any, changes: Mapping[str, Any], *, account: Any = None
    ) -> Any:
        body = validate.options(changes, "changes")
        path = self._path(paths.IMAGE, self._account(account), resolve(image))
        req = await self._request(path, body, query={"action": "update"})
        return await self._post(req)

    async def export_image(self, image: Any, manta_path: str, *, account: Any = None) -> Any:
        query = {
            "action": "export",
            "manta_path": validate.non_empty_string(manta_path, "manta_path"),
        }
        path = self._path(paths.IMAGE, self._account(account), resolve(image))
        req = await self._request(path, query=query)
        return await self._post(req)

    async def delete_image(self, image: Any, *, account: Any = None) -> None:
        path = self._path(paths.IMAGE, self._account(account), resolve(image))
        req = await self._request(path)
        await self._del(req)

    async def list_datacenters(self, *, account: Any = None, no_cache: bool = False) -> Any:
        """Map of datacenter name to CloudAPI URL."""
        req = await self._request(self._path(paths.DATACENTERS, self._account(account)))
        return await self._get(req, no_cache=no_cache)

    async def create_client_for_datacenter(
        self, datacenter: str, *, account: Any = None, no_cache: bool = False
    ) -> CloudAPICore:
        """A client with the same credentials pointed at another datacenter."""
        validate.non_empty_string(datacenter, "datacenter")
        datacenters = await self.list_datacenters(account=account, no_cache=no_cache)
        if not isinstance(datacenters, Mapping) or datacenter not in datacenters:
            raise CloudAPIError("ResourceNotFound", f"datacenter {datacenter} not found")
        return self.with_options(url=str(datacenters[datacenter]))

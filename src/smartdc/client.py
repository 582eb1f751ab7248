"""CloudAPI client: the request core plus every resource operation."""

from __future__ import annotations

from typing import Any

from smartdc.core import ClientOptions
from smartdc.resources import (
    AccountResources,
    AnalyticsResources,
    ImageResources,
    MachineResources,
    NetworkResources,
)


class CloudAPI(
    AccountResources,
    ImageResources,
    MachineResources,
    AnalyticsResources,
    NetworkResources,
):
    """Async client for the SmartDataCenter CloudAPI.

    Example::

        async with create_client(url=url, account="jill", key_id=key_id, key=pem) as sdc:
            machines, done = await sdc.list_machines({"state": "running"})
    """


def create_client(
    *, transport: Any = None, http: Any = None, log: Any = None, **options: Any
) -> CloudAPI:
    """Construct a ``CloudAPI`` from keyword options (see ``ClientOptions``)."""
    return CloudAPI(ClientOptions.from_mapping(options), transport=transport, http=http, log=log)

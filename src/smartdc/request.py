"""Request descriptors and the builder that dates and signs them."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any
from urllib.parse import urlencode

from smartdc.signing import AgentSigner, LocalKeySigner, Signer
from smartdc.time_utils import http_date
from smartdc.uri import encode_path

DEFAULT_API_VERSION = "~7.2"
# Query flags that change freshness or detail, not which resource is read.
UNKEYED_PARAMS = frozenset({"sync", "credentials"})


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class RequestDescriptor:
    """One outbound CloudAPI request."""

    path: str
    headers: dict[str, str]
    body: Any = None
    query: dict[str, Any] | None = None
    cache_ttl: float | None = None
    expect: int | None = None

    @property
    def query_params(self) -> dict[str, str]:
        if not self.query:
            return {}
        return {key: _query_value(value) for key, value in self.query.items() if value is not None}

    @property
    def cache_key(self) -> str:
        params = {
            key: value for key, value in self.query_params.items() if key not in UNKEYED_PARAMS
        }
        if not params:
            return self.path
        return f"{self.path}?{urlencode(sorted(params.items()))}"

    def with_query(self, **params: Any) -> RequestDescriptor:
        merged = dict(self.query or {})
        merged.update(params)
        return replace(self, query=merged)


class RequestBuilder:
    """Assembles dated, versioned and signed request descriptors."""

    def __init__(
        self,
        *,
        signer: Signer | None = None,
        api_version: str = DEFAULT_API_VERSION,
        token: str | None = None,
        clock: Callable[[], str] = http_date,
        log: logging.Logger | None = None,
    ) -> None:
        self.signer = signer
        self.api_version = api_version
        self.token = token
        self._clock = clock
        self._log = log or logging.getLogger("smartdc")

    async def build(
        self,
        path: str,
        body: Any = None,
        *,
        query: Mapping[str, Any] | None = None,
        cache_ttl: float | None = None,
        expect: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> RequestDescriptor:
        """Build a request for ``path``; suspends only while an agent signs."""
        encoded = encode_path(path)
        date = self._clock()
        request_headers = {"date": date, "api-version": self.api_version}
        if self.token is not None:
            request_headers["x-auth-token"] = self.token
        if headers:
            request_headers.update(headers)

        signature = None
        if isinstance(self.signer, AgentSigner):
            signature = await self.signer.sign(date)
        elif isinstance(self.signer, LocalKeySigner):
            signature = self.signer.sign(date)
        if signature is not None:
            request_headers["authorization"] = signature.authorization()
        elif self.signer is not None:
            self._log.debug("sending %s without a signature", encoded)

        return RequestDescriptor(
            path=encoded,
            headers=request_headers,
            body=body,
            query=dict(query) if query else None,
            cache_ttl=cache_ttl,
            expect=expect,
        )

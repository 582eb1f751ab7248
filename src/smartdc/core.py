"""Client construction and the request dispatcher shared by every resource call."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, fields, replace
from typing import Any, cast

import httpx

from smartdc.cache import (
    DEFAULT_CACHE_EXPIRY_S,
    DEFAULT_CACHE_SIZE,
    ResponseCache,
    now_ms,
)
from smartdc.errors import ResourceGoneError, TransportError, normalize_error
from smartdc.refs import resolve
from smartdc.request import DEFAULT_API_VERSION, RequestBuilder, RequestDescriptor
from smartdc.signing import (
    AGENT_FAILURE_POLICIES,
    AgentSigner,
    LocalKeySigner,
    Signer,
    SigningAgent,
)
from smartdc.transport import DEFAULT_RETRIES, DEFAULT_TIMEOUT_S, RestTransport
from smartdc.uri import escape_segment
from smartdc.util.parsing import pagination_done, safe_int

DEFAULT_ACCOUNT = "my"
LOGGER_NAME = "smartdc"


@dataclass(frozen=True)
class ClientOptions:
    """Recognized options for constructing a CloudAPI client.

    Exactly one authentication mode is allowed: ``username`` + ``password``
    (HTTP Basic) or ``key_id`` with ``key`` and/or ``agent`` (HTTP Signature).
    """

    url: str
    account: str = DEFAULT_ACCOUNT
    username: str | None = None
    password: str | None = None
    key_id: str | None = None
    key: str | None = None
    passphrase: str | None = None
    agent: SigningAgent | None = None
    agent_key: Any = None
    on_agent_failure: str = "unsigned"
    token: str | None = None
    no_cache: bool = False
    cache_size: int = DEFAULT_CACHE_SIZE
    cache_expiry: float = DEFAULT_CACHE_EXPIRY_S
    api_version: str = DEFAULT_API_VERSION
    log_level: str | int | None = None
    user_agent: str | None = None
    timeout_s: float = DEFAULT_TIMEOUT_S
    retries: int = DEFAULT_RETRIES
    verify_tls: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.url, str) or not self.url:
            raise TypeError("url (string) required")
        if not isinstance(self.account, str) or not self.account:
            raise TypeError("account (string) required")
        basic = self.username is not None or self.password is not None
        signature = self.key_id is not None or self.key is not None or self.agent is not None
        if basic and signature:
            raise ValueError("use either username/password or key_id/key, not both")
        if basic and not (self.username and self.password):
            raise TypeError("username and password (strings) required")
        if signature and not self.key_id:
            raise TypeError("key_id (string) required")
        if signature and self.key is None and self.agent is None:
            raise TypeError("key (string) or agent required")
        if not basic and not signature:
            raise TypeError("either username/password or key_id/key required")
        if self.on_agent_failure not in AGENT_FAILURE_POLICIES:
            raise ValueError(
                f"on_agent_failure must be one of {', '.join(AGENT_FAILURE_POLICIES)}"
            )
        if isinstance(self.cache_size, bool) or int(self.cache_size) < 1:
            raise ValueError("cache_size must be a positive integer")
        if self.cache_expiry < 0:
            raise ValueError("cache_expiry must not be negative")

    @property
    def auth_mode(self) -> str:
        return "basic" if self.username is not None else "signature"

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> ClientOptions:
        known = {item.name for item in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise TypeError(f"unknown client options: {', '.join(unknown)}")
        return cls(**dict(values))


def build_signer(options: ClientOptions, log: logging.Logger) -> Signer | None:
    if options.auth_mode == "basic":
        return None
    key_id = cast(str, options.key_id)
    local = None
    if options.key is not None:
        local = LocalKeySigner(key_id, options.key, passphrase=options.passphrase)
    if options.agent is None:
        return local
    return AgentSigner(
        key_id,
        options.agent,
        options.agent_key,
        fallback=local,
        on_failure=options.on_agent_failure,  # type: ignore[arg-type]
        log=log,
    )


class CloudAPICore:
    """Builds, dispatches and caches CloudAPI requests.

    Resource methods format a logical path, call ``_request`` and then one of
    ``_get``/``_post``/``_put``/``_del``/``_head``.
    """

    def __init__(
        self,
        options: ClientOptions,
        *,
        transport: Any = None,
        http: httpx.AsyncClient | None = None,
        log: logging.Logger | None = None,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self.options = options
        self.account = options.account
        self.log = log or logging.getLogger(LOGGER_NAME)
        if options.log_level is not None:
            self.log.setLevel(options.log_level)

        auth = None
        if options.auth_mode == "basic":
            auth = httpx.BasicAuth(cast(str, options.username), cast(str, options.password))
        self.signer = build_signer(options, self.log)
        self.builder = RequestBuilder(
            signer=self.signer,
            api_version=options.api_version,
            token=options.token,
            log=self.log,
        )
        self.transport = transport or RestTransport(
            options.url,
            auth=auth,
            timeout_s=options.timeout_s,
            retries=options.retries,
            user_agent=options.user_agent,
            verify=options.verify_tls,
            http=http,
            log=self.log,
        )
        self.cache = ResponseCache(
            size=options.cache_size,
            expiry_ms=options.cache_expiry * 1000,
            enabled=not options.no_cache,
            clock=clock,
            log=self.log,
        )

    async def aclose(self) -> None:
        close = getattr(self.transport, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def with_options(self, **changes: Any) -> CloudAPICore:
        """A new client of the same class with some options replaced."""
        return type(self)(replace(self.options, **changes), log=self.log)

    # --- path helpers

    def _account(self, account: Any = None) -> str:
        if account is None:
            return self.account
        return resolve(account, "login")

    @staticmethod
    def _path(template: str, *parts: Any) -> str:
        return template.format(*(escape_segment(str(part)) for part in parts))

    # --- request building and dispatch

    async def _request(
        self,
        path: str,
        body: Any = None,
        *,
        query: Mapping[str, Any] | None = None,
        cache_ttl: float | None = None,
        expect: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> RequestDescriptor:
        if not path:
            raise ValueError("path required")
        return await self.builder.build(
            path, body, query=query, cache_ttl=cache_ttl, expect=expect, headers=headers
        )

    async def _exchange(
        self, method: str, req: RequestDescriptor, call: Callable[[], Awaitable[Any]]
    ) -> Any:
        try:
            return await call()
        except TransportError as exc:
            err = normalize_error(exc, self.log)
            level = logging.DEBUG if method == "DELETE" else logging.ERROR
            self.log.log(level, "CloudAPI %s(%s) failed: %s", method, req.path, err)
            if err is exc:
                raise
            raise err from exc

    async def _get(self, req: RequestDescriptor, *, no_cache: bool = False) -> Any:
        key = req.cache_key
        if not no_cache:
            cached = self.cache.get(key, req.cache_ttl)
            if cached.hit:
                self.log.debug("CloudAPI GET(%s) served from cache", req.path)
                if cached.deleted:
                    raise ResourceGoneError(req.path)
                return cached.value
        res = await self._exchange("GET", req, lambda: self.transport.get(req))
        if res.body is not None:
            self.cache.put(key, res.body)
        self.log.debug("CloudAPI GET(%s) -> %s", req.path, res.status_code)
        return res.body

    async def _get_page(self, req: RequestDescriptor) -> tuple[Any, bool]:
        """Uncached GET of a paginated listing; returns ``(body, done)``."""
        res = await self._exchange("GET", req, lambda: self.transport.get(req))
        offset = (req.query or {}).get("offset", 0)
        done = pagination_done(
            res.headers.get("x-resource-count"), res.headers.get("x-query-limit"), offset
        )
        self.log.debug("CloudAPI GET(%s) -> %s done=%s", req.path, res.status_code, done)
        return res.body, done

    async def _send_body(self, method: str, req: RequestDescriptor) -> Any:
        body = req.body if req.body is not None else {}
        send = self.transport.post if method == "POST" else self.transport.put
        res = await self._exchange(method, req, lambda: send(req, body))
        # The resource at this path was (re)written; a prior read or tombstone is stale.
        self.cache.discard(req.path)
        self.log.debug("CloudAPI %s(%s) -> %s", method, req.path, res.status_code)
        return res.body

    async def _post(self, req: RequestDescriptor) -> Any:
        return await self._send_body("POST", req)

    async def _put(self, req: RequestDescriptor) -> Any:
        return await self._send_body("PUT", req)

    async def _del(self, req: RequestDescriptor) -> None:
        await self._exchange("DELETE", req, lambda: self.transport.delete(req))
        self.cache.purge(req.path)
        self.log.debug("CloudAPI DELETE(%s)", req.path)

    async def _head(self, req: RequestDescriptor) -> tuple[int, bool]:
        """HEAD a listing; returns ``(count, done)`` from the pagination headers."""
        res = await self._exchange("HEAD", req, lambda: self.transport.head(req))
        count_header = res.headers.get("x-resource-count")
        offset = (req.query or {}).get("offset", 0)
        done = pagination_done(count_header, res.headers.get("x-query-limit"), offset)
        count = safe_int(count_header) or 0
        self.log.debug("CloudAPI HEAD(%s) -> count=%d done=%s", req.path, count, done)
        return count, done

"""JSON REST transport over httpx."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from smartdc import __version__
from smartdc.errors import TransportError
from smartdc.request import RequestDescriptor
from smartdc.time_utils import parse_http_date

DEFAULT_TIMEOUT_S = 30.0
DEFAULT_RETRIES = 3
DEFAULT_USER_AGENT = f"smartdc-python/{__version__} httpx/{httpx.__version__}"


class RetryableStatusError(RuntimeError):
    """Raised for responses the transport retries (HTTP 500)."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        super().__init__(f"retryable status {response.status_code}")

    def retry_after_seconds(self) -> float | None:
        raw_value = self.response.headers.get("Retry-After")
        if not raw_value:
            return None
        try:
            return max(0.0, float(raw_value))
        except ValueError:
            date_value = parse_http_date(raw_value)
            if date_value is None:
                return None
            return max(0.0, (date_value - datetime.now(UTC)).total_seconds())


def _wait_for_retry(retry_state) -> float:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    if isinstance(exc, RetryableStatusError):
        retry_after = exc.retry_after_seconds()
        if retry_after is not None:
            return min(retry_after, 30.0)
    return min(0.25 * 2 ** (retry_state.attempt_number - 1), 5.0)


@dataclass(frozen=True)
class TransportResponse:
    """Decoded response from one exchange."""

    status_code: int
    headers: httpx.Headers
    body: Any


def decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


def error_from_response(method: str, path: str, response: httpx.Response) -> TransportError:
    body = decode_body(response)
    details: Any = body if isinstance(body, dict) else {"body": response.text}
    message = ""
    if isinstance(body, dict) and body.get("message"):
        message = str(body["message"])
    if not message:
        message = f"{method} {path} failed with status {response.status_code}"
    return TransportError(
        response.status_code,
        message,
        details=details,
        body=body,
        headers=dict(response.headers),
    )


class RestTransport:
    """Issues request descriptors against the CloudAPI endpoint.

    HTTP 500 responses and connection failures are retried up to
    ``retries`` times before surfacing as ``TransportError``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        auth: httpx.Auth | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        retries: int = DEFAULT_RETRIES,
        user_agent: str | None = None,
        verify: bool = True,
        http: httpx.AsyncClient | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.retries = max(0, int(retries))
        self._log = log or logging.getLogger("smartdc")
        headers = {
            "accept": "application/json",
            "user-agent": user_agent or DEFAULT_USER_AGENT,
        }
        if http is None:
            limits = httpx.Limits(max_connections=8, max_keepalive_connections=4)
            http = httpx.AsyncClient(timeout=timeout_s, limits=limits, verify=verify)
        self._http = http
        self._auth = auth
        self._default_headers = headers

    async def aclose(self) -> None:
        await self._http.aclose()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _send(self, method: str, req: RequestDescriptor, body: Any = None) -> httpx.Response:
        headers = dict(self._default_headers)
        headers.update(req.headers)
        kwargs: dict[str, Any] = {
            "headers": headers,
            "params": req.query_params or None,
        }
        if self._auth is not None:
            kwargs["auth"] = self._auth
        if body is not None:
            kwargs["json"] = body
        response: httpx.Response | None = None
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retries + 1),
                retry=retry_if_exception_type((RetryableStatusError, httpx.TransportError)),
                wait=_wait_for_retry,
                reraise=True,
            ):
                with attempt:
                    response = await self._http.request(method, self._url(req.path), **kwargs)
                    if response.status_code == 500:
                        raise RetryableStatusError(response)
        except RetryableStatusError as exc:
            response = exc.response
        except httpx.HTTPError as exc:
            raise TransportError(0, f"{method} {req.path} transport error: {exc}") from exc
        if response is None:
            raise TransportError(0, f"{method} {req.path} failed without a response")
        return response

    async def _exchange(
        self, method: str, req: RequestDescriptor, body: Any = None
    ) -> TransportResponse:
        response = await self._send(method, req, body)
        if req.expect is not None and response.status_code != req.expect:
            self._log.debug(
                "%s %s returned %d, expected %d", method, req.path, response.status_code, req.expect
            )
        if not (response.is_success or response.status_code == req.expect):
            raise error_from_response(method, req.path, response)
        return TransportResponse(
            status_code=response.status_code,
            headers=response.headers,
            body=decode_body(response),
        )

    async def get(self, req: RequestDescriptor) -> TransportResponse:
        return await self._exchange("GET", req)

    async def post(self, req: RequestDescriptor, body: Any) -> TransportResponse:
        return await self._exchange("POST", req, body)

    async def put(self, req: RequestDescriptor, body: Any) -> TransportResponse:
        return await self._exchange("PUT", req, body)

    async def delete(self, req: RequestDescriptor) -> TransportResponse:
        return await self._exchange("DELETE", req)

    async def head(self, req: RequestDescriptor) -> TransportResponse:
        return await self._exchange("HEAD", req)

"""Error types and error normalization for CloudAPI calls."""

from __future__ import annotations

import json
import logging
from typing import Any

_LOG = logging.getLogger("smartdc")


class SmartDCError(RuntimeError):
    """Base error for smartdc operations."""


class ConfigError(SmartDCError):
    """Raised when client configuration cannot be resolved."""


class SigningError(SmartDCError):
    """Raised when a request cannot be signed and the policy requires it."""


class TransportError(SmartDCError):
    """Raised by the REST transport for failed HTTP exchanges.

    ``status_code`` is 0 when no response was received at all.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        details: Any = None,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details
        self.body = body
        self.headers = dict(headers or {})


class CloudAPIError(SmartDCError):
    """Normalized service error carrying a stable code."""

    def __init__(self, code: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ResourceGoneError(CloudAPIError):
    """Raised when the cache records a resource as deleted."""

    def __init__(self, path: str) -> None:
        super().__init__("ResourceGone", f"{path} has been deleted", status_code=410)
        self.path = path


def _code_message(payload: Any) -> tuple[str, str] | None:
    if not isinstance(payload, dict):
        return None
    code = payload.get("code")
    message = payload.get("message")
    if code and message:
        return str(code), str(message)
    return None


def normalize_error(err: Exception, log: logging.Logger | None = None) -> Exception:
    """Map a 5xx transport error carrying a service payload to ``CloudAPIError``.

    Anything else is returned unchanged.
    """
    log = log or _LOG
    status = getattr(err, "status_code", None)
    details = getattr(err, "details", None)
    if not details or not isinstance(status, int) or not 500 <= status <= 599:
        return err

    direct = _code_message(details)
    if direct is not None:
        return CloudAPIError(direct[0], direct[1], status_code=status)

    if isinstance(details, dict):
        nested = details.get("object")
        if isinstance(nested, dict) and nested.get("code"):
            return CloudAPIError(
                str(nested["code"]), str(nested.get("message", "")), status_code=status
            )

    raw: Any = None
    if isinstance(details, str):
        raw = details
    elif isinstance(details, dict):
        raw = details.get("body")
    if raw:
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError) as exc:
            log.warning("invalid JSON in error body for status %s: %s", status, exc)
            return err
        found = _code_message(parsed)
        if found is not None:
            return CloudAPIError(found[0], found[1], status_code=status)
    return err

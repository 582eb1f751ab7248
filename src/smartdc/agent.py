"""ssh-agent backed request signing."""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import PurePath
from typing import Any

import paramiko

from smartdc.errors import SigningError
from smartdc.signing import AgentSignature

SUPPORTED_KEY_TYPES = {"ssh-rsa", "ssh-dss"}


def agent_key_fingerprint(key: Any) -> str:
    digest = key.get_fingerprint().hex()
    return ":".join(digest[i : i + 2] for i in range(0, len(digest), 2))


class SSHAgent:
    """Talks to the ssh-agent named by ``SSH_AUTH_SOCK``.

    Agent round trips are blocking socket calls, so ``sign`` runs them on a
    worker thread, one round trip at a time.
    """

    def __init__(self, agent: Any = None, *, log: logging.Logger | None = None) -> None:
        self._agent = agent
        self._log = log or logging.getLogger("smartdc")
        # One agent socket; request/reply pairs must not interleave across threads.
        self._lock = threading.Lock()

    def _connect(self) -> Any:
        if self._agent is None:
            self._agent = paramiko.Agent()
        return self._agent

    def keys(self) -> list[Any]:
        try:
            with self._lock:
                return list(self._connect().get_keys())
        except paramiko.SSHException as exc:
            self._log.debug("unable to list ssh-agent identities: %s", exc)
            return []

    def find_key(self, *, fingerprint: str | None = None, identity: str | None = None) -> Any:
        """Return the agent key matching a fingerprint or identity file name."""
        wanted_name = PurePath(identity).name if identity else None
        for key in self.keys():
            if key.get_name() not in SUPPORTED_KEY_TYPES:
                continue
            if fingerprint and agent_key_fingerprint(key) == fingerprint.lower():
                return key
            comment = str(getattr(key, "comment", "") or "")
            if wanted_name and comment and PurePath(comment).name == wanted_name:
                return key
        return None

    def _sign_blocking(self, key: Any, data: bytes) -> AgentSignature:
        if key is None:
            raise SigningError("no ssh-agent key selected")
        try:
            with self._lock:
                blob = key.sign_ssh_data(data)
        except paramiko.SSHException as exc:
            raise SigningError(f"ssh-agent refused to sign: {exc}") from exc
        message = paramiko.Message(blob)
        algorithm = message.get_text()
        signature = message.get_binary()
        return AgentSignature(signature=signature, algorithm=algorithm)

    async def sign(self, key: Any, data: bytes) -> AgentSignature:
        return await asyncio.to_thread(self._sign_blocking, key, data)

    def close(self) -> None:
        if self._agent is not None:
            self._agent.close()
            self._agent = None

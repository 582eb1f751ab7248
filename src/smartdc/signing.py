"""HTTP signature authorization for CloudAPI requests."""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Protocol

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import dsa, padding, rsa

from smartdc.errors import SigningError

SIGNATURE_HEADER = 'Signature keyId="{key_id}",algorithm="{algorithm}" {signature}'

AgentFailurePolicy = Literal["unsigned", "local", "fail"]
AGENT_FAILURE_POLICIES: tuple[str, ...] = ("unsigned", "local", "fail")

_SSH_ALGORITHMS = {
    "ssh-rsa": "rsa-sha1",
    "ssh-dss": "dsa-sha1",
    "rsa-sha2-256": "rsa-sha256",
    "rsa-sha2-512": "rsa-sha512",
}


@dataclass(frozen=True)
class RequestSignature:
    """A signature over the request date header."""

    key_id: str
    algorithm: str
    signature: str

    def authorization(self) -> str:
        return SIGNATURE_HEADER.format(
            key_id=self.key_id, algorithm=self.algorithm, signature=self.signature
        )


@dataclass(frozen=True)
class AgentSignature:
    """Raw result returned by a signing agent."""

    signature: bytes
    algorithm: str


class SigningAgent(Protocol):
    """Delegated signer, e.g. a running ssh-agent."""

    async def sign(self, key: Any, data: bytes) -> AgentSignature: ...


def ssh_algorithm_name(name: str) -> str:
    """Translate an SSH signature algorithm name into the HTTP signature name."""
    lowered = name.strip().lower()
    return _SSH_ALGORITHMS.get(lowered, lowered)


def ssh_key_fingerprint(public_key: str) -> str:
    """MD5 fingerprint (colon-separated hex) of an OpenSSH public key line."""
    parts = public_key.strip().split()
    if len(parts) < 2:
        raise ValueError("not an OpenSSH public key")
    try:
        blob = base64.b64decode(parts[1], validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("not an OpenSSH public key") from exc
    digest = hashlib.md5(blob).hexdigest()
    return ":".join(digest[i : i + 2] for i in range(0, len(digest), 2))


def load_private_key(pem: str | bytes, passphrase: str | bytes | None = None) -> Any:
    """Load a PEM or OpenSSH formatted private key."""
    data = pem.encode("utf-8") if isinstance(pem, str) else pem
    password = passphrase.encode("utf-8") if isinstance(passphrase, str) else passphrase
    try:
        if b"BEGIN OPENSSH PRIVATE KEY" in data:
            return serialization.load_ssh_private_key(data, password=password)
        return serialization.load_pem_private_key(data, password=password)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise SigningError(f"unable to load private key: {exc}") from exc


def read_private_key(path: Path | str, passphrase: str | None = None) -> str:
    """Read key material from disk, validating that it parses."""
    text = Path(path).expanduser().read_text(encoding="ascii")
    load_private_key(text, passphrase)
    return text


class LocalKeySigner:
    """Signs with a private key held in process memory."""

    def __init__(
        self, key_id: str, private_key: str | bytes, *, passphrase: str | None = None
    ) -> None:
        if not key_id:
            raise ValueError("key_id required")
        self.key_id = key_id
        self._key = load_private_key(private_key, passphrase)
        if isinstance(self._key, dsa.DSAPrivateKey):
            self.algorithm = "dsa-sha1"
        elif isinstance(self._key, rsa.RSAPrivateKey):
            self.algorithm = "rsa-sha256"
        else:
            raise TypeError(f"unsupported private key type: {type(self._key).__name__}")

    def sign(self, data: str) -> RequestSignature:
        payload = data.encode("utf-8")
        if self.algorithm == "dsa-sha1":
            raw = self._key.sign(payload, hashes.SHA1())
        else:
            raw = self._key.sign(payload, padding.PKCS1v15(), hashes.SHA256())
        return RequestSignature(
            key_id=self.key_id,
            algorithm=self.algorithm,
            signature=base64.b64encode(raw).decode("ascii"),
        )


class AgentSigner:
    """Delegates signing to an external agent.

    ``on_failure`` decides what happens when the agent errors: ``"unsigned"``
    lets the request go out without an Authorization header, ``"local"`` signs
    with ``fallback`` instead, ``"fail"`` raises ``SigningError``.
    """

    def __init__(
        self,
        key_id: str,
        agent: SigningAgent,
        agent_key: Any = None,
        *,
        fallback: LocalKeySigner | None = None,
        on_failure: AgentFailurePolicy = "unsigned",
        log: logging.Logger | None = None,
    ) -> None:
        if not key_id:
            raise ValueError("key_id required")
        if on_failure not in AGENT_FAILURE_POLICIES:
            raise ValueError(f"on_failure must be one of {', '.join(AGENT_FAILURE_POLICIES)}")
        if on_failure == "local" and fallback is None:
            raise ValueError("on_failure='local' requires a fallback key")
        self.key_id = key_id
        self.agent = agent
        self.agent_key = agent_key
        self.fallback = fallback
        self.on_failure = on_failure
        self._log = log or logging.getLogger("smartdc")

    def _recover(self, data: str, reason: str) -> RequestSignature | None:
        self._log.warning("ssh-agent signing failed: %s", reason)
        if self.on_failure == "fail":
            raise SigningError(f"ssh-agent signing failed: {reason}")
        if self.on_failure == "local" and self.fallback is not None:
            return self.fallback.sign(data)
        return None

    async def sign(self, data: str) -> RequestSignature | None:
        try:
            result = await self.agent.sign(self.agent_key, data.encode("utf-8"))
        except Exception as exc:
            try:
                return self._recover(data, str(exc) or type(exc).__name__)
            except SigningError as failure:
                raise failure from exc
        if not result.signature:
            return self._recover(data, "empty signature")
        return RequestSignature(
            key_id=self.key_id,
            algorithm=ssh_algorithm_name(result.algorithm),
            signature=base64.b64encode(result.signature).decode("ascii"),
        )


Signer = LocalKeySigner | AgentSigner

"""Environment-driven settings for the sdc CLI."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from smartdc.core import ClientOptions
from smartdc.errors import ConfigError, SigningError
from smartdc.signing import read_private_key, ssh_key_fingerprint

DEFAULT_IDENTITY = "~/.ssh/id_rsa"


class Settings(BaseSettings):
    """CLI defaults resolved from ``SDC_*`` (and legacy ``SDC_CLI_*``) variables."""

    model_config = SettingsConfigDict(
        env_prefix="SDC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    url: str = Field(default="", validation_alias=AliasChoices("SDC_URL", "SDC_CLI_URL"))
    account: str = Field(
        default="", validation_alias=AliasChoices("SDC_ACCOUNT", "SDC_CLI_ACCOUNT")
    )
    user: str = Field(default="", validation_alias=AliasChoices("SDC_USER"))
    key_id: str = Field(default="", validation_alias=AliasChoices("SDC_KEY_ID", "SDC_CLI_KEY_ID"))
    identity: str = Field(
        default=DEFAULT_IDENTITY,
        validation_alias=AliasChoices("SDC_IDENTITY", "SDC_CLI_IDENTITY"),
    )
    testing: bool = False
    log_level: str = "warning"
    cache: bool = False
    timeout_s: float = 30.0
    retries: int = 3

    def key_path(self) -> Path:
        return Path(self.identity).expanduser()

    def signing_identity(self) -> str:
        """Login the key belongs to: the account, or ``account/users/<user>``."""
        if self.user:
            return f"{self.account}/users/{self.user}"
        return self.account

    def key_id_header(self, fingerprint: str) -> str:
        return f"/{self.signing_identity()}/keys/{fingerprint}"

    def _fingerprint_from_public_key(self) -> str:
        pub_path = Path(f"{self.key_path()}.pub")
        try:
            text = pub_path.read_text(encoding="ascii")
        except OSError as exc:
            raise SigningError(f"unable to read {pub_path}: {exc}") from exc
        try:
            return ssh_key_fingerprint(text)
        except ValueError as exc:
            raise SigningError(f"unable to take fingerprint of {pub_path}: {exc}") from exc

    def client_options(
        self, *, agent: Any = None, log: logging.Logger | None = None
    ) -> ClientOptions:
        """Resolve key material and build ``ClientOptions``.

        An ssh-agent identity matching the key id or identity file wins; the
        identity file on disk is the fallback.
        """
        log = log or logging.getLogger("smartdc")
        if not self.account:
            raise ConfigError("Either -a or (env) SDC_ACCOUNT must be specified")
        if not self.url:
            raise ConfigError("Either -u or (env) SDC_URL must be specified")

        fingerprint = self.key_id
        agent_key = None
        if agent is not None:
            agent_key = agent.find_key(
                fingerprint=fingerprint or None, identity=str(self.key_path())
            )
        if agent_key is not None:
            if not fingerprint:
                raise ConfigError("Either -k or (env) SDC_KEY_ID must be specified")
            log.debug("using ssh-agent identity for %s", fingerprint)
            return self._options(fingerprint, key=None, agent=agent, agent_key=agent_key)

        try:
            pem = read_private_key(self.key_path())
        except OSError as exc:
            raise SigningError(f"unable to load private key {self.key_path()}: {exc}") from exc
        if not fingerprint:
            fingerprint = self._fingerprint_from_public_key()
        log.debug("using private key from %s", self.key_path())
        return self._options(fingerprint, key=pem, agent=None, agent_key=None)

    def _options(
        self, fingerprint: str, *, key: str | None, agent: Any, agent_key: Any
    ) -> ClientOptions:
        return ClientOptions(
            url=self.url,
            account=self.account,
            key_id=self.key_id_header(fingerprint),
            key=key,
            agent=agent,
            agent_key=agent_key,
            no_cache=not self.cache,
            log_level=self.log_level.upper(),
            timeout_s=self.timeout_s,
            retries=self.retries,
            verify_tls=not self.testing,
        )

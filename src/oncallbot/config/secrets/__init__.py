"""
Runtime credentials for the bot.

The PagerDuty token, the Slack bot token and the Slack signing secret are
looked up by path (``pagerduty/token``, ``slack/bot_token``,
``slack/signing_secret``) in an ordered chain of backends:

- ``env``: ``ONCALLBOT_PAGERDUTY_TOKEN`` and friends
- ``file``: nested keys in ``~/.oncallbot/credentials.yaml``
- ``gcp``: Google Cloud Secret Manager (requires google-cloud-secret-manager)

The configured backend is asked first, then ``env`` and ``file``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import StrEnum
from functools import cached_property
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, Protocol

import structlog
import yaml

if TYPE_CHECKING:
    from oncallbot.config.settings import Settings

logger = structlog.get_logger()

# Settings field -> secret path
RUNTIME_SECRETS: dict[str, str] = {
    "pagerduty_token": "pagerduty/token",
    "slack_bot_token": "slack/bot_token",
    "slack_signing_secret": "slack/signing_secret",
}

DEFAULT_CREDENTIALS_FILE = Path.home() / ".oncallbot" / "credentials.yaml"


class SecretBackend(StrEnum):
    ENV = "env"
    FILE = "file"
    GCP = "gcp"


@dataclass(frozen=True)
class SecretConfig:
    """Where runtime credentials are read from."""

    backend: SecretBackend = SecretBackend.ENV
    credentials_file: Path = field(default_factory=lambda: DEFAULT_CREDENTIALS_FILE)
    gcp_project_id: str | None = None
    gcp_secret_prefix: str = "oncall-slack-bot-"

    @classmethod
    def from_settings(cls, settings: "Settings") -> "SecretConfig":
        return cls(
            backend=SecretBackend(settings.secret_backend),
            credentials_file=(
                Path(settings.credentials_file).expanduser()
                if settings.credentials_file
                else DEFAULT_CREDENTIALS_FILE
            ),
            gcp_project_id=settings.gcp_project_id,
            gcp_secret_prefix=settings.gcp_secret_prefix,
        )

    @property
    def search_order(self) -> tuple[SecretBackend, ...]:
        return tuple(dict.fromkeys([self.backend, SecretBackend.ENV, SecretBackend.FILE]))


def _sanitize_path(path: str) -> str:
    """Keep only the top-level segment of a secret path for logging."""
    return path.split("/", 1)[0] + "/***" if "/" in path else "***"


class SecretSource(Protocol):
    def get_secret(self, path: str) -> str | None:
        """Return the secret stored at ``path`` or None."""


class EnvSecretBackend:
    """``slack/bot_token`` is read from ``ONCALLBOT_SLACK_BOT_TOKEN``."""

    def __init__(self, prefix: str = "ONCALLBOT_", environ: Mapping[str, str] | None = None):
        self.prefix = prefix
        self._environ = os.environ if environ is None else environ

    def env_name(self, path: str) -> str:
        return self.prefix + path.replace("/", "_").replace("-", "_").upper()

    def get_secret(self, path: str) -> str | None:
        return self._environ.get(self.env_name(path)) or None


class FileSecretBackend:
    """Nested YAML mapping; ``slack/bot_token`` is ``slack: {bot_token: ...}``."""

    def __init__(self, credentials_file: Path):
        self.credentials_file = credentials_file

    @cached_property
    def _credentials(self) -> dict[str, Any]:
        if not self.credentials_file.exists():
            return {}
        try:
            with open(self.credentials_file) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            logger.warning(
                "credentials_file_unreadable",
                file=str(self.credentials_file),
                error=str(exc),
            )
            return {}
        return data if isinstance(data, dict) else {}

    def get_secret(self, path: str) -> str | None:
        current: Any = self._credentials
        for part in path.split("/"):
            if not isinstance(current, dict) or part not in current:
                return None
            current = current[part]
        if current is None or isinstance(current, dict):
            return None
        return str(current)


def _open_backend(backend: SecretBackend, config: SecretConfig) -> SecretSource | None:
    if backend is SecretBackend.ENV:
        return EnvSecretBackend()
    if backend is SecretBackend.FILE:
        return FileSecretBackend(config.credentials_file)

    if not config.gcp_project_id:
        logger.warning("gcp_secret_backend_skipped", reason="gcp_project_id is not set")
        return None
    try:
        from oncallbot.config.secrets.backends import GCPSecretBackend
    except ImportError as exc:
        logger.warning("gcp_secret_backend_unavailable", reason=str(exc))
        return None
    return GCPSecretBackend(config.gcp_project_id, prefix=config.gcp_secret_prefix)


class SecretResolver:
    """Looks a secret path up in each configured backend, first hit wins."""

    def __init__(self, config: SecretConfig | None = None):
        self.config = config or SecretConfig()
        self._chain: list[tuple[SecretBackend, SecretSource]] = []
        for backend in self.config.search_order:
            source = _open_backend(backend, self.config)
            if source is not None:
                self._chain.append((backend, source))

    @property
    def backends(self) -> tuple[SecretBackend, ...]:
        return tuple(backend for backend, _ in self._chain)

    def resolve(self, path: str) -> str | None:
        for backend, source in self._chain:
            value = source.get_secret(path)
            if value is not None:
                logger.debug("secret_resolved", path=_sanitize_path(path), backend=str(backend))
                return value
        return None


def load_runtime_secrets(settings: "Settings", resolver: SecretResolver) -> "Settings":
    """
    Return settings with missing runtime credentials filled from the resolver.

    Values already present on ``settings`` win; the passed instance is not
    modified.
    """
    updates: dict[str, str] = {}
    for attr, path in RUNTIME_SECRETS.items():
        if getattr(settings, attr):
            continue
        value = resolver.resolve(path)
        if value is None:
            logger.warning("runtime_secret_missing", secret=attr)
            continue
        updates[attr] = value

    if not updates:
        return settings
    return settings.model_copy(update=updates)


__all__ = [
    "RUNTIME_SECRETS",
    "EnvSecretBackend",
    "FileSecretBackend",
    "SecretBackend",
    "SecretConfig",
    "SecretResolver",
    "SecretSource",
    "load_runtime_secrets",
]

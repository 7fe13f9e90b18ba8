"""
Google Cloud Secret Manager backend, imported only when ``gcp`` is configured.
"""

from __future__ import annotations

from typing import Any

import structlog
from google.api_core import exceptions as gcp_exceptions
from google.cloud import secretmanager

from oncallbot.config.secrets import _sanitize_path

logger = structlog.get_logger()

# Names the secrets were created under for the bot's first deployment.
GCP_SECRET_NAMES: dict[str, str] = {
    "pagerduty/token": "pager-duty-secret",
    "slack/bot_token": "token",
    "slack/signing_secret": "client-signing-secret",
}


class GCPSecretBackend:
    """Reads the latest version of ``<prefix><name>`` secrets."""

    def __init__(self, project_id: str, *, prefix: str = "oncall-slack-bot-", client: Any = None):
        self.project_id = project_id
        self.prefix = prefix
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def secret_name(self, path: str) -> str:
        name = GCP_SECRET_NAMES.get(path) or path.replace("/", "-").replace("_", "-")
        return f"{self.prefix}{name}"

    def get_secret(self, path: str) -> str | None:
        version = f"projects/{self.project_id}/secrets/{self.secret_name(path)}/versions/latest"
        try:
            response = self.client.access_secret_version(request={"name": version})
        except gcp_exceptions.NotFound:
            logger.debug("gcp_secret_missing", path=_sanitize_path(path))
            return None
        except gcp_exceptions.GoogleAPIError as exc:
            logger.warning(
                "gcp_secret_read_failed", path=_sanitize_path(path), error=type(exc).__name__
            )
            return None
        return response.payload.data.decode("utf-8")

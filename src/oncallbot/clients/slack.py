from __future__ import annotations

from typing import Any

import structlog

from oncallbot.clients.base import BaseHTTPClient, ReplyDeliveryError

logger = structlog.get_logger()


class SlackApiError(ReplyDeliveryError):
    """Raised when the Slack Web API answers with ``ok: false``."""

    def __init__(self, method: str, error: str) -> None:
        super().__init__(f"Slack {method} failed: {error}")
        self.method = method
        self.error = error


class SlackClient(BaseHTTPClient):
    """Slack Web API and response_url client with retry logic and circuit breaker."""

    def __init__(
        self,
        token: str | None,
        *,
        base_url: str = "https://slack.com/api",
        timeout: float = 30.0,
    ) -> None:
        super().__init__(base_url, timeout=timeout)
        self._token = token

    async def post_message(
        self,
        channel: str,
        text: str,
        *,
        thread_ts: str | None = None,
        **extra: Any,
    ) -> dict[str, Any]:
        if not self._token:
            logger.warning("slack_post_skipped", reason="no bot token", channel=channel)
            return {}
        payload: dict[str, Any] = {"channel": channel, "text": text} | extra
        if thread_ts:
            payload["thread_ts"] = thread_ts
        data = await self.post_json(
            "/chat.postMessage",
            payload,
            headers={"Authorization": f"Bearer {self._token}"},
        )
        if not data.get("ok", False):
            raise SlackApiError("chat.postMessage", str(data.get("error", "unknown_error")))
        return data

    async def respond(self, response_url: str, text: str, *, in_channel: bool = True) -> None:
        """Answer a slash command through its response URL."""
        payload = {
            "response_type": "in_channel" if in_channel else "ephemeral",
            "text": text,
        }
        await self.post_json(response_url, payload)

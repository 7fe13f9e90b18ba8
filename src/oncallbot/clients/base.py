"""
Outbound HTTP used to deliver replies to Slack.

Network errors and throttling or 5xx answers are retried with exponential
backoff. After repeated failures the circuit opens and further deliveries
fail fast with ``CircuitBreakerError`` until it recovers.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from circuitbreaker import circuit
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger()

RETRYABLE_STATUS = frozenset({408, 429, 500, 502, 503, 504})


class ReplyDeliveryError(Exception):
    """A reply could not be delivered."""


class RetryableHTTPError(ReplyDeliveryError):
    pass


class PermanentHTTPError(ReplyDeliveryError):
    pass


class BaseHTTPClient:
    """POSTs JSON documents, relative to ``base_url`` or to absolute URLs."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = {"Content-Type": "application/json; charset=utf-8", **(headers or {})}

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    @circuit(
        failure_threshold=5,
        recovery_timeout=60,
        expected_exception=RetryableHTTPError,
    )
    @retry(
        retry=retry_if_exception_type(RetryableHTTPError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=2, min=1, max=30),
        reraise=True,
    )
    async def post_json(
        self,
        path: str,
        payload: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        url = self.url_for(path)
        host = httpx.URL(url).host
        try:
            async with httpx.AsyncClient(timeout=self._timeout, headers=self._headers) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.TransportError as exc:
            logger.warning("http_network_error", host=host, error=type(exc).__name__)
            raise RetryableHTTPError(f"POST {host}: {type(exc).__name__}") from exc

        if response.status_code in RETRYABLE_STATUS:
            logger.warning("http_retryable_error", host=host, status=response.status_code)
            raise RetryableHTTPError(f"POST {host}: HTTP {response.status_code}")
        if response.is_error:
            logger.error("http_permanent_error", host=host, status=response.status_code)
            raise PermanentHTTPError(f"POST {host}: HTTP {response.status_code}")

        # response URLs answer with a plain "ok"
        if "application/json" not in response.headers.get("content-type", ""):
            return {}
        return response.json()

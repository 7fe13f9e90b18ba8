from __future__ import annotations

import asyncio
from typing import Any, Callable

import pagerduty
import structlog
from pagerduty import RestApiV2Client

from oncallbot.core.errors import ConfigurationError, RosterQueryError
from oncallbot.providers.base import OFF_DUTY, OncallHolder, ProviderHealth

logger = structlog.get_logger()


class PagerDutyProviderError(RuntimeError):
    """Raised when a PagerDuty API call fails."""


class PagerDutyRosterClient:
    """Roster query client backed by the official python-pagerduty client."""

    name = "pagerduty"

    def __init__(
        self,
        api_token: str | None,
        *,
        base_url: str | None = None,
        timeout: float = 10.0,
        default_from: str | None = None,
        client_factory: Callable[..., RestApiV2Client] | None = None,
    ) -> None:
        self._timeout = timeout
        factory = client_factory or RestApiV2Client
        token = api_token or "oncallbot-placeholder-token"
        try:
            self._client = factory(
                token,
                default_from=default_from or "oncallbot@example.com",
                base_url=base_url.rstrip("/") if base_url else None,
            )
        except pagerduty.UrlError as exc:
            raise ConfigurationError(
                f"Invalid PagerDuty base URL {base_url!r}: {exc}",
                details={"setting": "pagerduty_base_url"},
            ) from exc
        # HTTP read timeout of the blocking client
        self._client.timeout = timeout

    @property
    def base_url(self) -> str:
        return self._client.url

    async def aclose(self) -> None:
        await asyncio.to_thread(self._client.close)

    async def query(self, reference: str) -> OncallHolder:
        """
        Return the engineer currently on call for a schedule.

        Only the first on-call entry is used. This trusts PagerDuty to list
        entries by escalation level; an unordered response would make the
        choice arbitrary.
        """
        try:
            data = await asyncio.wait_for(
                self._get("/oncalls", {"schedule_ids[]": [reference], "earliest": "true"}),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("roster_query_timeout", reference=reference, timeout=self._timeout)
            raise RosterQueryError(reference, f"timed out after {self._timeout}s") from exc
        except PagerDutyProviderError as exc:
            logger.warning("roster_query_failed", reference=reference, error=str(exc))
            raise RosterQueryError(reference, exc) from exc

        holder = _holder_from_oncalls(reference, data)
        logger.debug(
            "roster_query_resolved",
            reference=reference,
            off_duty=holder.off_duty,
        )
        return holder

    async def health_check(self) -> ProviderHealth:
        try:
            await self._get("/users/me")
        except PagerDutyProviderError as exc:
            return ProviderHealth(status="unreachable", details=str(exc))
        return ProviderHealth(status="healthy")

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        def _call() -> Any:
            try:
                response = self._client.get(path, params=params)
            except (pagerduty.Error, pagerduty.UrlError) as exc:
                # pagerduty.Error also covers exhausted network retries
                raise PagerDutyProviderError(str(exc)) from exc
            if response.status_code >= 400:
                raise PagerDutyProviderError(f"GET {path} returned HTTP {response.status_code}")
            try:
                return response.json()
            except ValueError as exc:
                raise PagerDutyProviderError("PagerDuty response did not contain JSON") from exc

        return await asyncio.to_thread(_call)


def _holder_from_oncalls(reference: str, data: Any) -> OncallHolder:
    oncalls = data.get("oncalls") if isinstance(data, dict) else None
    if not isinstance(oncalls, list):
        logger.warning("roster_query_malformed", reference=reference, reason="missing oncalls")
        raise RosterQueryError(reference, "response has no 'oncalls' list")
    if not oncalls:
        return OFF_DUTY

    first = oncalls[0]
    user = first.get("user") if isinstance(first, dict) else None
    summary = user.get("summary") if isinstance(user, dict) else None
    if not isinstance(summary, str) or not summary:
        logger.warning("roster_query_malformed", reference=reference, reason="missing user summary")
        raise RosterQueryError(reference, "first on-call entry has no user summary")
    return OncallHolder(summary)


__all__ = ["PagerDutyRosterClient", "PagerDutyProviderError"]

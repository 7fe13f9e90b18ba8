"""Process-wide objects built once at startup."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from oncallbot.clients.slack import SlackClient
from oncallbot.config.secrets import SecretConfig, SecretResolver, load_runtime_secrets
from oncallbot.config.settings import Settings
from oncallbot.directory import RosterDirectory
from oncallbot.formatter import ResponseFormatter
from oncallbot.handler import OncallCommandHandler
from oncallbot.providers.pagerduty import PagerDutyRosterClient
from oncallbot.resolver import OncallResolver

logger = structlog.get_logger()


@dataclass(frozen=True)
class Runtime:
    settings: Settings
    directory: RosterDirectory
    roster_client: PagerDutyRosterClient
    slack_client: SlackClient
    handler: OncallCommandHandler

    async def aclose(self) -> None:
        await self.roster_client.aclose()


def load_directory(settings: Settings, path: str | None = None) -> RosterDirectory:
    """Load the team directory named by ``path`` or the settings."""
    path = path or settings.directory_file
    if not path:
        logger.warning("team_directory_not_configured")
        return RosterDirectory()
    return RosterDirectory.from_yaml(path)


def resolve_settings(settings: Settings) -> Settings:
    """Fill runtime credentials from the configured secret backends."""
    resolver = SecretResolver(SecretConfig.from_settings(settings))
    return load_runtime_secrets(settings, resolver)


def build_runtime(settings: Settings, *, directory_file: str | None = None) -> Runtime:
    settings = resolve_settings(settings)
    directory = load_directory(settings, directory_file)
    roster_client = PagerDutyRosterClient(
        settings.pagerduty_token,
        base_url=settings.pagerduty_base_url,
        timeout=settings.roster_query_timeout,
        default_from=settings.pagerduty_from_email,
    )
    slack_client = SlackClient(
        settings.slack_bot_token,
        base_url=settings.slack_base_url,
        timeout=settings.http_timeout,
    )
    handler = OncallCommandHandler(
        OncallResolver(directory, roster_client),
        ResponseFormatter(directory),
    )
    return Runtime(
        settings=settings,
        directory=directory,
        roster_client=roster_client,
        slack_client=slack_client,
        handler=handler,
    )

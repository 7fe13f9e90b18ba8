from __future__ import annotations

from fastapi import Request

from oncallbot.clients.slack import SlackClient
from oncallbot.config import Settings, get_settings
from oncallbot.handler import OncallCommandHandler
from oncallbot.providers.pagerduty import PagerDutyRosterClient
from oncallbot.runtime import Runtime


def _runtime(request: Request) -> Runtime:
    return request.app.state.runtime


def get_runtime_settings(request: Request) -> Settings:
    runtime: Runtime | None = getattr(request.app.state, "runtime", None)
    return runtime.settings if runtime else get_settings()


def get_command_handler(request: Request) -> OncallCommandHandler:
    return _runtime(request).handler


def get_slack_client(request: Request) -> SlackClient:
    return _runtime(request).slack_client


def get_roster_client(request: Request) -> PagerDutyRosterClient:
    return _runtime(request).roster_client

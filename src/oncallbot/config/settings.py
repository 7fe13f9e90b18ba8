"""
Bot settings, read from ``ONCALLBOT_*`` environment variables or ``.env``.

Credentials left unset here are looked up by ``oncallbot.config.secrets``.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    log_level: str = "INFO"

    # Mount point of the Slack routes, e.g. "/bot"
    api_prefix: str = ""

    # YAML file mapping team names to PagerDuty schedules
    directory_file: str | None = None

    # PagerDuty
    pagerduty_token: str | None = None
    pagerduty_base_url: str = "https://api.pagerduty.com"
    pagerduty_from_email: str = "oncallbot@example.com"
    roster_query_timeout: float = 10.0

    # Slack
    slack_bot_token: str | None = None
    slack_signing_secret: str | None = None
    slack_base_url: str = "https://slack.com/api"
    slack_request_tolerance: int = 300
    http_timeout: float = 30.0

    # Secrets
    secret_backend: Literal["env", "file", "gcp"] = "env"
    credentials_file: str | None = None
    gcp_project_id: str | None = None
    gcp_secret_prefix: str = "oncall-slack-bot-"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "ONCALLBOT_"


@lru_cache
def get_settings() -> Settings:
    return Settings()

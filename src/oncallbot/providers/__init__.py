"""Roster service providers."""

from oncallbot.providers.base import OFF_DUTY, OncallHolder, ProviderHealth, RosterQueryClient
from oncallbot.providers.pagerduty import PagerDutyRosterClient

__all__ = [
    "OFF_DUTY",
    "OncallHolder",
    "PagerDutyRosterClient",
    "ProviderHealth",
    "RosterQueryClient",
]

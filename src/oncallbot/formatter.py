"""Renders resolution outcomes as Slack mrkdwn replies."""

from __future__ import annotations

from oncallbot.directory import RosterDirectory
from oncallbot.resolver import HelpRequested, Outcome, ResolvedAnswer, ResolvedEntry, UnknownTeam

OFF_DUTY_TEXT = "Currently Off Duty"
FAILURE_MESSAGE = (
    "Sorry, I couldn't look up the on call engineers right now. Please try again in a few minutes."
)


class ResponseFormatter:
    """Turns resolver outcomes into reply text."""

    def __init__(self, directory: RosterDirectory) -> None:
        self._directory = directory

    def help_message(self) -> str:
        # Built on every call so it always reflects the loaded directory.
        teams = ", ".join(f"`{team}`" for team in self._directory.list_known_teams())
        return (
            "Please provide a team name for the oncall engineers you would like to lookup. "
            "Example: `/oncall <team_name>` or `@oncall-bot <team_name>`. "
            f"Allowed team names are: {teams}."
        )

    def render(self, outcome: Outcome) -> str:
        if isinstance(outcome, (HelpRequested, UnknownTeam)):
            return self.help_message()
        if isinstance(outcome, ResolvedAnswer):
            entries = ", ".join(_render_entry(entry) for entry in outcome.entries)
            return f"*{outcome.team.upper()}* On Call Engineers - {entries}"
        raise TypeError(f"Cannot render {type(outcome).__name__}")


def _render_entry(entry: ResolvedEntry) -> str:
    holder = OFF_DUTY_TEXT if entry.holder.off_duty else entry.holder.name
    return f"*{entry.label}*: {holder}"

"""
On-call resolution: from command text to labelled roster holders.

Algorithm:
1. Normalize the command text; blank text or anything mentioning "help"
   is a help request, a team missing from the directory is unknown.
2. Query every roster of the team concurrently: the business hours
   roster (if configured) and each roster of the escalation chain.
3. Re-associate results by position, not completion order, and label
   them: Business Hours first, then Primary, Secondary, Tertiary and
   Current for anything deeper.
4. A single failed query fails the whole resolution.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Union

import structlog

from oncallbot.core.errors import ResolutionError, RosterQueryError
from oncallbot.directory import HELP_KEYWORD, RosterDirectory, normalize_team
from oncallbot.providers.base import OncallHolder, RosterQueryClient

logger = structlog.get_logger()

POSITION_LABELS: tuple[str, ...] = ("Primary", "Secondary", "Tertiary")
DEFAULT_POSITION_LABEL = "Current"
BUSINESS_HOURS_LABEL = "Business Hours"


def position_label(index: int) -> str:
    """Label for a roster at ``index`` in a team's escalation chain."""
    if 0 <= index < len(POSITION_LABELS):
        return POSITION_LABELS[index]
    return DEFAULT_POSITION_LABEL


@dataclass(frozen=True)
class HelpRequested:
    """The user asked for help or gave no team."""


@dataclass(frozen=True)
class UnknownTeam:
    """The user named a team the directory does not know."""

    team: str


@dataclass(frozen=True)
class ResolvedEntry:
    label: str
    holder: OncallHolder


@dataclass(frozen=True)
class ResolvedAnswer:
    """Labelled holders for one team, in display order."""

    team: str
    entries: tuple[ResolvedEntry, ...]


Outcome = Union[ResolvedAnswer, HelpRequested, UnknownTeam]


class OncallResolver:
    """Resolves who is on call for a team named in a chat command."""

    def __init__(self, directory: RosterDirectory, client: RosterQueryClient) -> None:
        self._directory = directory
        self._client = client

    async def resolve(self, raw_text: str | None) -> Outcome:
        """
        Resolve command text to an outcome.

        Raises:
            ResolutionError: if any roster of the team could not be queried
        """
        team = normalize_team(raw_text)
        if not team or HELP_KEYWORD in team:
            logger.info("oncall_help_requested")
            return HelpRequested()

        roster_set = self._directory.lookup(team)
        if roster_set is None:
            logger.info("oncall_unknown_team", team=team)
            return UnknownTeam(team)

        references = list(roster_set.primary_chain)
        if roster_set.business_hours_ref:
            references.insert(0, roster_set.business_hours_ref)

        holders = await self._query_all(team, references)

        entries: list[ResolvedEntry] = []
        if roster_set.business_hours_ref:
            entries.append(ResolvedEntry(BUSINESS_HOURS_LABEL, holders.pop(0)))
        entries.extend(
            ResolvedEntry(position_label(index), holder) for index, holder in enumerate(holders)
        )

        logger.info("oncall_resolved", team=team, rosters=len(entries))
        return ResolvedAnswer(team=team, entries=tuple(entries))

    async def _query_all(self, team: str, references: list[str]) -> list[OncallHolder]:
        tasks = [asyncio.ensure_future(self._client.query(reference)) for reference in references]
        try:
            # gather keeps argument order regardless of completion order
            return list(await asyncio.gather(*tasks))
        except RosterQueryError as exc:
            raise ResolutionError(team, exc) from exc
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
                elif not task.cancelled():
                    # only the first failure propagates; mark the rest retrieved
                    task.exception()

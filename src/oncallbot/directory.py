"""
Team directory: which PagerDuty schedules answer for which team.

The directory is built once at process start and is read-only afterwards.
Team identifiers are matched case-insensitively; schedule order within a
team is the escalation order and is never changed after loading.

File format::

    teams:
      payments:
        schedules: [PSCHED1, PSCHED2]
        business_hours: PBIZHRS
      platform: [PPLAT1]
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

import structlog
import yaml

from oncallbot.core.errors import DirectoryConfigError

logger = structlog.get_logger()

HELP_KEYWORD = "help"


def normalize_team(text: str | None) -> str:
    """Trim and lower-case a free-text team identifier."""
    return (text or "").strip().lower()


@dataclass(frozen=True)
class TeamRosterSet:
    """Rosters configured for one team."""

    team: str
    primary_chain: tuple[str, ...] = ()
    business_hours_ref: str | None = None


class RosterDirectory:
    """Immutable, case-insensitive mapping of team identifiers to rosters."""

    def __init__(self, teams: Iterable[TeamRosterSet] = ()) -> None:
        entries: dict[str, TeamRosterSet] = {}
        for roster_set in teams:
            key = normalize_team(roster_set.team)
            if not key:
                raise DirectoryConfigError("Team identifier must not be empty")
            if key in entries:
                raise DirectoryConfigError(
                    f"Duplicate team identifier {key!r}", {"team": key}
                )
            if roster_set.team != key:
                roster_set = TeamRosterSet(
                    team=key,
                    primary_chain=roster_set.primary_chain,
                    business_hours_ref=roster_set.business_hours_ref,
                )
            entries[key] = roster_set
        self._teams: Mapping[str, TeamRosterSet] = MappingProxyType(entries)

    def __len__(self) -> int:
        return len(self._teams)

    def __iter__(self) -> Iterator[TeamRosterSet]:
        return iter(self._teams.values())

    def __contains__(self, team_identifier: object) -> bool:
        return isinstance(team_identifier, str) and self.lookup(team_identifier) is not None

    def lookup(self, team_identifier: str | None) -> TeamRosterSet | None:
        """
        Find the rosters for a team.

        Returns None for unknown teams, blank input, and the ``help`` keyword.
        """
        key = normalize_team(team_identifier)
        if not key or key == HELP_KEYWORD:
            return None
        return self._teams.get(key)

    def list_known_teams(self) -> tuple[str, ...]:
        """Team identifiers in configuration order."""
        return tuple(self._teams)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RosterDirectory":
        """
        Build a directory from parsed configuration.

        Each value is either a list of schedule IDs (the escalation chain) or
        a mapping with ``schedules`` and an optional ``business_hours`` ID.
        """
        if not isinstance(data, Mapping):
            raise DirectoryConfigError("Team directory must be a mapping of team to schedules")

        return cls(_parse_entry(team, entry) for team, entry in data.items())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RosterDirectory":
        """Load a directory from a YAML file with a top-level ``teams`` key."""
        path = Path(path)
        try:
            with open(path) as f:
                document = yaml.safe_load(f) or {}
        except OSError as exc:
            raise DirectoryConfigError(
                f"Cannot read team directory: {exc}", {"file": str(path)}
            ) from exc
        except yaml.YAMLError as exc:
            raise DirectoryConfigError(
                f"Invalid YAML in team directory: {exc}", {"file": str(path)}
            ) from exc

        if not isinstance(document, Mapping):
            raise DirectoryConfigError("Team directory file must contain a mapping", {"file": str(path)})

        directory = cls.from_mapping(document.get("teams") or {})
        logger.info("team_directory_loaded", file=str(path), teams=len(directory))
        return directory


def _parse_entry(team: Any, entry: Any) -> TeamRosterSet:
    if not isinstance(team, str):
        raise DirectoryConfigError(f"Team identifier must be a string, got {team!r}")

    business_hours: Any = None
    if isinstance(entry, Mapping):
        schedules = entry.get("schedules") or []
        business_hours = entry.get("business_hours")
    else:
        schedules = entry

    if not isinstance(schedules, (list, tuple)):
        raise DirectoryConfigError(
            f"Schedules for team {team!r} must be a list", {"team": team}
        )
    for reference in schedules:
        _check_reference(team, reference)
    if business_hours is not None:
        _check_reference(team, business_hours)

    return TeamRosterSet(
        team=team,
        primary_chain=tuple(schedules),
        business_hours_ref=business_hours,
    )


def _check_reference(team: str, reference: Any) -> None:
    if not isinstance(reference, str) or not reference.strip():
        raise DirectoryConfigError(
            f"Invalid schedule reference {reference!r} for team {team!r}", {"team": team}
        )

"""
Console output for the oncallbot CLI.

Honours NO_COLOR and FORCE_COLOR.
"""

from __future__ import annotations

import os
from typing import Iterable

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from oncallbot.directory import TeamRosterSet

console = Console(
    theme=Theme({"info": "cyan", "error": "bold red", "muted": "dim"}),
    force_terminal=os.environ.get("FORCE_COLOR") is not None,
    no_color=os.environ.get("NO_COLOR") is not None,
)


def info(message: str) -> None:
    console.print(escape(message), style="info")


def error(message: str) -> None:
    console.print(f"Error: {escape(message)}", style="error")


def header(title: str) -> None:
    console.rule(f"[bold]{escape(title)}[/bold]")


def print_teams(roster_sets: Iterable[TeamRosterSet]) -> None:
    """One row per team, in directory order."""
    table = Table(title="Teams")
    table.add_column("Team", style="bold")
    table.add_column("Business Hours")
    table.add_column("Escalation Chain")
    for roster_set in roster_sets:
        table.add_row(
            escape(roster_set.team),
            escape(roster_set.business_hours_ref or "") or "[muted]-[/muted]",
            escape(", ".join(roster_set.primary_chain)) or "[muted]-[/muted]",
        )
    console.print(table)

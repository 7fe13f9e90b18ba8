"""
CLI commands for the on-call bot.
"""

from oncallbot.cli.commands import lookup_command, serve_command, teams_command

__all__ = [
    "lookup_command",
    "serve_command",
    "teams_command",
]

"""
CLI commands: list teams, look up who is on call, run the webhook server.
"""

from __future__ import annotations

import asyncio

from oncallbot.cli.ux import console, error, header, info, print_teams
from oncallbot.config import get_settings
from oncallbot.core.errors import ExitCode, ResolutionError, format_error_message
from oncallbot.runtime import build_runtime, load_directory


def teams_command(directory_file: str | None = None) -> int:
    """Print the configured teams and their schedules in directory order."""
    directory = load_directory(get_settings(), directory_file)
    if not len(directory):
        info("No teams configured")
        return ExitCode.SUCCESS

    print_teams(directory)
    return ExitCode.SUCCESS


def lookup_command(team: str, directory_file: str | None = None) -> int:
    """
    Resolve and print the on-call engineers for a team.

    Returns:
        Exit code (0 = answered, including help; 1 = roster service failure)
    """
    runtime = build_runtime(get_settings(), directory_file=directory_file)
    header(f"On call: {team}")

    async def _lookup() -> str:
        try:
            outcome = await runtime.handler.resolver.resolve(team)
            return runtime.handler.formatter.render(outcome)
        finally:
            await runtime.aclose()

    try:
        text = asyncio.run(_lookup())
    except ResolutionError as exc:
        error(format_error_message(exc))
        return exc.exit_code

    console.print(text, markup=False, highlight=False, soft_wrap=True)
    return ExitCode.SUCCESS


def serve_command(host: str = "0.0.0.0", port: int = 8080, reload: bool = False) -> int:
    """Run the Slack webhook server."""
    import uvicorn

    uvicorn.run("oncallbot.api.main:app", host=host, port=port, reload=reload)
    return ExitCode.SUCCESS

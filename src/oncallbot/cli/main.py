from __future__ import annotations

import argparse
import sys
from typing import Sequence

from oncallbot.cli.commands import lookup_command, serve_command, teams_command
from oncallbot.config import get_settings
from oncallbot.core.errors import main_with_error_handling
from oncallbot.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="oncallbot", description="On-call lookup bot")
    parser.add_argument("--log-level", help="Log level (default: ONCALLBOT_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run the Slack webhook server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8080, help="Bind port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    teams_parser = subparsers.add_parser("teams", help="List configured teams")
    teams_parser.add_argument("--directory", help="Team directory YAML file")

    lookup_parser = subparsers.add_parser("lookup", help="Show who is on call for a team")
    lookup_parser.add_argument("team", nargs="?", default="", help="Team name")
    lookup_parser.add_argument("--directory", help="Team directory YAML file")

    return parser


@main_with_error_handling
def run(args: argparse.Namespace) -> int:
    configure_logging(args.log_level or get_settings().log_level, json_output=False)
    if args.command == "serve":
        return serve_command(host=args.host, port=args.port, reload=args.reload)
    if args.command == "teams":
        return teams_command(args.directory)
    if args.command == "lookup":
        return lookup_command(args.team, args.directory)
    build_parser().print_help()
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    sys.exit(run(args))


if __name__ == "__main__":
    main()

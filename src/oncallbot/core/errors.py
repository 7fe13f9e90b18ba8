"""
Error hierarchy and CLI error handling for the on-call bot.

Exit Codes:
- 0: Success
- 1: Resolution failed (roster service unreachable or misbehaving)
- 10: Configuration error
- 127: Unknown/internal error
- 130: Interrupted
"""

from __future__ import annotations

import functools
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Exit codes of the oncallbot CLI."""

    SUCCESS = 0
    RESOLUTION_FAILED = 1
    CONFIG_ERROR = 10
    UNKNOWN_ERROR = 127
    INTERRUPTED = 130


class OncallBotError(Exception):
    """Base error; ``exit_code`` is what the CLI exits with."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(OncallBotError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class DirectoryConfigError(ConfigurationError):
    """Raised when the team directory cannot be built from its source."""


class RosterQueryError(OncallBotError):
    """
    Raised when the roster service could not say who holds a roster.

    Distinct from an empty roster: "nobody is on call" is a valid answer,
    this error means the answer is unknown.
    """

    exit_code = ExitCode.RESOLUTION_FAILED

    def __init__(self, reference: str, cause: BaseException | str):
        self.reference = reference
        self.cause = cause
        super().__init__(
            f"Roster query for {reference!r} failed: {cause}",
            {"reference": reference},
        )


class ResolutionError(OncallBotError):
    """Raised when any roster of a team could not be resolved."""

    exit_code = ExitCode.RESOLUTION_FAILED

    def __init__(self, team: str, cause: BaseException):
        self.team = team
        self.cause = cause
        super().__init__(
            f"Could not resolve on-call engineers for {team!r}: {cause}",
            {"team": team},
        )


F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(func: F) -> F:
    """Turn exceptions escaping a CLI entry point into exit codes."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> int:
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            logger.info("command_interrupted")
            return ExitCode.INTERRUPTED
        except OncallBotError as exc:
            logger.error(
                "command_failed",
                error_type=type(exc).__name__,
                error=format_error_message(exc),
                exit_code=int(exc.exit_code),
            )
            return exc.exit_code
        except Exception as exc:
            logger.exception("command_crashed", error_type=type(exc).__name__)
            return ExitCode.UNKNOWN_ERROR

    return wrapper  # type: ignore[return-value]


def format_error_message(error: OncallBotError) -> str:
    """``message (key=value, ...)`` for display to users."""
    if not error.details:
        return error.message
    details = ", ".join(f"{key}={value}" for key, value in error.details.items())
    return f"{error.message} ({details})"

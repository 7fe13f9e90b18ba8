"""Core definitions shared across the on-call bot."""

from oncallbot.core.errors import (
    ConfigurationError,
    DirectoryConfigError,
    ExitCode,
    OncallBotError,
    ResolutionError,
    RosterQueryError,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "OncallBotError",
    "ConfigurationError",
    "DirectoryConfigError",
    "RosterQueryError",
    "ResolutionError",
    "format_error_message",
    "main_with_error_handling",
]

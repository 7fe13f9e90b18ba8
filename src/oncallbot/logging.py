import logging
from typing import Any

import structlog

# Chatty at INFO: one line per HTTP request.
NOISY_LOGGERS = ("httpx", "httpcore", "pagerduty")


def configure_logging(level: int | str = logging.INFO, *, json_output: bool = True) -> None:
    """
    Route structlog through the standard library.

    The webhook server logs JSON lines; the CLI passes ``json_output=False``
    for human-readable console output.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s")
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def bind_context(**kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Logger carrying the given request fields; ``None`` values are left out."""
    return structlog.get_logger().bind(
        **{key: value for key, value in kwargs.items() if value is not None}
    )

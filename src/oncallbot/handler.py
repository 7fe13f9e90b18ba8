from __future__ import annotations

from typing import Awaitable, Callable

import structlog

from oncallbot.core.errors import ResolutionError
from oncallbot.formatter import FAILURE_MESSAGE, ResponseFormatter
from oncallbot.logging import bind_context
from oncallbot.resolver import OncallResolver

Reply = Callable[[str], Awaitable[None]]

logger = structlog.get_logger()


class OncallCommandHandler:
    """Runs one on-call command end to end and answers it exactly once."""

    def __init__(self, resolver: OncallResolver, formatter: ResponseFormatter) -> None:
        self._resolver = resolver
        self._formatter = formatter

    @property
    def resolver(self) -> OncallResolver:
        return self._resolver

    @property
    def formatter(self) -> ResponseFormatter:
        return self._formatter

    async def handle(self, text: str | None, reply: Reply, **context: str | None) -> str:
        """
        Resolve ``text``, send the reply and return what was sent.

        Resolution failures are answered with a generic failure message,
        never with the help text.
        """
        log = bind_context(**context)
        try:
            outcome = await self._resolver.resolve(text)
        except ResolutionError as exc:
            log.error("oncall_resolution_failed", team=exc.team, error=str(exc.cause), exc_info=exc)
            message = FAILURE_MESSAGE
        else:
            message = self._formatter.render(outcome)

        await reply(message)
        return message

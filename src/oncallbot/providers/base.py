from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol


@dataclass(frozen=True)
class OncallHolder:
    """Who currently holds a roster; ``name`` is None when nobody is on duty."""

    name: str | None = None

    @property
    def off_duty(self) -> bool:
        return self.name is None


OFF_DUTY = OncallHolder()


@dataclass(frozen=True)
class ProviderHealth:
    status: Literal["healthy", "degraded", "unreachable"]
    details: str | None = None


class RosterQueryClient(Protocol):
    """Looks up the current holder of a roster in the on-call service."""

    async def query(self, reference: str) -> OncallHolder:
        """
        Return the current holder of ``reference``.

        Returns ``OFF_DUTY`` when the roster has no assignment and raises
        ``RosterQueryError`` when the service could not be asked.
        """
        ...

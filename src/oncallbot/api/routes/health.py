from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from oncallbot.api.deps import get_roster_client
from oncallbot.providers.pagerduty import PagerDutyRosterClient

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str = "0.1.0"


class ReadinessResponse(BaseModel):
    status: str
    pagerduty: str
    details: str | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness: the process is serving requests."""
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ReadinessResponse}},
)
async def readiness_check(
    response: Response,
    roster_client: PagerDutyRosterClient = Depends(get_roster_client),  # noqa: B008
) -> ReadinessResponse:
    """Ready once PagerDuty accepts the configured token; 503 otherwise."""
    health = await roster_client.health_check()
    if health.status != "healthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(
        status="ready" if health.status == "healthy" else "not_ready",
        pagerduty=health.status,
        details=health.details,
    )

import pytest
from httpx import ASGITransport, AsyncClient
from oncallbot.api.deps import get_roster_client
from oncallbot.api.main import create_app
from oncallbot.providers.base import ProviderHealth


class StubRosterClient:
    def __init__(self, health: ProviderHealth) -> None:
        self.health = health

    async def health_check(self) -> ProviderHealth:
        return self.health


async def get(app, path):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.get(path)


@pytest.mark.asyncio
async def test_health() -> None:
    response = await get(create_app(), "/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_ready_when_pagerduty_reachable() -> None:
    app = create_app()
    app.dependency_overrides[get_roster_client] = lambda: StubRosterClient(
        ProviderHealth(status="healthy")
    )

    response = await get(app, "/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready", "pagerduty": "healthy", "details": None}


@pytest.mark.asyncio
async def test_not_ready_when_pagerduty_unreachable() -> None:
    app = create_app()
    app.dependency_overrides[get_roster_client] = lambda: StubRosterClient(
        ProviderHealth(status="unreachable", details="401 Unauthorized")
    )

    response = await get(app, "/ready")

    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "not_ready"
    assert body["details"] == "401 Unauthorized"

"""
Tests for the admin API wiring (routes, error mapping) over ASGI.
"""

import httpx
import pytest
import pytest_asyncio

from dreamleague.database import get_async_session
from dreamleague.main import app
from dreamleague.routes.jornada import get_provider

from conftest import FakeFactsSource


@pytest_asyncio.fixture
async def client(session):
    async def override_session():
        yield session

    async def override_provider():
        yield FakeFactsSource()

    app.dependency_overrides[get_async_session] = override_session
    app.dependency_overrides[get_provider] = override_provider
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


class TestJornadaRoutes:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_status_and_close(self, client, make_league):
        league_id = (await make_league(members={"user-1": {"budget": 637, "initial_budget": 500}})).id

        response = await client.get(f"/leagues/{league_id}/jornada")
        assert response.status_code == 200
        assert response.json()["current_jornada"] == 12
        assert response.json()["recent_closes"] == []

        response = await client.post(f"/leagues/{league_id}/jornada/close")
        assert response.status_code == 200
        body = response.json()
        assert body["next_jornada"] == 13
        assert body["balances"] == {"user-1": 637}

        response = await client.get(f"/leagues/{league_id}/jornada")
        status = response.json()
        assert status["betting_locked"] is True
        assert status["recent_closes"][0]["jornada"] == 12

    @pytest.mark.asyncio
    async def test_open_and_lock(self, client, make_league):
        league_id = (await make_league()).id

        response = await client.post(f"/leagues/{league_id}/jornada/lock")
        assert response.json()["betting_locked"] is True

        response = await client.post(f"/leagues/{league_id}/jornada/open")
        assert response.json()["betting_locked"] is False

    @pytest.mark.asyncio
    async def test_unknown_league_is_404(self, client):
        response = await client.get("/leagues/404/jornada")
        assert response.status_code == 404
        assert response.json()["error"] == "LEAGUE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_squad_points(self, client, make_league, make_squad):
        league_id = (await make_league()).id
        await make_squad(league_id, "user-1", [3] * 11, jornada=12)

        response = await client.get(f"/leagues/{league_id}/members/user-1/squad-points")

        assert response.status_code == 200
        assert response.json()["points"] == 36

    @pytest.mark.asyncio
    async def test_player_points_without_row(self, client, make_league):
        response = await client.get("/players/77/jornadas/12/points")
        assert response.json() == {"player_id": 77, "jornada": 12, "points": 0, "breakdown": []}

"""API-Football data provider implementation."""

import asyncio
import logging
from typing import Optional

import httpx

from dreamleague.betting.facts import FINISHED_STATUSES, MatchFacts
from dreamleague.config import get_settings
from dreamleague.etl.base import FixtureData, FixturePlayerStats, StatsProvider
from dreamleague.scoring.stats import safe_int
from dreamleague.utils.cache import TTLCache

logger = logging.getLogger(__name__)

settings = get_settings()


def round_name(jornada: int) -> str:
    """API-Football round label of a league matchday."""
    return f"Regular Season - {jornada}"


def build_headers(host: str, api_key: str) -> tuple[str, dict]:
    """Base URL and auth headers for API-Sports direct or RapidAPI."""
    if "api-sports.io" in host:
        return f"https://{host}", {"x-apisports-key": api_key}
    return f"https://{host}/v3", {
        "X-RapidAPI-Key": api_key,
        "X-RapidAPI-Host": host,
    }


class APIFootballProvider(StatsProvider):
    """API-Football provider with rate limiting and retry (supports RapidAPI and API-Sports)."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        requests_per_minute: Optional[int] = None,
        retry_delay: float = 2.0,
        max_retries: int = 3,
        cache_ttl: float = 600,
    ):
        self.BASE_URL, headers = build_headers(settings.RAPIDAPI_HOST, settings.RAPIDAPI_KEY)
        self.client = client or httpx.AsyncClient(headers=headers, timeout=30.0)
        self.requests_per_minute = (
            requests_per_minute if requests_per_minute is not None else settings.API_REQUESTS_PER_MINUTE
        )
        self.retry_delay = retry_delay
        self.max_retries = max_retries
        self._cache = TTLCache(ttl=cache_ttl)

    async def _rate_limited_request(self, endpoint: str, params: dict = None) -> dict:
        """
        Make a rate-limited request to the API.

        Sleeps between requests to respect the per-minute quota and backs
        off exponentially on 429, timeouts and HTTP errors. Raises after the
        last attempt fails so callers can report the item.
        """
        delay = 60 / self.requests_per_minute if self.requests_per_minute > 0 else 0
        url = f"{self.BASE_URL}/{endpoint}"

        for attempt in range(self.max_retries):
            is_last = attempt == self.max_retries - 1
            wait_time = self.retry_delay * (2**attempt)
            try:
                response = await self.client.get(url, params=params)

                if response.status_code == 429:
                    if is_last:
                        response.raise_for_status()
                    logger.warning(f"[API_FOOTBALL] Rate limited on {endpoint}. Waiting {wait_time}s before retry...")
                    await asyncio.sleep(wait_time)
                    continue

                response.raise_for_status()
                if delay:
                    await asyncio.sleep(delay)

                data = response.json()
                if data.get("errors"):
                    logger.error(f"[API_FOOTBALL] API error on {endpoint}: {data['errors']}")
                    return {"response": []}
                return data

            except httpx.TimeoutException as e:
                logger.error(f"[API_FOOTBALL] Timeout on {endpoint}: {e}")
                if is_last:
                    raise
                await asyncio.sleep(wait_time)

            except httpx.HTTPStatusError as e:
                logger.error(f"[API_FOOTBALL] HTTP error on {endpoint}: {e}")
                if is_last:
                    raise
                await asyncio.sleep(wait_time)

            except httpx.RequestError as e:
                logger.error(f"[API_FOOTBALL] Request error on {endpoint}: {e}")
                if is_last:
                    raise
                await asyncio.sleep(wait_time)

        return {"response": []}

    def _parse_fixture(self, fixture: dict) -> FixtureData:
        """Parse API fixture response into FixtureData."""
        fixture_info = fixture.get("fixture", {})
        teams = fixture.get("teams", {})
        goals = fixture.get("goals", {})
        home = teams.get("home") or {}
        away = teams.get("away") or {}

        return FixtureData(
            fixture_id=fixture_info.get("id"),
            round=(fixture.get("league") or {}).get("round"),
            status=(fixture_info.get("status") or {}).get("short", "NS"),
            home_team_id=home.get("id"),
            away_team_id=away.get("id"),
            home_team=home.get("name") or "",
            away_team=away.get("name") or "",
            home_goals=safe_int(goals.get("home")),
            away_goals=safe_int(goals.get("away")),
        )

    def _parse_stats(self, statistics: list) -> dict:
        """Parse match statistics from API response.

        API returns stats in order: [home_team, away_team]
        Each item has team info and statistics array.
        """
        stats = {"home": {}, "away": {}}

        for i, team_stats in enumerate(statistics[:2]):
            team_key = "home" if i == 0 else "away"

            for stat in team_stats.get("statistics", []):
                stat_type = (stat.get("type") or "").lower().replace(" ", "_")
                value = stat.get("value")
                if value is not None:
                    stats[team_key][stat_type] = value

        return stats

    async def get_round_fixtures(self, league_id: int, season: int, jornada: int) -> list[FixtureData]:
        key = ("round", league_id, season, jornada)
        hit, cached = self._cache.get(key)
        if hit:
            return cached

        data = await self._rate_limited_request(
            "fixtures", {"league": league_id, "season": season, "round": round_name(jornada)}
        )
        fixtures = [self._parse_fixture(f) for f in data.get("response", [])]
        logger.info(f"[API_FOOTBALL] {len(fixtures)} fixtures for league {league_id} {round_name(jornada)}")
        self._cache.set(key, fixtures)
        return fixtures

    async def get_fixture(self, fixture_id: int) -> Optional[FixtureData]:
        data = await self._rate_limited_request("fixtures", {"id": fixture_id})
        fixtures = data.get("response", [])
        if not fixtures:
            return None
        return self._parse_fixture(fixtures[0])

    async def get_fixture_players(self, fixture_id: int) -> list[FixturePlayerStats]:
        key = ("players", fixture_id)
        hit, cached = self._cache.get(key)
        if hit:
            return cached

        data = await self._rate_limited_request("fixtures/players", {"fixture": fixture_id})
        players = []
        for team_block in data.get("response", []):
            team_id = (team_block.get("team") or {}).get("id")
            for entry in team_block.get("players", []):
                player = entry.get("player") or {}
                blocks = entry.get("statistics") or []
                players.append(
                    FixturePlayerStats(
                        player_external_id=player.get("id"),
                        player_name=player.get("name") or "",
                        team_id=team_id,
                        statistics=blocks[0] if blocks else {},
                    )
                )
        self._cache.set(key, players)
        return players

    async def get_fixture_statistics(self, fixture_id: int) -> Optional[dict]:
        """Fetch team statistics for a fixture as {"home": {...}, "away": {...}}."""
        data = await self._rate_limited_request("fixtures/statistics", {"fixture": fixture_id})
        stats_data = data.get("response", [])

        if not stats_data:
            return None

        return self._parse_stats(stats_data)

    async def get_player_team(self, player_external_id: int, season: int) -> Optional[int]:
        data = await self._rate_limited_request("players", {"id": player_external_id, "season": season})
        for entry in data.get("response", []):
            for block in entry.get("statistics") or []:
                team_id = (block.get("team") or {}).get("id")
                if team_id:
                    return team_id
        return None

    async def get_match_facts(self, fixture_id: int) -> Optional[MatchFacts]:
        """Final score plus corners/cards/shots; None until the match is finished."""
        fixture = await self.get_fixture(fixture_id)
        if fixture is None or fixture.status not in FINISHED_STATUSES:
            return None

        statistics = await self.get_fixture_statistics(fixture_id)
        return MatchFacts.from_provider(fixture.as_summary(), statistics)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

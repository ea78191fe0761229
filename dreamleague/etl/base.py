"""Abstract base class for player statistics providers."""

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from dreamleague.betting.facts import MatchFactsSource


@dataclass
class FixtureData:
    """Data transfer object for a fixture of a matchday."""

    fixture_id: int
    round: Optional[str]
    status: str
    home_team_id: Optional[int]
    away_team_id: Optional[int]
    home_team: str = ""
    away_team: str = ""
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None

    def involves(self, team_id: int) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    def goals_against(self, team_id: int) -> Optional[int]:
        """Goals the given team conceded in this fixture."""
        if team_id == self.home_team_id:
            return self.away_goals
        if team_id == self.away_team_id:
            return self.home_goals
        return None

    def as_summary(self) -> dict:
        return {
            "fixture_id": self.fixture_id,
            "status": self.status,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "home_goals": self.home_goals,
            "away_goals": self.away_goals,
        }


@dataclass
class FixturePlayerStats:
    """One player's raw stats block inside a fixture."""

    player_external_id: int
    player_name: str
    team_id: int
    statistics: dict = field(default_factory=dict)


class StatsProvider(MatchFactsSource):
    """Football data provider used by ingestion and bet settlement."""

    @abstractmethod
    async def get_round_fixtures(self, league_id: int, season: int, jornada: int) -> list[FixtureData]:
        """
        Fetch the fixtures of one matchday.

        Args:
            league_id: Provider competition ID.
            season: Season year.
            jornada: Matchday number.
        """
        pass

    @abstractmethod
    async def get_fixture(self, fixture_id: int) -> Optional[FixtureData]:
        """Fetch a single fixture by its ID."""
        pass

    @abstractmethod
    async def get_fixture_players(self, fixture_id: int) -> list[FixturePlayerStats]:
        """Fetch per-player stats of both teams of a fixture."""
        pass

    @abstractmethod
    async def get_player_team(self, player_external_id: int, season: int) -> Optional[int]:
        """Team ID the player belongs to this season, if known."""
        pass

    async def close(self) -> None:
        """Release network resources."""
        pass

"""Realized outcome of a match, as consumed by the bet predicates."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from dreamleague.scoring.stats import safe_int

FINISHED_STATUSES = frozenset({"FT", "AET", "PEN"})


@dataclass(frozen=True)
class MatchFacts:
    """Final score plus the team totals the bet markets settle on."""

    fixture_id: int
    status: str
    home_team: str
    away_team: str
    home_goals: int
    away_goals: int
    home_corners: int = 0
    away_corners: int = 0
    home_yellow_cards: int = 0
    away_yellow_cards: int = 0
    home_red_cards: int = 0
    away_red_cards: int = 0
    home_shots_on_goal: int = 0
    away_shots_on_goal: int = 0
    home_possession: Optional[int] = None
    away_possession: Optional[int] = None

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES

    @property
    def total_goals(self) -> int:
        return self.home_goals + self.away_goals

    @property
    def total_corners(self) -> int:
        return self.home_corners + self.away_corners

    @property
    def total_cards(self) -> int:
        return (
            self.home_yellow_cards + self.away_yellow_cards
            + self.home_red_cards + self.away_red_cards
        )

    @property
    def total_shots_on_goal(self) -> int:
        return self.home_shots_on_goal + self.away_shots_on_goal

    @property
    def outcome(self) -> str:
        """'1' home win, 'X' draw, '2' away win."""
        if self.home_goals > self.away_goals:
            return "1"
        if self.home_goals < self.away_goals:
            return "2"
        return "X"

    @property
    def both_teams_scored(self) -> bool:
        return self.home_goals > 0 and self.away_goals > 0

    @property
    def score(self) -> str:
        return f"{self.home_goals}-{self.away_goals}"

    @classmethod
    def from_provider(
        cls,
        fixture: Mapping[str, Any],
        statistics: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> "MatchFacts":
        """
        Build facts from a provider fixture summary and its parsed statistics.

        Args:
            fixture: {"fixture_id", "status", "home_team", "away_team",
                "home_goals", "away_goals"}.
            statistics: {"home": {...}, "away": {...}} keyed by snake_case
                stat name ("corner_kicks", "yellow_cards", "shots_on_goal",
                "ball_possession"). Missing values count as zero.
        """
        statistics = statistics or {}
        home = statistics.get("home") or {}
        away = statistics.get("away") or {}

        def stat(side: Mapping[str, Any], key: str) -> int:
            return safe_int(side.get(key)) or 0

        def possession(side: Mapping[str, Any]) -> Optional[int]:
            value = side.get("ball_possession")
            return safe_int(str(value).rstrip("%")) if value is not None else None

        return cls(
            fixture_id=fixture["fixture_id"],
            status=fixture.get("status") or "NS",
            home_team=fixture.get("home_team") or "",
            away_team=fixture.get("away_team") or "",
            home_goals=safe_int(fixture.get("home_goals")) or 0,
            away_goals=safe_int(fixture.get("away_goals")) or 0,
            home_corners=stat(home, "corner_kicks"),
            away_corners=stat(away, "corner_kicks"),
            home_yellow_cards=stat(home, "yellow_cards"),
            away_yellow_cards=stat(away, "yellow_cards"),
            home_red_cards=stat(home, "red_cards"),
            away_red_cards=stat(away, "red_cards"),
            home_shots_on_goal=stat(home, "shots_on_goal"),
            away_shots_on_goal=stat(away, "shots_on_goal"),
            home_possession=possession(home),
            away_possession=possession(away),
        )


class MatchFactsSource(ABC):
    """Supplies realized match facts to bet settlement."""

    @abstractmethod
    async def get_match_facts(self, fixture_id: int) -> Optional[MatchFacts]:
        """
        Facts of a finished match.

        Returns:
            MatchFacts, or None while the match is not finished (bets on it
            stay pending).
        """
        pass

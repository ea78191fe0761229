"""
Fantasy points calculator.

Functions:
- calculate_player_points: stat line (or raw provider payload) + role -> PointsResult
- minutes_points: tiered points for time on the pitch
- rating_points: tiered bonus for the match rating

Pure and deterministic: same input, same output, no I/O. Re-scoring a
stored row always reproduces the stored total.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from dreamleague.scoring import rules
from dreamleague.scoring.rules import Role, normalize_role
from dreamleague.scoring.stats import PlayerStatLine, parse_stat_line


@dataclass(frozen=True)
class BreakdownEntry:
    label: str
    amount: float
    points: int

    def to_dict(self) -> dict:
        return {"label": self.label, "amount": self.amount, "points": self.points}


@dataclass
class PointsResult:
    total: int = 0
    breakdown: list[BreakdownEntry] = field(default_factory=list)

    def add(self, label: str, amount: float, points: float) -> None:
        """Record one scoring line; zero-point lines are omitted."""
        if not points:
            return
        self.breakdown.append(BreakdownEntry(label=label, amount=amount, points=math.trunc(points)))

    def breakdown_dicts(self) -> list[dict]:
        return [entry.to_dict() for entry in self.breakdown]

    def to_dict(self) -> dict:
        return {"total": self.total, "breakdown": self.breakdown_dicts()}


def minutes_points(minutes: int) -> int:
    if minutes <= 0:
        return 0
    if minutes < rules.MINUTES_FULL_THRESHOLD:
        return rules.MINUTES_SHORT_POINTS
    return rules.MINUTES_FULL_POINTS


def rating_points(rating: Optional[float]) -> int:
    if rating is None:
        return 0
    for lower_bound, points in rules.RATING_TIERS:
        if rating >= lower_bound:
            return points
    return 0


def _add_base_points(result: PointsResult, line: PlayerStatLine) -> None:
    result.add("Minutes played", line.minutes, minutes_points(line.minutes))
    result.add("Assists", line.assists, line.assists * rules.ASSIST_POINTS)
    result.add("Yellow cards", line.yellow_cards, line.yellow_cards * rules.YELLOW_CARD_POINTS)
    result.add("Red cards", line.red_cards, line.red_cards * rules.RED_CARD_POINTS)
    result.add("Penalties won", line.penalty_won, line.penalty_won * rules.PENALTY_WON_POINTS)
    result.add(
        "Penalties committed",
        line.penalty_committed,
        line.penalty_committed * rules.PENALTY_COMMITTED_POINTS,
    )
    result.add("Penalties missed", line.penalty_missed, line.penalty_missed * rules.PENALTY_MISSED_POINTS)
    if line.rating is not None:
        result.add("Rating", line.rating, rating_points(line.rating))


def _add_clean_sheet(result: PointsResult, line: PlayerStatLine, role: Role, conceded: int) -> None:
    if line.minutes >= rules.CLEAN_SHEET_MIN_MINUTES and conceded == 0:
        result.add("Clean sheet", 1, rules.CLEAN_SHEET_POINTS[role])


def _add_per_n_bonuses(result: PointsResult, line: PlayerStatLine, role: Role) -> None:
    for attribute, label, divisor in rules.PER_N_BONUSES[role]:
        count = getattr(line, attribute)
        result.add(label, count, count // divisor)


def calculate_player_points(
    stats: Union[PlayerStatLine, Mapping[str, Any], None],
    role: Union[Role, str, None],
) -> PointsResult:
    """
    Score one player's match.

    Args:
        stats: A PlayerStatLine, or a raw provider payload which is parsed
            first. A payload without ``games`` scores zero.
        role: Canonical Role or any free-text position.

    Returns:
        PointsResult with the truncated integer total and an ordered breakdown.
    """
    line = stats if isinstance(stats, PlayerStatLine) else parse_stat_line(stats)
    if line is None:
        return PointsResult()

    role = role if isinstance(role, Role) else normalize_role(role)
    result = PointsResult()

    _add_base_points(result, line)

    result.add("Goals", line.goals, line.goals * rules.GOAL_POINTS[role])

    if role is Role.GOALKEEPER:
        _add_clean_sheet(result, line, role, line.goals_conceded)
        result.add(
            "Goals conceded",
            line.goals_conceded,
            line.goals_conceded * rules.GOALKEEPER_CONCEDED_POINTS,
        )
        result.add("Saves", line.saves, line.saves * rules.GOALKEEPER_SAVE_POINTS)
        result.add(
            "Penalties saved",
            line.penalty_saved,
            line.penalty_saved * rules.GOALKEEPER_PENALTY_SAVED_POINTS,
        )
    else:
        if role is Role.DEFENDER:
            conceded = (
                line.team_goals_conceded
                if line.team_goals_conceded is not None
                else line.goals_conceded
            )
            _add_clean_sheet(result, line, role, conceded)
        result.add("Shots on target", line.shots_on, line.shots_on * rules.SHOT_ON_TARGET_POINTS)

    _add_per_n_bonuses(result, line, role)

    result.total = math.trunc(sum(entry.points for entry in result.breakdown))
    return result

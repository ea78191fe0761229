"""Fantasy scoring: rule table, stat normalization and squad aggregation."""

from dreamleague.scoring.calculator import BreakdownEntry, PointsResult, calculate_player_points
from dreamleague.scoring.rules import Role, normalize_role
from dreamleague.scoring.stats import PlayerStatLine, parse_stat_line

__all__ = [
    "BreakdownEntry",
    "PlayerStatLine",
    "PointsResult",
    "Role",
    "calculate_player_points",
    "normalize_role",
    "parse_stat_line",
]

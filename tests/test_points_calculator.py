"""
Tests for the fantasy points calculator.

Validates:
1. Purity: same input, same output
2. Players without ``games`` score zero
3. Clean-sheet threshold and which conceded count each role uses
4. Role-specific goal values and per-N bonuses
5. Free-text position normalization
"""

import pytest

from dreamleague.scoring.calculator import (
    PointsResult,
    calculate_player_points,
    minutes_points,
    rating_points,
)
from dreamleague.scoring.rules import CLEAN_SHEET_MIN_MINUTES, Role, normalize_role
from dreamleague.scoring.stats import PlayerStatLine


def _labels(result: PointsResult) -> dict:
    return {entry.label: entry.points for entry in result.breakdown}


GOALKEEPER_PAYLOAD = {
    "games": {"minutes": 90, "rating": "7.2", "position": "G"},
    "goals": {"total": 0, "conceded": 0, "assists": 0, "saves": 4},
    "penalty": {"saved": 1},
}

ATTACKER_PAYLOAD = {
    "games": {"minutes": 78, "rating": "8.1", "position": "F"},
    "goals": {"total": 2, "assists": 1},
    "shots": {"total": 5, "on": 3},
    "passes": {"key": 3},
    "dribbles": {"attempts": 7, "success": 5},
    "fouls": {"drawn": 2},
    "cards": {"yellow": 1, "red": 0},
}


# ═══════════════════════════════════════════════════════════════════
# Purity and absence
# ═══════════════════════════════════════════════════════════════════


class TestPurity:
    """Scoring is a pure function of (stats, role)."""

    @pytest.mark.parametrize("role", list(Role))
    def test_same_input_same_output(self, role):
        """Two calls with the same payload return identical results."""
        first = calculate_player_points(ATTACKER_PAYLOAD, role)
        second = calculate_player_points(ATTACKER_PAYLOAD, role)
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_payload_not_mutated(self):
        """The provider payload is read, never modified."""
        payload = {"games": {"minutes": 90}, "goals": {"total": 1}}
        snapshot = {"games": {"minutes": 90}, "goals": {"total": 1}}
        calculate_player_points(payload, "Defender")
        assert payload == snapshot


class TestZeroOnAbsence:
    """A player who did not feature scores nothing, never an error."""

    @pytest.mark.parametrize("role", list(Role))
    def test_null_games(self, role):
        """{games: null} scores {total: 0, breakdown: []}."""
        result = calculate_player_points({"games": None}, role)
        assert result.to_dict() == {"total": 0, "breakdown": []}

    def test_missing_payload(self):
        """None and empty payloads score zero."""
        assert calculate_player_points(None, Role.ATTACKER).total == 0
        assert calculate_player_points({}, Role.ATTACKER).breakdown == []

    def test_zero_minutes_scores_nothing(self):
        """Unused substitute with a games block still scores zero."""
        result = calculate_player_points(PlayerStatLine(minutes=0, substitute=True), Role.DEFENDER)
        assert result.total == 0
        assert result.breakdown == []


# ═══════════════════════════════════════════════════════════════════
# Base points
# ═══════════════════════════════════════════════════════════════════


class TestBasePoints:
    """Minutes and rating tiers shared by every role."""

    @pytest.mark.parametrize("minutes,expected", [(0, 0), (1, 1), (44, 1), (45, 2), (90, 2), (120, 2)])
    def test_minutes_tiers(self, minutes, expected):
        """1-44 minutes give 1 point, 45+ give 2."""
        assert minutes_points(minutes) == expected

    @pytest.mark.parametrize(
        "rating,expected",
        [(None, 0), (4.9, 0), (5.0, 1), (6.4, 1), (6.5, 2), (7.9, 2), (8.0, 3), (9.7, 3)],
    )
    def test_rating_tiers(self, rating, expected):
        """Rating bonus tiers have inclusive lower bounds."""
        assert rating_points(rating) == expected

    def test_cards_and_penalties(self):
        """Cards and penalty incidents apply to every role."""
        line = PlayerStatLine(
            minutes=90, yellow_cards=1, red_cards=1,
            penalty_won=1, penalty_committed=1, penalty_missed=1,
        )
        labels = _labels(calculate_player_points(line, Role.MIDFIELDER))
        assert labels["Yellow cards"] == -1
        assert labels["Red cards"] == -3
        assert labels["Penalties won"] == 2
        assert labels["Penalties committed"] == -2
        assert labels["Penalties missed"] == -2


# ═══════════════════════════════════════════════════════════════════
# Role rules
# ═══════════════════════════════════════════════════════════════════


class TestGoalkeeper:
    """Goalkeepers: clean sheet, conceded penalty, saves."""

    def test_clean_sheet_game(self):
        """90' clean sheet, 4 saves, 1 penalty saved, rating 7.2."""
        result = calculate_player_points(GOALKEEPER_PAYLOAD, "G")
        assert _labels(result) == {
            "Minutes played": 2,
            "Rating": 2,
            "Clean sheet": 5,
            "Saves": 4,
            "Penalties saved": 5,
        }
        assert result.total == 18

    def test_conceded_goals_cost_points(self):
        """Each conceded goal is -2 and there is no clean sheet."""
        line = PlayerStatLine(minutes=90, goals_conceded=3, saves=2)
        result = calculate_player_points(line, Role.GOALKEEPER)
        labels = _labels(result)
        assert "Clean sheet" not in labels
        assert labels["Goals conceded"] == -6
        assert result.total == 2 - 6 + 2

    def test_goal_worth_most(self):
        """A goalkeeper goal is worth 10."""
        line = PlayerStatLine(minutes=90, goals=1, goals_conceded=1)
        assert _labels(calculate_player_points(line, Role.GOALKEEPER))["Goals"] == 10

    def test_no_shots_on_target_points(self):
        """Shots on target do not score for goalkeepers."""
        line = PlayerStatLine(minutes=90, shots_on=2, goals_conceded=1)
        assert "Shots on target" not in _labels(calculate_player_points(line, Role.GOALKEEPER))


class TestDefender:
    """Defenders: clean sheet from team goals against."""

    def test_clean_sheet_threshold(self):
        """threshold-1 minutes: no bonus; threshold minutes: bonus."""
        short = PlayerStatLine(minutes=CLEAN_SHEET_MIN_MINUTES - 1, team_goals_conceded=0)
        enough = PlayerStatLine(minutes=CLEAN_SHEET_MIN_MINUTES, team_goals_conceded=0)
        assert "Clean sheet" not in _labels(calculate_player_points(short, Role.DEFENDER))
        assert _labels(calculate_player_points(enough, Role.DEFENDER))["Clean sheet"] == 4

    def test_team_conceded_takes_precedence(self):
        """Team conceded 1 cancels the bonus even if personal conceded is 0."""
        line = PlayerStatLine(minutes=90, goals_conceded=0, team_goals_conceded=1)
        assert "Clean sheet" not in _labels(calculate_player_points(line, Role.DEFENDER))

    def test_personal_conceded_fallback(self):
        """Without a team figure the personal conceded count decides."""
        line = PlayerStatLine(minutes=90, goals_conceded=0, team_goals_conceded=None)
        assert _labels(calculate_player_points(line, Role.DEFENDER))["Clean sheet"] == 4

    def test_conceded_goals_do_not_subtract(self):
        """Only goalkeepers lose points for conceded goals."""
        line = PlayerStatLine(minutes=90, team_goals_conceded=4)
        assert "Goals conceded" not in _labels(calculate_player_points(line, Role.DEFENDER))

    def test_per_n_bonuses(self):
        """One point per 2 duels won and per 5 interceptions."""
        line = PlayerStatLine(minutes=90, duels_won=7, interceptions=5, team_goals_conceded=2, goals=1)
        labels = _labels(calculate_player_points(line, Role.DEFENDER))
        assert labels["Duels won"] == 3
        assert labels["Interceptions"] == 1
        assert labels["Goals"] == 6


class TestMidfielderAndAttacker:
    """Outfield attacking roles."""

    def test_midfielder_never_gets_clean_sheet(self):
        """Midfielders get no clean-sheet bonus."""
        line = PlayerStatLine(minutes=90, team_goals_conceded=0)
        assert "Clean sheet" not in _labels(calculate_player_points(line, Role.MIDFIELDER))

    def test_midfielder_interceptions_per_three(self):
        """Midfielders earn an interception point every 3."""
        line = PlayerStatLine(minutes=90, interceptions=6, goals=1)
        labels = _labels(calculate_player_points(line, Role.MIDFIELDER))
        assert labels["Interceptions"] == 2
        assert labels["Goals"] == 5

    def test_attacker_full_game(self):
        """Brace, assist, 3 shots on target, 3 key passes, 5 dribbles, a yellow."""
        result = calculate_player_points(ATTACKER_PAYLOAD, "Delantero")
        assert _labels(result) == {
            "Minutes played": 2,
            "Assists": 3,
            "Yellow cards": -1,
            "Rating": 3,
            "Goals": 8,
            "Shots on target": 3,
            "Key passes": 1,
            "Successful dribbles": 2,
        }
        assert result.total == 21

    def test_attacker_no_interception_bonus(self):
        """Attackers have no interception bonus."""
        line = PlayerStatLine(minutes=90, interceptions=9)
        assert "Interceptions" not in _labels(calculate_player_points(line, Role.ATTACKER))

    def test_total_matches_breakdown(self):
        """The total is the sum of the breakdown lines."""
        result = calculate_player_points(ATTACKER_PAYLOAD, Role.ATTACKER)
        assert result.total == sum(entry.points for entry in result.breakdown)


# ═══════════════════════════════════════════════════════════════════
# Role normalization
# ═══════════════════════════════════════════════════════════════════


class TestNormalizeRole:
    """Free-text positions map to canonical roles."""

    @pytest.mark.parametrize(
        "position,expected",
        [
            ("G", Role.GOALKEEPER),
            ("GK", Role.GOALKEEPER),
            ("Portero", Role.GOALKEEPER),
            (" goalkeeper ", Role.GOALKEEPER),
            ("D", Role.DEFENDER),
            ("DEF", Role.DEFENDER),
            ("Defensa", Role.DEFENDER),
            ("M", Role.MIDFIELDER),
            ("Centrocampista", Role.MIDFIELDER),
            ("F", Role.ATTACKER),
            ("Delantero", Role.ATTACKER),
            ("Attacker", Role.ATTACKER),
        ],
    )
    def test_aliases(self, position, expected):
        assert normalize_role(position) is expected

    @pytest.mark.parametrize("position", [None, "", "Utility", "???"])
    def test_unknown_defaults_to_midfielder(self, position):
        """Unknown or empty positions score as midfielders."""
        assert normalize_role(position) is Role.MIDFIELDER

    def test_calculator_accepts_free_text(self):
        """'Portero' and Role.GOALKEEPER score identically."""
        assert calculate_player_points(GOALKEEPER_PAYLOAD, "Portero") == calculate_player_points(
            GOALKEEPER_PAYLOAD, Role.GOALKEEPER
        )

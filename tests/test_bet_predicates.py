"""
Tests for the bet market registry and predicates.

Validates:
1. Over/under, exact and parity markets on goals, corners, cards and shots
2. Result markets with codes, Spanish words and team names
3. Unknown types and unparseable labels raise UnsupportedBetTypeError
"""

import pytest

from dreamleague.betting.facts import MatchFacts
from dreamleague.betting.predicates import (
    evaluate_bet,
    normalize_text,
    registered_markets,
    resolve_market,
)
from dreamleague.errors import UnsupportedBetTypeError, ValidationError

from conftest import finished_match


@pytest.fixture
def home_win():
    """Real Madrid 2-1 Barcelona, 9 corners, 5 cards, 11 shots on goal."""
    return finished_match(
        1001, 2, 1,
        home_corners=6, away_corners=3,
        home_yellow_cards=2, away_yellow_cards=2, away_red_cards=1,
        home_shots_on_goal=7, away_shots_on_goal=4,
    )


@pytest.fixture
def goalless_draw():
    return finished_match(1002, 0, 0, home_team="Getafe", away_team="Osasuna")


# ═══════════════════════════════════════════════════════════════════
# Registry
# ═══════════════════════════════════════════════════════════════════


class TestRegistry:
    """Bet-type spellings resolve to one canonical market."""

    @pytest.mark.parametrize(
        "bet_type,key",
        [
            ("Goles totales", "total_goals"),
            ("goles TOTALES", "total_goals"),
            ("Goals Over/Under", "total_goals"),
            ("Más/Menos Goles", "total_goals"),
            ("Más/Menos Corners", "total_corners"),
            ("Más/Menos Tarjetas", "total_cards"),
            ("Córners", "total_corners"),
            ("Corners", "total_corners"),
            ("Tarjetas", "total_cards"),
            ("Resultado", "match_result"),
            ("1X2", "match_result"),
            ("Doble oportunidad", "double_chance"),
            ("Gana local o visitante", "home_away"),
            ("Ambos marcan", "btts"),
            ("Portería a cero - Local", "clean_sheet_home"),
            ("Tiros a puerta", "total_shots_on_goal"),
        ],
    )
    def test_aliases(self, bet_type, key):
        assert resolve_market(bet_type) == key

    def test_unknown_type_raises(self):
        """Unknown bet types are an error, never a silent loss."""
        with pytest.raises(UnsupportedBetTypeError):
            resolve_market("Goleador anytime")

    def test_unsupported_is_validation_error(self):
        """Callers catching ValidationError also catch unsupported types."""
        assert issubclass(UnsupportedBetTypeError, ValidationError)
        assert UnsupportedBetTypeError("x").code == "UNSUPPORTED_BET_TYPE"

    def test_registered_markets_listed(self):
        markets = registered_markets()
        assert "total_goals" in markets
        assert "btts" in markets
        assert markets == sorted(markets)

    def test_normalize_text(self):
        assert normalize_text("  Más de 2.5 ") == "mas de 2.5"
        assert normalize_text("Portería a cero - Local") == "porteria a cero local"


# ═══════════════════════════════════════════════════════════════════
# Counting markets
# ═══════════════════════════════════════════════════════════════════


class TestOverUnder:
    """Over is strictly greater, under strictly less."""

    @pytest.mark.parametrize(
        "label,won",
        [
            ("Más de 2.5", True),
            ("Over 2.5", True),
            ("+2.5", True),
            ("Más de 3.5", False),
            ("Menos de 3.5", True),
            ("Under 2.5", False),
            ("-3.5", True),
            ("Menos de 3", False),
            ("Más de 3", False),
        ],
    )
    def test_total_goals(self, home_win, label, won):
        evaluation = evaluate_bet("Goles totales", label, home_win)
        assert evaluation.won is won
        assert evaluation.evidence == "3 goles"

    def test_corners(self, home_win):
        assert evaluate_bet("Córners", "Más de 8.5", home_win).won is True
        assert evaluate_bet("Córners", "Menos de 8.5", home_win).won is False
        assert evaluate_bet("Córners", "Más de 8.5", home_win).evidence == "9 córners"

    def test_cards_count_yellow_and_red(self, home_win):
        """Cards market totals yellow and red cards of both teams."""
        assert home_win.total_cards == 5
        assert evaluate_bet("Tarjetas", "Más de 4.5", home_win).won is True

    def test_shots_on_goal(self, home_win):
        assert evaluate_bet("Tiros a puerta", "Menos de 10.5", home_win).won is False

    def test_decimal_comma(self, home_win):
        """'2,5' reads as 2.5."""
        assert evaluate_bet("Goles totales", "Más de 2,5", home_win).won is True

    def test_label_without_direction_raises(self, home_win):
        with pytest.raises(UnsupportedBetTypeError):
            evaluate_bet("Goles totales", "2.5", home_win)


class TestGeneratedMarketNames:
    """Bet-type names written by the bet-options generator settle like their base market."""

    @pytest.mark.parametrize(
        "bet_type,label,won,evidence",
        [
            ("Más/Menos Goles", "Más de 2.5", True, "3 goles"),
            ("Más/Menos Corners", "Menos de 8.5", False, "9 córners"),
            ("Más/Menos Tarjetas", "Más de 4.5", True, "5 tarjetas"),
        ],
    )
    def test_over_under_names(self, home_win, bet_type, label, won, evidence):
        evaluation = evaluate_bet(bet_type, label, home_win)
        assert evaluation.won is won
        assert evaluation.evidence == evidence

    def test_exactamente_on_goals_market(self, home_win):
        """'Exactamente N' on a totals market is an exact-count selection."""
        assert evaluate_bet("Goles totales", "Exactamente 3 goles", home_win).won is True
        assert evaluate_bet("Más/Menos Goles", "Exactamente 2", home_win).won is False
        assert evaluate_bet("Goles totales", "Exactamente 3 goles", home_win).evidence == "3 goles"


class TestExactAndParity:
    """Exact counts and odd/even."""

    def test_exact_goals(self, home_win):
        assert evaluate_bet("Goles exactos", "3", home_win).won is True
        assert evaluate_bet("Goles exactos", "2", home_win).won is False

    def test_goals_parity(self, home_win, goalless_draw):
        assert evaluate_bet("Par/Impar", "Impar", home_win).won is True
        assert evaluate_bet("Par/Impar", "Par", home_win).won is False
        assert evaluate_bet("Par/Impar", "Par", goalless_draw).won is True

    def test_corners_parity(self, home_win):
        evaluation = evaluate_bet("Córners par/impar", "Even", home_win)
        assert evaluation.won is False
        assert evaluation.evidence == "9 córners (impar)"

    def test_unknown_parity_label(self, home_win):
        with pytest.raises(UnsupportedBetTypeError):
            evaluate_bet("Par/Impar", "Quizás", home_win)


# ═══════════════════════════════════════════════════════════════════
# Result markets
# ═══════════════════════════════════════════════════════════════════


class TestMatchResult:
    """1X2 by code, word or team name."""

    @pytest.mark.parametrize(
        "label,won",
        [
            ("1", True),
            ("Local", True),
            ("Real Madrid", True),
            ("Gana Real Madrid", True),
            ("X", False),
            ("Empate", False),
            ("2", False),
            ("Barcelona", False),
        ],
    )
    def test_home_win(self, home_win, label, won):
        evaluation = evaluate_bet("Resultado", label, home_win)
        assert evaluation.won is won
        assert evaluation.evidence == "Resultado 2-1"

    def test_draw(self, goalless_draw):
        assert evaluate_bet("1X2", "X", goalless_draw).won is True

    def test_unknown_team_raises(self, home_win):
        with pytest.raises(UnsupportedBetTypeError):
            evaluate_bet("Resultado", "Atlético", home_win)


class TestDoubleChance:
    @pytest.mark.parametrize("label,won", [("1X", True), ("X2", False), ("12", True), ("Local o empate", True)])
    def test_home_win(self, home_win, label, won):
        assert evaluate_bet("Doble oportunidad", label, home_win).won is won

    def test_draw_covered_by_x2(self, goalless_draw):
        assert evaluate_bet("Doble oportunidad", "X2", goalless_draw).won is True
        assert evaluate_bet("Doble oportunidad", "12", goalless_draw).won is False


class TestHomeAway:
    """No-draw markets: a draw loses both sides."""

    def test_home_win(self, home_win):
        assert evaluate_bet("Gana local o visitante", "Local", home_win).won is True
        assert evaluate_bet("Gana local o visitante", "Visitante", home_win).won is False

    def test_draw_loses(self, goalless_draw):
        assert evaluate_bet("Gana local o visitante", "Local", goalless_draw).won is False
        assert evaluate_bet("Gana local o visitante", "Visitante", goalless_draw).won is False

    def test_draw_label_rejected(self, home_win):
        with pytest.raises(UnsupportedBetTypeError):
            evaluate_bet("Gana local o visitante", "Empate", home_win)


class TestGoalMarkets:
    """Both teams to score and clean sheets."""

    def test_btts(self, home_win, goalless_draw):
        assert evaluate_bet("Ambos marcan", "Sí", home_win).won is True
        assert evaluate_bet("Ambos marcan", "No", home_win).won is False
        assert evaluate_bet("Ambos marcan", "No", goalless_draw).won is True

    def test_clean_sheet(self, home_win):
        evaluation = evaluate_bet("Portería a cero - Local", "Sí", home_win)
        assert evaluation.won is False
        assert evaluation.evidence == "Visitante marcó 1"
        assert evaluate_bet("Portería a cero - Visitante", "No", home_win).won is True


class TestMatchFacts:
    """Derived properties and provider parsing."""

    def test_from_provider(self):
        facts = MatchFacts.from_provider(
            {
                "fixture_id": 7, "status": "FT", "home_team": "Sevilla", "away_team": "Betis",
                "home_goals": 1, "away_goals": 1,
            },
            {
                "home": {"corner_kicks": 4, "yellow_cards": 3, "ball_possession": "55%"},
                "away": {"corner_kicks": "6", "red_cards": 1},
            },
        )
        assert facts.is_finished
        assert facts.outcome == "X"
        assert facts.total_corners == 10
        assert facts.total_cards == 4
        assert facts.home_possession == 55
        assert facts.away_possession is None

    @pytest.mark.parametrize("status,finished", [("FT", True), ("AET", True), ("PEN", True), ("2H", False), ("NS", False)])
    def test_is_finished(self, status, finished):
        assert finished_match(1, 0, 0, status=status).is_finished is finished

"""
Bet market registry.

Each market is a pure predicate ``(label, facts) -> Evaluation`` registered
under a canonical key plus the bet-type spellings users and odds feeds send
("Goles totales", "Goals Over/Under", ...). Settlement only calls
``evaluate_bet``; adding a market means adding one decorated function here.

Usage:
    evaluation = evaluate_bet("Goles totales", "Más de 2.5", facts)
    evaluation.won, evaluation.evidence  # True, "3 goles"
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Callable

from dreamleague.betting.facts import MatchFacts
from dreamleague.errors import UnsupportedBetTypeError


@dataclass(frozen=True)
class Evaluation:
    won: bool
    evidence: str


Predicate = Callable[[str, MatchFacts], Evaluation]

_MARKETS: dict[str, Predicate] = {}
_ALIASES: dict[str, str] = {}


def normalize_text(text: str) -> str:
    """Lowercase, strip accents, turn punctuation into spaces (keeps '.', ',', '+')."""
    text = unicodedata.normalize("NFKD", (text or "").lower().strip())
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = re.sub(r"[^\w\s.,+]", " ", text)
    return " ".join(text.split())


def bet_market(key: str, *aliases: str):
    """Register a predicate under ``key`` and every alias of the bet type."""

    def decorator(func: Predicate) -> Predicate:
        if key in _MARKETS:
            raise ValueError(f"Bet market already registered: {key}")
        _MARKETS[key] = func
        for alias in (key, *aliases):
            _ALIASES[normalize_text(alias)] = key
        return func

    return decorator


def registered_markets() -> list[str]:
    return sorted(_MARKETS)


def resolve_market(bet_type: str) -> str:
    """Canonical market key for a bet type, or UnsupportedBetTypeError."""
    key = _ALIASES.get(normalize_text(bet_type))
    if key is None:
        raise UnsupportedBetTypeError(f"Unsupported bet type: {bet_type!r}")
    return key


def evaluate_bet(bet_type: str, bet_label: str, facts: MatchFacts) -> Evaluation:
    """
    Decide a bet against a finished match.

    Raises:
        UnsupportedBetTypeError: unknown type, or a label the market cannot parse.
    """
    return _MARKETS[resolve_market(bet_type)](bet_label, facts)


# ═══════════════════════════════════════════════════════════════════
# Label parsing
# ═══════════════════════════════════════════════════════════════════

_NUMBER = re.compile(r"(\d+(?:[.,]\d+)?)")

_OVER_PREFIXES = ("mas de", "mas", "over", "+", "o ")
_UNDER_PREFIXES = ("menos de", "menos", "under", "-", "u ")

_YES = {"si", "yes", "ambos marcan", "ambos equipos marcan", "s"}
_NO = {"no", "n", "al menos un equipo no marcara", "no marcan ambos"}

_SIDE_WORDS = {
    "1": "1", "local": "1", "home": "1", "gana local": "1", "victoria local": "1",
    "x": "X", "empate": "X", "draw": "X",
    "2": "2", "visitante": "2", "away": "2", "gana visitante": "2", "victoria visitante": "2",
}

_DOUBLE_CHANCE_CODES = {"1x": {"1", "X"}, "x2": {"X", "2"}, "12": {"1", "2"}}


def _unsupported_label(market: str, label: str) -> UnsupportedBetTypeError:
    return UnsupportedBetTypeError(f"Unsupported label {label!r} for market {market}")


def _parse_number(market: str, label: str) -> float:
    match = _NUMBER.search(label)
    if not match:
        raise _unsupported_label(market, label)
    return float(match.group(1).replace(",", "."))


def _parse_over_under(market: str, label: str) -> tuple[str, float]:
    text = normalize_text(label)
    # "-" is stripped by normalize_text, check the raw label for "-2.5"
    if label.strip().startswith("-"):
        return "under", _parse_number(market, text)
    for prefix in _UNDER_PREFIXES:
        if text.startswith(prefix):
            return "under", _parse_number(market, text)
    for prefix in _OVER_PREFIXES:
        if text.startswith(prefix):
            return "over", _parse_number(market, text)
    raise _unsupported_label(market, label)


def _parse_yes_no(market: str, label: str) -> bool:
    text = normalize_text(label)
    if text in _YES:
        return True
    if text in _NO:
        return False
    raise _unsupported_label(market, label)


def _parse_parity(market: str, label: str) -> str:
    text = normalize_text(label)
    if text in ("par", "even", "pares"):
        return "even"
    if text in ("impar", "odd", "impares"):
        return "odd"
    raise _unsupported_label(market, label)


def _parse_side(market: str, label: str, facts: MatchFacts) -> str:
    """'1', 'X' or '2' from a code, a word or a team name."""
    text = normalize_text(label)
    if text in _SIDE_WORDS:
        return _SIDE_WORDS[text]
    for prefix in ("gana ", "victoria ", "win "):
        if text.startswith(prefix):
            text = text[len(prefix):]
            break
    if text in _SIDE_WORDS:
        return _SIDE_WORDS[text]
    if facts.home_team and text == normalize_text(facts.home_team):
        return "1"
    if facts.away_team and text == normalize_text(facts.away_team):
        return "2"
    raise _unsupported_label(market, label)


def _over_under(market: str, label: str, value: int, unit: str) -> Evaluation:
    direction, threshold = _parse_over_under(market, label)
    won = value > threshold if direction == "over" else value < threshold
    return Evaluation(won=won, evidence=f"{value} {unit}")


def _exact(market: str, label: str, value: int, unit: str) -> Evaluation:
    expected = int(_parse_number(market, label))
    return Evaluation(won=value == expected, evidence=f"{value} {unit}")


def _total_line(market: str, label: str, value: int, unit: str) -> Evaluation:
    """Over/under market that also settles 'Exactamente N' selections."""
    if normalize_text(label).startswith(("exactamente", "exactly", "exacto")):
        return _exact(market, label, value, unit)
    return _over_under(market, label, value, unit)


def _parity(market: str, label: str, value: int, unit: str) -> Evaluation:
    expected = _parse_parity(market, label)
    actual = "even" if value % 2 == 0 else "odd"
    return Evaluation(won=actual == expected, evidence=f"{value} {unit} ({'par' if actual == 'even' else 'impar'})")


# ═══════════════════════════════════════════════════════════════════
# Goals
# ═══════════════════════════════════════════════════════════════════


@bet_market(
    "total_goals",
    "Goles totales", "Goles", "Total goles", "Total de goles", "Más/Menos Goles", "Goles más/menos",
    "Goals Over/Under", "Over/Under",
)
def total_goals(label: str, facts: MatchFacts) -> Evaluation:
    return _total_line("total_goals", label, facts.total_goals, "goles")


@bet_market("exact_goals", "Goles exactos", "Número exacto de goles", "Exact Goals Number")
def exact_goals(label: str, facts: MatchFacts) -> Evaluation:
    return _exact("exact_goals", label, facts.total_goals, "goles")


@bet_market("goals_odd_even", "Goles par/impar", "Par/Impar", "Odd/Even")
def goals_odd_even(label: str, facts: MatchFacts) -> Evaluation:
    return _parity("goals_odd_even", label, facts.total_goals, "goles")


# ═══════════════════════════════════════════════════════════════════
# Corners, cards and shots
# ═══════════════════════════════════════════════════════════════════


@bet_market(
    "total_corners",
    "Córners", "Corners", "Total córners", "Más/Menos Corners", "Más/Menos Córners", "Córners más/menos",
    "Corners Over/Under",
)
def total_corners(label: str, facts: MatchFacts) -> Evaluation:
    return _total_line("total_corners", label, facts.total_corners, "córners")


@bet_market("exact_corners", "Córners exactos", "Exact Corners")
def exact_corners(label: str, facts: MatchFacts) -> Evaluation:
    return _exact("exact_corners", label, facts.total_corners, "córners")


@bet_market("corners_odd_even", "Córners par/impar", "Corners Odd/Even")
def corners_odd_even(label: str, facts: MatchFacts) -> Evaluation:
    return _parity("corners_odd_even", label, facts.total_corners, "córners")


@bet_market(
    "total_cards",
    "Tarjetas", "Total tarjetas", "Más/Menos Tarjetas", "Tarjetas más/menos", "Cards Over/Under",
)
def total_cards(label: str, facts: MatchFacts) -> Evaluation:
    return _total_line("total_cards", label, facts.total_cards, "tarjetas")


@bet_market("exact_cards", "Tarjetas exactas", "Exact Cards")
def exact_cards(label: str, facts: MatchFacts) -> Evaluation:
    return _exact("exact_cards", label, facts.total_cards, "tarjetas")


@bet_market("cards_odd_even", "Tarjetas par/impar", "Cards Odd/Even")
def cards_odd_even(label: str, facts: MatchFacts) -> Evaluation:
    return _parity("cards_odd_even", label, facts.total_cards, "tarjetas")


@bet_market("total_shots_on_goal", "Tiros a puerta", "Disparos a puerta", "Shots on Goal", "Shots on Target")
def total_shots_on_goal(label: str, facts: MatchFacts) -> Evaluation:
    return _over_under("total_shots_on_goal", label, facts.total_shots_on_goal, "tiros a puerta")


# ═══════════════════════════════════════════════════════════════════
# Result markets
# ═══════════════════════════════════════════════════════════════════


@bet_market("match_result", "Resultado", "Resultado final", "1X2", "Match Winner", "Ganador del partido")
def match_result(label: str, facts: MatchFacts) -> Evaluation:
    expected = _parse_side("match_result", label, facts)
    return Evaluation(won=facts.outcome == expected, evidence=f"Resultado {facts.score}")


@bet_market("double_chance", "Doble oportunidad", "Double Chance")
def double_chance(label: str, facts: MatchFacts) -> Evaluation:
    text = normalize_text(label).replace(" ", "")
    if text in _DOUBLE_CHANCE_CODES:
        covered = _DOUBLE_CHANCE_CODES[text]
    else:
        parts = [p for p in re.split(r"\s+o\s+|\s+or\s+|/", label.strip(), flags=re.IGNORECASE) if p.strip()]
        if len(parts) != 2:
            raise _unsupported_label("double_chance", label)
        covered = {_parse_side("double_chance", part, facts) for part in parts}
        if len(covered) != 2:
            raise _unsupported_label("double_chance", label)
    return Evaluation(won=facts.outcome in covered, evidence=f"Resultado {facts.score}")


def _winner_without_draw(market: str, label: str, facts: MatchFacts) -> Evaluation:
    # A draw loses both selections
    expected = _parse_side(market, label, facts)
    if expected == "X":
        raise _unsupported_label(market, label)
    return Evaluation(won=facts.outcome == expected, evidence=f"Resultado {facts.score}")


@bet_market("home_away", "Gana local o visitante", "Home/Away", "Local/Visitante")
def home_away(label: str, facts: MatchFacts) -> Evaluation:
    return _winner_without_draw("home_away", label, facts)


@bet_market("draw_no_bet", "Empate no válido", "Apuesta sin empate", "Draw No Bet")
def draw_no_bet(label: str, facts: MatchFacts) -> Evaluation:
    return _winner_without_draw("draw_no_bet", label, facts)


@bet_market("btts", "Ambos marcan", "Ambos equipos marcan", "Both Teams Score", "Both Teams To Score", "BTTS")
def both_teams_score(label: str, facts: MatchFacts) -> Evaluation:
    expected = _parse_yes_no("btts", label)
    return Evaluation(
        won=facts.both_teams_scored == expected,
        evidence=f"Resultado {facts.score}",
    )


@bet_market("clean_sheet_home", "Portería a cero - Local", "Portería a cero local", "Clean Sheet - Home")
def clean_sheet_home(label: str, facts: MatchFacts) -> Evaluation:
    expected = _parse_yes_no("clean_sheet_home", label)
    return Evaluation(
        won=(facts.away_goals == 0) == expected,
        evidence=f"Visitante marcó {facts.away_goals}",
    )


@bet_market("clean_sheet_away", "Portería a cero - Visitante", "Portería a cero visitante", "Clean Sheet - Away")
def clean_sheet_away(label: str, facts: MatchFacts) -> Evaluation:
    expected = _parse_yes_no("clean_sheet_away", label)
    return Evaluation(
        won=(facts.home_goals == 0) == expected,
        evidence=f"Local marcó {facts.home_goals}",
    )

"""
Canonical per-match stat line.

Provider payloads (API-Football ``fixtures/players``) are nested dicts whose
field names drifted across API versions (``penalty.commited`` vs
``penalty.committed``, keeper numbers under ``goals`` or ``goalkeeper``).
``parse_stat_line`` folds every known spelling into one flat dataclass and
treats missing/null values as zero, so the scoring rules never see the raw
payload.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional


def safe_int(val) -> Optional[int]:
    """Parse various int representations: 90, "90", "90+4", None -> int or None."""
    if val is None or isinstance(val, bool):
        return None
    s = str(val).strip()
    if not s or s == "-":
        return None
    # "90+4" (stoppage time)
    s = s.split("+")[0].strip()
    try:
        return int(float(s))
    except (ValueError, TypeError):
        return None


def safe_rating(val) -> Optional[float]:
    """Parse rating: "7.3"->7.3, "-"->None, None->None."""
    if val is None:
        return None
    s = str(val).strip()
    if not s or s == "-":
        return None
    try:
        return round(float(s), 2)
    except (ValueError, TypeError):
        return None


def safe_accuracy(val) -> Optional[int]:
    """Parse passes accuracy: "68%"->68, "68"->68, None->None."""
    if val is None:
        return None
    return safe_int(str(val).strip().rstrip("%"))


@dataclass(frozen=True)
class PlayerStatLine:
    """Flat, zero-filled stats of one player in one match."""

    minutes: int = 0
    rating: Optional[float] = None
    position: Optional[str] = None
    captain: bool = False
    substitute: bool = False

    goals: int = 0
    assists: int = 0
    goals_conceded: int = 0
    team_goals_conceded: Optional[int] = None
    saves: int = 0

    shots_total: int = 0
    shots_on: int = 0
    passes_total: int = 0
    passes_key: int = 0
    passes_accuracy: Optional[int] = None
    tackles_total: int = 0
    tackles_blocks: int = 0
    interceptions: int = 0
    duels_total: int = 0
    duels_won: int = 0
    dribbles_attempts: int = 0
    dribbles_success: int = 0
    fouls_drawn: int = 0
    fouls_committed: int = 0
    yellow_cards: int = 0
    red_cards: int = 0

    penalty_won: int = 0
    penalty_committed: int = 0
    penalty_scored: int = 0
    penalty_missed: int = 0
    penalty_saved: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def _section(payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = payload.get(key)
    return value if isinstance(value, Mapping) else {}


def _first(*values) -> int:
    """First value that parses as an int, else 0."""
    for value in values:
        parsed = safe_int(value)
        if parsed is not None:
            return parsed
    return 0


def parse_stat_line(
    payload: Optional[Mapping[str, Any]],
    team_goals_conceded: Optional[int] = None,
) -> Optional[PlayerStatLine]:
    """
    Normalize one provider stats payload into a PlayerStatLine.

    Accepts either the statistics block (``{"games": ..., "goals": ...}``) or
    the full player entry (``{"player": ..., "statistics": [block]}``).

    Returns None when the payload has no ``games`` section: the player did
    not feature, which scores zero rather than failing.
    """
    if not payload:
        return None

    if "statistics" in payload and "games" not in payload:
        blocks = payload.get("statistics") or []
        payload = blocks[0] if blocks and isinstance(blocks[0], Mapping) else {}

    games = payload.get("games")
    if not isinstance(games, Mapping):
        return None

    goals = _section(payload, "goals")
    goalkeeper = _section(payload, "goalkeeper")
    shots = _section(payload, "shots")
    passes = _section(payload, "passes")
    tackles = _section(payload, "tackles")
    duels = _section(payload, "duels")
    dribbles = _section(payload, "dribbles")
    fouls = _section(payload, "fouls")
    cards = _section(payload, "cards")
    penalty = _section(payload, "penalty")

    return PlayerStatLine(
        minutes=_first(games.get("minutes")),
        rating=safe_rating(games.get("rating")),
        position=games.get("position"),
        captain=bool(games.get("captain")),
        substitute=bool(games.get("substitute")),
        goals=_first(goals.get("total")),
        assists=_first(goals.get("assists")),
        goals_conceded=_first(goalkeeper.get("conceded"), goals.get("conceded")),
        team_goals_conceded=safe_int(team_goals_conceded),
        saves=_first(goalkeeper.get("saves"), goals.get("saves")),
        shots_total=_first(shots.get("total")),
        shots_on=_first(shots.get("on"), shots.get("on_target")),
        passes_total=_first(passes.get("total")),
        passes_key=_first(passes.get("key")),
        passes_accuracy=safe_accuracy(passes.get("accuracy")),
        tackles_total=_first(tackles.get("total")),
        tackles_blocks=_first(tackles.get("blocks")),
        interceptions=_first(tackles.get("interceptions"), payload.get("interceptions")),
        duels_total=_first(duels.get("total")),
        duels_won=_first(duels.get("won")),
        dribbles_attempts=_first(dribbles.get("attempts")),
        dribbles_success=_first(dribbles.get("success")),
        fouls_drawn=_first(fouls.get("drawn")),
        fouls_committed=_first(fouls.get("committed"), fouls.get("commited")),
        yellow_cards=_first(cards.get("yellow")),
        red_cards=_first(cards.get("red")),
        penalty_won=_first(penalty.get("won")),
        penalty_committed=_first(penalty.get("committed"), penalty.get("commited")),
        penalty_scored=_first(penalty.get("scored")),
        penalty_missed=_first(penalty.get("missed")),
        penalty_saved=_first(penalty.get("saved"), goalkeeper.get("saved")),
    )

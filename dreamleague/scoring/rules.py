"""
Fantasy scoring rule table.

All point values used by the calculator live here as module constants so a
rule change is a one-line diff. Per-N bonuses are awarded as
``count // N``.

Rule set notes:
- Only goalkeepers lose points for goals conceded.
- Clean sheet: goalkeepers use their own conceded count, defenders the
  team's goals against. Midfielders and attackers get no clean-sheet bonus.
- A scored penalty counts as a goal; there is no separate penalty-scored line.
"""

from __future__ import annotations

import unicodedata
from enum import Enum


class Role(str, Enum):
    GOALKEEPER = "Goalkeeper"
    DEFENDER = "Defender"
    MIDFIELDER = "Midfielder"
    ATTACKER = "Attacker"


# ═══════════════════════════════════════════════════════════════════
# Base points (every role)
# ═══════════════════════════════════════════════════════════════════

MINUTES_SHORT_POINTS = 1  # 1-44 minutes
MINUTES_FULL_POINTS = 2  # 45+ minutes
MINUTES_FULL_THRESHOLD = 45

ASSIST_POINTS = 3
YELLOW_CARD_POINTS = -1
RED_CARD_POINTS = -3
PENALTY_WON_POINTS = 2
PENALTY_COMMITTED_POINTS = -2
PENALTY_MISSED_POINTS = -2

# (lower bound inclusive, points), checked from the top tier down
RATING_TIERS = (
    (8.0, 3),
    (6.5, 2),
    (5.0, 1),
)

CLEAN_SHEET_MIN_MINUTES = 60

# ═══════════════════════════════════════════════════════════════════
# Role-specific points
# ═══════════════════════════════════════════════════════════════════

GOAL_POINTS = {
    Role.GOALKEEPER: 10,
    Role.DEFENDER: 6,
    Role.MIDFIELDER: 5,
    Role.ATTACKER: 4,
}

CLEAN_SHEET_POINTS = {
    Role.GOALKEEPER: 5,
    Role.DEFENDER: 4,
}

GOALKEEPER_CONCEDED_POINTS = -2  # per goal conceded
GOALKEEPER_SAVE_POINTS = 1
GOALKEEPER_PENALTY_SAVED_POINTS = 5

SHOT_ON_TARGET_POINTS = 1  # defenders, midfielders and attackers

# (stat attribute, label, divisor) per role; each grants count // divisor points
PER_N_BONUSES = {
    Role.GOALKEEPER: (
        ("interceptions", "Interceptions", 5),
    ),
    Role.DEFENDER: (
        ("duels_won", "Duels won", 2),
        ("interceptions", "Interceptions", 5),
    ),
    Role.MIDFIELDER: (
        ("passes_key", "Key passes", 2),
        ("dribbles_success", "Successful dribbles", 2),
        ("fouls_drawn", "Fouls drawn", 3),
        ("interceptions", "Interceptions", 3),
    ),
    Role.ATTACKER: (
        ("passes_key", "Key passes", 2),
        ("dribbles_success", "Successful dribbles", 2),
        ("fouls_drawn", "Fouls drawn", 3),
    ),
}


# ═══════════════════════════════════════════════════════════════════
# Role normalization
# ═══════════════════════════════════════════════════════════════════

_ROLE_ALIASES = {
    Role.GOALKEEPER: ("gk", "g", "goalkeeper", "keeper", "portero", "por", "arquero"),
    Role.DEFENDER: (
        "d", "df", "def", "defender", "defensa", "back",
        "cb", "lb", "rb", "dc", "dl", "dr", "lwb", "rwb",
    ),
    Role.MIDFIELDER: (
        "m", "mf", "mid", "midfielder", "centrocampista", "medio", "cen",
        "cm", "dm", "am", "cdm", "cam", "lm", "rm",
    ),
    Role.ATTACKER: (
        "f", "fw", "att", "attacker", "forward", "striker", "delantero", "del",
        "cf", "st", "lw", "rw", "winger", "wing", "extremo",
    ),
}

_ROLE_LOOKUP = {alias: role for role, aliases in _ROLE_ALIASES.items() for alias in aliases}


def normalize_role(position: str | None) -> Role:
    """
    Map a free-text position ("G", "GK", "Portero", "DEF", ...) to a canonical role.

    Unknown or empty positions default to Midfielder.
    """
    if not position:
        return Role.MIDFIELDER
    key = unicodedata.normalize("NFKD", position.strip().lower())
    key = "".join(c for c in key if not unicodedata.combining(c))
    return _ROLE_LOOKUP.get(key, Role.MIDFIELDER)

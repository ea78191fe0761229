"""Squad scoring: sum of the drafted players' matchday points, captain doubled."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dreamleague.config import get_settings
from dreamleague.errors import ValidationError
from dreamleague.models import PlayerMatchdayStats, Squad, SquadPlayer

logger = logging.getLogger(__name__)

CAPTAIN_MULTIPLIER = 2


@dataclass(frozen=True)
class SquadSlot:
    player_id: int
    is_captain: bool = False


def compute_squad_points(
    slots: Iterable[SquadSlot],
    points_by_player: Mapping[int, int],
    squad_size: Optional[int] = None,
) -> int:
    """
    Matchday points of a squad.

    Incomplete squads (fewer than ``squad_size`` players) score 0. Players
    without a stats row count 0, and the captain's points are doubled after
    that default is applied.

    Raises:
        ValidationError: more than one captain in the squad.
    """
    squad_size = squad_size if squad_size is not None else get_settings().SQUAD_SIZE
    slots = list(slots)

    captains = [slot for slot in slots if slot.is_captain]
    if len(captains) > 1:
        raise ValidationError(f"Squad has {len(captains)} captains", code="INVALID_CAPTAIN_COUNT")

    if len(slots) < squad_size:
        return 0

    total = 0
    for slot in slots:
        points = points_by_player.get(slot.player_id, 0)
        total += points * CAPTAIN_MULTIPLIER if slot.is_captain else points
    return total


async def load_squad_slots(session: AsyncSession, user_id: str, league_id: int) -> list[SquadSlot]:
    """Slots of a member's squad; empty when the member has no squad."""
    result = await session.execute(
        select(SquadPlayer.player_id, SquadPlayer.is_captain)
        .join(Squad, Squad.id == SquadPlayer.squad_id)
        .where(Squad.user_id == user_id, Squad.league_id == league_id)
    )
    return [SquadSlot(player_id=row.player_id, is_captain=bool(row.is_captain)) for row in result.all()]


async def load_matchday_points(
    session: AsyncSession,
    player_ids: Iterable[int],
    jornada: int,
    season: int,
) -> dict[int, int]:
    """{player_id: total_points} for the given matchday; missing rows are absent."""
    player_ids = list(player_ids)
    if not player_ids:
        return {}
    result = await session.execute(
        select(PlayerMatchdayStats.player_id, PlayerMatchdayStats.total_points).where(
            PlayerMatchdayStats.player_id.in_(player_ids),
            PlayerMatchdayStats.jornada == jornada,
            PlayerMatchdayStats.season == season,
        )
    )
    return {row.player_id: row.total_points for row in result.all()}


async def score_squad(
    session: AsyncSession,
    user_id: str,
    league_id: int,
    jornada: int,
    season: Optional[int] = None,
) -> int:
    """Points a member's current squad earns for ``jornada``."""
    season = season or get_settings().FOOTBALL_API_SEASON
    slots = await load_squad_slots(session, user_id, league_id)
    points = await load_matchday_points(session, (slot.player_id for slot in slots), jornada, season)
    total = compute_squad_points(slots, points)
    logger.debug(
        f"[SQUAD_SCORE] user={user_id} league={league_id} jornada={jornada} "
        f"players={len(slots)} points={total}"
    )
    return total

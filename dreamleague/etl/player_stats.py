"""
Player matchday stats ingestion.

Jobs:
  ingest_player_matchday : fetch, normalize, score and upsert one player's matchday
  ingest_jornada         : the same for every known player, with a batch report

One row per (player, jornada, season): re-ingesting overwrites the row and
re-scores it, so both jobs can be re-run at will. Players whose team had no
fixture in the round, or who did not feature, get an explicit zero row.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dreamleague.config import get_settings
from dreamleague.errors import AppError, NotFoundError
from dreamleague.etl.base import FixtureData, StatsProvider
from dreamleague.models import Player, PlayerMatchdayStats, utcnow
from dreamleague.scoring.calculator import PointsResult, calculate_player_points
from dreamleague.scoring.rules import Role, normalize_role
from dreamleague.scoring.stats import PlayerStatLine, parse_stat_line

logger = logging.getLogger(__name__)

# PlayerStatLine fields persisted as columns of PlayerMatchdayStats
_STAT_COLUMNS = (
    "minutes", "rating", "captain", "substitute",
    "goals", "assists", "goals_conceded", "team_goals_conceded", "saves",
    "shots_total", "shots_on", "passes_total", "passes_key", "passes_accuracy",
    "tackles_total", "tackles_blocks", "interceptions", "duels_total", "duels_won",
    "dribbles_attempts", "dribbles_success", "fouls_drawn", "fouls_committed",
    "yellow_cards", "red_cards",
    "penalty_won", "penalty_committed", "penalty_scored", "penalty_missed", "penalty_saved",
)


async def _get_stats_row(
    session: AsyncSession, player_id: int, jornada: int, season: int
) -> Optional[PlayerMatchdayStats]:
    result = await session.execute(
        select(PlayerMatchdayStats)
        .where(
            PlayerMatchdayStats.player_id == player_id,
            PlayerMatchdayStats.jornada == jornada,
            PlayerMatchdayStats.season == season,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def upsert_matchday_stats(
    session: AsyncSession,
    player: Player,
    jornada: int,
    season: int,
    line: Optional[PlayerStatLine],
    points: PointsResult,
    role: Optional[Role] = None,
    fixture_id: Optional[int] = None,
    team_id: Optional[int] = None,
) -> PlayerMatchdayStats:
    """
    Write the (player, jornada, season) row, replacing any previous content.

    A None line stores a zero row (player did not feature). Also refreshes
    the player's last-matchday points cache. Does not commit.
    """
    row = await _get_stats_row(session, player.id, jornada, season)
    if row is None:
        row = PlayerMatchdayStats(player_id=player.id, jornada=jornada, season=season)
        session.add(row)

    line = line or PlayerStatLine()
    for column in _STAT_COLUMNS:
        setattr(row, column, getattr(line, column))

    row.fixture_id = fixture_id
    row.team_id = team_id if team_id is not None else player.team_id
    row.role = role.value if role else None
    row.total_points = points.total
    row.points_breakdown = points.breakdown_dicts() or None
    row.updated_at = utcnow()

    if player.last_jornada_number is None or jornada >= player.last_jornada_number:
        player.last_jornada_points = points.total
        player.last_jornada_number = jornada

    await session.flush()
    return row


async def _resolve_team_id(provider: StatsProvider, player: Player, season: int) -> Optional[int]:
    if player.team_id:
        return player.team_id
    team_id = await provider.get_player_team(player.external_id, season)
    if team_id:
        player.team_id = team_id
        logger.info(f"[PLAYER_STATS] Resolved team {team_id} for {player.name} ({player.external_id})")
    return team_id


def _find_team_fixture(fixtures: list[FixtureData], team_id: int) -> Optional[FixtureData]:
    return next((fixture for fixture in fixtures if fixture.involves(team_id)), None)


async def ingest_player_matchday(
    session: AsyncSession,
    provider: StatsProvider,
    player_id: int,
    jornada: int,
    season: Optional[int] = None,
    force_refresh: bool = False,
) -> PlayerMatchdayStats:
    """
    Produce or refresh one player's matchday row.

    Args:
        session: Database session.
        provider: Stats provider.
        player_id: Internal Player.id.
        jornada: Matchday number.
        season: Season year (default from settings).
        force_refresh: Re-fetch even if a row already exists.

    Raises:
        NotFoundError: unknown player.
    """
    settings = get_settings()
    season = season or settings.FOOTBALL_API_SEASON

    if not force_refresh:
        existing = await _get_stats_row(session, player_id, jornada, season)
        if existing is not None:
            return existing

    player = await session.get(Player, player_id)
    if player is None:
        raise NotFoundError(f"Player {player_id} not found", code="PLAYER_NOT_FOUND")

    team_id = await _resolve_team_id(provider, player, season)
    fixtures = await provider.get_round_fixtures(settings.FOOTBALL_API_LEAGUE_ID, season, jornada)
    fixture = _find_team_fixture(fixtures, team_id) if team_id else None

    if fixture is None:
        logger.info(f"[PLAYER_STATS] No fixture for {player.name} in jornada {jornada}, storing zero row")
        row = await upsert_matchday_stats(session, player, jornada, season, None, PointsResult())
        await session.commit()
        return row

    entries = await provider.get_fixture_players(fixture.fixture_id)
    entry = next((e for e in entries if e.player_external_id == player.external_id), None)
    team_goals_conceded = fixture.goals_against(team_id)
    line = parse_stat_line(entry.statistics, team_goals_conceded) if entry else None

    if line is None:
        logger.info(
            f"[PLAYER_STATS] {player.name} did not feature in fixture {fixture.fixture_id}, storing zero row"
        )
        row = await upsert_matchday_stats(
            session, player, jornada, season, None, PointsResult(),
            fixture_id=fixture.fixture_id, team_id=team_id,
        )
        await session.commit()
        return row

    role = normalize_role(player.position or line.position)
    points = calculate_player_points(line, role)
    row = await upsert_matchday_stats(
        session, player, jornada, season, line, points,
        role=role, fixture_id=fixture.fixture_id, team_id=team_id,
    )
    await session.commit()

    logger.info(
        f"[PLAYER_STATS] {player.name} ({role.value}) jornada {jornada}: "
        f"{points.total} pts, {line.minutes} min"
    )
    return row


async def ingest_jornada(
    session: AsyncSession,
    provider: StatsProvider,
    jornada: int,
    season: Optional[int] = None,
    player_ids: Optional[list[int]] = None,
) -> dict:
    """
    Refresh every player's (or the given players') row for a matchday.

    Per-player failures are collected; the batch always runs to the end.

    Returns:
        {jornada, total_players, success_count, error_count, errors}
    """
    query = select(Player.id, Player.name).order_by(Player.id)
    if player_ids:
        query = query.where(Player.id.in_(player_ids))
    players = (await session.execute(query)).all()

    metrics = {
        "jornada": jornada,
        "total_players": len(players),
        "success_count": 0,
        "error_count": 0,
        "errors": [],
    }

    logger.info(f"[PLAYER_STATS] Ingesting jornada {jornada} for {len(players)} players")
    for player_id, name in players:
        try:
            await ingest_player_matchday(
                session, provider, player_id, jornada, season=season, force_refresh=True
            )
            metrics["success_count"] += 1
        except (AppError, SQLAlchemyError) as e:
            await session.rollback()
            message = e.message if isinstance(e, AppError) else str(e)
            metrics["error_count"] += 1
            metrics["errors"].append(f"player {player_id} ({name}): {message}")
            logger.warning(f"[PLAYER_STATS] {name} ({player_id}) failed: {message}")
        except Exception as e:
            # Provider failures that survived the retry budget
            await session.rollback()
            metrics["error_count"] += 1
            metrics["errors"].append(f"player {player_id} ({name}): {e}")
            logger.warning(f"[PLAYER_STATS] {name} ({player_id}) provider error: {e}")

    logger.info(
        f"[PLAYER_STATS] Jornada {jornada} done: {metrics['success_count']} ok, "
        f"{metrics['error_count']} errors"
    )
    return metrics


async def get_player_matchday_points(
    session: AsyncSession,
    player_id: int,
    jornada: int,
    season: Optional[int] = None,
    provider: Optional[StatsProvider] = None,
) -> dict:
    """
    {points, breakdown} of a player for one matchday.

    Reads the stored row; with a provider, a missing row is ingested first.
    A player without a row scored nothing that matchday.
    """
    season = season or get_settings().FOOTBALL_API_SEASON
    row = await _get_stats_row(session, player_id, jornada, season)
    if row is None and provider is not None:
        row = await ingest_player_matchday(session, provider, player_id, jornada, season=season)
    if row is None:
        return {"player_id": player_id, "jornada": jornada, "points": 0, "breakdown": []}
    return {
        "player_id": player_id,
        "jornada": jornada,
        "points": row.total_points,
        "breakdown": row.points_breakdown or [],
    }

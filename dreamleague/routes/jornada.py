"""Admin endpoints: jornada lifecycle, bet settlement, squad and player points.

Thin wrappers over the jornada/betting/ingestion services, for the scheduler
and operators. Auth: verify_api_key on every endpoint.
"""

import logging
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from dreamleague.betting.settlement import evaluate_pending_bets, reevaluate_jornada_bets
from dreamleague.config import get_settings
from dreamleague.database import get_async_session
from dreamleague.etl.api_football import APIFootballProvider
from dreamleague.etl.player_stats import get_player_matchday_points, ingest_jornada
from dreamleague.jobs.tracking import get_recent_runs
from dreamleague.jornada.service import (
    close_jornada,
    get_jornada_status,
    lock_jornada,
    open_jornada,
)
from dreamleague.leagues import get_member
from dreamleague.scoring.squad import score_squad
from dreamleague.security import limiter, verify_api_key

router = APIRouter(tags=["jornada"])

logger = logging.getLogger(__name__)
settings = get_settings()


async def get_provider() -> AsyncGenerator[APIFootballProvider, None]:
    """Dependency yielding a provider whose HTTP client is closed afterwards."""
    provider = APIFootballProvider()
    try:
        yield provider
    finally:
        await provider.close()


class ReevaluateRequest(BaseModel):
    jornada: Optional[int] = Field(default=None, ge=1)
    bet_ids: Optional[list[int]] = None


class IngestRequest(BaseModel):
    jornada: int = Field(ge=1)
    season: Optional[int] = None
    player_ids: Optional[list[int]] = None


@router.get("/leagues/{league_id}/jornada")
@limiter.limit(settings.RATE_LIMIT_PER_MINUTE)
async def jornada_status(
    request: Request,
    league_id: int,
    session: AsyncSession = Depends(get_async_session),
    _: bool = Depends(verify_api_key),
):
    """Current matchday, betting lock and the latest close runs."""
    status = await get_jornada_status(session, league_id)
    runs = await get_recent_runs(session, "jornada_close", limit=20)
    status["recent_closes"] = [
        {
            "jornada": (run.metrics or {}).get("jornada"),
            "status": run.status,
            "started_at": run.started_at.isoformat() if run.started_at else None,
            "duration_ms": run.duration_ms,
        }
        for run in runs
        if (run.metrics or {}).get("league_id") == league_id
    ][:5]
    return status


@router.post("/leagues/{league_id}/jornada/close")
@limiter.limit("5/minute")
async def jornada_close(
    request: Request,
    league_id: int,
    session: AsyncSession = Depends(get_async_session),
    provider: APIFootballProvider = Depends(get_provider),
    _: bool = Depends(verify_api_key),
):
    """Close the league's current matchday."""
    return await close_jornada(session, league_id, provider)


@router.post("/leagues/{league_id}/jornada/open")
async def jornada_open(
    league_id: int,
    session: AsyncSession = Depends(get_async_session),
    _: bool = Depends(verify_api_key),
):
    """Unlock betting for the current matchday."""
    await open_jornada(session, league_id)
    return await get_jornada_status(session, league_id)


@router.post("/leagues/{league_id}/jornada/lock")
async def jornada_lock(
    league_id: int,
    session: AsyncSession = Depends(get_async_session),
    _: bool = Depends(verify_api_key),
):
    """Lock betting while the matchday is played."""
    await lock_jornada(session, league_id)
    return await get_jornada_status(session, league_id)


@router.post("/leagues/{league_id}/bets/evaluate")
@limiter.limit("10/minute")
async def bets_evaluate(
    request: Request,
    league_id: int,
    jornada: Optional[int] = Query(default=None, ge=1),
    session: AsyncSession = Depends(get_async_session),
    provider: APIFootballProvider = Depends(get_provider),
    _: bool = Depends(verify_api_key),
):
    """Settle pending bets and parlays of a matchday (default: current)."""
    return await evaluate_pending_bets(session, league_id, provider, jornada=jornada)


@router.post("/leagues/{league_id}/bets/reevaluate")
@limiter.limit("5/minute")
async def bets_reevaluate(
    request: Request,
    league_id: int,
    body: ReevaluateRequest,
    session: AsyncSession = Depends(get_async_session),
    provider: APIFootballProvider = Depends(get_provider),
    _: bool = Depends(verify_api_key),
):
    """Reset settled bets to pending and settle them again."""
    return await reevaluate_jornada_bets(
        session, league_id, provider, jornada=body.jornada, bet_ids=body.bet_ids
    )


@router.get("/leagues/{league_id}/members/{user_id}/squad-points")
async def member_squad_points(
    league_id: int,
    user_id: str,
    jornada: Optional[int] = Query(default=None, ge=1),
    season: Optional[int] = None,
    session: AsyncSession = Depends(get_async_session),
    _: bool = Depends(verify_api_key),
):
    """Points the member's current squad scores for a matchday."""
    member = await get_member(session, league_id, user_id)
    if jornada is None:
        status = await get_jornada_status(session, league_id)
        jornada = status["current_jornada"]
    points = await score_squad(session, member.user_id, league_id, jornada, season=season)
    return {"league_id": league_id, "user_id": user_id, "jornada": jornada, "points": points}


@router.get("/players/{player_id}/jornadas/{jornada}/points")
async def player_matchday_points(
    player_id: int,
    jornada: int,
    season: Optional[int] = None,
    session: AsyncSession = Depends(get_async_session),
    _: bool = Depends(verify_api_key),
):
    """Stored points and breakdown of a player for a matchday."""
    return await get_player_matchday_points(session, player_id, jornada, season=season)


@router.post("/players/stats/ingest")
@limiter.limit("2/minute")
async def players_stats_ingest(
    request: Request,
    body: IngestRequest,
    session: AsyncSession = Depends(get_async_session),
    provider: APIFootballProvider = Depends(get_provider),
    _: bool = Depends(verify_api_key),
):
    """Fetch and score every player's stats for a matchday."""
    return await ingest_jornada(
        session, provider, body.jornada, season=body.season, player_ids=body.player_ids
    )

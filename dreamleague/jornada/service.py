"""
Jornada lifecycle.

Jobs:
  sync_jornada_points : rescore every member's squad for a matchday (write only on change)
  close_jornada       : settle, reconcile budgets, clear squads, advance the league
  close_all_jornadas  : close every league, one failure never stops the others

Close steps run strictly in order, each on committed state of the previous:

  1. sync matchday points
  2. settle pending bets and parlays
  3. initial_budget = BASE + (budget - initial_budget) + matchday points; budget = initial_budget
  4. reset betting allowance
  5. clear squads
  6. current_jornada += 1, status = closed (betting locked until opened)

Members reconciled by steps 3-4 are stamped with ``last_closed_jornada``.
A close that crashed halfway can be run again: stamped members are skipped
by steps 1, 3 and 4, settled bets are skipped by step 2, and steps 5-6
commit together.

A member whose point sync fails in step 1 is neither reconciled nor stamped
and keeps its squad; the league then stays on the matchday (status closed)
so that fixing the squad and closing again completes it.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from dreamleague.betting.facts import MatchFactsSource
from dreamleague.betting.settlement import evaluate_pending_bets
from dreamleague.config import get_settings
from dreamleague.errors import AppError
from dreamleague.jobs.tracking import record_job_run
from dreamleague.jornada.reconciliation import (
    jornada_points_of,
    reconcile_budget,
    total_points,
    with_jornada_points,
)
from dreamleague.leagues import get_league, list_members
from dreamleague.models import (
    JORNADA_CLOSED,
    JORNADA_OPEN,
    League,
    LeagueMember,
    Squad,
    SquadPlayer,
    utcnow,
)
from dreamleague.scoring.squad import score_squad

logger = logging.getLogger(__name__)


def _already_closed(member: LeagueMember, jornada: int) -> bool:
    return member.last_closed_jornada is not None and member.last_closed_jornada >= jornada


# ═══════════════════════════════════════════════════════════════════
# Step 1: matchday points
# ═══════════════════════════════════════════════════════════════════


async def sync_jornada_points(
    session: AsyncSession,
    league_id: int,
    jornada: Optional[int] = None,
    season: Optional[int] = None,
) -> dict:
    """
    Rescore each member's squad for ``jornada`` and store it when it changed.

    A member whose stored matchday points already match is not written, so
    repeated syncs over unchanged stats are no-ops. Members already
    reconciled for this matchday are skipped (their squads are gone).

    Returns:
        {jornada, updated, unchanged, skipped, errors, failed_users}
    """
    league = await get_league(session, league_id)
    jornada = jornada if jornada is not None else league.current_jornada

    metrics = {
        "jornada": jornada,
        "updated": 0,
        "unchanged": 0,
        "skipped": 0,
        "errors": [],
        "failed_users": [],
    }

    for member in await list_members(session, league_id, for_update=True):
        if _already_closed(member, jornada):
            metrics["skipped"] += 1
            continue

        try:
            points = await score_squad(session, member.user_id, league_id, jornada, season=season)
        except AppError as e:
            logger.warning(f"[SQUAD_SYNC] league={league_id} user={member.user_id}: {e.message}")
            metrics["errors"].append(f"user {member.user_id}: {e.message}")
            metrics["failed_users"].append(member.user_id)
            continue

        stored = member.points_per_jornada or {}
        if str(jornada) in stored and jornada_points_of(stored, jornada) == points:
            metrics["unchanged"] += 1
            continue

        # Reassign (not mutate) so the JSON column is flagged dirty
        member.points_per_jornada = with_jornada_points(stored, jornada, points)
        member.points = total_points(member.points_per_jornada, up_to=jornada)
        metrics["updated"] += 1
        logger.info(
            f"[SQUAD_SYNC] league={league_id} user={member.user_id} jornada={jornada}: "
            f"{points} pts (total {member.points})"
        )

    await session.commit()
    return metrics


# ═══════════════════════════════════════════════════════════════════
# Steps 3-6
# ═══════════════════════════════════════════════════════════════════


async def reconcile_member_budgets(
    session: AsyncSession,
    league_id: int,
    jornada: int,
    skip_users: Iterable[str] = (),
) -> tuple[dict, int]:
    """
    Apply the budget formula and reset betting allowances.

    Members in ``skip_users`` (point sync failed) are left unstamped so a
    later close can reconcile them with their real matchday points.

    Returns:
        ({user_id: budget}, members updated by this call)
    """
    settings = get_settings()
    skip_users = set(skip_users)
    balances: dict[str, int] = {}
    updated = 0

    for member in await list_members(session, league_id, for_update=True):
        if member.user_id in skip_users:
            continue
        if _already_closed(member, jornada):
            balances[member.user_id] = member.budget
            continue

        update = reconcile_budget(
            budget_after_bets=member.budget,
            previous_initial_budget=member.initial_budget,
            jornada_points=jornada_points_of(member.points_per_jornada, jornada),
            base=settings.JORNADA_BASE_BUDGET,
        )
        logger.info(
            f"[JORNADA_CLOSE] league={league_id} user={member.user_id}: "
            f"budget {member.budget} (baseline {member.initial_budget}) -> {update.budget} "
            f"[bets {update.betting_balance:+d}, points {update.jornada_points}]"
        )
        member.initial_budget = update.initial_budget
        member.budget = update.budget
        member.betting_budget = settings.BETTING_BUDGET_PER_JORNADA
        member.last_closed_jornada = jornada
        balances[member.user_id] = update.budget
        updated += 1

    await session.commit()
    return balances, updated


async def clear_league_squads(
    session: AsyncSession,
    league_id: int,
    keep_users: Iterable[str] = (),
) -> int:
    """Remove every squad slot of the league except those of ``keep_users``. Does not commit."""
    squads = select(Squad.id).where(Squad.league_id == league_id)
    keep_users = list(keep_users)
    if keep_users:
        squads = squads.where(Squad.user_id.not_in(keep_users))
    result = await session.execute(
        delete(SquadPlayer)
        .where(SquadPlayer.squad_id.in_(squads))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def close_jornada(
    session: AsyncSession,
    league_id: int,
    facts_source: MatchFactsSource,
    season: Optional[int] = None,
) -> dict:
    """
    Close the league's current matchday.

    Per-bet and per-member problems are reported in ``errors`` and never
    abort the close. Lookup failures (unknown league) raise NotFoundError.

    Returns:
        {success, league_id, jornada, next_jornada, evaluated_bets_count,
         updated_members_count, balances, cleared_squad_players,
         unsynced_members, errors}
    """
    started_at = utcnow()
    league = await get_league(session, league_id)
    jornada = league.current_jornada
    logger.info(f"[JORNADA_CLOSE] league={league_id} closing jornada {jornada}")

    try:
        sync = await sync_jornada_points(session, league_id, jornada, season=season)
        settlement = await evaluate_pending_bets(session, league_id, facts_source, jornada=jornada)
        unsynced = sync["failed_users"]
        balances, updated_members = await reconcile_member_budgets(
            session, league_id, jornada, skip_users=unsynced
        )

        cleared = 0
        league = await get_league(session, league_id, for_update=True)
        if league.current_jornada == jornada:
            cleared = await clear_league_squads(session, league_id, keep_users=unsynced)
            league.jornada_status = JORNADA_CLOSED
            if unsynced:
                # Held on this matchday until a re-run reconciles them
                logger.warning(
                    f"[JORNADA_CLOSE] league={league_id} held at jornada {jornada}: "
                    f"points not synced for {', '.join(unsynced)}"
                )
            else:
                league.current_jornada = jornada + 1
        else:
            logger.warning(
                f"[JORNADA_CLOSE] league={league_id} already advanced to {league.current_jornada}"
            )
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.error(f"[JORNADA_CLOSE] league={league_id} jornada={jornada} failed: {e}")
        await record_job_run(
            session, "jornada_close", "error", started_at,
            error=str(e), metrics={"league_id": league_id, "jornada": jornada},
        )
        raise

    errors = sync["errors"] + settlement["errors"]
    result = {
        "success": not unsynced,
        "league_id": league_id,
        "jornada": jornada,
        "next_jornada": league.current_jornada,
        "evaluated_bets_count": settlement["evaluated"],
        "evaluated_combis_count": settlement["combis_won"] + settlement["combis_lost"],
        "pending_bets_count": settlement["still_pending"],
        "updated_members_count": updated_members,
        "balances": balances,
        "cleared_squad_players": cleared,
        "unsynced_members": unsynced,
        "errors": errors,
    }

    await record_job_run(
        session, "jornada_close", "partial" if errors else "ok", started_at, metrics=result,
    )
    logger.info(
        f"[JORNADA_CLOSE] league={league_id} jornada {jornada} closed: "
        f"{result['evaluated_bets_count']} bets, {updated_members} members, "
        f"{cleared} squad slots cleared, {len(errors)} errors"
    )
    return result


async def close_all_jornadas(
    session: AsyncSession,
    facts_source: MatchFactsSource,
    league_ids: Optional[list[int]] = None,
    season: Optional[int] = None,
) -> dict:
    """
    Close the current matchday of every league (or of ``league_ids``).

    Returns:
        {total_leagues, success_count, error_count, errors, results}
    """
    if league_ids is None:
        league_ids = list((await session.execute(select(League.id).order_by(League.id))).scalars().all())

    report = {
        "total_leagues": len(league_ids),
        "success_count": 0,
        "error_count": 0,
        "errors": [],
        "results": {},
    }
    for league_id in league_ids:
        try:
            report["results"][league_id] = await close_jornada(session, league_id, facts_source, season=season)
            report["success_count"] += 1
        except Exception as e:
            report["error_count"] += 1
            report["errors"].append(f"league {league_id}: {e}")
            logger.error(f"[JORNADA_CLOSE] league={league_id} skipped: {e}")

    return report


# ═══════════════════════════════════════════════════════════════════
# Betting lock
# ═══════════════════════════════════════════════════════════════════


async def _set_status(session: AsyncSession, league_id: int, status: str) -> League:
    league = await get_league(session, league_id, for_update=True)
    league.jornada_status = status
    await session.commit()
    logger.info(f"[JORNADA] league={league_id} jornada {league.current_jornada} -> {status}")
    return league


async def open_jornada(session: AsyncSession, league_id: int) -> League:
    """Allow betting on the current matchday."""
    return await _set_status(session, league_id, JORNADA_OPEN)


async def lock_jornada(session: AsyncSession, league_id: int) -> League:
    """Lock betting while the matchday is being played."""
    return await _set_status(session, league_id, JORNADA_CLOSED)


async def get_jornada_status(session: AsyncSession, league_id: int) -> dict:
    league = await get_league(session, league_id)
    return {
        "league_id": league.id,
        "current_jornada": league.current_jornada,
        "status": league.jornada_status,
        "betting_locked": league.jornada_status == JORNADA_CLOSED,
    }

"""
Bet and parlay settlement.

Jobs:
  evaluate_pending_bets   : settle every pending bet/parlay of a league matchday
  reevaluate_jornada_bets : reset settled bets to pending, then settle again

Every transition is a guarded ``UPDATE ... WHERE status = 'pending'``: a bet
or parlay is settled (and paid) at most once, so re-running settlement over
already-settled rows is a no-op. The only way back to pending is
``reset_bet``, which also reverses a credited payout.
"""

import logging
from collections import defaultdict
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dreamleague.betting.facts import MatchFacts, MatchFactsSource
from dreamleague.betting.predicates import evaluate_bet
from dreamleague.errors import AppError, NotFoundError, ValidationError
from dreamleague.leagues import adjust_member_budget, get_league
from dreamleague.models import (
    BET_LOST,
    BET_PENDING,
    BET_TERMINAL_STATES,
    BET_WON,
    Bet,
    BetCombi,
    utcnow,
)

logger = logging.getLogger(__name__)


def evaluate_parlay(leg_statuses: Iterable[str]) -> str:
    """
    Parlay status from its legs' statuses.

    Pending while any leg is pending, then won only if every leg won.
    """
    statuses = list(leg_statuses)
    if not statuses or BET_PENDING in statuses:
        return BET_PENDING
    if all(status == BET_WON for status in statuses):
        return BET_WON
    return BET_LOST


async def settle_bet(session: AsyncSession, bet: Bet, facts: MatchFacts) -> Optional[str]:
    """
    Settle one bet against its match facts. Does not commit.

    Single bets credit ``potential_win`` on a win; parlay legs never pay by
    themselves.

    Returns:
        The new status, or None if the bet was no longer pending.

    Raises:
        UnsupportedBetTypeError: the bet's type/label cannot be evaluated.
    """
    if bet.status != BET_PENDING:
        return None
    if bet.match_id != facts.fixture_id:
        raise ValidationError(
            f"Bet {bet.id} is on match {bet.match_id}, facts are for {facts.fixture_id}"
        )

    evaluation = evaluate_bet(bet.bet_type, bet.bet_label, facts)
    status = BET_WON if evaluation.won else BET_LOST
    now = utcnow()

    result = await session.execute(
        update(Bet)
        .where(Bet.id == bet.id, Bet.status == BET_PENDING)
        .values(status=status, evaluated_at=now, api_value=evaluation.evidence[:255])
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.info(f"[BET_SETTLEMENT] Bet {bet.id} already settled elsewhere, skipping")
        return None

    if status == BET_WON and bet.combi_id is None and bet.potential_win > 0:
        await adjust_member_budget(
            session, bet.league_id, bet.user_id, bet.potential_win, reason=f"bet {bet.id} payout"
        )

    bet.status = status
    bet.evaluated_at = now
    bet.api_value = evaluation.evidence[:255]
    return status


async def settle_combi(session: AsyncSession, combi: BetCombi) -> Optional[str]:
    """
    Settle a parlay once all its legs are terminal. Does not commit.

    Returns:
        The new status, or None while legs are pending or if already settled.
    """
    if combi.status != BET_PENDING:
        return None

    result = await session.execute(select(Bet.status).where(Bet.combi_id == combi.id))
    leg_statuses = list(result.scalars().all())
    if not leg_statuses:
        raise ValidationError(f"Combi {combi.id} has no legs", code="COMBI_WITHOUT_LEGS")

    status = evaluate_parlay(leg_statuses)
    if status == BET_PENDING:
        return None

    now = utcnow()
    result = await session.execute(
        update(BetCombi)
        .where(BetCombi.id == combi.id, BetCombi.status == BET_PENDING)
        .values(status=status, evaluated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None

    if status == BET_WON:
        await adjust_member_budget(
            session, combi.league_id, combi.user_id, combi.potential_win, reason=f"combi {combi.id} payout"
        )

    combi.status = status
    combi.evaluated_at = now
    return status


async def _load_detached(session: AsyncSession, query) -> list:
    """Run a query and detach the rows so a per-item rollback leaves them readable."""
    rows = list((await session.execute(query)).scalars().all())
    for row in rows:
        session.expunge(row)
    return rows


async def evaluate_pending_bets(
    session: AsyncSession,
    league_id: int,
    facts_source: MatchFactsSource,
    jornada: Optional[int] = None,
) -> dict:
    """
    Settle every pending bet and parlay of a league matchday.

    Bets are grouped by match so each match's facts are fetched once.
    Matches that are not finished leave their bets pending. A bet that
    cannot be evaluated is reported in ``errors`` and left pending; it never
    stops the rest of the batch. Each settled bet is committed on its own.

    Args:
        session: Database session.
        league_id: League to settle.
        facts_source: Supplies MatchFacts per fixture.
        jornada: Matchday; defaults to the league's current one.

    Returns:
        Metrics dict: evaluated, won, lost, still_pending, combis_won,
        combis_lost, errors.
    """
    league = await get_league(session, league_id)
    jornada = jornada if jornada is not None else league.current_jornada

    metrics = {
        "league_id": league_id,
        "jornada": jornada,
        "evaluated": 0,
        "won": 0,
        "lost": 0,
        "still_pending": 0,
        "combis_won": 0,
        "combis_lost": 0,
        "errors": [],
    }

    bets = await _load_detached(
        session,
        select(Bet)
        .where(Bet.league_id == league_id, Bet.jornada == jornada, Bet.status == BET_PENDING)
        .order_by(Bet.id),
    )

    by_match: dict[int, list[Bet]] = defaultdict(list)
    for bet in bets:
        by_match[bet.match_id].append(bet)

    for match_id, match_bets in by_match.items():
        try:
            facts = await facts_source.get_match_facts(match_id)
        except Exception as e:
            logger.warning(f"[BET_SETTLEMENT] Could not load facts for match {match_id}: {e}")
            metrics["errors"].append(f"match {match_id}: {e}")
            metrics["still_pending"] += len(match_bets)
            continue

        if facts is None or not facts.is_finished:
            metrics["still_pending"] += len(match_bets)
            continue

        for bet in match_bets:
            try:
                status = await settle_bet(session, bet, facts)
                await session.commit()
            except (AppError, SQLAlchemyError) as e:
                await session.rollback()
                message = e.message if isinstance(e, AppError) else str(e)
                logger.warning(f"[BET_SETTLEMENT] Bet {bet.id} not evaluated: {message}")
                metrics["errors"].append(f"bet {bet.id}: {message}")
                metrics["still_pending"] += 1
                continue

            if status is None:
                continue
            metrics["evaluated"] += 1
            metrics["won" if status == BET_WON else "lost"] += 1

    combis = await _load_detached(
        session,
        select(BetCombi)
        .where(
            BetCombi.league_id == league_id,
            BetCombi.jornada == jornada,
            BetCombi.status == BET_PENDING,
        )
        .order_by(BetCombi.id),
    )
    for combi in combis:
        try:
            status = await settle_combi(session, combi)
            await session.commit()
        except (AppError, SQLAlchemyError) as e:
            await session.rollback()
            message = e.message if isinstance(e, AppError) else str(e)
            logger.warning(f"[BET_SETTLEMENT] Combi {combi.id} not evaluated: {message}")
            metrics["errors"].append(f"combi {combi.id}: {message}")
            continue
        if status is not None:
            metrics["combis_won" if status == BET_WON else "combis_lost"] += 1

    logger.info(
        f"[BET_SETTLEMENT] league={league_id} jornada={jornada}: "
        f"evaluated={metrics['evaluated']} won={metrics['won']} lost={metrics['lost']} "
        f"pending={metrics['still_pending']} combis_won={metrics['combis_won']} "
        f"combis_lost={metrics['combis_lost']} errors={len(metrics['errors'])}"
    )
    return metrics


async def _reset_combi(session: AsyncSession, combi_id: int) -> None:
    combi = (
        await session.execute(
            select(BetCombi).where(BetCombi.id == combi_id).execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if combi is None or combi.status == BET_PENDING:
        return
    result = await session.execute(
        update(BetCombi)
        .where(BetCombi.id == combi_id, BetCombi.status == combi.status)
        .values(status=BET_PENDING, evaluated_at=None)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1 and combi.status == BET_WON:
        await adjust_member_budget(
            session, combi.league_id, combi.user_id, -combi.potential_win, reason=f"combi {combi_id} reset"
        )


async def reset_bet(session: AsyncSession, bet_id: int) -> Bet:
    """
    Return a settled bet to pending so it can be settled again. Does not commit.

    Clears the settlement evidence and reverses the payout a won single bet
    credited. If the bet is a parlay leg, a settled parlay is reset too.
    """
    bet = (
        await session.execute(
            select(Bet).where(Bet.id == bet_id).execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if bet is None:
        raise NotFoundError(f"Bet {bet_id} not found", code="BET_NOT_FOUND")
    if bet.status not in BET_TERMINAL_STATES:
        return bet

    previous = bet.status
    result = await session.execute(
        update(Bet)
        .where(Bet.id == bet_id, Bet.status == previous)
        .values(status=BET_PENDING, evaluated_at=None, api_value=None)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return bet

    if previous == BET_WON and bet.combi_id is None and bet.potential_win > 0:
        await adjust_member_budget(
            session, bet.league_id, bet.user_id, -bet.potential_win, reason=f"bet {bet_id} reset"
        )
    if bet.combi_id is not None:
        await _reset_combi(session, bet.combi_id)

    bet.status = BET_PENDING
    bet.evaluated_at = None
    bet.api_value = None
    logger.info(f"[BET_SETTLEMENT] Bet {bet_id} reset from {previous} to pending")
    return bet


async def reevaluate_jornada_bets(
    session: AsyncSession,
    league_id: int,
    facts_source: MatchFactsSource,
    jornada: Optional[int] = None,
    bet_ids: Optional[list[int]] = None,
) -> dict:
    """
    Reset settled bets of a matchday and run them through settlement again.

    Args:
        bet_ids: Restrict to these bets; default is every settled bet of the
            matchday.

    Returns:
        {evaluated, corrected, confirmed, still_pending, errors, details}
        where details lists {bet_id, previous, current} for every bet touched.
    """
    league = await get_league(session, league_id)
    jornada = jornada if jornada is not None else league.current_jornada

    query = select(Bet.id, Bet.status).where(
        Bet.league_id == league_id,
        Bet.jornada == jornada,
        Bet.status.in_(BET_TERMINAL_STATES),
    )
    if bet_ids:
        query = query.where(Bet.id.in_(bet_ids))
    previous = {row.id: row.status for row in (await session.execute(query)).all()}

    errors: list[str] = []
    for bet_id in previous:
        try:
            await reset_bet(session, bet_id)
            await session.commit()
        except (AppError, SQLAlchemyError) as e:
            await session.rollback()
            message = e.message if isinstance(e, AppError) else str(e)
            logger.warning(f"[BET_REEVALUATION] Bet {bet_id} could not be reset: {message}")
            errors.append(f"bet {bet_id}: {message}")

    settlement = await evaluate_pending_bets(session, league_id, facts_source, jornada=jornada)
    errors.extend(settlement["errors"])

    current = {}
    if previous:
        result = await session.execute(
            select(Bet.id, Bet.status)
            .where(Bet.id.in_(list(previous)))
            .execution_options(populate_existing=True)
        )
        current = {row.id: row.status for row in result.all()}

    report = {
        "league_id": league_id,
        "jornada": jornada,
        "evaluated": settlement["evaluated"],
        "corrected": 0,
        "confirmed": 0,
        "still_pending": 0,
        "errors": errors,
        "details": [],
    }
    for bet_id, before in previous.items():
        after = current.get(bet_id, BET_PENDING)
        if after == BET_PENDING:
            report["still_pending"] += 1
        elif after == before:
            report["confirmed"] += 1
        else:
            report["corrected"] += 1
        report["details"].append({"bet_id": bet_id, "previous": before, "current": after})

    logger.info(
        f"[BET_REEVALUATION] league={league_id} jornada={jornada}: "
        f"corrected={report['corrected']} confirmed={report['confirmed']} "
        f"still_pending={report['still_pending']} errors={len(errors)}"
    )
    return report

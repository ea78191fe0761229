"""
Bet placement: singles and parlays (combis).

Ledger rules:
- Betting is only possible while the league's jornada is open.
- A stake is deducted from ``budget`` and from the ``betting_budget``
  allowance when placed, and refunded when a pending bet is cancelled.
- Settlement later credits ``potential_win`` on a win (see settlement.py).
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from functools import reduce
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from dreamleague.betting.predicates import resolve_market
from dreamleague.config import get_settings
from dreamleague.errors import ConflictError, NotFoundError, ValidationError
from dreamleague.leagues import adjust_member_budget, get_league, get_member
from dreamleague.models import BET_PENDING, JORNADA_CLOSED, Bet, BetCombi, League

logger = logging.getLogger(__name__)


def round_payout(amount: int, odd: float) -> int:
    """stake x odds, rounded half up to a whole unit."""
    value = Decimal(str(amount)) * Decimal(str(odd))
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def combined_odd(odds: list[float]) -> float:
    """Exact product of the leg odds; payouts are computed from this value."""
    return reduce(lambda acc, odd: acc * odd, odds, 1.0)


def display_odd(odd: float) -> float:
    return round(odd, 2)


def assert_betting_allowed(league: League) -> None:
    """Reject bet changes while the matchday is locked."""
    if league.jornada_status == JORNADA_CLOSED:
        raise ConflictError(
            f"Jornada {league.current_jornada} of league {league.id} is locked for betting",
            code="JORNADA_BLOQUEADA",
        )


def _validate_odd(odd: float) -> None:
    if odd is None or odd <= 1.0:
        raise ValidationError(f"Invalid odd {odd}: must be greater than 1.0", code="INVALID_ODD")


def _validate_market(bet_type: str) -> None:
    # Raises UnsupportedBetTypeError, a ValidationError
    resolve_market(bet_type)


async def _get_bet(session: AsyncSession, league_id: int, bet_id: int, user_id: str) -> Bet:
    bet = (
        await session.execute(
            select(Bet).where(Bet.id == bet_id).execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    # Scoped to the league whose lock was checked
    if bet is None or bet.user_id != user_id or bet.league_id != league_id:
        raise NotFoundError(f"Bet {bet_id} not found", code="BET_NOT_FOUND")
    return bet


async def _get_combi(session: AsyncSession, league_id: int, combi_id: int, user_id: str) -> BetCombi:
    combi = (
        await session.execute(
            select(BetCombi).where(BetCombi.id == combi_id).execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if combi is None or combi.user_id != user_id or combi.league_id != league_id:
        raise NotFoundError(f"Combi {combi_id} not found", code="COMBI_NOT_FOUND")
    return combi


async def _reserve_stake(session: AsyncSession, league_id: int, user_id: str, amount: int) -> None:
    """Check the allowance under a row lock, then deduct the stake."""
    member = await get_member(session, league_id, user_id, for_update=True)
    if amount > member.betting_budget:
        raise ValidationError(
            f"Stake {amount} exceeds remaining betting budget {member.betting_budget}",
            code="INSUFFICIENT_BETTING_BUDGET",
        )
    await adjust_member_budget(session, league_id, user_id, -amount, betting_delta=-amount)


# ═══════════════════════════════════════════════════════════════════
# Single bets
# ═══════════════════════════════════════════════════════════════════


async def place_bet(
    session: AsyncSession,
    league_id: int,
    user_id: str,
    match_id: int,
    bet_type: str,
    bet_label: str,
    odd: float,
    amount: int,
    home_team: Optional[str] = None,
    away_team: Optional[str] = None,
) -> Bet:
    """Place a single bet on the league's current matchday."""
    league = await get_league(session, league_id)
    assert_betting_allowed(league)

    if amount is None or amount <= 0:
        raise ValidationError(f"Invalid stake {amount}: must be positive", code="INVALID_AMOUNT")
    _validate_odd(odd)
    _validate_market(bet_type)

    await _reserve_stake(session, league_id, user_id, amount)

    bet = Bet(
        league_id=league_id,
        user_id=user_id,
        jornada=league.current_jornada,
        match_id=match_id,
        home_team=home_team,
        away_team=away_team,
        bet_type=bet_type,
        bet_label=bet_label,
        odd=odd,
        amount=amount,
        potential_win=round_payout(amount, odd),
        status=BET_PENDING,
    )
    session.add(bet)
    await session.commit()
    await session.refresh(bet)

    logger.info(
        f"[BETS] user={user_id} league={league_id} jornada={league.current_jornada} "
        f"placed bet {bet.id}: {bet_type} / {bet_label} @ {odd} x {amount}"
    )
    return bet


async def update_bet_amount(
    session: AsyncSession,
    league_id: int,
    user_id: str,
    bet_id: int,
    amount: int,
) -> Bet:
    """Change the stake of a pending single bet."""
    league = await get_league(session, league_id)
    assert_betting_allowed(league)
    if amount is None or amount <= 0:
        raise ValidationError(f"Invalid stake {amount}: must be positive", code="INVALID_AMOUNT")

    bet = await _get_bet(session, league_id, bet_id, user_id)
    if bet.combi_id is not None:
        raise ValidationError("Combi legs have no individual stake", code="BET_IN_COMBI")
    if bet.status != BET_PENDING:
        raise ConflictError(f"Bet {bet_id} is already {bet.status}", code="BET_NOT_PENDING")

    delta = amount - bet.amount
    if delta > 0:
        await _reserve_stake(session, league_id, user_id, delta)
    elif delta < 0:
        await adjust_member_budget(session, league_id, user_id, -delta, betting_delta=-delta)

    bet.amount = amount
    bet.potential_win = round_payout(amount, bet.odd)
    await session.commit()
    return bet


async def delete_bet(session: AsyncSession, league_id: int, user_id: str, bet_id: int) -> None:
    """Cancel a pending single bet and refund its stake."""
    league = await get_league(session, league_id)
    assert_betting_allowed(league)

    bet = await _get_bet(session, league_id, bet_id, user_id)
    if bet.combi_id is not None:
        raise ValidationError("Remove combi legs through the combi", code="BET_IN_COMBI")
    if bet.status != BET_PENDING:
        raise ConflictError(f"Bet {bet_id} is already {bet.status}", code="BET_NOT_PENDING")

    await adjust_member_budget(session, league_id, user_id, bet.amount, betting_delta=bet.amount)
    await session.delete(bet)
    await session.commit()
    logger.info(f"[BETS] user={user_id} league={league_id} cancelled bet {bet_id}, refunded {bet.amount}")


# ═══════════════════════════════════════════════════════════════════
# Combis (parlays)
# ═══════════════════════════════════════════════════════════════════


def _validate_selection(selection: dict) -> None:
    for key in ("match_id", "bet_type", "bet_label", "odd"):
        if selection.get(key) in (None, ""):
            raise ValidationError(f"Selection is missing '{key}'", code="INVALID_SELECTION")
    _validate_odd(selection["odd"])
    _validate_market(selection["bet_type"])


def _leg_from_selection(combi: BetCombi, selection: dict) -> Bet:
    return Bet(
        league_id=combi.league_id,
        user_id=combi.user_id,
        jornada=combi.jornada,
        match_id=selection["match_id"],
        home_team=selection.get("home_team"),
        away_team=selection.get("away_team"),
        bet_type=selection["bet_type"],
        bet_label=selection["bet_label"],
        odd=selection["odd"],
        amount=0,
        potential_win=0,
        status=BET_PENDING,
        combi_id=combi.id,
    )


async def _combi_legs(session: AsyncSession, combi_id: int) -> list[Bet]:
    result = await session.execute(
        select(Bet).where(Bet.combi_id == combi_id).order_by(Bet.id).execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def create_combi(
    session: AsyncSession,
    league_id: int,
    user_id: str,
    selections: list[dict],
    amount: int,
) -> BetCombi:
    """
    Place a parlay over 2-3 selections on distinct matches.

    Args:
        selections: [{match_id, bet_type, bet_label, odd, home_team?, away_team?}, ...]
        amount: Single stake for the whole combi.
    """
    settings = get_settings()
    league = await get_league(session, league_id)
    assert_betting_allowed(league)

    if not settings.COMBI_MIN_SELECTIONS <= len(selections) <= settings.COMBI_MAX_SELECTIONS:
        raise ValidationError(
            f"A combi needs {settings.COMBI_MIN_SELECTIONS}-{settings.COMBI_MAX_SELECTIONS} "
            f"selections, got {len(selections)}",
            code="INVALID_COMBI_SIZE",
        )
    if amount is None or not settings.COMBI_MIN_AMOUNT <= amount <= settings.COMBI_MAX_AMOUNT:
        raise ValidationError(
            f"Combi stake must be between {settings.COMBI_MIN_AMOUNT} and {settings.COMBI_MAX_AMOUNT}",
            code="INVALID_AMOUNT",
        )
    for selection in selections:
        _validate_selection(selection)
    match_ids = [selection["match_id"] for selection in selections]
    if len(set(match_ids)) != len(match_ids):
        raise ValidationError("A combi cannot hold two selections on the same match", code="DUPLICATE_MATCH")

    await _reserve_stake(session, league_id, user_id, amount)

    product = combined_odd([selection["odd"] for selection in selections])
    total_odd = display_odd(product)
    combi = BetCombi(
        league_id=league_id,
        user_id=user_id,
        jornada=league.current_jornada,
        total_odd=total_odd,
        amount=amount,
        potential_win=round_payout(amount, product),
        status=BET_PENDING,
    )
    session.add(combi)
    await session.flush()

    for selection in selections:
        session.add(_leg_from_selection(combi, selection))

    await session.commit()
    await session.refresh(combi)
    logger.info(
        f"[BETS] user={user_id} league={league_id} placed combi {combi.id}: "
        f"{len(selections)} legs @ {total_odd} x {amount}"
    )
    return combi


async def _recalculate_combi(session: AsyncSession, combi: BetCombi) -> None:
    legs = await _combi_legs(session, combi.id)
    product = combined_odd([leg.odd for leg in legs])
    combi.total_odd = display_odd(product)
    combi.potential_win = round_payout(combi.amount, product)


async def add_selection(
    session: AsyncSession,
    league_id: int,
    user_id: str,
    combi_id: int,
    selection: dict,
) -> BetCombi:
    """Add a leg to a pending combi and recompute its odds."""
    settings = get_settings()
    league = await get_league(session, league_id)
    assert_betting_allowed(league)
    combi = await _get_combi(session, league_id, combi_id, user_id)
    if combi.status != BET_PENDING:
        raise ConflictError(f"Combi {combi_id} is already {combi.status}", code="COMBI_NOT_PENDING")

    _validate_selection(selection)
    legs = await _combi_legs(session, combi_id)
    if len(legs) >= settings.COMBI_MAX_SELECTIONS:
        raise ValidationError(
            f"A combi holds at most {settings.COMBI_MAX_SELECTIONS} selections", code="INVALID_COMBI_SIZE"
        )
    if any(leg.match_id == selection["match_id"] for leg in legs):
        raise ValidationError("A combi cannot hold two selections on the same match", code="DUPLICATE_MATCH")

    session.add(_leg_from_selection(combi, selection))
    await session.flush()
    await _recalculate_combi(session, combi)
    await session.commit()
    return combi


async def remove_selection(
    session: AsyncSession,
    league_id: int,
    user_id: str,
    combi_id: int,
    bet_id: int,
) -> BetCombi:
    """Drop a leg from a pending combi; at least the minimum number of legs must remain."""
    settings = get_settings()
    league = await get_league(session, league_id)
    assert_betting_allowed(league)
    combi = await _get_combi(session, league_id, combi_id, user_id)
    if combi.status != BET_PENDING:
        raise ConflictError(f"Combi {combi_id} is already {combi.status}", code="COMBI_NOT_PENDING")

    legs = await _combi_legs(session, combi_id)
    leg = next((leg for leg in legs if leg.id == bet_id), None)
    if leg is None:
        raise NotFoundError(f"Bet {bet_id} is not part of combi {combi_id}", code="BET_NOT_FOUND")
    if len(legs) <= settings.COMBI_MIN_SELECTIONS:
        raise ValidationError(
            f"A combi needs at least {settings.COMBI_MIN_SELECTIONS} selections", code="INVALID_COMBI_SIZE"
        )

    await session.delete(leg)
    await session.flush()
    await _recalculate_combi(session, combi)
    await session.commit()
    return combi


async def delete_combi(session: AsyncSession, league_id: int, user_id: str, combi_id: int) -> None:
    """Cancel a pending combi with all its legs and refund the stake."""
    league = await get_league(session, league_id)
    assert_betting_allowed(league)
    combi = await _get_combi(session, league_id, combi_id, user_id)
    if combi.status != BET_PENDING:
        raise ConflictError(f"Combi {combi_id} is already {combi.status}", code="COMBI_NOT_PENDING")

    await adjust_member_budget(session, league_id, user_id, combi.amount, betting_delta=combi.amount)
    await session.execute(delete(Bet).where(Bet.combi_id == combi_id))
    await session.delete(combi)
    await session.commit()
    logger.info(f"[BETS] user={user_id} league={league_id} cancelled combi {combi_id}, refunded {combi.amount}")

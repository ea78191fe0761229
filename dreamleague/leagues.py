"""League and member lookups shared by betting and jornada close."""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dreamleague.errors import NotFoundError
from dreamleague.models import League, LeagueMember


async def get_league(session: AsyncSession, league_id: int, for_update: bool = False) -> League:
    """Fresh League row; raises NotFoundError."""
    query = select(League).where(League.id == league_id).execution_options(populate_existing=True)
    if for_update:
        query = query.with_for_update()
    league = (await session.execute(query)).scalar_one_or_none()
    if league is None:
        raise NotFoundError(f"League {league_id} not found", code="LEAGUE_NOT_FOUND")
    return league


async def get_member(
    session: AsyncSession,
    league_id: int,
    user_id: str,
    for_update: bool = False,
) -> LeagueMember:
    """Fresh LeagueMember row; raises NotFoundError."""
    query = (
        select(LeagueMember)
        .where(LeagueMember.league_id == league_id, LeagueMember.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    member = (await session.execute(query)).scalar_one_or_none()
    if member is None:
        raise NotFoundError(
            f"User {user_id} is not a member of league {league_id}", code="MEMBER_NOT_FOUND"
        )
    return member


async def list_members(
    session: AsyncSession,
    league_id: int,
    for_update: bool = False,
) -> list[LeagueMember]:
    query = (
        select(LeagueMember)
        .where(LeagueMember.league_id == league_id)
        .order_by(LeagueMember.id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    return list((await session.execute(query)).scalars().all())


async def adjust_member_budget(
    session: AsyncSession,
    league_id: int,
    user_id: str,
    delta: int,
    betting_delta: int = 0,
    reason: Optional[str] = None,
) -> None:
    """
    Apply a relative change to a member's budget (and betting allowance).

    Runs as a single SQL increment so concurrent payouts and stakes on the
    same member never overwrite each other. Does not commit.
    """
    values = {"budget": LeagueMember.budget + delta}
    if betting_delta:
        values["betting_budget"] = LeagueMember.betting_budget + betting_delta
    result = await session.execute(
        update(LeagueMember)
        .where(LeagueMember.league_id == league_id, LeagueMember.user_id == user_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError(
            f"User {user_id} is not a member of league {league_id}"
            + (f" ({reason})" if reason else ""),
            code="MEMBER_NOT_FOUND",
        )

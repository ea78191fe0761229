"""
Shared fixtures: in-memory database, seeded leagues and a fake facts source.
"""

from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from dreamleague.betting.facts import MatchFacts, MatchFactsSource
from dreamleague.config import get_settings
from dreamleague.models import (
    BET_PENDING,
    JORNADA_OPEN,
    Bet,
    BetCombi,
    League,
    LeagueMember,
    Player,
    PlayerMatchdayStats,
    Squad,
    SquadPlayer,
)

SEASON = get_settings().FOOTBALL_API_SEASON


class FakeFactsSource(MatchFactsSource):
    """Facts by fixture id; unknown fixtures count as not finished."""

    def __init__(self, facts: Optional[dict] = None, fail_on: Optional[set] = None):
        self.facts = dict(facts or {})
        self.fail_on = set(fail_on or ())
        self.calls = []

    async def get_match_facts(self, fixture_id: int) -> Optional[MatchFacts]:
        self.calls.append(fixture_id)
        if fixture_id in self.fail_on:
            raise RuntimeError(f"provider down for {fixture_id}")
        return self.facts.get(fixture_id)


def finished_match(
    fixture_id: int,
    home_goals: int,
    away_goals: int,
    home_team: str = "Real Madrid",
    away_team: str = "Barcelona",
    status: str = "FT",
    **stats,
) -> MatchFacts:
    return MatchFacts(
        fixture_id=fixture_id,
        status=status,
        home_team=home_team,
        away_team=away_team,
        home_goals=home_goals,
        away_goals=away_goals,
        **stats,
    )


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    session_factory = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_league(session):
    """Create a league with members: await make_league(jornada=12, members={"u1": {...}})."""

    async def _make(
        jornada: int = 12,
        status: str = JORNADA_OPEN,
        members: Optional[dict] = None,
    ) -> League:
        league = League(name="Liga de prueba", current_jornada=jornada, jornada_status=status)
        session.add(league)
        await session.flush()
        for user_id, fields in (members if members is not None else {"user-1": {}}).items():
            session.add(LeagueMember(league_id=league.id, user_id=user_id, **fields))
        await session.commit()
        return league

    return _make


@pytest.fixture
def make_squad(session):
    """
    Create a squad whose players already have matchday rows.

    ``points`` lists each player's matchday total; the first one is captain
    unless ``captain_index`` says otherwise (None for no captain).
    """

    async def _make(
        league_id: int,
        user_id: str,
        points: list,
        jornada: int,
        captain_index: Optional[int] = 0,
    ) -> Squad:
        squad = Squad(user_id=user_id, league_id=league_id)
        session.add(squad)
        await session.flush()
        for index, total in enumerate(points):
            player = Player(
                external_id=league_id * 100000 + squad.id * 100 + index,
                name=f"Player {squad.id}-{index}",
                position="Midfielder",
            )
            session.add(player)
            await session.flush()
            session.add(
                PlayerMatchdayStats(player_id=player.id, jornada=jornada, season=SEASON, total_points=total)
            )
            session.add(
                SquadPlayer(squad_id=squad.id, player_id=player.id, is_captain=index == captain_index)
            )
        await session.commit()
        return squad

    return _make


@pytest.fixture
def make_bet(session):
    """Insert a bet directly, bypassing placement (no stake deducted)."""

    async def _make(
        league_id: int,
        user_id: str = "user-1",
        jornada: int = 12,
        match_id: int = 1001,
        bet_type: str = "Goles totales",
        bet_label: str = "Más de 2.5",
        odd: float = 2.0,
        amount: int = 50,
        potential_win: Optional[int] = None,
        status: str = BET_PENDING,
        combi_id: Optional[int] = None,
    ) -> Bet:
        bet = Bet(
            league_id=league_id,
            user_id=user_id,
            jornada=jornada,
            match_id=match_id,
            bet_type=bet_type,
            bet_label=bet_label,
            odd=odd,
            amount=amount,
            potential_win=potential_win if potential_win is not None else int(amount * odd),
            status=status,
            combi_id=combi_id,
        )
        session.add(bet)
        await session.commit()
        return bet

    return _make


@pytest.fixture
def make_combi(session, make_bet):
    """Insert a combi with one leg per (match_id, bet_type, bet_label, status) tuple."""

    async def _make(
        league_id: int,
        legs: list,
        user_id: str = "user-1",
        jornada: int = 12,
        amount: int = 20,
        total_odd: float = 8.0,
    ) -> BetCombi:
        combi = BetCombi(
            league_id=league_id,
            user_id=user_id,
            jornada=jornada,
            total_odd=total_odd,
            amount=amount,
            potential_win=int(amount * total_odd),
        )
        session.add(combi)
        await session.commit()
        for match_id, bet_type, bet_label, status in legs:
            await make_bet(
                league_id, user_id=user_id, jornada=jornada, match_id=match_id,
                bet_type=bet_type, bet_label=bet_label, amount=0, potential_win=0,
                status=status, combi_id=combi.id,
            )
        return combi

    return _make

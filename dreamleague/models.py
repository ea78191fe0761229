"""Database models using SQLModel."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Column, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

# Bet / parlay states
BET_PENDING = "pending"
BET_WON = "won"
BET_LOST = "lost"
BET_TERMINAL_STATES = (BET_WON, BET_LOST)

# League jornada states ("closed" is the betting lock)
JORNADA_OPEN = "open"
JORNADA_CLOSED = "closed"


def utcnow() -> datetime:
    """Timezone-aware UTC now; every timestamp column stores aware values."""
    return datetime.now(timezone.utc)


class Player(SQLModel, table=True):
    """Real-world footballer available for drafting."""

    __tablename__ = "players"

    id: Optional[int] = Field(default=None, primary_key=True)
    external_id: int = Field(unique=True, index=True, description="API-Football player ID")
    name: str = Field(max_length=255)
    position: Optional[str] = Field(
        default=None, max_length=50, description="Free-text position as stored (e.g. 'Goalkeeper', 'DEF')"
    )
    team_id: Optional[int] = Field(default=None, index=True, description="API-Football team ID")
    team_name: Optional[str] = Field(default=None, max_length=255)

    # Cache of the most recent ingested matchday
    last_jornada_points: int = Field(default=0)
    last_jornada_number: Optional[int] = Field(default=None)


class PlayerMatchdayStats(SQLModel, table=True):
    """Raw per-match stats of a player plus the derived fantasy points."""

    __tablename__ = "player_matchday_stats"
    __table_args__ = (
        UniqueConstraint("player_id", "jornada", "season", name="uq_player_jornada_season"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    player_id: int = Field(foreign_key="players.id", index=True)
    jornada: int = Field(index=True)
    season: int = Field(index=True)
    fixture_id: Optional[int] = Field(default=None, description="API-Football fixture ID")
    team_id: Optional[int] = Field(default=None)
    role: Optional[str] = Field(default=None, max_length=20, description="Canonical role used for scoring")

    minutes: int = Field(default=0)
    rating: Optional[float] = Field(default=None)
    captain: bool = Field(default=False)
    substitute: bool = Field(default=False)

    goals: int = Field(default=0)
    assists: int = Field(default=0)
    goals_conceded: int = Field(default=0, description="Personal conceded (goalkeepers)")
    team_goals_conceded: Optional[int] = Field(default=None, description="Team goals against")
    saves: int = Field(default=0)

    shots_total: int = Field(default=0)
    shots_on: int = Field(default=0)
    passes_total: int = Field(default=0)
    passes_key: int = Field(default=0)
    passes_accuracy: Optional[int] = Field(default=None)
    tackles_total: int = Field(default=0)
    tackles_blocks: int = Field(default=0)
    interceptions: int = Field(default=0)
    duels_total: int = Field(default=0)
    duels_won: int = Field(default=0)
    dribbles_attempts: int = Field(default=0)
    dribbles_success: int = Field(default=0)
    fouls_drawn: int = Field(default=0)
    fouls_committed: int = Field(default=0)
    yellow_cards: int = Field(default=0)
    red_cards: int = Field(default=0)

    penalty_won: int = Field(default=0)
    penalty_committed: int = Field(default=0)
    penalty_scored: int = Field(default=0)
    penalty_missed: int = Field(default=0)
    penalty_saved: int = Field(default=0)

    total_points: int = Field(default=0)
    points_breakdown: Optional[list] = Field(
        default=None, sa_column=Column(JSON), description="[{label, amount, points}, ...]"
    )

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class League(SQLModel, table=True):
    """Fantasy league; owns the matchday counter and the betting lock."""

    __tablename__ = "leagues"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    current_jornada: int = Field(default=1)
    jornada_status: str = Field(default=JORNADA_OPEN, max_length=10, description="'open' or 'closed'")
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class LeagueMember(SQLModel, table=True):
    """A user's standing inside a league: points and budgets."""

    __tablename__ = "league_members"
    __table_args__ = (
        UniqueConstraint("league_id", "user_id", name="uq_league_user"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="leagues.id", index=True)
    user_id: str = Field(max_length=64, index=True)
    team_name: Optional[str] = Field(default=None, max_length=255)

    points: int = Field(default=0)
    points_per_jornada: dict = Field(
        default_factory=dict, sa_column=Column(JSON), description="{'<jornada>': points}"
    )
    budget: int = Field(default=500)
    initial_budget: int = Field(default=500)
    betting_budget: int = Field(default=250)

    # Set when a jornada close has reconciled this member
    last_closed_jornada: Optional[int] = Field(default=None)


class Squad(SQLModel, table=True):
    """A member's drafted squad for the current matchday."""

    __tablename__ = "squads"
    __table_args__ = (
        UniqueConstraint("user_id", "league_id", name="uq_squad_user_league"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(max_length=64, index=True)
    league_id: int = Field(foreign_key="leagues.id", index=True)
    name: str = Field(default="Mi plantilla", max_length=255)
    formation: str = Field(default="4-3-3", max_length=20)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class SquadPlayer(SQLModel, table=True):
    """One slot of a squad."""

    __tablename__ = "squad_players"
    __table_args__ = (
        UniqueConstraint("squad_id", "player_id", name="uq_squad_player"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    squad_id: int = Field(foreign_key="squads.id", index=True)
    player_id: int = Field(foreign_key="players.id", index=True)
    position: Optional[str] = Field(default=None, max_length=20, description="Formation slot")
    price_paid: int = Field(default=0)
    is_captain: bool = Field(default=False)


class BetCombi(SQLModel, table=True):
    """Parlay: one stake over 2-3 leg bets, won only if every leg wins."""

    __tablename__ = "bet_combis"

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="leagues.id", index=True)
    user_id: str = Field(max_length=64, index=True)
    jornada: int = Field(index=True)
    total_odd: float
    amount: int
    potential_win: int
    status: str = Field(default=BET_PENDING, max_length=10, index=True)
    evaluated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Bet(SQLModel, table=True):
    """Single wager, or one leg of a BetCombi when combi_id is set."""

    __tablename__ = "bets"

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="leagues.id", index=True)
    user_id: str = Field(max_length=64, index=True)
    jornada: int = Field(index=True)
    match_id: int = Field(index=True, description="API-Football fixture ID")
    home_team: Optional[str] = Field(default=None, max_length=255)
    away_team: Optional[str] = Field(default=None, max_length=255)

    bet_type: str = Field(max_length=100, description="Market, e.g. 'Goles totales'")
    bet_label: str = Field(max_length=100, description="Selection, e.g. 'Más de 2.5'")
    odd: float
    amount: int = Field(description="Stake (0 for parlay legs)")
    potential_win: int

    status: str = Field(default=BET_PENDING, max_length=10, index=True)
    combi_id: Optional[int] = Field(default=None, foreign_key="bet_combis.id", index=True)
    evaluated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    api_value: Optional[str] = Field(
        default=None, max_length=255, description="Evidence recorded at settlement"
    )
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class JobRun(SQLModel, table=True):
    """Execution record of a batch job (jornada close, ingestion, settlement)."""

    __tablename__ = "job_runs"

    id: Optional[int] = Field(default=None, primary_key=True)
    job_name: str = Field(max_length=100, index=True)
    status: str = Field(max_length=20, description="ok, partial, error")
    started_at: datetime = Field(index=True, sa_type=DateTime(timezone=True))
    finished_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    duration_ms: Optional[int] = Field(default=None)
    error_message: Optional[str] = Field(default=None)
    metrics: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

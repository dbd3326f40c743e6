from datetime import datetime, UTC
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint


class MmPool(SQLModel, table=True):
    __tablename__ = "mm_pools"

    id: Optional[int] = Field(default=None, primary_key=True)
    pool_id: int = Field(foreign_key="pools.id", unique=True, index=True)
    tournament_year: int
    push_rule: str = Field(default="favorite_advances")  # favorite_advances, underdog_advances, coin_flip
    pot_amount: float = Field(default=0.0)

    # Payout percentages (must sum to 100)
    sweet16_payout_pct: float = Field(default=10.0)
    elite8_payout_pct: float = Field(default=10.0)
    final4_payout_pct: float = Field(default=20.0)
    runnerup_payout_pct: float = Field(default=20.0)
    champion_payout_pct: float = Field(default=40.0)

    draw_completed: bool = Field(default=False)
    draw_completed_at: Optional[datetime] = Field(default=None)


class MmPoolTeam(SQLModel, table=True):
    __tablename__ = "mm_pool_teams"
    __table_args__ = (UniqueConstraint("mm_pool_id", "region", "seed", name="unique_region_seed"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    mm_pool_id: int = Field(foreign_key="mm_pools.id", index=True)
    team_id: int = Field(foreign_key="teams.id")
    seed: int  # 1-16
    region: str  # East, West, South, Midwest
    eliminated: bool = Field(default=False)
    eliminated_round: Optional[str] = Field(default=None)


class MmEntry(SQLModel, table=True):
    __tablename__ = "mm_entries"

    id: Optional[int] = Field(default=None, primary_key=True)
    mm_pool_id: int = Field(foreign_key="mm_pools.id", index=True)
    display_name: str
    current_team_id: Optional[int] = Field(default=None, foreign_key="mm_pool_teams.id")
    original_team_id: Optional[int] = Field(default=None, foreign_key="mm_pool_teams.id")
    eliminated: bool = Field(default=False)
    eliminated_round: Optional[str] = Field(default=None)
    total_payout: float = Field(default=0.0)
    verified: bool = Field(default=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class MmGame(SQLModel, table=True):
    __tablename__ = "mm_games"
    __table_args__ = (UniqueConstraint("mm_pool_id", "round", "game_number", name="unique_round_game"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    mm_pool_id: int = Field(foreign_key="mm_pools.id", index=True)
    round: str = Field(index=True)  # R64, R32, S16, E8, F4, FINAL
    region: Optional[str] = Field(default=None)  # None for F4 and FINAL
    game_number: int

    # Teams are mm_pool_teams rows (nullable until the slot is filled)
    higher_seed_team_id: Optional[int] = Field(default=None, foreign_key="mm_pool_teams.id")
    lower_seed_team_id: Optional[int] = Field(default=None, foreign_key="mm_pool_teams.id")
    higher_seed_entry_id: Optional[int] = Field(default=None, foreign_key="mm_entries.id")
    lower_seed_entry_id: Optional[int] = Field(default=None, foreign_key="mm_entries.id")

    spread: Optional[float] = Field(default=None)  # negative favors the higher seed
    higher_seed_score: Optional[int] = Field(default=None)
    lower_seed_score: Optional[int] = Field(default=None)
    status: str = Field(default="scheduled")  # scheduled, in_progress, final

    # Filled when final
    winning_team_id: Optional[int] = Field(default=None, foreign_key="mm_pool_teams.id")
    spread_covering_team_id: Optional[int] = Field(default=None, foreign_key="mm_pool_teams.id")
    advancing_entry_id: Optional[int] = Field(default=None, foreign_key="mm_entries.id")

    scheduled_time: Optional[datetime] = Field(default=None)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class MmEntryPayout(SQLModel, table=True):
    __tablename__ = "mm_entry_payouts"

    id: Optional[int] = Field(default=None, primary_key=True)
    mm_pool_id: int = Field(foreign_key="mm_pools.id", index=True)
    entry_id: int = Field(foreign_key="mm_entries.id", index=True)
    game_id: int = Field(foreign_key="mm_games.id", index=True)
    round: str
    payout_amount: float
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

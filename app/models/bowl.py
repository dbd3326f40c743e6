from datetime import datetime, UTC
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint


class BowlGame(SQLModel, table=True):
    __tablename__ = "bowl_games"

    id: Optional[int] = Field(default=None, primary_key=True)
    game_name: Optional[str] = Field(default=None)
    kickoff_at: Optional[datetime] = Field(default=None)
    status: str = Field(default="scheduled")  # scheduled, in_progress, final

    home_team_id: Optional[int] = Field(default=None, foreign_key="teams.id")
    away_team_id: Optional[int] = Field(default=None, foreign_key="teams.id")
    home_score: Optional[int] = Field(default=None)
    away_score: Optional[int] = Field(default=None)
    home_spread: Optional[float] = Field(default=None)  # negative favors home

    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class PoolGame(SQLModel, table=True):
    __tablename__ = "pool_games"
    __table_args__ = (UniqueConstraint("pool_id", "game_id", name="unique_pool_game"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    pool_id: int = Field(foreign_key="pools.id", index=True)
    game_id: int = Field(foreign_key="bowl_games.id", index=True)
    kind: str = Field(default="bowl")  # bowl, cfp
    label: Optional[str] = Field(default=None)


class BowlPick(SQLModel, table=True):
    __tablename__ = "bowl_picks"
    __table_args__ = (UniqueConstraint("entry_id", "pool_game_id", name="unique_entry_pool_game"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    entry_id: int = Field(foreign_key="pool_entries.id", index=True)
    pool_game_id: int = Field(foreign_key="pool_games.id", index=True)
    picked_team_id: Optional[int] = Field(default=None, foreign_key="teams.id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

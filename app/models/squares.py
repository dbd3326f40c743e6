from datetime import datetime, UTC
from typing import List, Optional
from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field, UniqueConstraint


class SquaresPool(SQLModel, table=True):
    __tablename__ = "sq_pools"

    id: Optional[int] = Field(default=None, primary_key=True)
    pool_id: int = Field(foreign_key="pools.id", unique=True, index=True)
    scoring_mode: str = Field(default="quarter")  # quarter, score_change
    reverse_scoring: bool = Field(default=False)

    # Digit permutations: row_numbers[i] is the digit shown on row i
    row_numbers: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))
    col_numbers: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))
    numbers_locked: bool = Field(default=False)

    q1_payout: Optional[float] = Field(default=None)
    halftime_payout: Optional[float] = Field(default=None)
    q3_payout: Optional[float] = Field(default=None)
    final_payout: Optional[float] = Field(default=None)
    per_change_payout: Optional[float] = Field(default=None)
    final_bonus_payout: Optional[float] = Field(default=None)


class Square(SQLModel, table=True):
    __tablename__ = "sq_squares"
    __table_args__ = (UniqueConstraint("sq_pool_id", "row_index", "col_index", name="unique_square"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    sq_pool_id: int = Field(foreign_key="sq_pools.id", index=True)
    row_index: int
    col_index: int
    participant_name: Optional[str] = Field(default=None)


class SquaresGame(SQLModel, table=True):
    __tablename__ = "sq_games"

    id: Optional[int] = Field(default=None, primary_key=True)
    sq_pool_id: int = Field(foreign_key="sq_pools.id", index=True)
    game_name: str
    home_team_id: Optional[int] = Field(default=None, foreign_key="teams.id")
    away_team_id: Optional[int] = Field(default=None, foreign_key="teams.id")
    status: str = Field(default="scheduled")
    home_score: Optional[int] = Field(default=None)
    away_score: Optional[int] = Field(default=None)

    # Period scores for quarter mode
    q1_home_score: Optional[int] = Field(default=None)
    q1_away_score: Optional[int] = Field(default=None)
    halftime_home_score: Optional[int] = Field(default=None)
    halftime_away_score: Optional[int] = Field(default=None)
    q3_home_score: Optional[int] = Field(default=None)
    q3_away_score: Optional[int] = Field(default=None)


class ScoreChange(SQLModel, table=True):
    __tablename__ = "sq_score_changes"
    __table_args__ = (UniqueConstraint("sq_game_id", "change_order", name="unique_change_order"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    sq_game_id: int = Field(foreign_key="sq_games.id", index=True)
    home_score: int
    away_score: int
    change_order: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SquaresWinner(SQLModel, table=True):
    __tablename__ = "sq_winners"

    id: Optional[int] = Field(default=None, primary_key=True)
    sq_game_id: int = Field(foreign_key="sq_games.id", index=True)
    square_id: Optional[int] = Field(default=None, foreign_key="sq_squares.id")
    win_type: str  # q1, halftime, q3, final, score_change, score_change_final (+ _reverse)
    winner_name: Optional[str] = Field(default=None)
    home_score: int
    away_score: int
    change_order: Optional[int] = Field(default=None)
    payout: Optional[float] = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

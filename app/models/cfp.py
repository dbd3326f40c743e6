from datetime import datetime, UTC
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint


class CfpSlot(SQLModel, table=True):
    """One game slot of a pool's playoff bracket (R1A..R1D, QFA..QFD, SFA, SFB, F)."""
    __tablename__ = "cfp_slots"
    __table_args__ = (UniqueConstraint("pool_id", "slot_key", name="unique_pool_slot"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    pool_id: int = Field(foreign_key="pools.id", index=True)
    slot_key: str = Field(max_length=4)

    # Team A is the first-round winner (or top seed) side, team B the bye/bottom side
    team_a_id: Optional[int] = Field(default=None, foreign_key="teams.id")
    team_b_id: Optional[int] = Field(default=None, foreign_key="teams.id")
    team_a_score: Optional[int] = Field(default=None)
    team_b_score: Optional[int] = Field(default=None)
    status: str = Field(default="scheduled")
    winner_team_id: Optional[int] = Field(default=None, foreign_key="teams.id")

    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class CfpPick(SQLModel, table=True):
    __tablename__ = "cfp_picks"
    __table_args__ = (UniqueConstraint("entry_id", "slot_key", name="unique_entry_slot"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    entry_id: int = Field(foreign_key="pool_entries.id", index=True)
    slot_key: str = Field(max_length=4)
    picked_team_id: Optional[int] = Field(default=None, foreign_key="teams.id")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

from datetime import datetime, UTC
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint


class Pool(SQLModel, table=True):
    __tablename__ = "pools"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    slug: str = Field(unique=True, index=True)
    pool_type: str = Field(index=True)  # bowl_buster, squares, march_madness
    demo_mode: bool = Field(default=False)

    # Bowl buster settings
    pick_against_spread: bool = Field(default=False)
    cfp_lock_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class PoolEntry(SQLModel, table=True):
    """A participant's entry in a bowl buster pool."""
    __tablename__ = "pool_entries"
    __table_args__ = (UniqueConstraint("pool_id", "display_name", name="unique_pool_entry_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    pool_id: int = Field(foreign_key="pools.id", index=True)
    display_name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

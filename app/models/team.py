from typing import Optional
from sqlmodel import SQLModel, Field


class Team(SQLModel, table=True):
    __tablename__ = "teams"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    abbrev: Optional[str] = Field(default=None, max_length=10)
    logo_url: Optional[str] = Field(default=None)
    color: Optional[str] = Field(default=None, max_length=20)

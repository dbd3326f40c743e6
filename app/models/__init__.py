from .team import Team
from .pool import Pool, PoolEntry
from .madness import MmPool, MmPoolTeam, MmEntry, MmGame, MmEntryPayout
from .bowl import BowlGame, PoolGame, BowlPick
from .cfp import CfpSlot, CfpPick
from .squares import SquaresPool, Square, SquaresGame, ScoreChange, SquaresWinner

__all__ = [
    "Team",
    "Pool",
    "PoolEntry",
    "MmPool",
    "MmPoolTeam",
    "MmEntry",
    "MmGame",
    "MmEntryPayout",
    "BowlGame",
    "PoolGame",
    "BowlPick",
    "CfpSlot",
    "CfpPick",
    "SquaresPool",
    "Square",
    "SquaresGame",
    "ScoreChange",
    "SquaresWinner",
]

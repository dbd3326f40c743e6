from datetime import datetime
from typing import Dict, List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from ..database import get_session
from ..dependencies import require_bowl_pool, service_errors
from ..models.pool import Pool
from ..services import cfp
from ..services.bowl import get_entry

router = APIRouter(prefix="/api/bowl/pools/{pool_id}/cfp", tags=["cfp bracket"])


class Matchup(BaseModel):
    team_a: str
    team_b: str


class BracketSetup(BaseModel):
    """Seeds 1-4 by name, and the four first-round games keyed R1A..R1D."""
    bye_teams: Dict[int, str]
    round1: Dict[str, Matchup]
    lock_at: Optional[datetime] = None


class CfpPickCreate(BaseModel):
    slot_key: str
    team_id: int


class SlotResult(BaseModel):
    team_a_score: Optional[int] = None
    team_b_score: Optional[int] = None
    status: str = "final"


class MatchupChange(BaseModel):
    team_a_id: int
    team_b_id: int
    expected_pick_count: Optional[int] = None


def _slot_view(slot) -> dict:
    return {
        "slot_key": slot.slot_key,
        "team_a_id": slot.team_a_id,
        "team_b_id": slot.team_b_id,
        "team_a_score": slot.team_a_score,
        "team_b_score": slot.team_b_score,
        "status": slot.status,
        "winner_team_id": slot.winner_team_id,
    }


@router.post("")
async def setup_bracket(
    payload: BracketSetup,
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
):
    round1 = {key: (m.team_a, m.team_b) for key, m in payload.round1.items()}
    with service_errors():
        slots = cfp.setup_bracket(db, pool, payload.bye_teams, round1, lock_at=payload.lock_at)
    return [_slot_view(slots[key]) for key in cfp.SLOT_KEYS]


@router.get("")
async def get_bracket(
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
) -> List[dict]:
    slots = cfp.get_slots(db, pool)
    return [_slot_view(slots[key]) for key in cfp.SLOT_KEYS if key in slots]


@router.get("/entries/{entry_id}")
async def get_entry_bracket(
    entry_id: int,
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
):
    """An entry's picks with the teams each slot shows for them."""
    with service_errors():
        entry = get_entry(db, pool, entry_id)
    slots = cfp.get_slots(db, pool)
    picks = cfp.get_entry_picks(db, entry)
    return [
        {
            "slot_key": key,
            "teams": list(cfp.slot_teams(key, picks, slots)),
            "picked_team_id": picks.get(key),
        }
        for key in cfp.SLOT_KEYS
    ]


@router.post("/entries/{entry_id}/picks")
async def save_pick(
    entry_id: int,
    payload: CfpPickCreate,
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        entry = get_entry(db, pool, entry_id)
        return cfp.save_cfp_pick(db, pool, entry, payload.slot_key, payload.team_id)


@router.put("/slots/{slot_key}/result")
async def record_result(
    slot_key: str,
    payload: SlotResult,
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        slot = cfp.record_slot_result(db, pool, slot_key, payload.team_a_score, payload.team_b_score, payload.status)
    return _slot_view(slot)


@router.post("/slots/{slot_key}/teams/preview")
async def preview_matchup_change(
    slot_key: str,
    payload: MatchupChange,
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        return cfp.preview_matchup_change(db, pool, slot_key, payload.team_a_id, payload.team_b_id)


@router.post("/slots/{slot_key}/teams/confirm")
async def confirm_matchup_change(
    slot_key: str,
    payload: MatchupChange,
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        return cfp.confirm_matchup_change(
            db, pool, slot_key, payload.team_a_id, payload.team_b_id,
            expected_pick_count=payload.expected_pick_count
        )


@router.get("/standings")
async def get_standings(
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
):
    return cfp.get_cfp_standings(db, pool)

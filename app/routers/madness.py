from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session

from ..config import DEFAULT_PUSH_RULE
from ..database import get_session
from ..dependencies import require_mm_pool, service_errors
from ..models.madness import MmGame, MmPool
from ..models.pool import Pool
from ..services import madness, madness_demo

router = APIRouter(prefix="/api/madness", tags=["march madness"])


class MmPoolCreate(BaseModel):
    """Schema for creating a blind-draw pool."""
    name: str
    tournament_year: int
    push_rule: str = DEFAULT_PUSH_RULE
    pot_amount: float = 0.0
    sweet16_payout_pct: Optional[float] = None
    elite8_payout_pct: Optional[float] = None
    final4_payout_pct: Optional[float] = None
    runnerup_payout_pct: Optional[float] = None
    champion_payout_pct: Optional[float] = None
    demo_mode: bool = False


class MmPoolResponse(BaseModel):
    id: int
    pool_id: int
    tournament_year: int
    push_rule: str
    pot_amount: float
    sweet16_payout_pct: float
    elite8_payout_pct: float
    final4_payout_pct: float
    runnerup_payout_pct: float
    champion_payout_pct: float
    draw_completed: bool


class TeamCreate(BaseModel):
    name: str
    seed: int = Field(ge=1, le=16)
    region: str
    abbrev: Optional[str] = None


class EntryCreate(BaseModel):
    display_name: str
    verified: bool = False


class EntryVerify(BaseModel):
    verified: bool = True


class SpreadUpdate(BaseModel):
    """Points added to the higher seed's score; negative favors the higher seed."""
    spread: Optional[float] = None


class ScoreUpdate(BaseModel):
    higher_seed_score: Optional[int] = None
    lower_seed_score: Optional[int] = None
    status: str = "final"


def _pool_game(db: Session, mm_pool: MmPool, game_id: int) -> MmGame:
    with service_errors():
        game = madness.get_game(db, game_id)
    if game.mm_pool_id != mm_pool.id:
        raise HTTPException(status_code=404, detail="Game not found")
    return game


def _require_demo(db: Session, mm_pool: MmPool):
    pool = db.get(Pool, mm_pool.pool_id)
    if not pool or not pool.demo_mode:
        raise HTTPException(status_code=400, detail="Demo actions are only available in demo pools")


@router.post("/pools", response_model=MmPoolResponse)
async def create_pool(
    payload: MmPoolCreate,
    db: Session = Depends(get_session)
):
    payouts = {
        field: value
        for field, value in payload.model_dump().items()
        if field.endswith("_payout_pct") and value is not None
    }
    with service_errors():
        mm_pool = madness.create_mm_pool(
            db,
            payload.name,
            payload.tournament_year,
            push_rule=payload.push_rule,
            pot_amount=payload.pot_amount,
            payouts=payouts,
            demo_mode=payload.demo_mode,
        )
    return mm_pool


@router.get("/pools/{mm_pool_id}", response_model=MmPoolResponse)
async def get_pool(mm_pool: MmPool = Depends(require_mm_pool)):
    return mm_pool


@router.post("/pools/{mm_pool_id}/teams")
async def add_team(
    payload: TeamCreate,
    mm_pool: MmPool = Depends(require_mm_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        team = madness.add_pool_team(db, mm_pool, payload.name, payload.seed, payload.region, abbrev=payload.abbrev)
    return team


@router.get("/pools/{mm_pool_id}/teams")
async def list_teams(
    mm_pool: MmPool = Depends(require_mm_pool),
    db: Session = Depends(get_session)
):
    return madness.get_pool_teams(db, mm_pool.id)


@router.post("/pools/{mm_pool_id}/entries")
async def add_entry(
    payload: EntryCreate,
    mm_pool: MmPool = Depends(require_mm_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        entry = madness.add_entry(db, mm_pool, payload.display_name, verified=payload.verified)
    return entry


@router.get("/pools/{mm_pool_id}/entries")
async def list_entries(
    mm_pool: MmPool = Depends(require_mm_pool),
    db: Session = Depends(get_session)
):
    return madness.get_entries(db, mm_pool.id)


@router.post("/pools/{mm_pool_id}/entries/{entry_id}/verify")
async def verify_entry(
    entry_id: int,
    payload: EntryVerify,
    mm_pool: MmPool = Depends(require_mm_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        entry = madness.set_entry_verified(db, mm_pool, entry_id, payload.verified)
    return entry


@router.delete("/pools/{mm_pool_id}/entries/{entry_id}")
async def delete_entry(
    entry_id: int,
    mm_pool: MmPool = Depends(require_mm_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        madness.delete_entry(db, mm_pool, entry_id)
    return {"success": True}


@router.post("/pools/{mm_pool_id}/draw")
async def run_draw(
    mm_pool: MmPool = Depends(require_mm_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        return madness.run_draw(db, mm_pool)


@router.get("/pools/{mm_pool_id}/bracket")
async def get_bracket(
    mm_pool: MmPool = Depends(require_mm_pool),
    db: Session = Depends(get_session)
) -> Dict[str, List[Dict]]:
    return madness.get_bracket(db, mm_pool)


@router.get("/pools/{mm_pool_id}/standings")
async def get_standings(
    mm_pool: MmPool = Depends(require_mm_pool),
    db: Session = Depends(get_session)
):
    champion = madness.get_champion(db, mm_pool)
    return {
        "standings": madness.get_standings(db, mm_pool.id),
        "champion": champion.display_name if champion else None,
    }


@router.put("/pools/{mm_pool_id}/games/{game_id}/spread")
async def update_spread(
    game_id: int,
    payload: SpreadUpdate,
    mm_pool: MmPool = Depends(require_mm_pool),
    db: Session = Depends(get_session)
):
    game = _pool_game(db, mm_pool, game_id)
    with service_errors():
        game = madness.enter_spread(db, game, payload.spread)
    return {"id": game.id, "spread": game.spread}


@router.put("/pools/{mm_pool_id}/games/{game_id}/score")
async def update_score(
    game_id: int,
    payload: ScoreUpdate,
    mm_pool: MmPool = Depends(require_mm_pool),
    db: Session = Depends(get_session)
):
    """Enter or correct a score. A final score runs advancement."""
    game = _pool_game(db, mm_pool, game_id)
    with service_errors():
        madness.enter_score(db, game, payload.higher_seed_score, payload.lower_seed_score, payload.status)
    return madness.get_bracket(db, mm_pool)[game.round][game.game_number - 1]


# Demo pools

@router.post("/pools/{mm_pool_id}/demo/seed")
async def seed_demo(
    mm_pool: MmPool = Depends(require_mm_pool),
    db: Session = Depends(get_session)
):
    _require_demo(db, mm_pool)
    with service_errors():
        return madness_demo.seed_demo(db, mm_pool)


@router.post("/pools/{mm_pool_id}/demo/simulate")
async def simulate_round(
    mm_pool: MmPool = Depends(require_mm_pool),
    db: Session = Depends(get_session)
):
    _require_demo(db, mm_pool)
    with service_errors():
        return madness_demo.simulate_round(db, mm_pool)


@router.post("/pools/{mm_pool_id}/demo/reset")
async def reset_pool(
    mm_pool: MmPool = Depends(require_mm_pool),
    db: Session = Depends(get_session)
):
    _require_demo(db, mm_pool)
    return madness_demo.reset_pool(db, mm_pool)

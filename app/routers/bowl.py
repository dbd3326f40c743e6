from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from ..database import get_session
from ..dependencies import require_bowl_pool, service_errors
from ..models.bowl import BowlGame, PoolGame
from ..models.pool import Pool
from ..services import bowl
from ..services.pools import add_pool_entry, create_pool

router = APIRouter(prefix="/api/bowl", tags=["bowl picks"])


class BowlPoolCreate(BaseModel):
    name: str
    pick_against_spread: bool = False
    demo_mode: bool = False


class EntryCreate(BaseModel):
    display_name: str


class BowlGameCreate(BaseModel):
    """Schema for adding a bowl game to a pool."""
    home_team: str
    away_team: str
    game_name: Optional[str] = None
    kickoff_at: Optional[datetime] = None
    home_spread: Optional[float] = None


class PickCreate(BaseModel):
    pool_game_id: int
    team_id: int


class PickResponse(BaseModel):
    id: int
    entry_id: int
    pool_game_id: int
    picked_team_id: int


class ResultUpdate(BaseModel):
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    status: str = "final"


class SpreadUpdate(BaseModel):
    home_spread: Optional[float] = None


class TeamChange(BaseModel):
    home_team_id: int
    away_team_id: int
    expected_pick_count: Optional[int] = None


def _pool_game(db: Session, pool: Pool, pool_game_id: int) -> PoolGame:
    with service_errors():
        pool_game = bowl.get_pool_game(db, pool_game_id)
    if pool_game.pool_id != pool.id:
        raise HTTPException(status_code=404, detail="Game not found")
    return pool_game


@router.post("/pools")
async def create_bowl_pool(
    payload: BowlPoolCreate,
    db: Session = Depends(get_session)
):
    with service_errors():
        pool = create_pool(
            db,
            payload.name,
            "bowl_buster",
            demo_mode=payload.demo_mode,
            pick_against_spread=payload.pick_against_spread,
        )
    return pool


@router.post("/pools/{pool_id}/entries")
async def add_entry(
    payload: EntryCreate,
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        return add_pool_entry(db, pool, payload.display_name)


@router.post("/pools/{pool_id}/games")
async def add_game(
    payload: BowlGameCreate,
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        pool_game = bowl.add_bowl_game(
            db,
            pool,
            payload.home_team,
            payload.away_team,
            game_name=payload.game_name,
            kickoff_at=payload.kickoff_at,
            home_spread=payload.home_spread,
        )
    game = db.get(BowlGame, pool_game.game_id)
    return {
        "pool_game_id": pool_game.id,
        "game_id": game.id,
        "home_team_id": game.home_team_id,
        "away_team_id": game.away_team_id,
    }


@router.get("/pools/{pool_id}/games")
async def list_games(
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
):
    return bowl.get_pool_game_views(db, pool)


@router.post("/pools/{pool_id}/entries/{entry_id}/picks", response_model=PickResponse)
async def save_pick(
    entry_id: int,
    payload: PickCreate,
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        entry = bowl.get_entry(db, pool, entry_id)
        pick = bowl.save_pick(db, pool, entry, payload.pool_game_id, payload.team_id)
    return pick


@router.put("/pools/{pool_id}/games/{pool_game_id}/result")
async def update_result(
    pool_game_id: int,
    payload: ResultUpdate,
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
):
    pool_game = _pool_game(db, pool, pool_game_id)
    game = db.get(BowlGame, pool_game.game_id)
    with service_errors():
        bowl.update_game_result(db, game, payload.home_score, payload.away_score, payload.status)
    return next(v for v in bowl.get_pool_game_views(db, pool) if v["pool_game_id"] == pool_game.id)


@router.put("/pools/{pool_id}/games/{pool_game_id}/spread")
async def update_spread(
    pool_game_id: int,
    payload: SpreadUpdate,
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
):
    pool_game = _pool_game(db, pool, pool_game_id)
    game = db.get(BowlGame, pool_game.game_id)
    with service_errors():
        game = bowl.set_home_spread(db, game, payload.home_spread)
    return {"game_id": game.id, "home_spread": game.home_spread}


@router.post("/pools/{pool_id}/games/{pool_game_id}/teams/preview")
async def preview_team_change(
    pool_game_id: int,
    payload: TeamChange,
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
):
    pool_game = _pool_game(db, pool, pool_game_id)
    with service_errors():
        return bowl.preview_team_change(db, pool_game, payload.home_team_id, payload.away_team_id)


@router.post("/pools/{pool_id}/games/{pool_game_id}/teams/confirm")
async def confirm_team_change(
    pool_game_id: int,
    payload: TeamChange,
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
):
    pool_game = _pool_game(db, pool, pool_game_id)
    with service_errors():
        return bowl.confirm_team_change(
            db, pool_game, payload.home_team_id, payload.away_team_id,
            expected_pick_count=payload.expected_pick_count
        )


@router.get("/pools/{pool_id}/standings")
async def get_standings(
    pool: Pool = Depends(require_bowl_pool),
    db: Session = Depends(get_session)
) -> List[dict]:
    return bowl.get_entry_standings(db, pool)

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from ..database import get_session
from ..dependencies import require_squares_pool, service_errors
from ..models.squares import SquaresPool
from ..services import squares

router = APIRouter(prefix="/api/squares", tags=["squares"])


class SquaresPoolCreate(BaseModel):
    """Schema for creating a squares pool."""
    name: str
    scoring_mode: str = "quarter"
    reverse_scoring: bool = False
    q1_payout: Optional[float] = None
    halftime_payout: Optional[float] = None
    q3_payout: Optional[float] = None
    final_payout: Optional[float] = None
    per_change_payout: Optional[float] = None
    final_bonus_payout: Optional[float] = None
    demo_mode: bool = False


class SquareAssign(BaseModel):
    row_index: int
    col_index: int
    participant_name: Optional[str] = None


class GameCreate(BaseModel):
    game_name: str
    home_team: Optional[str] = None
    away_team: Optional[str] = None


class PeriodScore(BaseModel):
    period: str
    home_score: int
    away_score: int


class ScoreChangeCreate(BaseModel):
    home_score: int
    away_score: int


class WinnerResponse(BaseModel):
    id: int
    square_id: Optional[int]
    win_type: str
    winner_name: Optional[str]
    home_score: int
    away_score: int
    change_order: Optional[int] = None
    payout: Optional[float] = None


@router.post("/pools")
async def create_pool(
    payload: SquaresPoolCreate,
    db: Session = Depends(get_session)
):
    payouts = {
        field: value
        for field, value in payload.model_dump().items()
        if field.endswith("_payout")
    }
    with service_errors():
        sq_pool = squares.create_squares_pool(
            db,
            payload.name,
            scoring_mode=payload.scoring_mode,
            reverse_scoring=payload.reverse_scoring,
            payouts=payouts,
            demo_mode=payload.demo_mode,
        )
    return squares.get_grid(db, sq_pool)


@router.get("/pools/{pool_id}")
async def get_grid(
    sq_pool: SquaresPool = Depends(require_squares_pool),
    db: Session = Depends(get_session)
):
    return squares.get_grid(db, sq_pool)


@router.put("/pools/{pool_id}/squares")
async def assign_square(
    payload: SquareAssign,
    sq_pool: SquaresPool = Depends(require_squares_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        return squares.assign_square(db, sq_pool, payload.row_index, payload.col_index, payload.participant_name)


@router.post("/pools/{pool_id}/numbers")
async def lock_numbers(
    sq_pool: SquaresPool = Depends(require_squares_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        sq_pool = squares.lock_numbers(db, sq_pool)
    return {"row_numbers": sq_pool.row_numbers, "col_numbers": sq_pool.col_numbers}


@router.post("/pools/{pool_id}/games")
async def add_game(
    payload: GameCreate,
    sq_pool: SquaresPool = Depends(require_squares_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        return squares.add_game(db, sq_pool, payload.game_name, payload.home_team, payload.away_team)


@router.post("/pools/{pool_id}/games/{game_id}/periods", response_model=List[WinnerResponse])
async def record_period(
    game_id: int,
    payload: PeriodScore,
    sq_pool: SquaresPool = Depends(require_squares_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        game = squares.get_game(db, sq_pool, game_id)
        return squares.record_period_scores(db, sq_pool, game, payload.period, payload.home_score, payload.away_score)


@router.post("/pools/{pool_id}/games/{game_id}/score-changes", response_model=List[WinnerResponse])
async def record_score_change(
    game_id: int,
    payload: ScoreChangeCreate,
    sq_pool: SquaresPool = Depends(require_squares_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        game = squares.get_game(db, sq_pool, game_id)
        return squares.record_score_change(db, sq_pool, game, payload.home_score, payload.away_score)


@router.post("/pools/{pool_id}/games/{game_id}/finalize", response_model=List[WinnerResponse])
async def finalize_game(
    game_id: int,
    sq_pool: SquaresPool = Depends(require_squares_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        game = squares.get_game(db, sq_pool, game_id)
        return squares.finalize_score_change_game(db, sq_pool, game)


@router.get("/pools/{pool_id}/games/{game_id}/winners", response_model=List[WinnerResponse])
async def list_winners(
    game_id: int,
    sq_pool: SquaresPool = Depends(require_squares_pool),
    db: Session = Depends(get_session)
):
    with service_errors():
        game = squares.get_game(db, sq_pool, game_id)
    return squares.get_winners(db, game)


@router.get("/pools/{pool_id}/leaderboard")
async def get_leaderboard(
    sq_pool: SquaresPool = Depends(require_squares_pool),
    db: Session = Depends(get_session)
):
    if not sq_pool.numbers_locked:
        raise HTTPException(status_code=400, detail="Numbers are not locked yet")
    return squares.get_payout_leaderboard(db, sq_pool)

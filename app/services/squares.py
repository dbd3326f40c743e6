"""
Squares pools: a 10x10 grid whose rows and columns are labelled with shuffled
digits. A square wins when its row digit matches the last digit of the home
score and its column digit the last digit of the away score.

Two scoring modes:
  - quarter: winners at the end of Q1, halftime, Q3 and the final.
  - score_change: every score change produces a winner, plus a bonus for the
    final score.

With reverse scoring on, the square with the digits swapped also wins
(only when the two digits differ, otherwise it is the same square).
"""

import logging
import random
from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlmodel import Session, select

from ..models.pool import Pool
from ..models.squares import ScoreChange, Square, SquaresGame, SquaresPool, SquaresWinner
from .evaluator import FINAL, IN_PROGRESS
from .pools import create_pool, get_or_create_team, get_pool

logger = logging.getLogger("app.squares")

GRID_SIZE = 10
SCORING_MODES = ("quarter", "score_change")
PERIODS = ("q1", "halftime", "q3", "final")

PERIOD_PAYOUT_FIELDS = {
    "q1": "q1_payout",
    "halftime": "halftime_payout",
    "q3": "q3_payout",
    "final": "final_payout",
}


# ---------------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------------

def shuffle_digits(rng: Optional[random.Random] = None) -> List[int]:
    """The digits 0-9 in Fisher-Yates shuffled order."""
    rng = rng or random.Random()
    digits = list(range(GRID_SIZE))
    for i in range(len(digits) - 1, 0, -1):
        j = rng.randint(0, i)
        digits[i], digits[j] = digits[j], digits[i]
    return digits


def generate_grid_numbers(rng: Optional[random.Random] = None) -> Tuple[List[int], List[int]]:
    rng = rng or random.Random()
    return shuffle_digits(rng), shuffle_digits(rng)


def is_valid_grid_numbers(numbers: Optional[Sequence[int]]) -> bool:
    if not numbers or len(numbers) != GRID_SIZE:
        return False
    return sorted(numbers) == list(range(GRID_SIZE))


def calculate_winning_square_position(
    home_score: int,
    away_score: int,
    row_numbers: Sequence[int],
    col_numbers: Sequence[int],
    reverse: bool = False,
) -> Tuple[int, int]:
    """(row_index, col_index) of the winning square. Reverse swaps the digits."""
    home_digit = home_score % 10
    away_digit = away_score % 10
    if reverse:
        home_digit, away_digit = away_digit, home_digit
    return list(row_numbers).index(home_digit), list(col_numbers).index(away_digit)


def find_winning_square(
    squares: Sequence[Square],
    home_score: int,
    away_score: int,
    row_numbers: Sequence[int],
    col_numbers: Sequence[int],
    reverse: bool = False,
) -> Optional[Square]:
    row_index, col_index = calculate_winning_square_position(
        home_score, away_score, row_numbers, col_numbers, reverse
    )
    for square in squares:
        if square.row_index == row_index and square.col_index == col_index:
            return square
    return None


# ---------------------------------------------------------------------------
# Score validation
# ---------------------------------------------------------------------------

def validate_first_score_change(home_score: int, away_score: int):
    if home_score != 0 or away_score != 0:
        raise ValueError("First score must be 0-0")


def validate_score_change(
    home_score: int,
    away_score: int,
    previous_home: int,
    previous_away: int,
    home_name: str = "Home",
    away_name: str = "Away",
):
    """Scores never go down, and exactly one team scores per change."""
    if home_score < previous_home:
        raise ValueError(f"{home_name} score cannot be less than {previous_home}")
    if away_score < previous_away:
        raise ValueError(f"{away_name} score cannot be less than {previous_away}")

    home_changed = home_score != previous_home
    away_changed = away_score != previous_away
    if home_changed and away_changed:
        raise ValueError("Only one team can score at a time")
    if not home_changed and not away_changed:
        raise ValueError("Score must change from the previous entry")


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

def create_squares_pool(
    db: Session,
    name: str,
    scoring_mode: str = "quarter",
    reverse_scoring: bool = False,
    payouts: Optional[Dict[str, Optional[float]]] = None,
    demo_mode: bool = False,
) -> SquaresPool:
    if scoring_mode not in SCORING_MODES:
        raise ValueError(f"Unknown scoring mode '{scoring_mode}'")

    pool = create_pool(db, name, "squares", demo_mode=demo_mode, commit=False)
    sq_pool = SquaresPool(pool_id=pool.id, scoring_mode=scoring_mode, reverse_scoring=reverse_scoring)
    for field, amount in (payouts or {}).items():
        if not field.endswith("_payout") or not hasattr(sq_pool, field):
            raise ValueError(f"Unknown payout '{field}'")
        if amount is not None and amount < 0:
            raise ValueError("Payouts cannot be negative")
        setattr(sq_pool, field, amount)
    db.add(sq_pool)
    db.flush()

    for row in range(GRID_SIZE):
        for col in range(GRID_SIZE):
            db.add(Square(sq_pool_id=sq_pool.id, row_index=row, col_index=col))

    db.commit()
    db.refresh(sq_pool)
    return sq_pool


def get_squares_pool(db: Session, pool_id: int) -> SquaresPool:
    get_pool(db, pool_id, pool_type="squares")
    sq_pool = db.exec(select(SquaresPool).where(SquaresPool.pool_id == pool_id)).first()
    if not sq_pool:
        raise LookupError("Squares pool not found")
    return sq_pool


def get_squares(db: Session, sq_pool: SquaresPool) -> List[Square]:
    return db.exec(
        select(Square)
        .where(Square.sq_pool_id == sq_pool.id)
        .order_by(Square.row_index, Square.col_index)
    ).all()


def assign_square(db: Session, sq_pool: SquaresPool, row_index: int, col_index: int, participant_name: Optional[str]) -> Square:
    """Put a name on a square, or clear it with None."""
    if not (0 <= row_index < GRID_SIZE and 0 <= col_index < GRID_SIZE):
        raise ValueError("Square is outside the grid")
    square = db.exec(
        select(Square).where(
            Square.sq_pool_id == sq_pool.id,
            Square.row_index == row_index,
            Square.col_index == col_index
        )
    ).first()
    if not square:
        raise LookupError("Square not found")

    name = participant_name.strip() if participant_name else None
    if name and square.participant_name and square.participant_name != name:
        raise ValueError(f"Square already taken by {square.participant_name}")

    square.participant_name = name or None
    db.add(square)
    db.commit()
    db.refresh(square)
    return square


def lock_numbers(db: Session, sq_pool: SquaresPool, rng: Optional[random.Random] = None) -> SquaresPool:
    """Draw the row and column digits. Once locked they never change."""
    if sq_pool.numbers_locked:
        raise ValueError("Numbers are already locked")

    rows, cols = generate_grid_numbers(rng)
    sq_pool.row_numbers = rows
    sq_pool.col_numbers = cols
    sq_pool.numbers_locked = True
    db.add(sq_pool)
    db.commit()
    db.refresh(sq_pool)
    logger.info("Locked numbers for squares pool %s", sq_pool.id)
    return sq_pool


def add_game(
    db: Session,
    sq_pool: SquaresPool,
    game_name: str,
    home_team: Optional[str] = None,
    away_team: Optional[str] = None,
) -> SquaresGame:
    game = SquaresGame(sq_pool_id=sq_pool.id, game_name=game_name)
    if home_team:
        game.home_team_id = get_or_create_team(db, home_team).id
    if away_team:
        game.away_team_id = get_or_create_team(db, away_team).id
    db.add(game)
    db.commit()
    db.refresh(game)
    return game


def get_game(db: Session, sq_pool: SquaresPool, game_id: int) -> SquaresGame:
    game = db.get(SquaresGame, game_id)
    if not game or game.sq_pool_id != sq_pool.id:
        raise LookupError("Game not found")
    return game


# ---------------------------------------------------------------------------
# Winners
# ---------------------------------------------------------------------------

def _square_at(db: Session, sq_pool: SquaresPool, row_index: int, col_index: int) -> Optional[Square]:
    return db.exec(
        select(Square).where(
            Square.sq_pool_id == sq_pool.id,
            Square.row_index == row_index,
            Square.col_index == col_index
        )
    ).first()


def _record_winners(
    db: Session,
    sq_pool: SquaresPool,
    game: SquaresGame,
    win_type: str,
    home_score: int,
    away_score: int,
    payout: Optional[float],
    change_order: Optional[int] = None,
) -> List[SquaresWinner]:
    orientations = [(win_type, False)]
    if sq_pool.reverse_scoring and home_score % 10 != away_score % 10:
        orientations.append((f"{win_type}_reverse", True))

    winners = []
    for kind, reverse in orientations:
        row_index, col_index = calculate_winning_square_position(
            home_score, away_score, sq_pool.row_numbers, sq_pool.col_numbers, reverse
        )
        square = _square_at(db, sq_pool, row_index, col_index)
        winner = SquaresWinner(
            sq_game_id=game.id,
            square_id=square.id if square else None,
            win_type=kind,
            winner_name=square.participant_name if square else None,
            home_score=home_score,
            away_score=away_score,
            change_order=change_order,
            payout=payout,
        )
        db.add(winner)
        winners.append(winner)
        logger.info(
            "Squares game %s: %s winner %s (%s-%s)",
            game.id, kind, winner.winner_name or "unassigned", home_score, away_score
        )
    return winners


def _clear_winners(db: Session, game: SquaresGame, win_types: Sequence[str]):
    for winner in db.exec(
        select(SquaresWinner).where(
            SquaresWinner.sq_game_id == game.id,
            SquaresWinner.win_type.in_(list(win_types))
        )
    ).all():
        db.delete(winner)


def _require_scorable(sq_pool: SquaresPool, mode: str):
    if sq_pool.scoring_mode != mode:
        raise ValueError(f"Pool does not use {mode} scoring")
    if not sq_pool.numbers_locked:
        raise ValueError("Numbers must be locked before scores are entered")


def record_period_scores(
    db: Session,
    sq_pool: SquaresPool,
    game: SquaresGame,
    period: str,
    home_score: int,
    away_score: int,
) -> List[SquaresWinner]:
    """Quarter mode: score at the end of a period. Re-entering a period replaces its winners."""
    _require_scorable(sq_pool, "quarter")
    if period not in PERIODS:
        raise ValueError(f"Unknown period '{period}'")
    if home_score < 0 or away_score < 0:
        raise ValueError("Scores cannot be negative")

    if period == "final":
        game.home_score = home_score
        game.away_score = away_score
        game.status = FINAL
    else:
        setattr(game, f"{period}_home_score", home_score)
        setattr(game, f"{period}_away_score", away_score)
        if game.status != FINAL:
            game.status = IN_PROGRESS
            game.home_score = home_score
            game.away_score = away_score
    db.add(game)

    _clear_winners(db, game, [period, f"{period}_reverse"])
    payout = getattr(sq_pool, PERIOD_PAYOUT_FIELDS[period])
    winners = _record_winners(db, sq_pool, game, period, home_score, away_score, payout)
    db.commit()
    for winner in winners:
        db.refresh(winner)
    return winners


def get_score_changes(db: Session, game: SquaresGame) -> List[ScoreChange]:
    return db.exec(
        select(ScoreChange)
        .where(ScoreChange.sq_game_id == game.id)
        .order_by(ScoreChange.change_order)
    ).all()


def record_score_change(
    db: Session,
    sq_pool: SquaresPool,
    game: SquaresGame,
    home_score: int,
    away_score: int,
) -> List[SquaresWinner]:
    """Score-change mode: log the next score and record who it pays."""
    _require_scorable(sq_pool, "score_change")
    if game.status == FINAL:
        raise ValueError("Game is already final")

    changes = get_score_changes(db, game)
    if not changes:
        validate_first_score_change(home_score, away_score)
    else:
        last = changes[-1]
        validate_score_change(home_score, away_score, last.home_score, last.away_score)

    change_order = len(changes) + 1
    db.add(ScoreChange(
        sq_game_id=game.id,
        home_score=home_score,
        away_score=away_score,
        change_order=change_order,
    ))

    game.home_score = home_score
    game.away_score = away_score
    game.status = IN_PROGRESS
    db.add(game)

    winners = _record_winners(
        db, sq_pool, game, "score_change", home_score, away_score,
        sq_pool.per_change_payout, change_order=change_order
    )
    db.commit()
    for winner in winners:
        db.refresh(winner)
    return winners


def finalize_score_change_game(db: Session, sq_pool: SquaresPool, game: SquaresGame) -> List[SquaresWinner]:
    """Mark the game final and pay the final bonus on the last score."""
    _require_scorable(sq_pool, "score_change")
    if game.status == FINAL:
        raise ValueError("Game is already final")

    changes = get_score_changes(db, game)
    if not changes:
        raise ValueError("No scores recorded for this game")
    last = changes[-1]

    game.status = FINAL
    db.add(game)
    winners = _record_winners(
        db, sq_pool, game, "score_change_final", last.home_score, last.away_score,
        sq_pool.final_bonus_payout, change_order=last.change_order
    )
    db.commit()
    for winner in winners:
        db.refresh(winner)
    return winners


def get_winners(db: Session, game: SquaresGame) -> List[SquaresWinner]:
    return db.exec(
        select(SquaresWinner)
        .where(SquaresWinner.sq_game_id == game.id)
        .order_by(SquaresWinner.id)
    ).all()


def get_payout_leaderboard(db: Session, sq_pool: SquaresPool) -> List[Dict[str, Any]]:
    """Total winnings per participant across the pool's games."""
    game_ids = [g.id for g in db.exec(select(SquaresGame).where(SquaresGame.sq_pool_id == sq_pool.id)).all()]
    if not game_ids:
        return []

    totals = defaultdict(lambda: {"wins": 0, "total_payout": 0.0})
    for winner in db.exec(select(SquaresWinner).where(SquaresWinner.sq_game_id.in_(game_ids))).all():
        if not winner.winner_name:
            continue
        row = totals[winner.winner_name]
        row["wins"] += 1
        row["total_payout"] += winner.payout or 0.0

    leaderboard = [{"participant_name": name, **row} for name, row in totals.items()]
    leaderboard.sort(key=lambda r: (-r["total_payout"], -r["wins"], r["participant_name"]))
    return leaderboard


def get_grid(db: Session, sq_pool: SquaresPool) -> Dict[str, Any]:
    pool = db.get(Pool, sq_pool.pool_id)
    grid = [[None] * GRID_SIZE for _ in range(GRID_SIZE)]
    for square in get_squares(db, sq_pool):
        grid[square.row_index][square.col_index] = square.participant_name
    return {
        "pool_id": pool.id,
        "name": pool.name,
        "scoring_mode": sq_pool.scoring_mode,
        "reverse_scoring": sq_pool.reverse_scoring,
        "numbers_locked": sq_pool.numbers_locked,
        "row_numbers": sq_pool.row_numbers,
        "col_numbers": sq_pool.col_numbers,
        "grid": grid,
    }

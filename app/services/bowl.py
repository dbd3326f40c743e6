"""
Bowl pick'em: one pick per bowl game, graded straight up or against the spread.
"""

import logging
from datetime import datetime, timedelta, UTC
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from ..config import BOWL_LOCK_MINUTES
from ..models.bowl import BowlGame, BowlPick, PoolGame
from ..models.pool import Pool, PoolEntry
from ..models.team import Team
from .evaluator import (
    FINAL,
    HIGHER,
    IN_PROGRESS,
    LOWER,
    GameOutcome,
    evaluate,
    format_spread,
)
from .pools import get_or_create_team
from .validation import validate_score_entry, validate_spread

logger = logging.getLogger("app.bowl")


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands datetimes back naive; they are stored as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def lock_time_for_game(game: BowlGame) -> Optional[datetime]:
    kickoff = as_utc(game.kickoff_at)
    if kickoff is None:
        return None
    return kickoff - timedelta(minutes=BOWL_LOCK_MINUTES)


def is_game_locked(game: BowlGame, now: Optional[datetime] = None, demo_mode: bool = False) -> bool:
    """Picks lock shortly before kickoff, and for good once the game starts."""
    if demo_mode:
        return False
    if game.status in (IN_PROGRESS, FINAL):
        return True
    lock_time = lock_time_for_game(game)
    if lock_time is None:
        return False
    return (as_utc(now) or datetime.now(UTC)) >= lock_time


def add_bowl_game(
    db: Session,
    pool: Pool,
    home_team: str,
    away_team: str,
    game_name: Optional[str] = None,
    kickoff_at: Optional[datetime] = None,
    home_spread: Optional[float] = None,
    kind: str = "bowl",
    label: Optional[str] = None,
) -> PoolGame:
    validate_spread(home_spread)
    home = get_or_create_team(db, home_team)
    away = get_or_create_team(db, away_team)
    if home.id == away.id:
        raise ValueError("A game needs two different teams")

    game = BowlGame(
        game_name=game_name,
        kickoff_at=kickoff_at,
        home_team_id=home.id,
        away_team_id=away.id,
        home_spread=home_spread,
    )
    db.add(game)
    db.flush()

    pool_game = PoolGame(pool_id=pool.id, game_id=game.id, kind=kind, label=label or game_name)
    db.add(pool_game)
    db.commit()
    db.refresh(pool_game)
    return pool_game


def get_pool_game(db: Session, pool_game_id: int) -> PoolGame:
    pool_game = db.get(PoolGame, pool_game_id)
    if not pool_game:
        raise LookupError("Game not found")
    return pool_game


def get_entry(db: Session, pool: Pool, entry_id: int) -> PoolEntry:
    entry = db.get(PoolEntry, entry_id)
    if not entry or entry.pool_id != pool.id:
        raise LookupError("Entry not found")
    return entry


def save_pick(
    db: Session,
    pool: Pool,
    entry: PoolEntry,
    pool_game_id: int,
    team_id: int,
    now: Optional[datetime] = None,
) -> BowlPick:
    pool_game = get_pool_game(db, pool_game_id)
    if pool_game.pool_id != pool.id:
        raise LookupError("Game not found")
    game = db.get(BowlGame, pool_game.game_id)

    if is_game_locked(game, now=now, demo_mode=pool.demo_mode):
        raise ValueError(f"This game is locked. Picks lock {BOWL_LOCK_MINUTES} minutes before kickoff.")
    if team_id not in (game.home_team_id, game.away_team_id):
        raise ValueError("Picked team is not playing in this game")

    pick = db.exec(
        select(BowlPick).where(
            BowlPick.entry_id == entry.id,
            BowlPick.pool_game_id == pool_game.id
        )
    ).first()

    if pick:
        if pick.picked_team_id == team_id:
            return pick
        pick.picked_team_id = team_id
        pick.updated_at = datetime.now(UTC)
    else:
        pick = BowlPick(entry_id=entry.id, pool_game_id=pool_game.id, picked_team_id=team_id)

    db.add(pick)
    db.commit()
    db.refresh(pick)
    return pick


def update_game_result(
    db: Session,
    game: BowlGame,
    home_score: Optional[int],
    away_score: Optional[int],
    status: str,
) -> BowlGame:
    validate_score_entry(home_score, away_score, status, game.status)

    game.home_score = home_score
    game.away_score = away_score
    game.status = status
    game.updated_at = datetime.now(UTC)
    db.add(game)
    db.commit()
    db.refresh(game)

    if status == FINAL:
        logger.info("Bowl game %s final %s-%s", game.id, home_score, away_score)
    return game


def set_home_spread(db: Session, game: BowlGame, home_spread: Optional[float]) -> BowlGame:
    if game.status == FINAL:
        raise ValueError("Spread cannot be changed on a final game")
    validate_spread(home_spread)
    game.home_spread = home_spread
    game.updated_at = datetime.now(UTC)
    db.add(game)
    db.commit()
    db.refresh(game)
    return game


def calculate_pick_score(game: BowlGame, picked_team_id: Optional[int], against_spread: bool = False) -> int:
    """
    1 point for a correct pick on a final game, else 0.

    Straight up the picked team must win. Against the spread the picked
    side must cover; a push earns nothing. Games without a line fall back
    to straight up.
    """
    if picked_team_id is None:
        return 0

    outcome = GameOutcome.from_bowl_game(game)
    evaluation = evaluate(outcome)
    if not evaluation.decided:
        return 0

    if against_spread and game.home_spread is not None:
        side = evaluation.covering_side
    else:
        side = evaluation.winner

    if side == HIGHER:
        return 1 if picked_team_id == game.home_team_id else 0
    if side == LOWER:
        return 1 if picked_team_id == game.away_team_id else 0
    return 0


def get_pool_games(db: Session, pool: Pool, kind: Optional[str] = None) -> List[PoolGame]:
    statement = select(PoolGame).where(PoolGame.pool_id == pool.id)
    if kind:
        statement = statement.where(PoolGame.kind == kind)
    return db.exec(statement.order_by(PoolGame.id)).all()


def get_pool_game_views(db: Session, pool: Pool, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    teams = {t.id: t for t in db.exec(select(Team)).all()}
    views = []
    for pool_game in get_pool_games(db, pool):
        game = db.get(BowlGame, pool_game.game_id)
        evaluation = evaluate(GameOutcome.from_bowl_game(game))
        home = teams.get(game.home_team_id)
        away = teams.get(game.away_team_id)
        views.append({
            "pool_game_id": pool_game.id,
            "game_id": game.id,
            "kind": pool_game.kind,
            "label": pool_game.label,
            "kickoff_at": game.kickoff_at,
            "status": game.status,
            "locked": is_game_locked(game, now=now, demo_mode=pool.demo_mode),
            "home_team_id": game.home_team_id,
            "home_team": home.name if home else "TBD",
            "home_spread": format_spread(game.home_spread, for_higher=True),
            "away_team_id": game.away_team_id,
            "away_team": away.name if away else "TBD",
            "away_spread": format_spread(game.home_spread, for_higher=False),
            "home_score": game.home_score,
            "away_score": game.away_score,
            "winner_team_id": outcome_team(game, evaluation.winner),
            "covering_team_id": outcome_team(game, evaluation.covering_side),
            "push": evaluation.push,
            "is_upset": evaluation.is_upset,
        })
    return views


def outcome_team(game: BowlGame, side: Optional[str]) -> Optional[int]:
    if side == HIGHER:
        return game.home_team_id
    if side == LOWER:
        return game.away_team_id
    return None


def get_entry_standings(db: Session, pool: Pool) -> List[Dict[str, Any]]:
    """Points per entry across all bowl games of the pool, best first."""
    entries = db.exec(select(PoolEntry).where(PoolEntry.pool_id == pool.id)).all()
    pool_games = {pg.id: pg for pg in get_pool_games(db, pool, kind="bowl")}
    games = {pg.id: db.get(BowlGame, pg.game_id) for pg in pool_games.values()}

    standings = []
    for entry in entries:
        picks = db.exec(select(BowlPick).where(BowlPick.entry_id == entry.id)).all()
        points = 0
        graded = 0
        for pick in picks:
            game = games.get(pick.pool_game_id)
            if not game:
                continue
            if game.status == FINAL:
                graded += 1
            points += calculate_pick_score(game, pick.picked_team_id, pool.pick_against_spread)
        standings.append({
            "entry_id": entry.id,
            "display_name": entry.display_name,
            "points": points,
            "picks_made": len(picks),
            "picks_graded": graded,
        })

    standings.sort(key=lambda s: (-s["points"], s["display_name"]))
    for rank, row in enumerate(standings, start=1):
        row["rank"] = rank
    return standings


# ---------------------------------------------------------------------------
# Team changes: preview the picks that would be lost, then confirm
# ---------------------------------------------------------------------------

def _picks_invalidated_by(db: Session, pool_game: PoolGame, home_team_id: int, away_team_id: int) -> List[BowlPick]:
    keep = {home_team_id, away_team_id}
    picks = db.exec(select(BowlPick).where(BowlPick.pool_game_id == pool_game.id)).all()
    return [p for p in picks if p.picked_team_id not in keep]


def preview_team_change(db: Session, pool_game: PoolGame, home_team_id: int, away_team_id: int) -> Dict[str, Any]:
    if home_team_id == away_team_id:
        raise ValueError("A game needs two different teams")
    for team_id in (home_team_id, away_team_id):
        if not db.get(Team, team_id):
            raise LookupError("Team not found")

    picks = _picks_invalidated_by(db, pool_game, home_team_id, away_team_id)
    return {
        "pool_game_id": pool_game.id,
        "home_team_id": home_team_id,
        "away_team_id": away_team_id,
        "picks_to_delete": [{"pick_id": p.id, "entry_id": p.entry_id, "picked_team_id": p.picked_team_id} for p in picks],
        "pick_count": len(picks),
    }


def confirm_team_change(
    db: Session,
    pool_game: PoolGame,
    home_team_id: int,
    away_team_id: int,
    expected_pick_count: Optional[int] = None,
) -> Dict[str, Any]:
    """Apply the new teams and delete the picks they invalidate."""
    preview = preview_team_change(db, pool_game, home_team_id, away_team_id)
    if expected_pick_count is not None and expected_pick_count != preview["pick_count"]:
        raise ValueError(
            f"Impact changed since preview ({preview['pick_count']} picks now affected); preview again"
        )

    for pick in _picks_invalidated_by(db, pool_game, home_team_id, away_team_id):
        db.delete(pick)

    game = db.get(BowlGame, pool_game.game_id)
    game.home_team_id = home_team_id
    game.away_team_id = away_team_id
    game.updated_at = datetime.now(UTC)
    db.add(game)
    db.commit()

    logger.info(
        "Changed teams for pool game %s; deleted %d dependent picks",
        pool_game.id, preview["pick_count"]
    )
    return {"success": True, "deleted_picks": preview["pick_count"]}

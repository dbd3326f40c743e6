"""
March Madness blind draw.

Every entry is dealt one of the 64 tournament teams at random. In each game
the entry whose side covers the spread moves on and takes the straight-up
winner with them; the other entry is out. The last entry standing owns the
champion.
"""

import logging
import random
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from ..config import DEFAULT_PUSH_RULE, MM_REGIONS
from ..models.madness import MmEntry, MmEntryPayout, MmGame, MmPool, MmPoolTeam
from ..models.team import Team
from .evaluator import (
    AGAINST_SPREAD,
    FINAL,
    HIGHER,
    LOWER,
    PUSH_RULES,
    GameOutcome,
    advancing_side,
    evaluate,
    generate_spread_from_seeds,
    other_side,
)
from .pools import create_pool, get_or_create_team
from .validation import (
    FIRST_ROUND_MATCHUPS,
    GAMES_PER_ROUND,
    ROUND_LABELS,
    ROUNDS,
    is_valid_region,
    is_valid_round,
    is_valid_seed,
    next_round,
    validate_entry_count,
    validate_payouts,
    validate_regions,
    validate_score_entry,
    validate_spread,
    validate_team_count,
)

logger = logging.getLogger("app.madness")

# Payout bucket earned by the entry that advances out of each round, and how
# many entries share it
ROUND_PAYOUTS = {
    "R32": ("sweet16_payout_pct", 16),
    "S16": ("elite8_payout_pct", 8),
    "E8": ("final4_payout_pct", 4),
    "FINAL": ("champion_payout_pct", 1),
}


class BracketLockedError(ValueError):
    """A correction would change a result that a later final game already depends on."""


# ---------------------------------------------------------------------------
# Pool setup
# ---------------------------------------------------------------------------

def create_mm_pool(
    db: Session,
    name: str,
    tournament_year: int,
    push_rule: str = DEFAULT_PUSH_RULE,
    pot_amount: float = 0.0,
    payouts: Optional[Dict[str, float]] = None,
    demo_mode: bool = False,
) -> MmPool:
    if push_rule not in PUSH_RULES:
        raise ValueError(f"Unknown push rule '{push_rule}'")
    if pot_amount < 0:
        raise ValueError("Pot amount cannot be negative")

    mm_pool = MmPool(tournament_year=tournament_year, push_rule=push_rule, pot_amount=pot_amount, pool_id=0)
    if payouts:
        for field, value in payouts.items():
            setattr(mm_pool, field, value)

    check = validate_payouts(
        mm_pool.sweet16_payout_pct,
        mm_pool.elite8_payout_pct,
        mm_pool.final4_payout_pct,
        mm_pool.runnerup_payout_pct,
        mm_pool.champion_payout_pct,
    )
    if not check["valid"]:
        raise ValueError(check["message"])

    pool = create_pool(db, name, "march_madness", demo_mode=demo_mode, commit=False)
    mm_pool.pool_id = pool.id
    db.add(mm_pool)
    db.commit()
    db.refresh(mm_pool)
    return mm_pool


def get_mm_pool(db: Session, mm_pool_id: int) -> MmPool:
    mm_pool = db.get(MmPool, mm_pool_id)
    if not mm_pool:
        raise LookupError("Pool not found")
    return mm_pool


def get_game(db: Session, game_id: int) -> MmGame:
    game = db.get(MmGame, game_id)
    if not game:
        raise LookupError("Game not found")
    return game


def add_pool_team(db: Session, mm_pool: MmPool, name: str, seed: int, region: str, abbrev: Optional[str] = None) -> MmPoolTeam:
    if mm_pool.draw_completed:
        raise ValueError("Teams cannot be changed after the draw")
    if not is_valid_seed(seed):
        raise ValueError(f"Invalid seed {seed}")
    if not is_valid_region(region):
        raise ValueError(f"Invalid region '{region}'")

    taken = db.exec(
        select(MmPoolTeam).where(
            MmPoolTeam.mm_pool_id == mm_pool.id,
            MmPoolTeam.region == region,
            MmPoolTeam.seed == seed
        )
    ).first()
    if taken:
        raise ValueError(f"{region} #{seed} is already assigned")

    team = get_or_create_team(db, name, abbrev)
    pool_team = MmPoolTeam(mm_pool_id=mm_pool.id, team_id=team.id, seed=seed, region=region)
    db.add(pool_team)
    db.commit()
    db.refresh(pool_team)
    return pool_team


def add_entry(db: Session, mm_pool: MmPool, display_name: str, verified: bool = False) -> MmEntry:
    if mm_pool.draw_completed:
        raise ValueError("Entries cannot be added after the draw")
    if not display_name.strip():
        raise ValueError("Display name is required")

    entry = MmEntry(mm_pool_id=mm_pool.id, display_name=display_name.strip(), verified=verified)
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def delete_entry(db: Session, mm_pool: MmPool, entry_id: int) -> None:
    entry = db.get(MmEntry, entry_id)
    if not entry or entry.mm_pool_id != mm_pool.id:
        raise LookupError("Entry not found")
    if mm_pool.draw_completed:
        raise ValueError("Entries cannot be removed after the draw")

    db.delete(entry)
    db.commit()


def set_entry_verified(db: Session, mm_pool: MmPool, entry_id: int, verified: bool) -> MmEntry:
    entry = db.get(MmEntry, entry_id)
    if not entry or entry.mm_pool_id != mm_pool.id:
        raise LookupError("Entry not found")
    entry.verified = verified
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def get_pool_teams(db: Session, mm_pool_id: int) -> List[MmPoolTeam]:
    return db.exec(select(MmPoolTeam).where(MmPoolTeam.mm_pool_id == mm_pool_id)).all()


def get_entries(db: Session, mm_pool_id: int) -> List[MmEntry]:
    return db.exec(
        select(MmEntry).where(MmEntry.mm_pool_id == mm_pool_id).order_by(MmEntry.id)
    ).all()


def get_games(db: Session, mm_pool_id: int, round_name: Optional[str] = None) -> List[MmGame]:
    statement = select(MmGame).where(MmGame.mm_pool_id == mm_pool_id)
    if round_name:
        if not is_valid_round(round_name):
            raise ValueError(f"Unknown round '{round_name}'")
        statement = statement.where(MmGame.round == round_name)
    games = db.exec(statement).all()
    return sorted(games, key=lambda g: (ROUNDS.index(g.round), g.game_number))


# ---------------------------------------------------------------------------
# Draw
# ---------------------------------------------------------------------------

def generate_round64_games(teams) -> List[Dict[str, Any]]:
    """
    First-round games for a full field, numbered 1-32.

    Regions are laid out East, West, South, Midwest and each region follows
    the standard pairing order, so game k of the next round is always fed by
    games 2k-1 and 2k.
    """
    games = []
    game_number = 1
    for region in MM_REGIONS:
        by_seed = {t.seed: t for t in teams if t.region == region}
        for higher_seed, lower_seed in FIRST_ROUND_MATCHUPS:
            higher_team = by_seed.get(higher_seed)
            lower_team = by_seed.get(lower_seed)
            if higher_team and lower_team:
                games.append({
                    "round": "R64",
                    "region": region,
                    "game_number": game_number,
                    "higher_seed_team_id": higher_team.id,
                    "lower_seed_team_id": lower_team.id,
                    "spread": generate_spread_from_seeds(higher_seed, lower_seed),
                })
            game_number += 1
    return games


def _slot_region(round_name: str, game_number: int) -> Optional[str]:
    per_region = GAMES_PER_ROUND[round_name] // len(MM_REGIONS)
    if per_region < 1:
        return None
    return MM_REGIONS[(game_number - 1) // per_region]


def run_draw(db: Session, mm_pool: MmPool, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """Deal one team to every entry and build the bracket."""
    if mm_pool.draw_completed:
        raise ValueError("Draw already completed")

    teams = get_pool_teams(db, mm_pool.id)
    entries = get_entries(db, mm_pool.id)

    team_check = validate_team_count(len(teams))
    if not team_check["valid"]:
        raise ValueError(team_check["message"])
    entry_check = validate_entry_count(len(entries))
    if not entry_check["valid"]:
        raise ValueError(entry_check["message"])
    region_check = validate_regions(teams)
    if not region_check["valid"]:
        raise ValueError("; ".join(region_check["errors"]))

    rng = rng or random.Random()
    shuffled = list(teams)
    rng.shuffle(shuffled)

    team_names = {t.id: t.name for t in db.exec(select(Team)).all()}
    entry_by_team: Dict[int, MmEntry] = {}
    assignments = []
    for entry, pool_team in zip(entries, shuffled):
        entry.current_team_id = pool_team.id
        entry.original_team_id = pool_team.id
        entry.eliminated = False
        entry.eliminated_round = None
        db.add(entry)
        entry_by_team[pool_team.id] = entry
        assignments.append({
            "entry_id": entry.id,
            "team_id": pool_team.id,
            "display_name": entry.display_name,
            "team_name": team_names.get(pool_team.team_id, "Unknown"),
            "seed": pool_team.seed,
            "region": pool_team.region,
        })

    round64 = generate_round64_games(teams)
    for fields in round64:
        db.add(MmGame(
            mm_pool_id=mm_pool.id,
            higher_seed_entry_id=entry_by_team[fields["higher_seed_team_id"]].id,
            lower_seed_entry_id=entry_by_team[fields["lower_seed_team_id"]].id,
            status="scheduled",
            **fields
        ))

    # Empty slots for the later rounds, filled as results come in
    for round_name in ROUNDS[1:]:
        for number in range(1, GAMES_PER_ROUND[round_name] + 1):
            db.add(MmGame(
                mm_pool_id=mm_pool.id,
                round=round_name,
                region=_slot_region(round_name, number),
                game_number=number,
            ))

    mm_pool.draw_completed = True
    mm_pool.draw_completed_at = datetime.now(UTC)
    db.add(mm_pool)
    db.commit()

    logger.info("Draw completed for pool %s: %d entries assigned", mm_pool.id, len(assignments))
    return {
        "success": True,
        "message": "Draw completed successfully",
        "assignments": assignments,
        "games_created": len(round64),
    }


# ---------------------------------------------------------------------------
# Score entry and advancement
# ---------------------------------------------------------------------------

def enter_spread(db: Session, game: MmGame, spread: Optional[float]) -> MmGame:
    if game.status == FINAL:
        raise ValueError("Spread cannot be changed on a final game")
    validate_spread(spread)

    game.spread = spread
    game.updated_at = datetime.now(UTC)
    db.add(game)
    db.commit()
    db.refresh(game)
    return game


def _side_team(game: MmGame, side: Optional[str]) -> Optional[int]:
    if side == HIGHER:
        return game.higher_seed_team_id
    if side == LOWER:
        return game.lower_seed_team_id
    return None


def _side_entry(game: MmGame, side: Optional[str]) -> Optional[int]:
    if side == HIGHER:
        return game.higher_seed_entry_id
    if side == LOWER:
        return game.lower_seed_entry_id
    return None


def resolve_game(game: MmGame, push_rule: str, outcome: Optional[GameOutcome] = None) -> Optional[Dict[str, Any]]:
    """
    Result of a final game in blind-draw terms, or None while undetermined.

    The covering side's entry advances and takes the winning team. Without a
    spread the straight-up winner's entry advances.
    """
    outcome = outcome or GameOutcome.from_mm_game(game)
    evaluation = evaluate(outcome)
    if not evaluation.decided:
        return None

    side = advancing_side(evaluation, AGAINST_SPREAD, push_rule, outcome.spread, outcome.key)
    return {
        "evaluation": evaluation,
        "winner": evaluation.winner,
        "advancing_side": side,
        "winning_team_id": _side_team(game, evaluation.winner),
        "losing_team_id": _side_team(game, other_side(evaluation.winner)),
        "spread_covering_team_id": _side_team(game, evaluation.covering_side),
        "advancing_entry_id": _side_entry(game, side),
        "eliminated_entry_id": _side_entry(game, other_side(side)),
    }


def _next_game(db: Session, game: MmGame) -> Optional[MmGame]:
    round_name = next_round(game.round)
    if not round_name:
        return None
    return db.exec(
        select(MmGame).where(
            MmGame.mm_pool_id == game.mm_pool_id,
            MmGame.round == round_name,
            MmGame.game_number == (game.game_number + 1) // 2
        )
    ).first()


def _feeder_games(db: Session, game: MmGame) -> List[Optional[MmGame]]:
    """The two previous-round games feeding `game`, top then bottom."""
    index = ROUNDS.index(game.round)
    if index == 0:
        return [None, None]
    previous = ROUNDS[index - 1]
    feeders = []
    for number in (2 * game.game_number - 1, 2 * game.game_number):
        feeders.append(db.exec(
            select(MmGame).where(
                MmGame.mm_pool_id == game.mm_pool_id,
                MmGame.round == previous,
                MmGame.game_number == number
            )
        ).first())
    return feeders


def enter_score(
    db: Session,
    game: MmGame,
    higher_seed_score: Optional[int],
    lower_seed_score: Optional[int],
    status: str,
) -> MmGame:
    """
    Record a score. A final score eliminates the losing team and the
    non-advancing entry and moves the advancing entry into the next round.
    """
    validate_score_entry(higher_seed_score, lower_seed_score, status, game.status)
    if game.higher_seed_team_id is None or game.lower_seed_team_id is None:
        raise ValueError("Both teams must be set before entering a score")

    mm_pool = get_mm_pool(db, game.mm_pool_id)
    was_final = game.status == FINAL
    changed = False

    if was_final:
        prospective = resolve_game(game, mm_pool.push_rule, GameOutcome(
            higher_score=higher_seed_score,
            lower_score=lower_seed_score,
            spread=game.spread,
            status=status,
            higher_owner_id=game.higher_seed_entry_id,
            lower_owner_id=game.lower_seed_entry_id,
            key=f"mm:{game.id}",
        ))
        changed = (
            prospective["winning_team_id"] != game.winning_team_id
            or prospective["advancing_entry_id"] != game.advancing_entry_id
        )
        next_game = _next_game(db, game)
        if changed and next_game and next_game.status == FINAL:
            logger.warning(
                "Rejected correction for game %s: %s game %s is already final",
                game.id, next_game.round, next_game.game_number
            )
            raise BracketLockedError(
                "Cannot change this result: the next-round game is already final"
            )
        if changed:
            _undo_result(db, game)
        else:
            # Same teams and entries move on; only the score line changes
            game.spread_covering_team_id = prospective["spread_covering_team_id"]

    game.higher_seed_score = higher_seed_score
    game.lower_seed_score = lower_seed_score
    game.status = status
    game.updated_at = datetime.now(UTC)
    db.add(game)

    if status == FINAL and not (was_final and not changed):
        _apply_result(db, mm_pool, game)

    db.commit()
    db.refresh(game)
    return game


def _undo_result(db: Session, game: MmGame) -> None:
    """Roll back the downstream effects of a previously final game."""
    for entry_id, team_id in (
        (game.higher_seed_entry_id, game.higher_seed_team_id),
        (game.lower_seed_entry_id, game.lower_seed_team_id),
    ):
        entry = db.get(MmEntry, entry_id) if entry_id else None
        if entry:
            entry.current_team_id = team_id
            entry.eliminated = False
            entry.eliminated_round = None
            db.add(entry)

    for team_id in (game.higher_seed_team_id, game.lower_seed_team_id):
        team = db.get(MmPoolTeam, team_id) if team_id else None
        if team and team.eliminated_round == game.round:
            team.eliminated = False
            team.eliminated_round = None
            db.add(team)

    payouts = db.exec(select(MmEntryPayout).where(MmEntryPayout.game_id == game.id)).all()
    affected = {p.entry_id for p in payouts}
    for payout in payouts:
        db.delete(payout)
    db.flush()
    for entry_id in affected:
        _refresh_total_payout(db, entry_id)

    game.winning_team_id = None
    game.spread_covering_team_id = None
    game.advancing_entry_id = None


def _apply_result(db: Session, mm_pool: MmPool, game: MmGame) -> None:
    result = resolve_game(game, mm_pool.push_rule)
    if result is None:
        return

    game.winning_team_id = result["winning_team_id"]
    game.spread_covering_team_id = result["spread_covering_team_id"]
    game.advancing_entry_id = result["advancing_entry_id"]
    db.add(game)

    losing_team = db.get(MmPoolTeam, result["losing_team_id"])
    if losing_team:
        losing_team.eliminated = True
        losing_team.eliminated_round = game.round
        db.add(losing_team)

    eliminated = db.get(MmEntry, result["eliminated_entry_id"]) if result["eliminated_entry_id"] else None
    if eliminated:
        eliminated.eliminated = True
        eliminated.eliminated_round = game.round
        db.add(eliminated)

    advancing = db.get(MmEntry, result["advancing_entry_id"]) if result["advancing_entry_id"] else None
    if advancing:
        # Team transfer: the advancing entry now owns the winning team
        advancing.current_team_id = result["winning_team_id"]
        db.add(advancing)

    db.flush()
    _award_payouts(db, mm_pool, game, advancing, eliminated)
    _populate_next_game(db, game)

    evaluation = result["evaluation"]
    logger.info(
        "Game %s %s #%s final %s-%s: winner=%s cover=%s push=%s advancing entry=%s",
        game.id, game.round, game.game_number,
        game.higher_seed_score, game.lower_seed_score,
        evaluation.winner, evaluation.covering_side, evaluation.push,
        result["advancing_entry_id"]
    )


def _award_payouts(db: Session, mm_pool: MmPool, game: MmGame, advancing: Optional[MmEntry], eliminated: Optional[MmEntry]) -> None:
    awards = []
    if game.round in ROUND_PAYOUTS and advancing:
        field, share = ROUND_PAYOUTS[game.round]
        awards.append((advancing, getattr(mm_pool, field) / share))
    if game.round == "FINAL" and eliminated:
        awards.append((eliminated, mm_pool.runnerup_payout_pct))

    for entry, pct in awards:
        amount = round(mm_pool.pot_amount * pct / 100, 2)
        db.add(MmEntryPayout(
            mm_pool_id=mm_pool.id,
            entry_id=entry.id,
            game_id=game.id,
            round=game.round,
            payout_amount=amount,
        ))
    db.flush()
    for entry, _ in awards:
        _refresh_total_payout(db, entry.id)


def _refresh_total_payout(db: Session, entry_id: int) -> None:
    entry = db.get(MmEntry, entry_id)
    if not entry:
        return
    payouts = db.exec(select(MmEntryPayout).where(MmEntryPayout.entry_id == entry_id)).all()
    entry.total_payout = round(sum(p.payout_amount for p in payouts), 2)
    db.add(entry)


def _populate_next_game(db: Session, game: MmGame) -> None:
    """
    Rebuild the next-round slot from both feeder games.

    The better seed takes the higher side; equal seeds (Final Four onward)
    keep bracket order. With one feeder decided its winner waits in the
    slot matching its bracket position.
    """
    next_game = _next_game(db, game)
    if not next_game or next_game.status == FINAL:
        return

    candidates = []
    for position, feeder in zip((HIGHER, LOWER), _feeder_games(db, next_game)):
        if feeder and feeder.status == FINAL and feeder.winning_team_id:
            team = db.get(MmPoolTeam, feeder.winning_team_id)
            candidates.append((position, team, feeder.advancing_entry_id))
        else:
            candidates.append((position, None, None))

    (_, top_team, top_entry), (_, bottom_team, bottom_entry) = candidates
    if top_team and bottom_team and bottom_team.seed < top_team.seed:
        top_team, top_entry, bottom_team, bottom_entry = bottom_team, bottom_entry, top_team, top_entry

    new_higher = top_team.id if top_team else None
    new_lower = bottom_team.id if bottom_team else None
    if (new_higher, new_lower) != (next_game.higher_seed_team_id, next_game.lower_seed_team_id):
        # Line was set for a different matchup
        next_game.spread = None

    next_game.higher_seed_team_id = new_higher
    next_game.higher_seed_entry_id = top_entry
    next_game.lower_seed_team_id = new_lower
    next_game.lower_seed_entry_id = bottom_entry
    next_game.updated_at = datetime.now(UTC)
    db.add(next_game)


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------

def _round_rank(round_name: Optional[str]) -> int:
    return ROUNDS.index(round_name) if round_name in ROUNDS else -1


def get_standings(db: Session, mm_pool_id: int) -> List[Dict[str, Any]]:
    """Alive entries first by payout, then eliminated entries by how far they went."""
    entries = get_entries(db, mm_pool_id)
    pool_teams = {t.id: t for t in get_pool_teams(db, mm_pool_id)}
    team_names = {t.id: t.name for t in db.exec(select(Team)).all()}

    def sort_key(entry: MmEntry):
        if not entry.eliminated:
            return (0, -entry.total_payout, 0, entry.display_name)
        return (1, -_round_rank(entry.eliminated_round), -entry.total_payout, entry.display_name)

    standings = []
    for rank, entry in enumerate(sorted(entries, key=sort_key), start=1):
        team = pool_teams.get(entry.current_team_id)
        standings.append({
            "rank": rank,
            "entry_id": entry.id,
            "display_name": entry.display_name,
            "eliminated": entry.eliminated,
            "eliminated_round": entry.eliminated_round,
            "total_payout": entry.total_payout,
            "current_team": team_names.get(team.team_id) if team else None,
            "seed": team.seed if team else None,
            "region": team.region if team else None,
        })
    return standings


def game_to_dict(game: MmGame, teams: Dict[int, MmPoolTeam], team_names: Dict[int, str]) -> Dict[str, Any]:
    higher = teams.get(game.higher_seed_team_id)
    lower = teams.get(game.lower_seed_team_id)
    evaluation = evaluate(GameOutcome.from_mm_game(game))
    return {
        "id": game.id,
        "round": game.round,
        "round_label": ROUND_LABELS[game.round],
        "region": game.region,
        "game_number": game.game_number,
        "status": game.status,
        "spread": game.spread,
        "higher_seed_team_id": game.higher_seed_team_id,
        "higher_seed_team": team_names.get(higher.team_id) if higher else "TBD",
        "higher_seed": higher.seed if higher else None,
        "lower_seed_team_id": game.lower_seed_team_id,
        "lower_seed_team": team_names.get(lower.team_id) if lower else "TBD",
        "lower_seed": lower.seed if lower else None,
        "higher_seed_score": game.higher_seed_score,
        "lower_seed_score": game.lower_seed_score,
        "higher_seed_entry_id": game.higher_seed_entry_id,
        "lower_seed_entry_id": game.lower_seed_entry_id,
        "winning_team_id": game.winning_team_id,
        "spread_covering_team_id": game.spread_covering_team_id,
        "advancing_entry_id": game.advancing_entry_id,
        "push": evaluation.push,
        "is_upset": evaluation.is_upset,
    }


def get_bracket(db: Session, mm_pool: MmPool) -> Dict[str, List[Dict[str, Any]]]:
    teams = {t.id: t for t in get_pool_teams(db, mm_pool.id)}
    team_names = {t.id: t.name for t in db.exec(select(Team)).all()}
    bracket: Dict[str, List[Dict[str, Any]]] = {round_name: [] for round_name in ROUNDS}
    for game in get_games(db, mm_pool.id):
        bracket[game.round].append(game_to_dict(game, teams, team_names))
    return bracket


def get_champion(db: Session, mm_pool: MmPool) -> Optional[MmEntry]:
    final = db.exec(
        select(MmGame).where(MmGame.mm_pool_id == mm_pool.id, MmGame.round == "FINAL")
    ).first()
    if not final or not final.advancing_entry_id:
        return None
    return db.get(MmEntry, final.advancing_entry_id)

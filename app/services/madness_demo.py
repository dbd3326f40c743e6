"""
Demo data for trying out a blind-draw pool without a real field.
"""

import logging
import random
from typing import Any, Dict, List, Optional, Tuple

from sqlmodel import Session, select

from ..config import MM_REGIONS
from ..models.madness import MmEntry, MmEntryPayout, MmGame, MmPool, MmPoolTeam
from .evaluator import FINAL, generate_spread_from_seeds
from .madness import add_entry, add_pool_team, enter_score, get_games, get_pool_teams
from .validation import ROUNDS

logger = logging.getLogger("app.madness_demo")

DEMO_TEAMS: Dict[str, List[Tuple[str, str]]] = {
    "East": [
        ("Connecticut", "CONN"), ("Iowa State", "ISU"), ("Illinois", "ILL"), ("Auburn", "AUB"),
        ("San Diego State", "SDSU"), ("BYU", "BYU"), ("Texas", "TEX"), ("FAU", "FAU"),
        ("Northwestern", "NU"), ("Drake", "DRKE"), ("Duquesne", "DUQ"), ("UAB", "UAB"),
        ("Yale", "YALE"), ("Morehead State", "MORE"), ("Long Beach State", "LBSU"), ("Stetson", "STET"),
    ],
    "West": [
        ("North Carolina", "UNC"), ("Arizona", "ARIZ"), ("Baylor", "BAY"), ("Alabama", "ALA"),
        ("Saint Mary's", "SMC"), ("Clemson", "CLEM"), ("Dayton", "DAY"), ("Mississippi State", "MSST"),
        ("Michigan State", "MSU"), ("Nevada", "NEV"), ("New Mexico", "UNM"), ("Grand Canyon", "GCU"),
        ("Charleston", "COFC"), ("Colgate", "COLG"), ("Longwood", "LONG"), ("Wagner", "WAG"),
    ],
    "South": [
        ("Houston", "HOU"), ("Marquette", "MARQ"), ("Kentucky", "UK"), ("Duke", "DUKE"),
        ("Wisconsin", "WIS"), ("Texas Tech", "TTU"), ("Florida", "FLA"), ("Nebraska", "NEB"),
        ("Texas A&M", "TAMU"), ("Colorado", "COLO"), ("NC State", "NCST"), ("James Madison", "JMU"),
        ("Vermont", "UVM"), ("Oakland", "OAK"), ("Western Kentucky", "WKU"), ("Grambling", "GRAM"),
    ],
    "Midwest": [
        ("Purdue", "PUR"), ("Tennessee", "TENN"), ("Creighton", "CREI"), ("Kansas", "KU"),
        ("Gonzaga", "GONZ"), ("South Carolina", "SC"), ("Texas State", "TXST"), ("Utah State", "USU"),
        ("TCU", "TCU"), ("Colorado State", "CSU"), ("Oregon", "ORE"), ("McNeese State", "MCNS"),
        ("Samford", "SAM"), ("Akron", "AKR"), ("Montana State", "MTST"), ("Saint Peter's", "SPU"),
    ],
}


def seed_demo(db: Session, mm_pool: MmPool, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """Fill an empty pool with the 64 demo teams and 64 demo entries."""
    if mm_pool.draw_completed:
        raise ValueError("Draw already completed")
    if get_pool_teams(db, mm_pool.id):
        raise ValueError("Pool already has teams")

    rng = rng or random.Random()
    teams_created = 0
    for region in MM_REGIONS:
        for seed, (name, abbrev) in enumerate(DEMO_TEAMS[region], start=1):
            add_pool_team(db, mm_pool, name, seed, region, abbrev=abbrev)
            teams_created += 1

    names = [f"Demo Player {i}" for i in range(1, 65)]
    rng.shuffle(names)
    for name in names:
        add_entry(db, mm_pool, name, verified=True)

    logger.info("Seeded demo data for pool %s", mm_pool.id)
    return {
        "success": True,
        "message": "Demo data seeded successfully",
        "teams_created": teams_created,
        "entries_created": len(names),
    }


def simulate_game_score(spread: Optional[float], rng: random.Random, upset_probability: float = 0.3) -> Tuple[int, int]:
    """Plausible (higher, lower) score for a line. Never a tie."""
    spread = spread or 0
    base_score = 70

    def variance() -> int:
        return rng.randint(-7, 7)

    if rng.random() < upset_probability:
        margin = -rng.randint(1, 10)
    else:
        margin = max(1, int(-spread) + rng.randint(-5, 4))
        if spread > 0:
            # Lower seed was favored
            margin = -margin

    higher = max(50, base_score + variance() + margin // 2)
    lower = max(50, base_score + variance() - margin // 2)
    if higher == lower:
        lower = higher - 1
    return higher, lower


def current_round(db: Session, mm_pool: MmPool) -> Optional[str]:
    pending = [
        g for g in get_games(db, mm_pool.id)
        if g.status != FINAL and g.higher_seed_team_id and g.lower_seed_team_id
    ]
    if not pending:
        return None
    return min(pending, key=lambda g: ROUNDS.index(g.round)).round


def simulate_round(db: Session, mm_pool: MmPool, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """Play every ready game of the earliest unfinished round."""
    round_name = current_round(db, mm_pool)
    if not round_name:
        raise ValueError("No games to simulate")

    rng = rng or random.Random()
    teams = {t.id: t for t in get_pool_teams(db, mm_pool.id)}
    results = []
    for game in get_games(db, mm_pool.id, round_name):
        if game.status == FINAL or not (game.higher_seed_team_id and game.lower_seed_team_id):
            continue
        if game.spread is None:
            higher = teams[game.higher_seed_team_id]
            lower = teams[game.lower_seed_team_id]
            game.spread = generate_spread_from_seeds(higher.seed, lower.seed)
            db.add(game)
        higher_score, lower_score = simulate_game_score(game.spread, rng)
        enter_score(db, game, higher_score, lower_score, FINAL)
        results.append({
            "game_id": game.id,
            "higher_seed_score": higher_score,
            "lower_seed_score": lower_score,
        })

    logger.info("Simulated %d games in %s for pool %s", len(results), round_name, mm_pool.id)
    return {
        "success": True,
        "message": f"Simulated {len(results)} games in {round_name}",
        "round": round_name,
        "games_simulated": len(results),
        "results": results,
    }


def reset_pool(db: Session, mm_pool: MmPool) -> Dict[str, Any]:
    """Back to the post-setup state: teams and entries kept, draw undone."""
    for payout in db.exec(select(MmEntryPayout).where(MmEntryPayout.mm_pool_id == mm_pool.id)).all():
        db.delete(payout)
    for game in db.exec(select(MmGame).where(MmGame.mm_pool_id == mm_pool.id)).all():
        db.delete(game)
    db.flush()

    for entry in db.exec(select(MmEntry).where(MmEntry.mm_pool_id == mm_pool.id)).all():
        entry.current_team_id = None
        entry.original_team_id = None
        entry.eliminated = False
        entry.eliminated_round = None
        entry.total_payout = 0.0
        db.add(entry)

    for team in db.exec(select(MmPoolTeam).where(MmPoolTeam.mm_pool_id == mm_pool.id)).all():
        team.eliminated = False
        team.eliminated_round = None
        db.add(team)

    mm_pool.draw_completed = False
    mm_pool.draw_completed_at = None
    db.add(mm_pool)
    db.commit()

    logger.info("Reset pool %s", mm_pool.id)
    return {"success": True, "message": "Pool reset to post-setup state"}

"""
Input validation shared by the pool services.

These checks run before anything is written, so the evaluator can assume a
final game never holds a tie or a negative score.
"""

from typing import Dict, List, Optional, Tuple

from ..config import MM_REGIONS, MM_TEAM_COUNT
from .evaluator import FINAL, GAME_STATUSES, is_valid_spread

ROUNDS = ["R64", "R32", "S16", "E8", "F4", "FINAL"]

GAMES_PER_ROUND = {
    "R64": 32,
    "R32": 16,
    "S16": 8,
    "E8": 4,
    "F4": 2,
    "FINAL": 1,
}

ROUND_LABELS = {
    "R64": "Round of 64",
    "R32": "Round of 32",
    "S16": "Sweet 16",
    "E8": "Elite 8",
    "F4": "Final Four",
    "FINAL": "Championship",
}

# Standard NCAA first-round pairings, in bracket order
FIRST_ROUND_MATCHUPS: List[Tuple[int, int]] = [
    (1, 16),
    (8, 9),
    (5, 12),
    (4, 13),
    (6, 11),
    (3, 14),
    (7, 10),
    (2, 15),
]


def validate_score_entry(
    higher_score: Optional[int],
    lower_score: Optional[int],
    status: str,
    current_status: str = "scheduled",
) -> None:
    """Raise ValueError when a score write would break the game invariants."""
    if status not in GAME_STATUSES:
        raise ValueError(f"Invalid status '{status}'")

    if current_status == FINAL and status != FINAL:
        raise ValueError("A final game cannot be reopened")

    for score in (higher_score, lower_score):
        if score is not None and score < 0:
            raise ValueError("Scores cannot be negative")

    if status == FINAL:
        if higher_score is None or lower_score is None:
            raise ValueError("Please enter both scores")
        if higher_score == lower_score:
            raise ValueError("Final score cannot be a tie")


def validate_spread(spread: Optional[float]) -> None:
    if spread is not None and not is_valid_spread(spread):
        raise ValueError("Spread must be in half-point increments")


def validate_team_count(count: int) -> Dict:
    if count < MM_TEAM_COUNT:
        return {"valid": False, "message": f"Need {MM_TEAM_COUNT - count} more teams"}
    if count > MM_TEAM_COUNT:
        return {"valid": False, "message": f"Too many teams ({count - MM_TEAM_COUNT} extra)"}
    return {"valid": True, "message": "Valid"}


def validate_entry_count(count: int) -> Dict:
    if count < MM_TEAM_COUNT:
        return {"valid": False, "message": f"Need {MM_TEAM_COUNT - count} more entries"}
    if count > MM_TEAM_COUNT:
        return {"valid": False, "message": f"Too many entries ({count - MM_TEAM_COUNT} extra)"}
    return {"valid": True, "message": "Valid"}


def validate_regions(teams) -> Dict:
    """Each region needs seeds 1-16 exactly once. `teams` items expose region and seed."""
    errors = []

    for region in MM_REGIONS:
        region_teams = [t for t in teams if t.region == region]
        seeds = {t.seed for t in region_teams}

        if len(region_teams) != 16:
            errors.append(f"{region} region has {len(region_teams)} teams (need 16)")

        for seed in range(1, 17):
            if seed not in seeds:
                errors.append(f"{region} region missing seed #{seed}")

        if len(seeds) != len(region_teams):
            errors.append(f"{region} region has duplicate seeds")

    return {"valid": not errors, "errors": errors}


def validate_payouts(
    sweet16_payout_pct: float,
    elite8_payout_pct: float,
    final4_payout_pct: float,
    runnerup_payout_pct: float,
    champion_payout_pct: float,
) -> Dict:
    total = (
        sweet16_payout_pct
        + elite8_payout_pct
        + final4_payout_pct
        + runnerup_payout_pct
        + champion_payout_pct
    )
    if abs(total - 100) > 1e-9:
        return {"valid": False, "total": total, "message": f"Payouts sum to {total:g}% (should be 100%)"}
    return {"valid": True, "total": total, "message": "Valid"}


def is_valid_seed(seed) -> bool:
    return isinstance(seed, int) and not isinstance(seed, bool) and 1 <= seed <= 16


def is_valid_region(region: str) -> bool:
    return region in MM_REGIONS


def is_valid_round(round_name: str) -> bool:
    return round_name in ROUNDS


def next_round(round_name: str) -> Optional[str]:
    if round_name not in ROUNDS or round_name == ROUNDS[-1]:
        return None
    return ROUNDS[ROUNDS.index(round_name) + 1]

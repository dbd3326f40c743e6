"""
Spread-cover and advancement evaluation for a single game.

A game is seen from the perspective of its "higher" side (better seed, home
team, or top bracket slot) and its "lower" side. The spread is quoted for
the higher side: negative favors the higher side, positive the lower side.

Everything here is pure. Partial game state (no scores yet, not final, no
spread) is normal and yields undetermined (None) results, never errors.
"""

import math
import random
from typing import Optional

HIGHER = "higher"
LOWER = "lower"

SCHEDULED = "scheduled"
IN_PROGRESS = "in_progress"
FINAL = "final"
GAME_STATUSES = (SCHEDULED, IN_PROGRESS, FINAL)

STRAIGHT_UP = "straight_up"
AGAINST_SPREAD = "spread"

PUSH_RULES = ("favorite_advances", "underdog_advances", "coin_flip")


def normalize_status(status) -> str:
    """Clamp anything that is not a known status to scheduled."""
    if isinstance(status, str) and status in GAME_STATUSES:
        return status
    return SCHEDULED


def _score(value) -> Optional[int]:
    # bool is an int subclass; reject it along with negatives and non-integers
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


def _spread(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    if not math.isfinite(value):
        return None
    return value


def other_side(side: Optional[str]) -> Optional[str]:
    if side == HIGHER:
        return LOWER
    if side == LOWER:
        return HIGHER
    return None


class GameOutcome:
    """A snapshot of one matchup as the evaluator sees it."""

    def __init__(
        self,
        higher_score=None,
        lower_score=None,
        spread=None,
        status=SCHEDULED,
        higher_owner_id=None,
        lower_owner_id=None,
        key=None,
    ):
        self.higher_score = higher_score
        self.lower_score = lower_score
        self.spread = spread
        self.status = status
        self.higher_owner_id = higher_owner_id
        self.lower_owner_id = lower_owner_id
        # Stable identity used to seed coin-flip pushes
        self.key = key

    @classmethod
    def from_mm_game(cls, game) -> "GameOutcome":
        return cls(
            higher_score=game.higher_seed_score,
            lower_score=game.lower_seed_score,
            spread=game.spread,
            status=game.status,
            higher_owner_id=game.higher_seed_entry_id,
            lower_owner_id=game.lower_seed_entry_id,
            key=f"mm:{game.id}",
        )

    @classmethod
    def from_bowl_game(cls, game) -> "GameOutcome":
        # Home is the higher side; home_spread already uses the same sign convention
        return cls(
            higher_score=game.home_score,
            lower_score=game.away_score,
            spread=game.home_spread,
            status=game.status,
            higher_owner_id=game.home_team_id,
            lower_owner_id=game.away_team_id,
            key=f"bowl:{game.id}",
        )

    def owner(self, side: Optional[str]):
        if side == HIGHER:
            return self.higher_owner_id
        if side == LOWER:
            return self.lower_owner_id
        return None

    def __repr__(self):
        return (
            f"GameOutcome({self.higher_score}-{self.lower_score}, "
            f"spread={self.spread}, status={self.status})"
        )


class Evaluation:
    """Derived facts about a game: winner, covering side, push, upset."""

    def __init__(self, winner=None, covering_side=None, push=False, adjusted_margin=None):
        self.winner = winner
        self.covering_side = covering_side
        self.push = push
        self.adjusted_margin = adjusted_margin

    @property
    def is_upset(self) -> bool:
        return (
            self.winner is not None
            and self.covering_side is not None
            and self.winner != self.covering_side
        )

    @property
    def decided(self) -> bool:
        return self.winner is not None

    def to_dict(self) -> dict:
        return {
            "winner": self.winner,
            "covering_side": self.covering_side,
            "push": self.push,
            "is_upset": self.is_upset,
            "adjusted_margin": self.adjusted_margin,
        }

    def __eq__(self, other):
        if not isinstance(other, Evaluation):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (
            f"Evaluation(winner={self.winner}, covering_side={self.covering_side}, "
            f"push={self.push}, is_upset={self.is_upset})"
        )


def evaluate(game: GameOutcome) -> Evaluation:
    """
    Compute winner, spread cover and upset for a game.

    - winner: set only when the game is final with both scores present and unequal
    - covering_side: set only when there is a winner and a spread;
      higher covers if higher_score + spread > lower_score, lower if less,
      and an exact tie is a push (covering_side None, push True)
    - is_upset: winner and covering side are both known and differ
    """
    status = normalize_status(game.status)
    higher = _score(game.higher_score)
    lower = _score(game.lower_score)

    if status != FINAL or higher is None or lower is None or higher == lower:
        return Evaluation()

    winner = HIGHER if higher > lower else LOWER

    spread = _spread(game.spread)
    if spread is None:
        return Evaluation(winner=winner)

    adjusted_margin = higher + spread - lower
    if adjusted_margin > 0:
        return Evaluation(winner=winner, covering_side=HIGHER, adjusted_margin=adjusted_margin)
    if adjusted_margin < 0:
        return Evaluation(winner=winner, covering_side=LOWER, adjusted_margin=adjusted_margin)
    return Evaluation(winner=winner, push=True, adjusted_margin=0.0)


def favored_side(spread) -> Optional[str]:
    spread = _spread(spread)
    if spread is None or spread == 0:
        return None
    return HIGHER if spread < 0 else LOWER


def resolve_push(evaluation: Evaluation, spread, push_rule: str, seed_key=None) -> Optional[str]:
    """Pick the advancing side for a push according to the pool's push rule."""
    if push_rule == "coin_flip":
        # Same game always flips the same way; keyless games fall back to the line
        if seed_key is None:
            seed_key = f"push:{spread}:{evaluation.winner}"
        rng = random.Random(str(seed_key))
        return HIGHER if rng.random() < 0.5 else LOWER

    favorite = favored_side(spread)
    if favorite is None:
        # Pick'em line: nobody is favored, fall back to the straight-up winner
        return evaluation.winner

    if push_rule == "underdog_advances":
        return other_side(favorite)
    # favorite_advances and unknown rules
    return favorite


def advancing_side(
    evaluation: Evaluation,
    rule: str = STRAIGHT_UP,
    push_rule: str = "favorite_advances",
    spread=None,
    seed_key=None,
) -> Optional[str]:
    """
    Decide which side's owner moves on.

    Straight-up pools advance the winner. Spread pools advance the covering
    side; on a push the push rule decides. Games with no spread advance the
    winner even in spread pools.
    """
    if not evaluation.decided:
        return None
    if rule != AGAINST_SPREAD or _spread(spread) is None:
        return evaluation.winner
    if evaluation.push:
        return resolve_push(evaluation, spread, push_rule, seed_key)
    return evaluation.covering_side


def advancing_owner(
    game: GameOutcome,
    rule: str = STRAIGHT_UP,
    push_rule: str = "favorite_advances",
):
    """Owner id of the advancing side, or None while undetermined."""
    evaluation = evaluate(game)
    side = advancing_side(evaluation, rule, push_rule, game.spread, game.key)
    return game.owner(side)


def generate_spread_from_seeds(higher_seed: int, lower_seed: int) -> float:
    """
    Suggested spread from a seed matchup (negative favors the higher seed).

    Roughly 2.5 points per seed line, with fixed lines for the lopsided
    first-round pairings. Rounded to the nearest half point.
    """
    fixed = {(1, 16): -23.0, (2, 15): -15.0, (3, 14): -12.0}
    if (higher_seed, lower_seed) in fixed:
        return fixed[(higher_seed, lower_seed)]

    spread = -(lower_seed - higher_seed) * 2.5
    return round(spread * 2) / 2


def is_valid_spread(spread) -> bool:
    """Spreads are quoted in half-point increments."""
    spread = _spread(spread)
    if spread is None:
        return False
    return (spread * 2).is_integer()


def format_spread(spread, for_higher: bool = True) -> str:
    if spread is None:
        return ""
    value = spread if for_higher else -spread
    if value == 0:
        return "(EVEN)"
    text = f"{value:g}"
    return f"(+{text})" if value > 0 else f"({text})"

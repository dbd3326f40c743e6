import math

from app.services.evaluator import (
    AGAINST_SPREAD,
    HIGHER,
    LOWER,
    STRAIGHT_UP,
    Evaluation,
    GameOutcome,
    advancing_owner,
    advancing_side,
    evaluate,
    format_spread,
    generate_spread_from_seeds,
    is_valid_spread,
    normalize_status,
)


def final(higher, lower, spread=None, **kwargs):
    return GameOutcome(higher_score=higher, lower_score=lower, spread=spread, status="final", **kwargs)


def test_push_on_exact_spread():
    result = evaluate(final(24, 17, -7))
    assert result.winner == HIGHER
    assert result.covering_side is None
    assert result.push is True
    assert result.is_upset is False

def test_favorite_wins_but_does_not_cover():
    result = evaluate(final(20, 17, -7))
    assert result.winner == HIGHER
    assert result.covering_side == LOWER
    assert result.push is False
    assert result.is_upset is True

def test_in_progress_game_is_undetermined():
    game = GameOutcome(higher_score=10, lower_score=20, spread=5, status="in_progress")
    result = evaluate(game)
    assert result.winner is None
    assert result.covering_side is None
    assert result.push is False
    assert result.is_upset is False

def test_scheduled_game_without_scores():
    result = evaluate(GameOutcome(spread=-3.5))
    assert result == Evaluation()
    assert result.decided is False

def test_final_with_missing_score_is_undetermined():
    result = evaluate(GameOutcome(higher_score=70, lower_score=None, spread=-3, status="final"))
    assert result.winner is None
    assert result.covering_side is None

def test_winner_is_strictly_greater_score():
    assert evaluate(final(70, 65)).winner == HIGHER
    assert evaluate(final(61, 65)).winner == LOWER

def test_no_spread_means_no_cover():
    result = evaluate(final(70, 65))
    assert result.winner == HIGHER
    assert result.covering_side is None
    assert result.push is False
    assert result.is_upset is False

def test_favorite_covers():
    result = evaluate(final(80, 60, -10.5))
    assert result.covering_side == HIGHER
    assert result.adjusted_margin == 9.5
    assert result.is_upset is False

def test_underdog_wins_outright_and_covers():
    result = evaluate(final(60, 66, -4.5))
    assert result.winner == LOWER
    assert result.covering_side == LOWER
    assert result.is_upset is False

def test_positive_spread_favors_lower_side():
    # Higher side getting 6.5 loses by 3 and covers
    result = evaluate(final(63, 66, 6.5))
    assert result.winner == LOWER
    assert result.covering_side == HIGHER
    assert result.is_upset is True

def test_pickem_spread_covers_with_winner():
    result = evaluate(final(21, 14, 0))
    assert result.covering_side == HIGHER
    assert result.push is False

def test_unknown_status_treated_as_scheduled():
    assert normalize_status("halftime") == "scheduled"
    assert normalize_status(None) == "scheduled"
    result = evaluate(GameOutcome(higher_score=24, lower_score=17, spread=-3, status="FINAL"))
    assert result.winner is None

def test_malformed_values_do_not_raise():
    game = GameOutcome(higher_score="24", lower_score=17.0, spread="-7", status="final")
    assert evaluate(game) == Evaluation()

    game = GameOutcome(higher_score=24, lower_score=17, spread="-7", status="final")
    result = evaluate(game)
    assert result.winner == HIGHER
    assert result.covering_side is None

def test_tie_at_final_is_not_decided():
    result = evaluate(final(17, 17, -3))
    assert result.winner is None
    assert result.covering_side is None

def test_evaluate_is_idempotent():
    game = final(20, 17, -7)
    first = evaluate(game)
    second = evaluate(game)
    assert first == second
    assert first.to_dict() == second.to_dict()

def test_upset_requires_both_winner_and_cover():
    assert Evaluation(winner=HIGHER, covering_side=None, push=True).is_upset is False
    assert Evaluation(winner=HIGHER, covering_side=HIGHER).is_upset is False
    assert Evaluation(winner=LOWER, covering_side=HIGHER).is_upset is True


# Advancement

def test_straight_up_advances_winner():
    result = evaluate(final(20, 17, -7))
    assert advancing_side(result, STRAIGHT_UP, spread=-7) == HIGHER

def test_spread_rule_advances_covering_side():
    result = evaluate(final(20, 17, -7))
    assert advancing_side(result, AGAINST_SPREAD, spread=-7) == LOWER

def test_spread_rule_without_spread_advances_winner():
    result = evaluate(final(20, 17))
    assert advancing_side(result, AGAINST_SPREAD, spread=None) == HIGHER

def test_undecided_game_has_no_advancing_side():
    result = evaluate(GameOutcome(higher_score=20, lower_score=17, spread=-7, status="in_progress"))
    assert advancing_side(result, AGAINST_SPREAD, spread=-7) is None

def test_push_favorite_advances():
    result = evaluate(final(24, 17, -7))
    assert advancing_side(result, AGAINST_SPREAD, "favorite_advances", spread=-7) == HIGHER

def test_push_underdog_advances():
    result = evaluate(final(24, 17, -7))
    assert advancing_side(result, AGAINST_SPREAD, "underdog_advances", spread=-7) == LOWER

def test_push_with_lower_side_favored():
    # Lower side favored by 3, wins by exactly 3
    result = evaluate(final(14, 17, 3))
    assert result.push is True
    assert advancing_side(result, AGAINST_SPREAD, "favorite_advances", spread=3) == LOWER
    assert advancing_side(result, AGAINST_SPREAD, "underdog_advances", spread=3) == HIGHER

def test_push_coin_flip_is_stable_per_game():
    result = evaluate(final(24, 17, -7))
    first = advancing_side(result, AGAINST_SPREAD, "coin_flip", spread=-7, seed_key="mm:12")
    for _ in range(5):
        assert advancing_side(result, AGAINST_SPREAD, "coin_flip", spread=-7, seed_key="mm:12") == first
    assert first in (HIGHER, LOWER)

def test_push_coin_flip_without_key_is_stable():
    game = final(24, 17, -7, higher_owner_id=11, lower_owner_id=22)
    first = advancing_owner(game, AGAINST_SPREAD, "coin_flip")
    assert first in (11, 22)
    for _ in range(10):
        assert advancing_owner(game, AGAINST_SPREAD, "coin_flip") == first

def test_advancing_owner():
    game = final(20, 17, -7, higher_owner_id=11, lower_owner_id=22, key="mm:1")
    assert advancing_owner(game, STRAIGHT_UP) == 11
    assert advancing_owner(game, AGAINST_SPREAD) == 22

def test_advancing_owner_undetermined():
    game = GameOutcome(higher_score=20, lower_score=17, higher_owner_id=11, lower_owner_id=22)
    assert advancing_owner(game, AGAINST_SPREAD) is None


# Spreads

def test_generate_spread_fixed_lines():
    assert generate_spread_from_seeds(1, 16) == -23.0
    assert generate_spread_from_seeds(2, 15) == -15.0
    assert generate_spread_from_seeds(3, 14) == -12.0

def test_generate_spread_per_seed_line():
    assert generate_spread_from_seeds(8, 9) == -2.5
    assert generate_spread_from_seeds(5, 12) == -17.5
    assert generate_spread_from_seeds(1, 1) == 0

def test_generated_spreads_are_valid():
    for higher in range(1, 17):
        for lower in range(higher, 17):
            assert is_valid_spread(generate_spread_from_seeds(higher, lower))

def test_is_valid_spread():
    assert is_valid_spread(-7)
    assert is_valid_spread(3.5)
    assert not is_valid_spread(2.25)
    assert not is_valid_spread(None)
    assert not is_valid_spread(math.inf)
    assert not is_valid_spread(-math.inf)
    assert not is_valid_spread(math.nan)
    assert not is_valid_spread(10 ** 400)

def test_infinite_spread_counts_as_no_spread():
    result = evaluate(final(24, 17, math.inf))
    assert result.winner == HIGHER
    assert result.covering_side is None
    assert result.push is False

def test_format_spread():
    assert format_spread(0) == "(EVEN)"
    assert format_spread(-7) == "(-7)"
    assert format_spread(-7, for_higher=False) == "(+7)"
    assert format_spread(3.5) == "(+3.5)"
    assert format_spread(None) == ""

import random

import pytest

from app.services.squares import (
    add_game,
    assign_square,
    calculate_winning_square_position,
    create_squares_pool,
    finalize_score_change_game,
    get_payout_leaderboard,
    get_squares,
    get_winners,
    lock_numbers,
    record_period_scores,
    record_score_change,
)


def name_square(session, sq_pool, home_score, away_score, name, reverse=False):
    row, col = calculate_winning_square_position(
        home_score, away_score, sq_pool.row_numbers, sq_pool.col_numbers, reverse
    )
    assign_square(session, sq_pool, row, col, name)


def quarter_pool(session, reverse_scoring=False):
    sq_pool = create_squares_pool(
        session, "Super Bowl Squares", "quarter", reverse_scoring=reverse_scoring,
        payouts={"q1_payout": 25, "halftime_payout": 50, "q3_payout": 25, "final_payout": 100},
    )
    lock_numbers(session, sq_pool, rng=random.Random(9))
    game = add_game(session, sq_pool, "Super Bowl LIX", "Eagles", "Chiefs")
    return sq_pool, game


def test_create_pool_has_100_empty_squares(session):
    sq_pool = create_squares_pool(session, "Squares", "quarter")
    squares = get_squares(session, sq_pool)
    assert len(squares) == 100
    assert all(s.participant_name is None for s in squares)
    assert sq_pool.numbers_locked is False

def test_unknown_scoring_mode(session):
    with pytest.raises(ValueError, match="scoring mode"):
        create_squares_pool(session, "Squares", "every_minute")

def test_lock_numbers_once(session):
    sq_pool = create_squares_pool(session, "Squares")
    lock_numbers(session, sq_pool, rng=random.Random(1))
    assert sorted(sq_pool.row_numbers) == list(range(10))
    assert sorted(sq_pool.col_numbers) == list(range(10))
    with pytest.raises(ValueError, match="already locked"):
        lock_numbers(session, sq_pool)

def test_square_cannot_be_taken_twice(session):
    sq_pool = create_squares_pool(session, "Squares")
    assign_square(session, sq_pool, 0, 0, "Alex")
    with pytest.raises(ValueError, match="already taken"):
        assign_square(session, sq_pool, 0, 0, "Blair")
    assert assign_square(session, sq_pool, 0, 0, None).participant_name is None

def test_scores_need_locked_numbers(session):
    sq_pool = create_squares_pool(session, "Squares")
    game = add_game(session, sq_pool, "Game")
    with pytest.raises(ValueError, match="locked"):
        record_period_scores(session, sq_pool, game, "q1", 7, 0)

def test_quarter_winners_with_payouts(session):
    sq_pool, game = quarter_pool(session)
    name_square(session, sq_pool, 7, 3, "Alex")
    name_square(session, sq_pool, 24, 22, "Blair")

    winners = record_period_scores(session, sq_pool, game, "q1", 7, 3)
    assert [(w.win_type, w.winner_name, w.payout) for w in winners] == [("q1", "Alex", 25)]

    winners = record_period_scores(session, sq_pool, game, "halftime", 24, 12)
    assert winners[0].winner_name == "Blair"

    # Nobody owns the 0-2 square
    winners = record_period_scores(session, sq_pool, game, "final", 40, 22)
    assert winners[0].winner_name is None
    assert game.status == "final"
    assert game.home_score == 40

    assert len(get_winners(session, game)) == 3

def test_reentering_period_replaces_winner(session):
    sq_pool, game = quarter_pool(session)
    record_period_scores(session, sq_pool, game, "q1", 7, 0)
    record_period_scores(session, sq_pool, game, "q1", 7, 3)
    winners = get_winners(session, game)
    assert len(winners) == 1
    assert (winners[0].home_score, winners[0].away_score) == (7, 3)

def test_reverse_winner_only_when_digits_differ(session):
    sq_pool, game = quarter_pool(session, reverse_scoring=True)
    name_square(session, sq_pool, 7, 3, "Alex")
    name_square(session, sq_pool, 7, 3, "Blair", reverse=True)

    winners = record_period_scores(session, sq_pool, game, "q1", 7, 3)
    assert [(w.win_type, w.winner_name) for w in winners] == [("q1", "Alex"), ("q1_reverse", "Blair")]

    winners = record_period_scores(session, sq_pool, game, "halftime", 14, 14)
    assert [w.win_type for w in winners] == ["halftime"]

def test_unknown_period(session):
    sq_pool, game = quarter_pool(session)
    with pytest.raises(ValueError, match="Unknown period"):
        record_period_scores(session, sq_pool, game, "q5", 7, 0)


def score_change_pool(session):
    sq_pool = create_squares_pool(
        session, "Every Score", "score_change",
        payouts={"per_change_payout": 10, "final_bonus_payout": 50},
    )
    lock_numbers(session, sq_pool, rng=random.Random(4))
    game = add_game(session, sq_pool, "Championship", "Eagles", "Chiefs")
    return sq_pool, game


def test_score_change_sequence(session):
    sq_pool, game = score_change_pool(session)
    name_square(session, sq_pool, 0, 0, "Alex")
    name_square(session, sq_pool, 7, 0, "Blair")

    assert record_score_change(session, sq_pool, game, 0, 0)[0].winner_name == "Alex"
    winners = record_score_change(session, sq_pool, game, 7, 0)
    assert winners[0].winner_name == "Blair"
    assert winners[0].change_order == 2
    assert winners[0].payout == 10

    final = finalize_score_change_game(session, sq_pool, game)
    assert [(w.win_type, w.winner_name, w.payout) for w in final] == [("score_change_final", "Blair", 50)]
    assert game.status == "final"

    leaderboard = get_payout_leaderboard(session, sq_pool)
    assert leaderboard[0] == {"participant_name": "Blair", "wins": 2, "total_payout": 60.0}
    assert leaderboard[1] == {"participant_name": "Alex", "wins": 1, "total_payout": 10.0}

def test_first_score_change_must_be_zero_zero(session):
    sq_pool, game = score_change_pool(session)
    with pytest.raises(ValueError, match="0-0"):
        record_score_change(session, sq_pool, game, 7, 0)

def test_score_change_rules(session):
    sq_pool, game = score_change_pool(session)
    record_score_change(session, sq_pool, game, 0, 0)
    record_score_change(session, sq_pool, game, 3, 0)

    with pytest.raises(ValueError, match="one team"):
        record_score_change(session, sq_pool, game, 10, 7)
    with pytest.raises(ValueError, match="cannot be less"):
        record_score_change(session, sq_pool, game, 0, 7)
    with pytest.raises(ValueError, match="must change"):
        record_score_change(session, sq_pool, game, 3, 0)

def test_no_changes_after_final(session):
    sq_pool, game = score_change_pool(session)
    with pytest.raises(ValueError, match="No scores"):
        finalize_score_change_game(session, sq_pool, game)

    record_score_change(session, sq_pool, game, 0, 0)
    finalize_score_change_game(session, sq_pool, game)
    with pytest.raises(ValueError, match="already final"):
        record_score_change(session, sq_pool, game, 7, 0)

def test_wrong_mode_rejected(session):
    sq_pool, game = score_change_pool(session)
    with pytest.raises(ValueError, match="quarter scoring"):
        record_period_scores(session, sq_pool, game, "q1", 7, 0)

# FILE: tests/test_leaderboard.py

import threading

import pytest
from daily_quiz.models.attempts import CompletionEvent
from daily_quiz.models.leaderboard import LeaderboardSlot
from daily_quiz.services.leaderboard import LeaderboardAggregator, fold_completion


@pytest.fixture
def board(file_store, calendar):
    return LeaderboardAggregator(file_store, calendar=calendar)


def test_top_three_keeps_earlier_tie_first(file_store):
    board = LeaderboardAggregator(file_store, size=3)
    for identity, score in zip("abcde", [50, 80, 30, 90, 80]):
        board.record_completion("2025-03-01", identity, score)

    entries = board.get_leaderboard("2025-03-01").entries
    assert [e.score for e in entries] == [90, 80, 80]
    assert [e.identity for e in entries] == ["d", "b", "e"]
    assert [e.rank for e in entries] == [1, 2, 3]


def test_board_is_bounded_and_ordered(board):
    for i in range(15):
        board.record_completion("2025-03-01", f"p{i}", (i * 37) % 100)

    entries = board.get_leaderboard("2025-03-01").entries
    scores = [e.score for e in entries]
    assert len(entries) == 10
    assert scores == sorted(scores, reverse=True)


def test_score_below_cut_changes_nothing(file_store):
    board = LeaderboardAggregator(file_store, size=2)
    board.record_completion("2025-03-01", "a", 50)
    board.record_completion("2025-03-01", "b", 40)
    before = file_store.get("leaderboard", "2025-03-01")

    entries = board.record_completion("2025-03-01", "c", 10)

    assert [e.identity for e in entries] == ["a", "b"]
    assert file_store.get("leaderboard", "2025-03-01") == before


def test_append_policy_allows_repeat_identities(board):
    board.record_completion("2025-W10", "a", 50)
    board.record_completion("2025-W10", "a", 70)

    assert [e.score for e in board.get_leaderboard("2025-W10").entries] == [70, 50]


def test_best_policy_keeps_one_slot_per_identity(file_store):
    board = LeaderboardAggregator(file_store, policy="best")
    board.record_completion("2025-W10", "a", 50)
    board.record_completion("2025-W10", "a", 40)
    board.record_completion("2025-W10", "b", 60)
    board.record_completion("2025-W10", "a", 70)

    entries = board.get_leaderboard("2025-W10").entries
    assert [(e.identity, e.score) for e in entries] == [("a", 70), ("b", 60)]


def test_redelivered_event_is_ignored(board):
    event = CompletionEvent(identity="player:u1", date_key="2025-03-01", period_key="2025-03-01", score=120)

    board.handle_completion(event)
    board.handle_completion(event)

    assert len(board.get_leaderboard("2025-03-01").entries) == 1


def test_unknown_period_is_empty(board):
    leaderboard = board.get_leaderboard("1999-01-01")
    assert leaderboard.period_key == "1999-01-01"
    assert leaderboard.entries == []


def test_concurrent_completions_are_all_kept(board):
    def worker(i):
        board.record_completion("2025-03-01", f"p{i}", 10 * i)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    entries = board.get_leaderboard("2025-03-01").entries
    assert sorted(e.identity for e in entries) == sorted(f"p{i}" for i in range(10))


def test_fold_completion_is_pure():
    slots = [LeaderboardSlot(identity="a", score=10)]
    ranked = fold_completion(slots, LeaderboardSlot(identity="b", score=20), size=10)

    assert [s.identity for s in ranked] == ["b", "a"]
    assert [s.identity for s in slots] == ["a"]

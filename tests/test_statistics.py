"""Tests for vote statistics."""

import pytest

from planning_poker.lib.models import ParticipantSnapshot, VoteValue
from planning_poker.session.statistics import compute, parse_numeric


def make_snapshot(votes: dict[str, VoteValue | None]) -> dict[str, ParticipantSnapshot]:
    """Build a ledger snapshot with one participant per name."""
    return {
        name: ParticipantSnapshot(id=name, name=name, vote=vote)
        for name, vote in votes.items()
    }


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (3, 3.0),
        (0.5, 0.5),
        ("13", 13.0),
        (" 0.5 ", 0.5),
        ("-1", -1.0),
    ],
)
def test_parse_numeric_accepts_real_numbers(value, expected):
    assert parse_numeric(value) == expected


@pytest.mark.parametrize("value", ["?", "∞", "coffee", "", "inf", "nan", "1e400", True, None])
def test_parse_numeric_rejects_cards(value):
    assert parse_numeric(value) is None


def test_mixed_numeric_and_card_votes():
    stats = compute(make_snapshot({"A": 1, "B": 3, "C": 5, "D": "?"}))
    assert stats.votes_cast == 4
    assert stats.numeric_votes == 3
    assert stats.average == 3.0
    assert stats.median == 3.0
    assert stats.min == 1
    assert stats.max == 5


def test_all_card_votes_leave_numbers_absent():
    stats = compute(make_snapshot({"A": "?", "B": "?", "C": "∞"}))
    assert stats.votes_cast == 3
    assert stats.numeric_votes == 0
    assert stats.average is None
    assert stats.median is None
    assert stats.min is None
    assert stats.max is None
    assert stats.mode is None


def test_no_votes_counts_voters_only():
    stats = compute(make_snapshot({"A": None, "B": None}))
    assert stats.total_voters == 2
    assert stats.votes_cast == 0
    assert stats.average is None


def test_even_count_median_is_mean_of_middle_pair():
    stats = compute(make_snapshot({"A": 5, "B": 1, "C": "3", "D": 2}))
    assert stats.median == 2.5
    assert stats.average == 2.75


def test_fractional_story_points():
    stats = compute(make_snapshot({"A": "0.5", "B": 0.5, "C": "1"}))
    assert stats.min == 0.5
    assert stats.max == 1.0
    assert stats.median == 0.5


def test_mode_prefers_smallest_on_ties():
    stats = compute(make_snapshot({"A": 5, "B": 3, "C": 5, "D": 3, "E": 8}))
    assert stats.mode == 3


def test_unvoted_participants_count_toward_total_only():
    stats = compute(make_snapshot({"A": 8, "B": None, "C": 13}))
    assert stats.total_voters == 3
    assert stats.votes_cast == 2
    assert stats.average == 10.5


def test_result_does_not_depend_on_order():
    forward = compute(make_snapshot({"A": 0.1, "B": 0.2, "C": 0.3, "D": "?"}))
    backward = compute(make_snapshot({"D": "?", "C": 0.3, "B": 0.2, "A": 0.1}))
    assert forward == backward

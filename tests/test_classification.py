# tests/test_classification.py
"""Tests for badge weights, the interquartile mean and label mapping."""

import pytest

from texting_theory.core.classification import (
    VOTABLE_CLASSIFICATIONS,
    Classification,
    interquartile_mean,
    iqm_to_classification,
    parse_classification,
    round_half_up,
)


def test_interesting_is_not_votable() -> None:
    assert Classification.INTERESTING not in VOTABLE_CLASSIFICATIONS
    assert len(VOTABLE_CLASSIFICATIONS) == 10


def test_weights_follow_best_to_worst_scale() -> None:
    assert Classification.BRILLIANT.weight == 3
    assert Classification.EXCELLENT.weight == 0.5
    assert Classification.BOOK.weight == Classification.GOOD.weight == 0
    assert Classification.MISS.weight == Classification.MISTAKE.weight == -1
    assert Classification.BLUNDER.weight == -2


def test_iqm_empty_and_single() -> None:
    assert interquartile_mean([]) == 0.0
    assert interquartile_mean([2.0]) == 2.0


def test_iqm_even_split_uses_whole_middle_half() -> None:
    assert interquartile_mean([1, 2, 3, 4]) == pytest.approx(2.5)


def test_iqm_two_values_is_their_mean() -> None:
    assert interquartile_mean([1, 3]) == pytest.approx(2.0)


def test_iqm_ignores_single_outlier() -> None:
    """Eight 1s and one 10: the boundary elements are both 1, so the outlier drops out."""
    assert interquartile_mean([1] * 8 + [10]) == pytest.approx(1.0)


def test_iqm_is_order_independent() -> None:
    assert interquartile_mean([3000, 100, 100, 100, 100, 100, 100, 100]) == pytest.approx(100.0)


def test_iqm_fractional_boundaries() -> None:
    # n=5: trim 1.25, core is values[2:3], boundaries weigh 0.75 each.
    values = [0, 10, 20, 30, 40]
    expected = (20 + 10 * 0.75 + 30 * 0.75) / 2.5
    assert interquartile_mean(values) == pytest.approx(expected)


@pytest.mark.parametrize(
    ("iqm", "expected"),
    [
        (3.0, Classification.BRILLIANT),
        (2.5, Classification.BRILLIANT),
        (2.49, Classification.GREAT),
        (1.5, Classification.GREAT),
        (0.75, Classification.BEST),
        (0.25, Classification.EXCELLENT),
        (0.0, Classification.GOOD),
        (-0.25, Classification.GOOD),
        (-0.5, Classification.INACCURACY),
        (-1.0, Classification.MISTAKE),
        (-1.5, Classification.MISTAKE),
        (-1.51, Classification.BLUNDER),
    ],
)
def test_threshold_buckets(iqm: float, expected: Classification) -> None:
    assert iqm_to_classification(iqm, {}, 10) is expected


def test_book_needs_majority_share() -> None:
    counts = {Classification.BOOK: 5, Classification.GOOD: 5}
    assert iqm_to_classification(0.0, counts, 10) is Classification.BOOK

    counts = {Classification.BOOK: 4, Classification.GOOD: 6}
    assert iqm_to_classification(0.0, counts, 10) is Classification.GOOD


def test_book_band_is_exclusive() -> None:
    counts = {Classification.BOOK: 6, Classification.BEST: 4}
    assert iqm_to_classification(1.0, counts, 10) is Classification.BEST


def test_miss_needs_majority_share_and_band() -> None:
    counts = {Classification.MISS: 6, Classification.MISTAKE: 4}
    assert iqm_to_classification(-1.0, counts, 10) is Classification.MISS
    # IQM at the upper edge of the band falls back to the thresholds.
    assert iqm_to_classification(0.0, counts, 10) is Classification.GOOD


def test_parse_classification() -> None:
    assert parse_classification("Brilliant") is Classification.BRILLIANT
    assert parse_classification("brilliant") is None
    assert parse_classification("Nope") is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [(2.5, 3), (2.4999, 2), (-2.5, -2), (1999.5, 2000), (0.0, 0)],
)
def test_round_half_up(value: float, expected: int) -> None:
    assert round_half_up(value) == expected

"""Badge classifications and the scoring helpers built on them.

Every votable badge maps to a fixed weight on a best-to-worst scale. Consensus is
the interquartile mean (IQM) of the per-vote weights, mapped back to the closest
classification through fixed thresholds, with two share-based special cases for
``Book`` and ``Miss`` whose weights collide with other tags.
"""
from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from enum import Enum


class Classification(str, Enum):
    """Closed set of badge tags."""

    BRILLIANT = "Brilliant"
    GREAT = "Great"
    BOOK = "Book"
    BEST = "Best"
    EXCELLENT = "Excellent"
    GOOD = "Good"
    INACCURACY = "Inaccuracy"
    MISTAKE = "Mistake"
    MISS = "Miss"
    BLUNDER = "Blunder"
    INTERESTING = "Interesting"

    @property
    def weight(self) -> float:
        return CLASSIFICATION_WEIGHT[self]


# Picker order best -> worst. Interesting is display-only and cannot be voted.
VOTABLE_CLASSIFICATIONS: tuple[Classification, ...] = (
    Classification.BRILLIANT,
    Classification.GREAT,
    Classification.BOOK,
    Classification.BEST,
    Classification.EXCELLENT,
    Classification.GOOD,
    Classification.INACCURACY,
    Classification.MISTAKE,
    Classification.MISS,
    Classification.BLUNDER,
)

CLASSIFICATION_WEIGHT: Mapping[Classification, float] = {
    Classification.BRILLIANT: 3,
    Classification.GREAT: 2,
    Classification.BEST: 1,
    Classification.EXCELLENT: 0.5,
    Classification.BOOK: 0,
    Classification.GOOD: 0,
    Classification.INACCURACY: -0.5,
    Classification.MISTAKE: -1,
    Classification.MISS: -1,
    Classification.BLUNDER: -2,
    Classification.INTERESTING: 0,
}

# Lower bound (inclusive) of each bucket, best -> worst; anything below the last
# bound is a Blunder.
CLASSIFICATION_THRESHOLDS: tuple[tuple[float, Classification], ...] = (
    (2.5, Classification.BRILLIANT),
    (1.5, Classification.GREAT),
    (0.75, Classification.BEST),
    (0.25, Classification.EXCELLENT),
    (-0.25, Classification.GOOD),
    (-0.75, Classification.INACCURACY),
    (-1.5, Classification.MISTAKE),
)

BOOK_MIN_SHARE = 0.5
BOOK_IQM_RANGE = (-1.0, 1.0)  # exclusive
MISS_MIN_SHARE = 0.5
MISS_IQM_RANGE = (-2.0, 0.0)  # exclusive

IQM_TRIM_PROPORTION = 0.25


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up."""
    return math.floor(value + 0.5)


def parse_classification(value: str) -> Classification | None:
    """Return the classification named by ``value`` or None for unknown text."""
    try:
        return Classification(value)
    except ValueError:
        return None


def interquartile_mean(values: Sequence[float]) -> float:
    """Return the interquartile mean of ``values``.

    Trims 25% from each end of the sorted values. When the trim point falls
    between two elements, the two boundary elements contribute fractionally.
    An empty input yields 0 and a single value is returned unchanged.
    """
    n = len(values)
    if n == 0:
        return 0.0
    if n == 1:
        return float(values[0])

    ordered = sorted(values)
    trim_amount = n * IQM_TRIM_PROPORTION
    k = math.floor(trim_amount)
    g = trim_amount - k

    weighted_sum = float(sum(ordered[k + 1 : n - (k + 1)]))
    boundary_weight = 1 - g
    weighted_sum += ordered[k] * boundary_weight
    weighted_sum += ordered[n - 1 - k] * boundary_weight

    total_weight = n - 2 * trim_amount
    return weighted_sum / total_weight


def _share(counts: Mapping[Classification, int], tag: Classification, total: int) -> float:
    return counts.get(tag, 0) / total if total else 0.0


def iqm_to_classification(
    iqm: float,
    vote_counts: Mapping[Classification, int],
    total_votes: int,
) -> Classification:
    """Map an IQM score to the nearest classification.

    Book and Miss share weights with Good and Mistake, so they can only win
    through a majority share combined with an IQM inside their own band.
    """
    low, high = BOOK_IQM_RANGE
    if _share(vote_counts, Classification.BOOK, total_votes) >= BOOK_MIN_SHARE and low < iqm < high:
        return Classification.BOOK

    low, high = MISS_IQM_RANGE
    if _share(vote_counts, Classification.MISS, total_votes) >= MISS_MIN_SHARE and low < iqm < high:
        return Classification.MISS

    for lower_bound, classification in CLASSIFICATION_THRESHOLDS:
        if iqm >= lower_bound:
            return classification
    return Classification.BLUNDER

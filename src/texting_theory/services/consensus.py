"""Consensus computation for badges and post ratings.

Consensus is always recomputed from the full vote set; trimming depends on the
sorted order of every vote so nothing is maintained incrementally.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from texting_theory.core.classification import (
    Classification,
    interquartile_mean,
    iqm_to_classification,
    parse_classification,
    round_half_up,
)
from texting_theory.core.settings import Settings
from texting_theory.models.post import Post
from texting_theory.services.vote_store import VoteStore


@dataclass
class TargetConsensus:
    """Derived consensus for one target."""

    classification: Classification | None
    total_votes: int
    vote_counts: dict[Classification, int] = field(default_factory=dict)
    iqm: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "classification": self.classification.value if self.classification else None,
            "total_votes": self.total_votes,
            "vote_counts": {tag.value: count for tag, count in self.vote_counts.items()},
            "iqm": self.iqm,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TargetConsensus:
        raw_label = data.get("classification")
        counts: dict[Classification, int] = {}
        for name, count in dict(data.get("vote_counts") or {}).items():
            tag = parse_classification(name)
            if tag is not None:
                counts[tag] = int(count)
        return cls(
            classification=parse_classification(raw_label) if raw_label else None,
            total_votes=int(data.get("total_votes", 0)),
            vote_counts=counts,
            iqm=float(data.get("iqm", 0.0)),
        )


@dataclass(frozen=True)
class RatingConsensus:
    """Derived consensus rating for a post; ``rating`` is None without votes."""

    rating: int | None
    vote_count: int


def compute_target_consensus(
    votes: Iterable[Classification],
    *,
    min_votes: int,
) -> TargetConsensus:
    """Score one target's countable votes.

    The label is only surfaced once ``min_votes`` votes are in; below that the
    score is still reported so the client can show progress.
    """
    tags = list(votes)
    total = len(tags)
    if total == 0:
        return TargetConsensus(classification=None, total_votes=0)

    counts = dict(Counter(tags))
    iqm = interquartile_mean([tag.weight for tag in tags])
    classification = iqm_to_classification(iqm, counts, total) if total >= min_votes else None
    return TargetConsensus(
        classification=classification,
        total_votes=total,
        vote_counts=counts,
        iqm=iqm,
    )


def reveal_unresolved(consensus: TargetConsensus) -> TargetConsensus:
    """Return ``consensus`` with a label forced from its score, ignoring quorum.

    Used once the voting window has closed: the crowd's answer is final even when
    it never reached quorum.
    """
    if consensus.classification is not None or consensus.total_votes == 0:
        return consensus
    return TargetConsensus(
        classification=iqm_to_classification(
            consensus.iqm, consensus.vote_counts, consensus.total_votes
        ),
        total_votes=consensus.total_votes,
        vote_counts=dict(consensus.vote_counts),
        iqm=consensus.iqm,
    )


def compute_rating_consensus(ratings: Iterable[int]) -> RatingConsensus:
    """Return the rounded IQM of raw rating votes."""
    values = list(ratings)
    if not values:
        return RatingConsensus(rating=None, vote_count=0)
    return RatingConsensus(rating=round_half_up(interquartile_mean(values)), vote_count=len(values))


def clamp_rating(rating: float, config: Settings) -> int:
    """Clamp a submitted rating into the configured range."""
    return int(max(config.rating_min, min(config.rating_max, round_half_up(rating))))


class ClassificationConsensusEngine:
    """Recomputes badge consensus from the aggregate vote view."""

    def __init__(self, votes: VoteStore, config: Settings) -> None:
        self.votes = votes
        self.config = config

    def for_target(
        self,
        post_id: str,
        target_id: str,
        *,
        window_open: bool = True,
    ) -> TargetConsensus:
        tags = self.votes.get_all_votes(post_id, target_id).values()
        consensus = compute_target_consensus(tags, min_votes=self.config.badge_consensus_min_votes)
        if not window_open and self.config.reveal_unresolved_after_close:
            consensus = reveal_unresolved(consensus)
        return consensus

    def for_post(self, post: Post, *, window_open: bool = True) -> dict[str, TargetConsensus]:
        return {
            target.id: self.for_target(post.id, target.id, window_open=window_open)
            for target in post.targets
        }


class NumericConsensusEngine:
    """Recomputes a post's consensus rating from the aggregate vote view."""

    def __init__(self, votes: VoteStore) -> None:
        self.votes = votes

    def for_post(self, post_id: str) -> RatingConsensus:
        return compute_rating_consensus(self.votes.get_all_rating_votes(post_id).values())

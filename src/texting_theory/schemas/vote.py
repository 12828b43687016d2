"""Vote-related Pydantic schemas."""

from pydantic import BaseModel, Field

from texting_theory.core.classification import Classification
from texting_theory.services.consensus import TargetConsensus


class ClassificationVoteCreate(BaseModel):
    """Schema for casting a badge vote on one target."""

    post_id: str = Field(..., min_length=1, max_length=64)
    target_id: str = Field(..., min_length=1, max_length=64)
    classification: Classification = Field(..., description="Voted badge tag")


class RatingVoteCreate(BaseModel):
    """Schema for casting an Elo vote on a post.

    Out-of-range ratings are accepted here and clamped by the engine.
    """

    post_id: str = Field(..., min_length=1, max_length=64)
    rating: float = Field(..., allow_inf_nan=False, description="Raw rating, clamped on write")


class TargetConsensusResponse(BaseModel):
    """Consensus for a single target as shown to clients."""

    classification: Classification | None
    total_votes: int
    vote_counts: dict[str, int]
    iqm: float

    @classmethod
    def from_consensus(cls, consensus: TargetConsensus) -> "TargetConsensusResponse":
        return cls(
            classification=consensus.classification,
            total_votes=consensus.total_votes,
            vote_counts={tag.value: count for tag, count in consensus.vote_counts.items()},
            iqm=consensus.iqm,
        )


class ClassificationVoteResponse(BaseModel):
    """Result of a badge vote."""

    target_id: str
    consensus: TargetConsensusResponse
    all_consensus: dict[str, TargetConsensusResponse]
    counted: bool
    invalidated_target_ids: list[str] = Field(default_factory=list)


class RatingVoteResponse(BaseModel):
    """Result of an Elo vote."""

    consensus_rating: int
    vote_count: int
    counted: bool
    target_label: str

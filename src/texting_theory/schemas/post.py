"""Post-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from texting_theory.core.classification import Classification
from texting_theory.repositories.post_repo import TargetSpec

from .vote import TargetConsensusResponse


class TargetIn(BaseModel):
    """One target as supplied by the authoring client."""

    id: str = Field(..., min_length=1, max_length=64)
    position: int | None = Field(None, ge=0, description="Defaults to list order")
    image_index: int = Field(0, ge=0)
    classification: Classification | None = Field(
        None,
        description="Creator-chosen tag; only allowed on preset posts",
    )


def targets_to_specs(targets: list[TargetIn]) -> list[TargetSpec]:
    """Convert incoming targets, filling missing positions from list order."""
    return [
        TargetSpec(
            id=target.id,
            position=target.position if target.position is not None else index,
            image_index=target.image_index,
            preset_classification=(
                target.classification.value if target.classification is not None else None
            ),
        )
        for index, target in enumerate(targets)
    ]


class PostCreate(BaseModel):
    """Schema for registering a newly submitted post."""

    post_id: str = Field(..., min_length=1, max_length=64, description="Platform post id")
    title: str = Field(..., min_length=1, max_length=300)
    mode: Literal["vote", "preset"] = "vote"
    targets: list[TargetIn] = Field(default_factory=list)
    rating_side: Literal["left", "right", "me", "other"] | None = None
    rating_other_label: str | None = Field(None, max_length=16)

    @model_validator(mode="after")
    def _check_other_label(self) -> "PostCreate":
        if self.rating_side == "other" and not (self.rating_other_label or "").strip():
            raise ValueError("rating_other_label is required when rating_side is 'other'")
        return self


class TargetsUpdate(BaseModel):
    """Schema for a moderator replacing a post's targets."""

    targets: list[TargetIn]


class TargetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    position: int
    image_index: int
    preset_classification: str | None = None


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    creator_id: str
    title: str
    mode: str
    created_at_ms: int
    rating_side: str | None = None
    rating_other_label: str | None = None
    targets: list[TargetResponse] = Field(default_factory=list)


class TargetUpdateResponse(BaseModel):
    post: PostResponse
    removed_target_ids: list[str]
    order_changed: bool
    book_votes_removed: int


class InitStateResponse(BaseModel):
    """Everything a client needs to render a post for the current voter."""

    post: PostResponse
    window_open: bool
    per_target_consensus: dict[str, TargetConsensusResponse]
    voter_own_votes: dict[str, Classification]
    voter_own_rating: int | None
    consensus_rating: int | None
    rating_vote_count: int
    target_label: str
    is_moderator: bool

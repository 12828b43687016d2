"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .post import (
    InitStateResponse,
    PostCreate,
    PostResponse,
    TargetIn,
    TargetsUpdate,
    TargetUpdateResponse,
)
from .vote import (
    ClassificationVoteCreate,
    ClassificationVoteResponse,
    RatingVoteCreate,
    RatingVoteResponse,
    TargetConsensusResponse,
)

__all__ = [
    "ClassificationVoteCreate", "ClassificationVoteResponse",
    "InitStateResponse",
    "PostCreate", "PostResponse",
    "RatingVoteCreate", "RatingVoteResponse",
    "TargetConsensusResponse",
    "TargetIn", "TargetsUpdate", "TargetUpdateResponse",
]

"""Vote-related endpoints for the Texting Theory API.

Handlers are plain functions so FastAPI runs them in its threadpool; the engine
makes blocking platform and redis calls.
"""

from fastapi import APIRouter, status

from texting_theory.core.errors import ConsensusError
from texting_theory.schemas.vote import (
    ClassificationVoteCreate,
    ClassificationVoteResponse,
    RatingVoteCreate,
    RatingVoteResponse,
    TargetConsensusResponse,
)

from ..dependencies import CurrentVoterDep, EngineDep, http_error_for

router = APIRouter(prefix="/votes", tags=["votes"])


@router.post("/badge", status_code=status.HTTP_201_CREATED)
def cast_classification_vote(
    vote_data: ClassificationVoteCreate,
    voter_id: CurrentVoterDep,
    engine: EngineDep,
) -> ClassificationVoteResponse:
    """Cast or replace the current voter's badge vote on one target."""
    try:
        result = engine.submit_classification_vote(
            vote_data.post_id,
            vote_data.target_id,
            voter_id,
            vote_data.classification,
        )
    except ConsensusError as err:
        raise http_error_for(err) from err

    return ClassificationVoteResponse(
        target_id=vote_data.target_id,
        consensus=TargetConsensusResponse.from_consensus(result.consensus),
        all_consensus={
            target_id: TargetConsensusResponse.from_consensus(consensus)
            for target_id, consensus in result.all_consensus.items()
        },
        counted=result.counted,
        invalidated_target_ids=result.invalidated_target_ids,
    )


@router.post("/rating", status_code=status.HTTP_201_CREATED)
def cast_rating_vote(
    vote_data: RatingVoteCreate,
    voter_id: CurrentVoterDep,
    engine: EngineDep,
) -> RatingVoteResponse:
    """Cast or replace the current voter's Elo vote on a post."""
    try:
        result = engine.submit_rating_vote(vote_data.post_id, voter_id, vote_data.rating)
    except ConsensusError as err:
        raise http_error_for(err) from err

    return RatingVoteResponse(
        consensus_rating=result.consensus_rating,
        vote_count=result.vote_count,
        counted=result.counted,
        target_label=result.target_label,
    )

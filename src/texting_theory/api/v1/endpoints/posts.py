"""Post-related endpoints for the Texting Theory API.

Like the vote endpoints, handlers are sync and run in the threadpool.
"""

import logging

from fastapi import APIRouter, status

from texting_theory.core.errors import ConsensusError
from texting_theory.schemas.post import (
    InitStateResponse,
    PostCreate,
    PostResponse,
    TargetsUpdate,
    TargetUpdateResponse,
    targets_to_specs,
)
from texting_theory.schemas.vote import TargetConsensusResponse

from ..dependencies import CurrentVoterDep, EngineDep, http_error_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_post(
    post_data: PostCreate,
    creator_id: CurrentVoterDep,
    engine: EngineDep,
) -> PostResponse:
    """Register a newly submitted post and its ordered targets."""
    try:
        post = engine.register_post(
            post_id=post_data.post_id,
            creator_id=creator_id,
            title=post_data.title,
            mode=post_data.mode,
            targets=targets_to_specs(post_data.targets),
            rating_side=post_data.rating_side,
            rating_other_label=post_data.rating_other_label,
        )
    except ConsensusError as err:
        raise http_error_for(err) from err
    return PostResponse.model_validate(post)


@router.get("/{post_id}/init")
def get_init_state(
    post_id: str,
    voter_id: CurrentVoterDep,
    engine: EngineDep,
) -> InitStateResponse:
    """Return the post, its consensus and the current voter's own votes."""
    try:
        state = engine.get_init_state(post_id, voter_id)
    except ConsensusError as err:
        raise http_error_for(err) from err

    return InitStateResponse(
        post=PostResponse.model_validate(state.post),
        window_open=state.window_open,
        per_target_consensus={
            target_id: TargetConsensusResponse.from_consensus(consensus)
            for target_id, consensus in state.per_target_consensus.items()
        },
        voter_own_votes=state.voter_own_votes,
        voter_own_rating=state.voter_own_rating,
        consensus_rating=state.consensus_rating,
        rating_vote_count=state.rating_vote_count,
        target_label=state.target_label,
        is_moderator=state.is_moderator,
    )


@router.put("/{post_id}/targets")
def update_targets(
    post_id: str,
    update: TargetsUpdate,
    actor_id: CurrentVoterDep,
    engine: EngineDep,
) -> TargetUpdateResponse:
    """Moderator edit: replace a post's targets, purging votes they invalidate."""
    try:
        result = engine.update_targets(post_id, actor_id, targets_to_specs(update.targets))
    except ConsensusError as err:
        raise http_error_for(err) from err

    logger.info("Targets of post %s updated by moderator %s", post_id, actor_id)
    return TargetUpdateResponse(
        post=PostResponse.model_validate(result.post),
        removed_target_ids=result.purge.removed_target_ids,
        order_changed=result.purge.order_changed,
        book_votes_removed=result.purge.book_votes_removed,
    )

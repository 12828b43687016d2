"""Consensus engine entry points.

``ConsensusEngine`` is the only surface adapters call. It owns no process-wide
state: everything it needs arrives through an ``EngineContext`` built once at
startup, plus a ``PostRepository`` bound to the caller's database session.

Vote flow::

    request -> eligibility -> vote store -> book-chain check (badges only)
            -> cache invalidation -> consensus recompute -> response
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from texting_theory.core.classification import VOTABLE_CLASSIFICATIONS, Classification
from texting_theory.core.errors import (
    InvalidTargetLayoutError,
    InvalidVoteError,
    PostExistsError,
    PostNotFoundError,
    TargetNotFoundError,
    VotingClosedError,
    VotingDeniedError,
)
from texting_theory.core.settings import Settings
from texting_theory.db.time import now_ms
from texting_theory.models.post import (
    POST_MODE_PRESET,
    POST_MODE_VOTE,
    RATING_SIDE_ME,
    RATING_SIDE_OTHER,
    RATING_SIDES,
    Post,
)
from texting_theory.repositories.post_repo import PostRepository, TargetSpec
from texting_theory.services.book_chain import BookChainValidator
from texting_theory.services.consensus import (
    ClassificationConsensusEngine,
    NumericConsensusEngine,
    TargetConsensus,
    clamp_rating,
)
from texting_theory.services.consensus_cache import ConsensusCache
from texting_theory.services.eligibility import EligibilityChecker
from texting_theory.services.flair import RatingDisplay, rating_target_label
from texting_theory.services.identity import BanStatus, IdentitySource
from texting_theory.services.kv import KeyValueStore, build_kv_store
from texting_theory.services.moderation import ModerationService, TargetPurge
from texting_theory.services.platform import DisplaySink, PlatformClient, load_platform_config
from texting_theory.services.vote_store import VoteStore
from texting_theory.services.voting_window import RatingFinalizer, VotingWindow

logger = logging.getLogger(__name__)

PRESET_TITLE_PREFIX = "[Annotated] "
OTHER_LABEL_REGEX = re.compile(r"^[A-Za-z]{1,16}$")
ME_LABEL_REGEX = re.compile(r"^me$", re.IGNORECASE)


@dataclass(frozen=True)
class EngineContext:
    """Collaborators shared by every request, constructed once per process."""

    config: Settings
    kv: KeyValueStore
    identity: IdentitySource
    display: DisplaySink
    clock: Callable[[], int] = now_ms


def build_engine_context(config: Settings) -> EngineContext:
    """Wire the production backends described by ``config``."""
    platform = PlatformClient(load_platform_config(config))
    return EngineContext(
        config=config,
        kv=build_kv_store(config),
        identity=platform,
        display=platform,
    )


def close_engine_context(context: EngineContext) -> None:
    """Release the platform connection held by a production context."""
    if isinstance(context.display, PlatformClient):
        context.display.close()


@dataclass(frozen=True)
class ClassificationVoteResult:
    consensus: TargetConsensus
    all_consensus: dict[str, TargetConsensus]
    counted: bool
    invalidated_target_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RatingVoteResult:
    consensus_rating: int
    vote_count: int
    counted: bool
    target_label: str


@dataclass(frozen=True)
class InitState:
    post: Post
    window_open: bool
    per_target_consensus: dict[str, TargetConsensus]
    voter_own_votes: dict[str, Classification]
    voter_own_rating: int | None
    consensus_rating: int | None
    rating_vote_count: int
    target_label: str
    is_moderator: bool


@dataclass(frozen=True)
class TargetUpdateResult:
    post: Post
    purge: TargetPurge


class ConsensusEngine:
    """Façade over the vote store, eligibility, consensus and display services."""

    def __init__(self, context: EngineContext, posts: PostRepository) -> None:
        config = context.config
        self.config = config
        self.posts = posts
        self.identity = context.identity
        self.votes = VoteStore(context.kv)
        self.window = VotingWindow(config, context.clock)
        self.eligibility = EligibilityChecker(config, context.identity, self.window)
        self.book_chain = BookChainValidator(self.votes)
        self.classification = ClassificationConsensusEngine(self.votes, config)
        self.numeric = NumericConsensusEngine(self.votes)
        self.cache = ConsensusCache(context.kv, config.consensus_cache_ttl_seconds, context.clock)
        self.display = RatingDisplay(config, context.display)
        self.finalizer = RatingFinalizer(self.window, context.kv, self.numeric, self.display)
        self.moderation = ModerationService(
            config, context.identity, context.kv, self.votes, context.clock
        )

    # --- Lookups ----------------------------------------------------------------------
    def _get_post(self, post_id: str) -> Post:
        post = self.posts.get_by_id(post_id)
        if post is None:
            raise PostNotFoundError(f"Post {post_id} not found")
        return post

    def _assert_can_vote(self, post: Post, voter_id: str) -> None:
        if not post.is_vote_mode:
            raise VotingDeniedError("This post does not accept votes")
        if post.creator_id == voter_id:
            raise VotingDeniedError("You can't vote on your own post")
        if not self.window.is_open(post):
            self.finalizer.finalize_if_closed(post)
            raise VotingClosedError("Voting has ended for this post")

    # --- Votes ------------------------------------------------------------------------
    def submit_classification_vote(
        self,
        post_id: str,
        target_id: str,
        voter_id: str,
        classification: Classification,
    ) -> ClassificationVoteResult:
        """Record a badge vote and return the refreshed consensus for the post."""
        post = self._get_post(post_id)
        self._assert_can_vote(post, voter_id)
        if not any(target.id == target_id for target in post.targets):
            raise TargetNotFoundError(f"Badge {target_id} not found on post {post_id}")
        if classification not in VOTABLE_CLASSIFICATIONS:
            raise InvalidVoteError(f"{classification.value} cannot be voted on")

        counted = self.eligibility.is_eligible(post, voter_id)
        self.votes.record_classification_vote(
            post.id, target_id, voter_id, classification, countable=counted
        )
        invalidated = self.book_chain.invalidate_broken_book_votes(post.id, voter_id, post.targets)

        self.cache.clear(post.id)
        all_consensus = self.classification.for_post(post, window_open=True)
        self.cache.write(post.id, True, all_consensus)

        return ClassificationVoteResult(
            consensus=all_consensus[target_id],
            all_consensus=all_consensus,
            counted=counted,
            invalidated_target_ids=invalidated,
        )

    def submit_rating_vote(self, post_id: str, voter_id: str, rating: float) -> RatingVoteResult:
        """Record a rating vote, clamped into range, and refresh the post flair."""
        post = self._get_post(post_id)
        self._assert_can_vote(post, voter_id)

        clamped = clamp_rating(rating, self.config)
        counted = self.eligibility.is_eligible(post, voter_id)
        self.votes.record_rating_vote(post.id, voter_id, clamped, countable=counted)
        self.cache.clear(post.id)

        consensus = self.numeric.for_post(post.id)
        if consensus.vote_count >= self.config.rating_flair_min_votes and self.window.is_open(post):
            self.display.update_post_flair(
                post.id,
                consensus.rating if consensus.rating is not None else clamped,
                consensus.vote_count,
                show_visible=consensus.vote_count >= self.config.rating_visible_min_votes,
            )

        self.finalizer.finalize_if_closed(post)

        return RatingVoteResult(
            consensus_rating=consensus.rating if consensus.rating is not None else clamped,
            vote_count=consensus.vote_count,
            counted=counted,
            target_label=rating_target_label(post),
        )

    # --- Reads ------------------------------------------------------------------------
    def get_init_state(self, post_id: str, voter_id: str) -> InitState:
        """Return everything a client needs to render a post for ``voter_id``."""
        post = self._get_post(post_id)
        target_ids = {target.id for target in post.targets}
        own_votes = {
            target_id: classification
            for target_id, classification in self.votes.get_voter_own_votes(
                post.id, voter_id
            ).items()
            if target_id in target_ids
        }
        own_rating = self.votes.get_voter_own_rating(post.id, voter_id)
        rating = self.numeric.for_post(post.id)

        self.finalizer.finalize_if_closed(post)

        window_open = self.window.is_open(post)
        per_target: dict[str, TargetConsensus] = {}
        if post.is_vote_mode:
            cached = self.cache.read(post.id, window_open)
            if cached is not None:
                per_target = cached
            else:
                per_target = self.classification.for_post(post, window_open=window_open)
                self.cache.write(post.id, window_open, per_target)

        return InitState(
            post=post,
            window_open=window_open,
            per_target_consensus=per_target,
            voter_own_votes=own_votes,
            voter_own_rating=own_rating,
            consensus_rating=rating.rating,
            rating_vote_count=rating.vote_count,
            target_label=rating_target_label(post),
            is_moderator=self.moderation.is_moderator(voter_id),
        )

    # --- Authoring --------------------------------------------------------------------
    def register_post(
        self,
        *,
        post_id: str,
        creator_id: str,
        title: str,
        mode: str,
        targets: Sequence[TargetSpec],
        rating_side: str | None = None,
        rating_other_label: str | None = None,
    ) -> Post:
        """Persist a newly authored post and its ordered targets."""
        if self.identity.ban_status(creator_id, self.config.community_name) is BanStatus.BANNED:
            raise VotingDeniedError("Banned users cannot create posts")
        if self.posts.get_by_id(post_id) is not None:
            raise PostExistsError(f"Post {post_id} already exists")
        if mode not in (POST_MODE_VOTE, POST_MODE_PRESET):
            raise InvalidTargetLayoutError(f"Unknown post mode {mode!r}")

        specs = _validate_targets(targets, preset=mode == POST_MODE_PRESET)
        if mode == POST_MODE_VOTE:
            rating_side, rating_other_label = _normalize_rating_side(
                rating_side, rating_other_label
            )
        else:
            rating_side, rating_other_label = None, None
            if not title.startswith(PRESET_TITLE_PREFIX):
                title = f"{PRESET_TITLE_PREFIX}{title}"

        post = self.posts.create(
            post_id=post_id,
            creator_id=creator_id,
            title=title,
            mode=mode,
            created_at_ms=self.window.now_ms(),
            targets=specs,
            rating_side=rating_side,
            rating_other_label=rating_other_label,
        )
        if post.is_vote_mode:
            self.display.apply_no_votes(post.id)
        logger.info("Registered %s post %s with %d target(s)", mode, post.id, len(specs))
        return post

    def update_targets(
        self,
        post_id: str,
        actor_id: str,
        targets: Sequence[TargetSpec],
    ) -> TargetUpdateResult:
        """Moderator-only: replace a post's targets and purge invalidated votes."""
        if not self.moderation.is_moderator(actor_id):
            raise VotingDeniedError("Only moderators can edit posts")
        post = self._get_post(post_id)
        specs = _validate_targets(targets, preset=post.mode == POST_MODE_PRESET)

        purge = self.moderation.purge_for_target_update(post.id, list(post.targets), specs)
        post = self.posts.replace_targets(post, specs)
        self.cache.clear(post.id)
        return TargetUpdateResult(post=post, purge=purge)


def _validate_targets(targets: Sequence[TargetSpec], *, preset: bool) -> list[TargetSpec]:
    seen: set[str] = set()
    for spec in targets:
        if not spec.id:
            raise InvalidTargetLayoutError("Target ids must be non-empty")
        if spec.id in seen:
            raise InvalidTargetLayoutError(f"Duplicate target id {spec.id}")
        if spec.position < 0:
            raise InvalidTargetLayoutError(f"Target {spec.id} has a negative position")
        seen.add(spec.id)
        if spec.preset_classification is not None:
            if not preset:
                raise InvalidTargetLayoutError("Only preset posts may carry classifications")
            try:
                Classification(spec.preset_classification)
            except ValueError as err:
                raise InvalidTargetLayoutError(
                    f"Unknown classification {spec.preset_classification!r}"
                ) from err
    return list(targets)


def _normalize_rating_side(
    side: str | None,
    other_label: str | None,
) -> tuple[str | None, str | None]:
    if side is not None and side not in RATING_SIDES:
        raise InvalidTargetLayoutError(f"Unknown rating side {side!r}")
    if side != RATING_SIDE_OTHER:
        return side, None
    label = (other_label or "").strip()
    if ME_LABEL_REGEX.match(label):
        return RATING_SIDE_ME, None
    if not OTHER_LABEL_REGEX.match(label):
        raise InvalidTargetLayoutError("Other vote target must be letters only (max 16)")
    return side, label

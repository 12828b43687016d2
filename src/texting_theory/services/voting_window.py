"""Voting window policy and one-time rating finalization.

There are no timers. Every read or write checks the window and, once it has
closed, the first request to notice runs finalization. Two markers in the
key-value store make repeated or concurrent detection a no-op:

* ``finalized`` is claimed atomically (``set_if_absent``) before any display
  call; only the request that wins the claim runs the owner flair step, so the
  owner is notified at most once however many requests race;
* ``finalDisplayApplied`` is written after the post flair, which is idempotent
  and therefore safe to reapply if a request dies in between.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from texting_theory.core.settings import Settings
from texting_theory.db.time import now_ms
from texting_theory.models.post import Post
from texting_theory.services.consensus import NumericConsensusEngine
from texting_theory.services.flair import RatingDisplay
from texting_theory.services.kv import KeyValueStore

logger = logging.getLogger(__name__)

MARKER_SET = "1"


def finalized_key(post_id: str) -> str:
    return f"tt:elo:finalized:{post_id}"


def final_display_key(post_id: str) -> str:
    return f"tt:elo:finalized-display:v1:{post_id}"


class VotingWindow:
    """Time-boxes voting to ``voting_window_seconds`` after post creation."""

    def __init__(self, config: Settings, clock: Callable[[], int] = now_ms) -> None:
        self.config = config
        self._clock = clock

    def now_ms(self) -> int:
        return self._clock()

    def closes_at_ms(self, post: Post) -> int:
        return post.created_at_ms + self.config.voting_window_ms

    def is_open(self, post: Post) -> bool:
        return self.now_ms() - post.created_at_ms <= self.config.voting_window_ms


class RatingFinalizer:
    """Applies the final rating display once the window has closed."""

    def __init__(
        self,
        window: VotingWindow,
        kv: KeyValueStore,
        numeric: NumericConsensusEngine,
        display: RatingDisplay,
    ) -> None:
        self.window = window
        self.kv = kv
        self.numeric = numeric
        self.display = display

    def is_finalized(self, post_id: str) -> bool:
        return (
            self.kv.get(finalized_key(post_id)) == MARKER_SET
            and self.kv.get(final_display_key(post_id)) == MARKER_SET
        )

    def finalize_if_closed(self, post: Post) -> bool:
        """Run finalization if the window closed and it has not completed yet.

        Returns True when this call performed (or completed) finalization.
        """
        if not post.is_vote_mode or self.window.is_open(post):
            return False
        if self.is_finalized(post.id):
            return False

        # Only the request that wins this claim may run the owner step.
        claimed = self.kv.set_if_absent(finalized_key(post.id), MARKER_SET)

        consensus = self.numeric.for_post(post.id)
        config = self.window.config
        if consensus.rating is None or consensus.vote_count < config.rating_flair_min_votes:
            self.display.apply_no_votes(post.id)
        else:
            visible = consensus.vote_count >= config.rating_visible_min_votes
            self.display.update_post_flair(
                post.id,
                consensus.rating,
                consensus.vote_count,
                show_visible=True,
                colorize=visible,
                include_vote_count=False,
            )
            if claimed and visible:
                self.display.try_update_owner_flair(post, consensus.rating, consensus.vote_count)

        self.kv.set(final_display_key(post.id), MARKER_SET)
        logger.info(
            "Finalized rating for post %s: %s Elo from %d vote(s)",
            post.id,
            consensus.rating,
            consensus.vote_count,
        )
        return True

"""Moderation services: moderator checks and the target edit path."""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from texting_theory.core.classification import Classification
from texting_theory.core.settings import Settings
from texting_theory.db.time import now_ms
from texting_theory.models.post import Target
from texting_theory.repositories.post_repo import TargetSpec
from texting_theory.services.identity import IdentitySource
from texting_theory.services.kv import KeyValueStore
from texting_theory.services.vote_store import VoteStore

logger = logging.getLogger(__name__)


def moderator_cache_key(community: str, user_id: str) -> str:
    return f"tt:moderator:{community}:{user_id}"


@dataclass(frozen=True)
class TargetPurge:
    """Votes dropped because a target edit made them invalid."""

    removed_target_ids: list[str]
    order_changed: bool
    book_votes_removed: int


class ModerationService:
    """Service handling moderator checks and vote purges on target edits."""

    def __init__(
        self,
        config: Settings,
        identity: IdentitySource,
        kv: KeyValueStore,
        votes: VoteStore,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.config = config
        self.identity = identity
        self.kv = kv
        self.votes = votes
        self._clock = clock

    def is_moderator(self, user_id: str) -> bool:
        """Return True if ``user_id`` moderates the community.

        Positive and negative answers are cached for ``moderator_cache_ttl_seconds``.
        A failed lookup is not cached and counts as "not a moderator".
        """
        community = self.config.community_name
        key = moderator_cache_key(community, user_id)
        cached = self.kv.get(key)
        if cached:
            try:
                entry = json.loads(cached)
                expires_at = entry.get("expires_at_ms")
                if isinstance(expires_at, int) and expires_at > self._clock():
                    return bool(entry.get("value"))
            except (ValueError, AttributeError):
                logger.debug("Ignoring malformed moderator cache entry %s", key)

        status = self.identity.is_moderator(user_id, community)
        if status is None:
            return False
        ttl = self.config.moderator_cache_ttl_seconds
        entry = {"value": status, "expires_at_ms": self._clock() + int(ttl * 1000)}
        # Backend expiry is a backstop; readers go by expires_at_ms.
        self.kv.set(key, json.dumps(entry), ex=max(1, math.ceil(ttl)))
        return status

    def purge_for_target_update(
        self,
        post_id: str,
        current: Sequence[Target],
        replacement: Sequence[TargetSpec],
    ) -> TargetPurge:
        """Drop aggregate votes invalidated by replacing ``current`` with ``replacement``.

        Votes on deleted targets are removed. If any surviving target moved, every
        Book vote on the post is removed since the opening run may have changed.
        """
        old_positions = {target.id: target.position for target in current}
        new_positions = {spec.id: spec.position for spec in replacement}

        removed = [target_id for target_id in old_positions if target_id not in new_positions]
        for target_id in removed:
            self.votes.purge_target_votes(post_id, target_id)

        order_changed = any(
            old_positions.get(target_id) != position
            for target_id, position in new_positions.items()
        )
        book_votes_removed = 0
        if order_changed:
            for target_id in new_positions:
                book_votes_removed += self.votes.purge_votes_with(
                    post_id, target_id, Classification.BOOK
                )

        if removed or book_votes_removed:
            logger.info(
                "Target edit on post %s removed %d target(s) and %d Book vote(s)",
                post_id,
                len(removed),
                book_votes_removed,
            )
        return TargetPurge(
            removed_target_ids=removed,
            order_changed=order_changed,
            book_votes_removed=book_votes_removed,
        )

"""Vote storage on top of the key-value backend.

Each vote lives in two places:

* the *aggregate* view, keyed by identity (target + voter, or post + voter),
  which is the only input to consensus and is written for eligible voters only;
* the *personal* view, which always records the voter's own choice so the client
  can show it back even when the vote did not count.

Every write is an overwrite, so resubmitting a vote never counts it twice.
"""

from __future__ import annotations

import logging

from texting_theory.core.classification import Classification, parse_classification
from texting_theory.services.kv import KeyValueStore

logger = logging.getLogger(__name__)


def votes_key(post_id: str, target_id: str) -> str:
    return f"tt:votes:{post_id}:{target_id}"


def user_votes_key(post_id: str, voter_id: str) -> str:
    return f"tt:uservotes:{post_id}:{voter_id}"


def rating_votes_key(post_id: str) -> str:
    return f"tt:elovoters:{post_id}"


def user_rating_key(post_id: str, voter_id: str) -> str:
    return f"tt:userelo:{post_id}:{voter_id}"


class VoteStore:
    """Reads and writes classification and rating votes."""

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    # --- Classification votes ---------------------------------------------------------
    def record_classification_vote(
        self,
        post_id: str,
        target_id: str,
        voter_id: str,
        classification: Classification,
        *,
        countable: bool,
    ) -> None:
        """Store a badge vote in the personal view and, if countable, the aggregate."""
        self.kv.hset(user_votes_key(post_id, voter_id), {target_id: classification.value})
        if countable:
            self.kv.hset(votes_key(post_id, target_id), {voter_id: classification.value})

    def get_all_votes(self, post_id: str, target_id: str) -> dict[str, Classification]:
        """Return the aggregate votes on a target, keyed by voter id."""
        key = votes_key(post_id, target_id)
        return _parse_votes(self.kv.hgetall(key), key)

    def get_voter_own_votes(self, post_id: str, voter_id: str) -> dict[str, Classification]:
        """Return the personal view of a voter's badge votes, keyed by target id."""
        key = user_votes_key(post_id, voter_id)
        return _parse_votes(self.kv.hgetall(key), key)

    def get_voter_own_vote(
        self, post_id: str, target_id: str, voter_id: str
    ) -> Classification | None:
        return self.get_voter_own_votes(post_id, voter_id).get(target_id)

    def remove_classification_vote(self, post_id: str, target_id: str, voter_id: str) -> None:
        """Delete a voter's badge vote from both views."""
        self.kv.hdel(user_votes_key(post_id, voter_id), target_id)
        self.kv.hdel(votes_key(post_id, target_id), voter_id)

    def purge_target_votes(self, post_id: str, target_id: str) -> None:
        """Drop every aggregate vote on a target."""
        self.kv.delete(votes_key(post_id, target_id))

    def purge_votes_with(self, post_id: str, target_id: str, classification: Classification) -> int:
        """Drop aggregate votes on a target that carry ``classification``."""
        voters = [
            voter_id
            for voter_id, vote in self.get_all_votes(post_id, target_id).items()
            if vote is classification
        ]
        if voters:
            self.kv.hdel(votes_key(post_id, target_id), *voters)
        return len(voters)

    # --- Rating votes -----------------------------------------------------------------
    def record_rating_vote(
        self, post_id: str, voter_id: str, rating: int, *, countable: bool
    ) -> None:
        """Store a rating vote in the personal view and, if countable, the aggregate."""
        self.kv.set(user_rating_key(post_id, voter_id), str(rating))
        if countable:
            self.kv.hset(rating_votes_key(post_id), {voter_id: str(rating)})

    def get_all_rating_votes(self, post_id: str) -> dict[str, int]:
        """Return the aggregate rating votes on a post, keyed by voter id."""
        votes: dict[str, int] = {}
        for voter_id, raw in self.kv.hgetall(rating_votes_key(post_id)).items():
            try:
                votes[voter_id] = int(raw)
            except ValueError:
                logger.warning("Ignoring malformed rating %r for post %s", raw, post_id)
        return votes

    def get_voter_own_rating(self, post_id: str, voter_id: str) -> int | None:
        raw = self.kv.get(user_rating_key(post_id, voter_id))
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            return None


def _parse_votes(raw: dict[str, str], key: str) -> dict[str, Classification]:
    votes: dict[str, Classification] = {}
    for field, value in raw.items():
        classification = parse_classification(value)
        if classification is None:
            logger.warning("Ignoring unknown classification %r under %s", value, key)
            continue
        votes[field] = classification
    return votes

"""Book-chain enforcement.

A ``Book`` badge means "expected opener": for any single voter it is only valid
as an unbroken run from the first target of the conversation. Because an earlier
vote may change after a later ``Book`` was cast, the whole chain is re-walked
after every badge vote instead of being checked once at write time.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from texting_theory.core.classification import Classification
from texting_theory.models.post import Target
from texting_theory.services.vote_store import VoteStore

logger = logging.getLogger(__name__)


def find_broken_book_votes(
    ordered_target_ids: Sequence[str],
    voter_votes: Mapping[str, Classification],
) -> list[str]:
    """Return the target ids whose ``Book`` vote no longer extends the opening run.

    A missing vote or any non-Book vote ends the run; every later Book is broken.
    """
    broken: list[str] = []
    can_continue = True
    for target_id in ordered_target_ids:
        vote = voter_votes.get(target_id)
        if vote is None:
            can_continue = False
            continue
        if vote is Classification.BOOK:
            if not can_continue:
                broken.append(target_id)
            continue
        can_continue = False
    return broken


class BookChainValidator:
    """Removes a voter's Book votes that break the opening run."""

    def __init__(self, votes: VoteStore) -> None:
        self.votes = votes

    def invalidate_broken_book_votes(
        self,
        post_id: str,
        voter_id: str,
        targets: Sequence[Target],
    ) -> list[str]:
        """Delete broken Book votes from both views and return their target ids."""
        ordered = [target.id for target in sorted(targets, key=lambda t: (t.position, t.id))]
        own_votes = self.votes.get_voter_own_votes(post_id, voter_id)
        broken = find_broken_book_votes(ordered, own_votes)
        for target_id in broken:
            self.votes.remove_classification_vote(post_id, target_id, voter_id)
        if broken:
            logger.info(
                "Invalidated %d broken Book vote(s) by %s on post %s",
                len(broken),
                voter_id,
                post_id,
            )
        return broken

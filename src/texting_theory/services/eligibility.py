"""Voter eligibility rules.

A vote counts toward consensus only if every rule holds at the moment it is cast:

* the voter is not the post's creator;
* the voter's account is at least ``min_voter_account_age_days`` old;
* the voter's combined karma is at least ``min_voter_karma``;
* the voter is not banned from the community (an unknown ban status counts as
  not banned so voting never depends on the ban lookup being up);
* the post's voting window is open.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from texting_theory.core.settings import Settings
from texting_theory.models.post import Post
from texting_theory.services.identity import BanStatus, IdentitySource
from texting_theory.services.voting_window import VotingWindow

logger = logging.getLogger(__name__)

MS_PER_DAY = 24 * 60 * 60 * 1000


class IneligibleReason(Enum):
    CREATOR = "creator"
    UNKNOWN_ACCOUNT = "unknown_account"
    ACCOUNT_TOO_NEW = "account_too_new"
    LOW_KARMA = "low_karma"
    BANNED = "banned"
    WINDOW_CLOSED = "window_closed"


@dataclass(frozen=True)
class EligibilityDecision:
    """Result of an eligibility check; ``reason`` is None when eligible."""

    reason: IneligibleReason | None = None

    @property
    def eligible(self) -> bool:
        return self.reason is None


class EligibilityChecker:
    """Evaluates eligibility fresh on every vote request."""

    def __init__(
        self,
        config: Settings,
        identity: IdentitySource,
        window: VotingWindow,
    ) -> None:
        self.config = config
        self.identity = identity
        self.window = window

    def evaluate(self, post: Post, voter_id: str) -> EligibilityDecision:
        if voter_id == post.creator_id:
            return EligibilityDecision(IneligibleReason.CREATOR)

        standing = self.identity.lookup_voter(voter_id, self.config.community_name)
        account = standing.account
        if account is None:
            logger.warning("Account lookup unavailable for voter %s; vote not counted", voter_id)
            return EligibilityDecision(IneligibleReason.UNKNOWN_ACCOUNT)

        age_ms = self.window.now_ms() - account.created_at_ms
        if age_ms < self.config.min_voter_account_age_days * MS_PER_DAY:
            return EligibilityDecision(IneligibleReason.ACCOUNT_TOO_NEW)

        if account.karma < self.config.min_voter_karma:
            return EligibilityDecision(IneligibleReason.LOW_KARMA)

        if standing.ban is BanStatus.BANNED:
            return EligibilityDecision(IneligibleReason.BANNED)
        if standing.ban is BanStatus.UNKNOWN:
            logger.warning("Ban status unknown for voter %s; treating as not banned", voter_id)

        if not self.window.is_open(post):
            return EligibilityDecision(IneligibleReason.WINDOW_CLOSED)

        return EligibilityDecision()

    def is_eligible(self, post: Post, voter_id: str) -> bool:
        """Return True if this voter's vote on ``post`` counts right now."""
        decision = self.evaluate(post, voter_id)
        if not decision.eligible:
            logger.debug("Voter %s ineligible on post %s: %s", voter_id, post.id, decision.reason)
        return decision.eligible

"""Identity capability consumed by eligibility and moderation checks.

Lookups against the host platform are best effort. Instead of raising, a source
returns a result whose "unknown" variant makes the degraded path explicit at the
call site.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class BanStatus(Enum):
    """Outcome of a community ban lookup."""

    BANNED = "banned"
    NOT_BANNED = "not_banned"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class AccountStanding:
    """Account facts used to decide eligibility."""

    user_id: str
    username: str
    created_at_ms: int
    karma: int


@dataclass(frozen=True)
class VoterStanding:
    """Combined result of the identity lookups for one voter.

    ``account`` is None when the platform could not describe the account; such a
    voter is never counted. ``ban`` may be UNKNOWN, which callers treat as not
    banned.
    """

    account: AccountStanding | None
    ban: BanStatus


class IdentitySource(Protocol):
    """Platform lookups needed by the engine. Implementations must not raise."""

    def lookup_voter(self, user_id: str, community: str) -> VoterStanding: ...

    def ban_status(self, user_id: str, community: str) -> BanStatus: ...

    def is_moderator(self, user_id: str, community: str) -> bool | None:
        """Return None when moderator status could not be determined."""
        ...

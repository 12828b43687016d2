"""Exceptions raised by the consensus engine.

The engine never knows about HTTP; the API layer maps these onto status codes.
"""


class ConsensusError(RuntimeError):
    """Base exception for consensus engine failures."""


class VotingDeniedError(ConsensusError):
    """Raised when the caller is not allowed to perform the action.

    Covers creators voting on their own post and non-moderators attempting
    moderator-only edits. No state is changed before this is raised.
    """


class VotingClosedError(ConsensusError):
    """Raised when a vote arrives after the post's voting window closed."""


class PostNotFoundError(ConsensusError):
    """Raised when a post id does not resolve to a stored post."""


class TargetNotFoundError(ConsensusError):
    """Raised when a target id does not belong to the post being voted on."""


class InvalidTargetLayoutError(ConsensusError):
    """Raised when authoring input cannot form a valid ordered target list."""


class InvalidVoteError(ConsensusError):
    """Raised when a vote names a tag that cannot be voted on."""


class PostExistsError(ConsensusError):
    """Raised when registering a post id that is already stored."""

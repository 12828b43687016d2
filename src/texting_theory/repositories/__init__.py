"""Repository layer wrapping database access."""

from .post_repo import PostRepository, TargetSpec

__all__ = ["PostRepository", "TargetSpec"]

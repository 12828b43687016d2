"""Data access helpers for working with posts and targets."""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from texting_theory.models.post import Post, Target

__all__ = ["PostRepository", "TargetSpec"]


@dataclass(frozen=True)
class TargetSpec:
    """Authoring description of a single target."""

    id: str
    position: int
    image_index: int = 0
    preset_classification: str | None = None


class PostRepository:
    """Thin wrapper around database access for post entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_id(self, post_id: str) -> Post | None:
        """Return a post by identifier."""
        return self.session.execute(select(Post).where(Post.id == post_id)).scalars().first()

    def list_targets(self, post_id: str) -> list[Target]:
        """Return a post's targets sorted by sequence position."""
        result = self.session.execute(
            select(Target)
            .where(Target.post_id == post_id)
            .order_by(Target.position, Target.id)
        )
        return list(result.scalars())

    def create(
        self,
        *,
        post_id: str,
        creator_id: str,
        title: str,
        mode: str,
        created_at_ms: int,
        targets: Sequence[TargetSpec],
        rating_side: str | None = None,
        rating_other_label: str | None = None,
    ) -> Post:
        """Insert a new post with its targets and return the persisted instance."""
        post = Post(
            id=post_id,
            creator_id=creator_id,
            title=title,
            mode=mode,
            created_at_ms=created_at_ms,
            rating_side=rating_side,
            rating_other_label=rating_other_label,
        )
        post.targets = [_to_target(spec) for spec in targets]
        self.session.add(post)
        self.session.commit()
        self.session.refresh(post)
        return post

    def replace_targets(self, post: Post, targets: Sequence[TargetSpec]) -> Post:
        """Swap the full target list of ``post`` for ``targets``."""
        post.targets.clear()
        self.session.flush()
        post.targets.extend(_to_target(spec) for spec in targets)
        self.session.commit()
        self.session.refresh(post)
        return post


def _to_target(spec: TargetSpec) -> Target:
    return Target(
        id=spec.id,
        position=spec.position,
        image_index=spec.image_index,
        preset_classification=spec.preset_classification,
    )

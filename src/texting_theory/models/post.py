"""SQLAlchemy models for posts and their votable targets."""

from __future__ import annotations

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from texting_theory.db.session import Base

POST_MODE_VOTE = "vote"
POST_MODE_PRESET = "preset"

RATING_SIDE_LEFT = "left"
RATING_SIDE_RIGHT = "right"
RATING_SIDE_ME = "me"
RATING_SIDE_OTHER = "other"
RATING_SIDES = (RATING_SIDE_LEFT, RATING_SIDE_RIGHT, RATING_SIDE_ME, RATING_SIDE_OTHER)


class Post(Base):
    """A conversation screenshot submitted for crowd review.

    The creation timestamp anchors the voting window. Rows are written once by
    the authoring path and read by the consensus engine.
    """

    __tablename__ = "post"
    __table_args__ = (
        CheckConstraint("mode IN ('vote', 'preset')", name="ck_post_mode"),
    )

    # Host platform identifier, e.g. "t3_abc123".
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    creator_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    mode: Mapped[str] = mapped_column(String(16), nullable=False, default=POST_MODE_VOTE)
    created_at_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Which participant the Elo vote rates; "other" carries a free-text label.
    rating_side: Mapped[str | None] = mapped_column(String(16), nullable=True)
    rating_other_label: Mapped[str | None] = mapped_column(String(16), nullable=True)

    targets: Mapped[list[Target]] = relationship(
        back_populates="post",
        order_by="Target.position",
        cascade="all, delete-orphan",
    )

    @property
    def is_vote_mode(self) -> bool:
        return self.mode == POST_MODE_VOTE


class Target(Base):
    """One badge placed on a message, ordered within its post."""

    __tablename__ = "target"

    post_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # 0-indexed position in the conversation; the book-chain rule walks this order.
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    image_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Only set for preset (creator-annotated) posts.
    preset_classification: Mapped[str | None] = mapped_column(String(16), nullable=True)

    post: Mapped[Post] = relationship(back_populates="targets")

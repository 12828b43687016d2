"""Rating display effects: post flair, owner flair and notifications.

Display calls are fire-and-forget. Failures are logged and reported back as a
boolean; they never roll back vote or consensus state.
"""

from __future__ import annotations

import logging
import re

from texting_theory.core.color import rating_color, title_emoji
from texting_theory.core.settings import Settings
from texting_theory.models.post import (
    RATING_SIDE_LEFT,
    RATING_SIDE_ME,
    RATING_SIDE_OTHER,
    Post,
)
from texting_theory.services.platform import DisplaySink, PlatformError

logger = logging.getLogger(__name__)

NO_VOTES_FLAIR_TEXT = "No votes"
MASKED_RATING_TEXT = "??? Elo"
TITLE_ME_VOTE_REGEX = re.compile(r"^\[me\b.*\]", re.IGNORECASE)
RATING_FLAIR_REGEX = re.compile(r"(\d+) Elo")


def format_vote_count(vote_count: int) -> str:
    noun = "Vote" if vote_count == 1 else "Votes"
    return f"{vote_count:,} {noun}"


def format_post_flair(
    rating: int,
    vote_count: int,
    *,
    show_visible: bool,
    include_vote_count: bool = True,
) -> str:
    """Render post flair text, masking the rating when it is not yet visible."""
    rating_text = f"{rating} Elo" if show_visible else MASKED_RATING_TEXT
    if not include_vote_count:
        return rating_text
    return f"{rating_text} ({format_vote_count(vote_count)})"


def rating_target_label(post: Post) -> str:
    """Return the label of the participant the rating vote is about."""
    if post.rating_side == RATING_SIDE_LEFT:
        return "left"
    if post.rating_side == RATING_SIDE_ME:
        return "me"
    if post.rating_side == RATING_SIDE_OTHER:
        return (post.rating_other_label or "").strip() or "other"
    return "right"


def rates_creator(post: Post) -> bool:
    """Return True when the post's rating is about its own creator."""
    return post.rating_side == RATING_SIDE_ME or bool(TITLE_ME_VOTE_REGEX.match(post.title))


def parse_flair_rating(flair_text: str | None) -> int | None:
    if not flair_text:
        return None
    match = RATING_FLAIR_REGEX.search(flair_text)
    return int(match.group(1)) if match else None


class RatingDisplay:
    """Pushes rating consensus to the platform's flair and messaging APIs."""

    def __init__(self, config: Settings, sink: DisplaySink) -> None:
        self.config = config
        self.sink = sink

    def update_post_flair(
        self,
        post_id: str,
        rating: int,
        vote_count: int,
        *,
        show_visible: bool,
        colorize: bool = False,
        include_vote_count: bool = True,
    ) -> bool:
        text = format_post_flair(
            rating,
            vote_count,
            show_visible=show_visible,
            include_vote_count=include_vote_count,
        )
        try:
            self.sink.set_post_flair(
                post_id,
                text,
                background_color=rating_color(rating) if colorize else None,
            )
        except PlatformError:
            logger.error("Failed to update flair for post %s", post_id, exc_info=True)
            return False
        return True

    def apply_no_votes(self, post_id: str) -> bool:
        try:
            self.sink.set_post_flair(post_id, NO_VOTES_FLAIR_TEXT)
        except PlatformError:
            logger.error("Failed to set no-votes flair for post %s", post_id, exc_info=True)
            return False
        return True

    def try_update_owner_flair(self, post: Post, rating: int, vote_count: int) -> bool:
        """Grant the creator a rating flair if it beats their recorded one.

        The owner flair only ratchets upward, and a custom flair without a rating
        in it is never overwritten. Returns True when the flair was set.
        """
        if vote_count < self.config.owner_flair_min_votes or not rates_creator(post):
            return False

        community = self.config.community_name
        try:
            current_text = self.sink.get_user_flair(post.creator_id, community)
            current_rating = parse_flair_rating(current_text)
            if current_text and current_rating is None:
                return False
            if current_rating is not None and rating <= current_rating:
                return False

            self.sink.set_user_flair(
                post.creator_id,
                community,
                f"{title_emoji(rating)}{rating} Elo",
                background_color=rating_color(rating),
            )
            self.sink.send_notification(
                post.creator_id,
                f"Your user flair on r/{community} has been updated",
                self._owner_message(post, rating, vote_count),
            )
        except PlatformError:
            logger.error("Failed to update owner flair for post %s", post.id, exc_info=True)
            return False

        logger.info("Owner flair for post %s set to %d Elo", post.id, rating)
        return True

    def _owner_message(self, post: Post, rating: int, vote_count: int) -> str:
        hours = self.config.voting_window_seconds // 3600
        noun = "vote" if vote_count == 1 else "votes"
        return (
            f"Your post {post.id} on r/{self.config.community_name} has closed voting "
            f"after {hours} hours with {vote_count:,} Elo {noun}. Final consensus is "
            f"{rating} Elo, and your user flair has been updated automatically. You can "
            "clear or change your flair at any time from subreddit flair settings."
        )

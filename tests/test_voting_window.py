# tests/test_voting_window.py
"""Tests for one-time rating finalization and the owner flair ratchet."""

import threading

import pytest

from texting_theory.core.settings import Settings
from texting_theory.models import Post
from texting_theory.services.consensus import NumericConsensusEngine
from texting_theory.services.flair import RatingDisplay
from texting_theory.services.vote_store import VoteStore
from texting_theory.services.voting_window import (
    MARKER_SET,
    RatingFinalizer,
    VotingWindow,
    final_display_key,
    finalized_key,
)

MS_PER_DAY = 24 * 60 * 60 * 1000


@pytest.fixture()
def config() -> Settings:
    return Settings(
        kv_backend="memory",
        rating_flair_min_votes=1,
        rating_visible_min_votes=3,
        owner_flair_min_votes=3,
    )


@pytest.fixture()
def votes(kv) -> VoteStore:
    return VoteStore(kv)


@pytest.fixture()
def finalizer(config, kv, votes, display, clock) -> RatingFinalizer:
    return RatingFinalizer(
        VotingWindow(config, clock),
        kv,
        NumericConsensusEngine(votes),
        RatingDisplay(config, display),
    )


def _post(clock, *, rating_side: str | None = "me", title: str = "Rate me") -> Post:
    return Post(
        id="t3_w",
        creator_id="op",
        title=title,
        mode="vote",
        created_at_ms=clock(),
        rating_side=rating_side,
    )


def _rate(votes: VoteStore, *ratings: int) -> None:
    for index, rating in enumerate(ratings):
        votes.record_rating_vote("t3_w", f"v{index}", rating, countable=True)


def test_nothing_happens_while_open(finalizer, display, clock) -> None:
    assert finalizer.finalize_if_closed(_post(clock)) is False
    assert display.post_flair == {}


def test_no_votes_finalizes_to_no_votes_flair(finalizer, display, kv, clock) -> None:
    post = _post(clock)
    clock.advance(MS_PER_DAY + 1)

    assert finalizer.finalize_if_closed(post) is True
    assert display.post_flair["t3_w"] == ("No votes", None)
    assert kv.get(finalized_key("t3_w")) == MARKER_SET
    assert finalizer.is_finalized("t3_w")


def test_finalization_runs_once(finalizer, display, votes, clock) -> None:
    post = _post(clock)
    _rate(votes, 2300, 2300, 2300)
    clock.advance(MS_PER_DAY + 1)

    assert finalizer.finalize_if_closed(post) is True
    assert finalizer.finalize_if_closed(post) is False
    assert display.post_flair_calls == 1
    assert len(display.notifications) == 1


def test_concurrent_finalization_notifies_owner_once(
    finalizer, display, votes, kv, clock
) -> None:
    post = _post(clock)
    _rate(votes, 2300, 2300, 2300)
    clock.advance(MS_PER_DAY + 1)
    display.latency_seconds = 0.1
    barrier = threading.Barrier(2)
    results: list[bool] = []

    def finalize() -> None:
        barrier.wait()
        results.append(finalizer.finalize_if_closed(post))

    threads = [threading.Thread(target=finalize) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(display.notifications) == 1
    assert display.user_flair["op"] == ":fm:2300 Elo"
    assert kv.get(finalized_key("t3_w")) == MARKER_SET
    assert kv.get(final_display_key("t3_w")) == MARKER_SET
    assert True in results


def test_final_flair_drops_vote_count_and_colors_when_visible(
    finalizer, display, votes, clock
) -> None:
    post = _post(clock, rating_side=None)
    _rate(votes, 1200, 1200, 1200)
    clock.advance(MS_PER_DAY + 1)
    finalizer.finalize_if_closed(post)

    assert display.post_flair["t3_w"] == ("1200 Elo", "#95b776")


def test_final_flair_below_visible_threshold_is_uncolored(
    finalizer, display, votes, clock
) -> None:
    post = _post(clock)
    _rate(votes, 1200, 1200)
    clock.advance(MS_PER_DAY + 1)
    finalizer.finalize_if_closed(post)

    assert display.post_flair["t3_w"] == ("1200 Elo", None)
    assert display.user_flair == {}


def test_owner_flair_granted_with_title_emoji(finalizer, display, votes, clock) -> None:
    post = _post(clock)
    _rate(votes, 2300, 2300, 2300)
    clock.advance(MS_PER_DAY + 1)
    finalizer.finalize_if_closed(post)

    assert display.user_flair["op"] == ":fm:2300 Elo"
    user_id, subject, body = display.notifications[0]
    assert user_id == "op"
    assert "TextingTheory" in subject
    assert "2300 Elo" in body


def test_owner_flair_from_title_prefix(finalizer, display, votes, clock) -> None:
    post = _post(clock, rating_side=None, title="[Me, blue] how did I do")
    _rate(votes, 1500, 1500, 1500)
    clock.advance(MS_PER_DAY + 1)
    finalizer.finalize_if_closed(post)

    assert display.user_flair["op"] == "1500 Elo"


def test_owner_flair_not_granted_for_other_side(finalizer, display, votes, clock) -> None:
    post = _post(clock, rating_side="right")
    _rate(votes, 1500, 1500, 1500)
    clock.advance(MS_PER_DAY + 1)
    finalizer.finalize_if_closed(post)

    assert display.user_flair == {}
    assert display.notifications == []


@pytest.mark.parametrize(
    ("current", "expected"),
    [
        ("2400 Elo", "2400 Elo"),
        ("2300 Elo", "2300 Elo"),
        ("Texting wizard", "Texting wizard"),
        ("1200 Elo", ":fm:2300 Elo"),
    ],
)
def test_owner_flair_only_ratchets_up(
    finalizer, display, votes, clock, current, expected
) -> None:
    display.user_flair["op"] = current
    post = _post(clock)
    _rate(votes, 2300, 2300, 2300)
    clock.advance(MS_PER_DAY + 1)
    finalizer.finalize_if_closed(post)

    assert display.user_flair["op"] == expected


def test_interrupted_finalization_reapplies_display_without_renotifying(
    finalizer, display, votes, kv, clock
) -> None:
    post = _post(clock)
    _rate(votes, 2300, 2300, 2300)
    clock.advance(MS_PER_DAY + 1)
    kv.set(finalized_key("t3_w"), MARKER_SET)

    assert finalizer.finalize_if_closed(post) is True
    assert display.post_flair["t3_w"][0] == "2300 Elo"
    assert display.notifications == []
    assert kv.get(final_display_key("t3_w")) == MARKER_SET


def test_display_failure_still_marks_finalized(finalizer, display, votes, kv, clock) -> None:
    post = _post(clock)
    _rate(votes, 2300, 2300, 2300)
    clock.advance(MS_PER_DAY + 1)
    display.fail = True

    assert finalizer.finalize_if_closed(post) is True
    assert kv.get(finalized_key("t3_w")) == MARKER_SET

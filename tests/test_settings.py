# tests/test_settings.py
import pytest
from pydantic import ValidationError

from texting_theory.core.settings import Settings


def test_defaults_match_production_thresholds() -> None:
    config = Settings(kv_backend="memory")
    assert config.badge_consensus_min_votes == 10
    assert config.rating_thresholds == {"flair": 1, "visible": 10, "owner": 100}
    assert (config.rating_min, config.rating_max) == (100, 3000)
    assert config.voting_window_ms == 24 * 60 * 60 * 1000


def test_thresholds_can_be_tuned_independently() -> None:
    config = Settings(
        rating_flair_min_votes=5,
        rating_visible_min_votes=5,
        owner_flair_min_votes=50,
    )
    assert config.rating_thresholds == {"flair": 5, "visible": 5, "owner": 50}


@pytest.mark.parametrize(
    "overrides",
    [
        {"rating_flair_min_votes": 20},
        {"rating_visible_min_votes": 200},
        {"rating_flair_min_votes": 0},
        {"badge_consensus_min_votes": 0},
        {"rating_min": 3000},
        {"voting_window_seconds": 0},
    ],
)
def test_misordered_thresholds_fail_fast(overrides: dict[str, int]) -> None:
    with pytest.raises(ValidationError):
        Settings(**overrides)


def test_environment_aliases(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BADGE_CONSENSUS_MIN_VOTES", "3")
    monkeypatch.setenv("COMMUNITY_NAME", "TestSub")
    config = Settings()
    assert config.badge_consensus_min_votes == 3
    assert config.community_name == "TestSub"

# tests/test_consensus_cache.py
from texting_theory.core.classification import Classification
from texting_theory.services.consensus import TargetConsensus
from texting_theory.services.consensus_cache import ConsensusCache, consensus_cache_meta_key


def _entry() -> dict[str, TargetConsensus]:
    return {
        "b0": TargetConsensus(
            classification=Classification.BEST,
            total_votes=10,
            vote_counts={Classification.BEST: 10},
            iqm=1.0,
        )
    }


def test_write_then_read(kv, clock) -> None:
    cache = ConsensusCache(kv, 10, clock)
    cache.write("p", True, _entry())
    assert cache.read("p", True) == _entry()


def test_window_states_are_separate(kv, clock) -> None:
    cache = ConsensusCache(kv, 10, clock)
    cache.write("p", True, _entry())
    assert cache.read("p", False) is None


def test_entry_expires_by_clock(kv, clock) -> None:
    cache = ConsensusCache(kv, 10, clock)
    cache.write("p", True, _entry())
    clock.advance(9_999)
    assert cache.read("p", True) is not None
    clock.advance(1)
    assert cache.read("p", True) is None


def test_clear_drops_both_states(kv, clock) -> None:
    cache = ConsensusCache(kv, 10, clock)
    cache.write("p", True, _entry())
    cache.write("p", False, _entry())
    cache.clear("p")
    assert cache.read("p", True) is None
    assert cache.read("p", False) is None


def test_malformed_meta_is_a_miss(kv, clock) -> None:
    cache = ConsensusCache(kv, 10, clock)
    cache.write("p", True, _entry())
    kv.set(consensus_cache_meta_key("p", True), "not json")
    assert cache.read("p", True) is None

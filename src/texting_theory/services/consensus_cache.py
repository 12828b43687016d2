"""Short-lived read cache for per-post badge consensus.

Entries are split by window state because a closed window reveals labels that
are hidden while voting is open. Each payload is stored next to a metadata
entry carrying an explicit ``expires_at_ms`` so staleness is judged by the
reader, not only by the backend TTL.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Callable, Mapping

from texting_theory.db.time import now_ms
from texting_theory.services.consensus import TargetConsensus
from texting_theory.services.kv import KeyValueStore

logger = logging.getLogger(__name__)


def _state(window_open: bool) -> str:
    return "open" if window_open else "closed"


def consensus_cache_key(post_id: str, window_open: bool) -> str:
    return f"tt:consensus:v1:{post_id}:{_state(window_open)}"


def consensus_cache_meta_key(post_id: str, window_open: bool) -> str:
    return f"tt:consensus-meta:v1:{post_id}:{_state(window_open)}"


class ConsensusCache:
    """Read-through cache keyed by ``(post_id, window state)``."""

    def __init__(
        self,
        kv: KeyValueStore,
        ttl_seconds: float,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.kv = kv
        self.ttl_ms = int(ttl_seconds * 1000)
        self._clock = clock

    def read(self, post_id: str, window_open: bool) -> dict[str, TargetConsensus] | None:
        raw_payload = self.kv.get(consensus_cache_key(post_id, window_open))
        raw_meta = self.kv.get(consensus_cache_meta_key(post_id, window_open))
        if not raw_payload or not raw_meta:
            return None
        try:
            expires_at = json.loads(raw_meta).get("expires_at_ms")
            if not isinstance(expires_at, int) or expires_at <= self._clock():
                return None
            payload = json.loads(raw_payload)
            result = {
                target_id: TargetConsensus.from_dict(entry)
                for target_id, entry in payload.items()
            }
        except (ValueError, TypeError, AttributeError):
            logger.warning("Discarding malformed consensus cache for post %s", post_id)
            return None
        logger.debug("Consensus cache hit for post %s (%s)", post_id, _state(window_open))
        return result

    def write(
        self,
        post_id: str,
        window_open: bool,
        consensus: Mapping[str, TargetConsensus],
    ) -> None:
        expires_at = self._clock() + self.ttl_ms
        # Backend expiry is a backstop; readers go by expires_at_ms.
        backstop = max(1, math.ceil(self.ttl_ms / 1000)) * 2
        payload = {target_id: entry.to_dict() for target_id, entry in consensus.items()}
        self.kv.set(consensus_cache_key(post_id, window_open), json.dumps(payload), ex=backstop)
        self.kv.set(
            consensus_cache_meta_key(post_id, window_open),
            json.dumps({"expires_at_ms": expires_at}),
            ex=backstop,
        )

    def clear(self, post_id: str) -> None:
        """Drop both window-state entries for a post."""
        self.kv.delete(
            consensus_cache_key(post_id, True),
            consensus_cache_key(post_id, False),
            consensus_cache_meta_key(post_id, True),
            consensus_cache_meta_key(post_id, False),
        )

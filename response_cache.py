"""
Expiring cache for fallback answers.

Keys are (normalized utterance, language) only. Two employees asking the
same question within the TTL get the same answer: this saves fallback
tokens and latency, it is not a correctness feature.
"""

import threading
import time
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

from models import Language

V = TypeVar("V")


def make_key(utterance: str, lang: Language) -> str:
    return f"{' '.join(utterance.lower().split())}_{lang.value}"


class ResponseCache(Generic[V]):
    """TTL map with last-writer-wins on key collision."""

    def __init__(self, ttl_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[V, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: V) -> None:
        """Store a value, sweeping stale entries first."""
        now = self._clock()
        with self._lock:
            self._evict(now)
            self._entries[key] = (value, now)

    def evict_expired(self) -> int:
        """Drop stale entries and return how many were removed."""
        now = self._clock()
        with self._lock:
            return self._evict(now)

    def _evict(self, now: float) -> int:
        stale = [k for k, (_, stored_at) in self._entries.items() if now - stored_at >= self.ttl_seconds]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

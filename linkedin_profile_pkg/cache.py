import copy
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


def normalize_key(url: str) -> str:
    """Canonical cache key: trimmed, lower-cased, no trailing slashes.

    Idempotent, so it is safe to apply at every cache boundary.
    """
    return (url or "").strip().lower().rstrip("/")


def _clone(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_copy(deep=True)
    return copy.deepcopy(value)


@dataclass
class CacheEntry:
    value: Any
    inserted_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.inserted_at >= self.ttl


class ProfileCache:
    """In-memory TTL store of completed profile documents.

    Values are cloned on the way in and on the way out, so callers that
    mutate a returned document never touch the cached copy.
    """

    def __init__(self, default_ttl: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, url: str) -> Optional[Any]:
        key = normalize_key(url)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._entries[key]
            logger.debug("Cache EXPIRED for %s", key)
            return None
        logger.info("Cache HIT for %s", key)
        return _clone(entry.value)

    def set(self, url: str, value: Any, ttl: Optional[float] = None) -> None:
        key = normalize_key(url)
        purged = self.purge_expired()
        if purged:
            logger.debug("Cache purged %d expired entries", purged)
        effective = self.default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(_clone(value), self._clock(), effective)
        logger.info("Cache SET for %s (TTL: %ss)", key, effective)

    def invalidate(self, url: str) -> None:
        key = normalize_key(url)
        self._entries.pop(key, None)
        logger.info("Cache INVALIDATED for %s", key)

    def purge_expired(self) -> int:
        now = self._clock()
        stale = [k for k, e in self._entries.items() if e.expired(now)]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)

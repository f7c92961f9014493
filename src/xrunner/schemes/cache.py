"""
Signature-keyed cache of scheme listings.

The cache lives in memory and is mirrored to a key-value store. Lookups are
pure functions of the key, the supplied signature and the stored entry;
persistence is best-effort and never fails a caller.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..storage.base import KeyValueStore

logger = logging.getLogger(__name__)

CACHE_KEY_SUFFIX = "scheme-cache"


@dataclass(frozen=True)
class SchemeCacheEntry:
    schemes: List[str]
    # Epoch seconds; None when no signature could be computed.
    signature: Optional[float]
    cached_at: float

    def to_dict(self) -> Dict[str, Any]:
        return {"schemes": list(self.schemes), "signature": self.signature, "cachedAt": self.cached_at}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchemeCacheEntry":
        signature = data.get("signature")
        schemes = data["schemes"]
        if not isinstance(schemes, list):
            raise TypeError(f"schemes must be a list, got {type(schemes).__name__}")
        return cls(
            schemes=[str(s) for s in schemes],
            signature=float(signature) if signature is not None else None,
            cached_at=float(data["cachedAt"]),
        )


class SchemeCacheStore:
    """
    Scheme listings keyed by absolute project path.

    Args:
        store: Backing key-value store
        suite: Application suite name; the store key is ``<suite>.scheme-cache``
        max_entries: Upper bound on the number of entries kept
        fallback_ttl: Age in seconds under which an unsigned entry is valid
        tolerance: Maximum signature difference (seconds) counted as equal
        clock: Source of the current time, replaceable in tests
    """

    def __init__(
        self,
        store: KeyValueStore,
        suite: str = "xrunner",
        max_entries: int = 50,
        fallback_ttl: float = 600.0,
        tolerance: float = 0.001,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.store_key = f"{suite}.{CACHE_KEY_SUFFIX}"
        self.max_entries = max_entries
        self.fallback_ttl = fallback_ttl
        self.tolerance = tolerance
        self.clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, SchemeCacheEntry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def load(self) -> None:
        """Replace the in-memory entries with the persisted ones."""
        try:
            document = self.store.get(self.store_key)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read scheme cache: {e}")
            return

        entries: Dict[str, SchemeCacheEntry] = {}
        if isinstance(document, dict) and isinstance(document.get("entries"), dict):
            for key, raw in document["entries"].items():
                if not isinstance(raw, dict):
                    logger.debug(f"Dropping malformed scheme cache entry for {key}")
                    continue
                try:
                    entries[key] = SchemeCacheEntry.from_dict(raw)
                except (KeyError, TypeError, ValueError) as e:
                    logger.debug(f"Dropping malformed scheme cache entry for {key}: {e}")
        elif document is not None:
            logger.warning("Ignoring malformed scheme cache document")

        with self._lock:
            self._entries = entries
            self._evict_locked()
        logger.debug(f"Loaded {len(entries)} scheme cache entries")

    def flush(self) -> bool:
        """
        Persist the current entries.

        Returns:
            True if the entries were written, False if persistence failed.
        """
        with self._lock:
            document = {"entries": {key: entry.to_dict() for key, entry in self._entries.items()}}
            try:
                self.store.set(self.store_key, document)
            except (TypeError, ValueError, OSError) as e:
                logger.warning(f"Failed to persist scheme cache: {e}")
                return False
        return True

    def cached_schemes(self, key: str, signature: Optional[float]) -> Optional[List[str]]:
        """
        Return the cached schemes for ``key`` or None on a miss.

        A hit requires either a signature equal to the stored one within the
        tolerance, or, when no signature is supplied, an entry younger than
        the fallback TTL.
        """
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None

        if signature is not None:
            if entry.signature is not None and abs(entry.signature - signature) < self.tolerance:
                return list(entry.schemes)
            return None

        if self.clock() - entry.cached_at < self.fallback_ttl:
            return list(entry.schemes)
        return None

    def store_schemes(self, key: str, schemes: List[str], signature: Optional[float]) -> None:
        """Record a listing and persist the cache (best-effort)."""
        entry = SchemeCacheEntry(schemes=list(schemes), signature=signature, cached_at=self.clock())
        with self._lock:
            self._entries[key] = entry
            self._evict_locked()
        self.flush()

    def _evict_locked(self) -> None:
        overflow = len(self._entries) - self.max_entries
        if overflow <= 0:
            return
        oldest = sorted(self._entries.items(), key=lambda item: item[1].cached_at)[:overflow]
        for key, _ in oldest:
            del self._entries[key]
        logger.debug(f"Evicted {overflow} scheme cache entries")

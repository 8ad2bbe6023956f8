"""Intelligence Cache Module

Keyed TTL cache for computed passage intelligence payloads. The cache is an
injected service: the intelligence service receives a ``CacheStore`` and never
keeps module-level state.

Entries are keyed by ``(subject_id, model)`` and carry the freshness fields
(``updated_at``, ``content_hash``) they were computed from, so a reader can
reject an entry whose source changed before its TTL ran out.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)


class CacheEntry(NamedTuple):
    subject_id: int
    model: str
    payload: Any
    updated_at: Optional[datetime]
    content_hash: Optional[str]
    expires_at: float


class CacheStore(ABC):
    """Abstract TTL cache of computed payloads."""

    @abstractmethod
    def get(self, subject_id: int, model: str) -> Optional[CacheEntry]:
        """Return the unexpired entry for the key, or None."""
        raise NotImplementedError

    @abstractmethod
    def upsert(
        self,
        subject_id: int,
        model: str,
        payload: Any,
        updated_at: Optional[datetime],
        content_hash: Optional[str],
        ttl_seconds: float,
    ) -> CacheEntry:
        """Insert or replace the entry for the key; last write wins."""
        raise NotImplementedError

    @abstractmethod
    def invalidate(self, subject_id: int) -> int:
        """Drop every entry for ``subject_id`` (all models); return how many."""
        raise NotImplementedError


class InMemoryTTLCache(CacheStore):
    """Process-local cache with an injectable clock.

    A lock makes each single-key upsert atomic, so concurrent writers of the
    same key leave exactly one complete entry behind.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[Tuple[int, str], CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, subject_id: int, model: str) -> Optional[CacheEntry]:
        key = (subject_id, model)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                logger.debug("Cache entry expired: passage=%s model=%s", subject_id, model)
                del self._entries[key]
                return None
            return entry

    def upsert(
        self,
        subject_id: int,
        model: str,
        payload: Any,
        updated_at: Optional[datetime],
        content_hash: Optional[str],
        ttl_seconds: float,
    ) -> CacheEntry:
        with self._lock:
            entry = CacheEntry(
                subject_id=subject_id,
                model=model,
                payload=payload,
                updated_at=updated_at,
                content_hash=content_hash,
                expires_at=self._clock() + ttl_seconds,
            )
            self._entries[(subject_id, model)] = entry
            return entry

    def invalidate(self, subject_id: int) -> int:
        with self._lock:
            keys = [key for key in self._entries if key[0] == subject_id]
            for key in keys:
                del self._entries[key]
        if keys:
            logger.debug("Invalidated %d cache entries for passage=%s", len(keys), subject_id)
        return len(keys)

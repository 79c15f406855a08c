"""
Deduplication lock for deploygate.

Tracks in-flight pipeline runs keyed by source fingerprint so that two
submissions of identical code never deploy concurrently.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .config import LOCK_TTL_SECONDS
from .logging_config import AuditLogger, audit_log


@dataclass(frozen=True)
class LockEntry:
    """Holder of a fingerprint."""
    request_id: str
    acquired_at: float


class DeduplicationLock:
    """
    Non-blocking, TTL-bounded lock keyed by fingerprint.

    Thread-safe. Expired entries are dropped lazily on every access and
    by :meth:`sweep`, so a missed release can deny re-submission for at
    most ``ttl_seconds``.
    """

    def __init__(self, ttl_seconds: float = LOCK_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic,
                 audit: AuditLogger = audit_log):
        """
        Initialize the lock.

        Args:
            ttl_seconds: Maximum age of an entry before it is force-expired
            clock: Time source, injectable for tests
            audit: Receives a LOCK_EXPIRED record per force-expired entry
        """
        self._ttl = ttl_seconds
        self._clock = clock
        self._audit = audit
        self._entries: Dict[str, LockEntry] = {}
        self._lock = threading.RLock()

    def _expire(self, now: float) -> int:
        cutoff = now - self._ttl
        expired = [fp for fp, e in self._entries.items() if e.acquired_at <= cutoff]
        for fp in expired:
            entry = self._entries.pop(fp)
            self._audit.lock_expired(fp, entry.request_id, now - entry.acquired_at)
        return len(expired)

    def try_acquire(self, fingerprint: str, request_id: str) -> bool:
        """
        Acquire the lock for a fingerprint.

        Returns:
            True if acquired, False if another run holds it (no side effects)
        """
        with self._lock:
            now = self._clock()
            self._expire(now)
            if fingerprint in self._entries:
                return False
            self._entries[fingerprint] = LockEntry(request_id=request_id, acquired_at=now)
            return True

    def release(self, fingerprint: str, request_id: Optional[str] = None) -> bool:
        """
        Remove the entry for a fingerprint.

        With ``request_id``, only that holder's entry is removed: a run
        whose entry already expired and was re-acquired by another
        request leaves the new holder in place. Releasing an absent key
        is a no-op.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            entry = self._entries.get(fingerprint)
            if entry is None:
                return False
            if request_id is not None and entry.request_id != request_id:
                return False
            del self._entries[fingerprint]
            return True

    def sweep(self) -> int:
        """
        Remove expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            return self._expire(self._clock())

    def holder(self, fingerprint: str) -> Optional[str]:
        """Request id currently holding a fingerprint, if any."""
        with self._lock:
            self._expire(self._clock())
            entry = self._entries.get(fingerprint)
            return entry.request_id if entry else None

    def active_request_ids(self) -> List[str]:
        """Snapshot of request ids holding live entries."""
        with self._lock:
            self._expire(self._clock())
            return [e.request_id for e in self._entries.values()]

    def __contains__(self, fingerprint: str) -> bool:
        return self.holder(fingerprint) is not None

    def __len__(self) -> int:
        with self._lock:
            self._expire(self._clock())
            return len(self._entries)

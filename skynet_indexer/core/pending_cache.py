"""
Pending request cache - submissions waiting for their confirmation.

Entries live from the moment a submission is processed until a confirmation
drains them with take() or a sweep removes them for exceeding the TTL.
"""

import threading
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from .schema import SubmissionRecord

DEFAULT_TTL_SEC = 24 * 60 * 60


class PendingRequestCache:
    """
    Bounded, time-limited store of unconfirmed submissions keyed by job identity.

    Features:
    - take() is an atomic remove-and-return; a miss returns None
    - sweep(now) evicts entries older than the TTL
    - optional hard cap on entries, oldest evicted first
    - secondary index from request id to identity
    """

    def __init__(self, ttl_sec: int = DEFAULT_TTL_SEC, max_entries: int = 0):
        if ttl_sec < 1:
            raise ValueError(f"TTL must be >= 1 second: {ttl_sec}")
        if max_entries < 0:
            raise ValueError(f"max_entries must be >= 0: {max_entries}")

        self.ttl = timedelta(seconds=ttl_sec)
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, SubmissionRecord]" = OrderedDict()
        self._by_request_id: Dict[Any, str] = {}
        self._stats = {
            "put": 0,
            "taken": 0,
            "misses": 0,
            "swept": 0,
            "capped": 0
        }

    def put(self, identity: str, record: SubmissionRecord) -> None:
        """Insert or overwrite the pending entry for an identity."""
        with self._lock:
            if identity in self._entries:
                self._unindex(identity, self._entries.pop(identity))
            self._entries[identity] = record
            if record.request_id is not None:
                self._by_request_id[record.request_id] = identity
            self._stats["put"] += 1

            if self.max_entries:
                while len(self._entries) > self.max_entries:
                    old_identity, old_record = self._entries.popitem(last=False)
                    self._unindex(old_identity, old_record)
                    self._stats["capped"] += 1

    def take(self, identity: str) -> Optional[SubmissionRecord]:
        """Remove and return the pending entry, or None when absent."""
        with self._lock:
            record = self._entries.pop(identity, None)
            if record is None:
                self._stats["misses"] += 1
                return None
            self._unindex(identity, record)
            self._stats["taken"] += 1
            return record

    def peek(self, identity: str) -> Optional[SubmissionRecord]:
        """Return the pending entry without draining it."""
        with self._lock:
            return self._entries.get(identity)

    def identity_for_request(self, request_id: Any) -> Optional[str]:
        """Find the identity of a pending submission by its request id."""
        with self._lock:
            return self._by_request_id.get(request_id)

    def sweep(self, now: datetime = None) -> int:
        """Remove every entry whose arrival is more than the TTL before now."""
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        cutoff = now - self.ttl

        with self._lock:
            expired = [
                identity for identity, record in self._entries.items()
                if record.arrival_time < cutoff
            ]
            for identity in expired:
                self._unindex(identity, self._entries.pop(identity))
            self._stats["swept"] += len(expired)
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._by_request_id.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get usage statistics."""
        with self._lock:
            stats = self._stats.copy()
            stats["pending"] = len(self._entries)
        return stats

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identity: str) -> bool:
        with self._lock:
            return identity in self._entries

    def _unindex(self, identity: str, record: SubmissionRecord) -> None:
        request_id = record.request_id
        if request_id is not None and self._by_request_id.get(request_id) == identity:
            del self._by_request_id[request_id]

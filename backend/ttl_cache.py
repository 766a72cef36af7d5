"""
Single-slot in-memory TTL cache for snapshots
"""
import time
from dataclasses import dataclass
from typing import Callable, Optional

from models import Snapshot


@dataclass(frozen=True)
class CacheRecord:
    snapshot: Snapshot
    created_at: float
    ttl: float


class TTLCache:
    """Holds at most one snapshot; replaced wholesale on put()"""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl_seconds
        self._clock = clock
        self._record: Optional[CacheRecord] = None

    def get(self) -> Optional[Snapshot]:
        """Return the cached snapshot while it is fresh, otherwise None"""
        if not self.is_fresh():
            return None
        return self._record.snapshot

    def put(self, snapshot: Snapshot) -> None:
        self._record = CacheRecord(snapshot=snapshot, created_at=self._clock(), ttl=self.ttl)

    def invalidate(self) -> None:
        self._record = None

    def is_fresh(self) -> bool:
        record = self._record
        return record is not None and self._clock() - record.created_at < record.ttl

    def age(self) -> Optional[float]:
        if self._record is None:
            return None
        return self._clock() - self._record.created_at

    def info(self) -> dict:
        age = self.age()
        return {
            "cached": self._record is not None,
            "fresh": self.is_fresh(),
            "age_seconds": round(age, 1) if age is not None else None,
            "ttl_seconds": self.ttl,
        }

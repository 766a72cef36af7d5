"""
Snapshot and stats types shared by the acquisition engine
"""
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List

ORIGIN_LIVE = "live"
ORIGIN_FALLBACK = "fallback"

KIND_SCHEDULE = "schedule"
KIND_PRICES = "prices"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class SnapshotMeta:
    """Provenance of a snapshot"""
    source: str
    fetched_at: str
    strategy: str
    origin: str = ORIGIN_LIVE


@dataclass(frozen=True)
class Snapshot:
    """Branch (or price category) -> ordered entries, plus provenance.

    Never mutated after construction; filters build new snapshots.
    """
    kind: str
    entries: Dict[str, List[str]]
    meta: SnapshotMeta

    @property
    def is_empty(self) -> bool:
        return not any(self.entries.values())

    @property
    def is_fallback(self) -> bool:
        return self.meta.origin == ORIGIN_FALLBACK

    def with_entries(self, entries: Dict[str, List[str]]) -> "Snapshot":
        return Snapshot(kind=self.kind, entries=entries, meta=self.meta)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "entries": {key: list(items) for key, items in self.entries.items()},
            "meta": asdict(self.meta),
        }


@dataclass
class Stats:
    """Monotonic counters owned by one engine instance"""
    requests: int = 0
    successes: int = 0
    failures: int = 0
    cache_hits: int = 0
    fetches: int = 0
    last_origin: Dict[str, str] = field(default_factory=dict)

    def copy(self) -> "Stats":
        return Stats(
            requests=self.requests,
            successes=self.successes,
            failures=self.failures,
            cache_hits=self.cache_hits,
            fetches=self.fetches,
            last_origin=dict(self.last_origin),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

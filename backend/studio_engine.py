"""
Schedule & price acquisition engine.

Cache check -> fetch -> strategy cascade -> cache -> client view, with the
static fallback snapshot standing in whenever live acquisition fails. Callers
always get a Snapshot; errors never propagate out of this class.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from branches import BranchResolver
from client_view import to_client_view
from config import EngineConfig, get_config
from errors import AcquisitionError
from extraction import Strategy, run_cascade
from fallback import fallback_prices, fallback_schedule
from fetcher import ContentFetcher
from models import (
    KIND_PRICES,
    KIND_SCHEDULE,
    ORIGIN_LIVE,
    Snapshot,
    SnapshotMeta,
    Stats,
    utc_now_iso,
)
from price_parser import price_strategies
from schedule_parser import schedule_strategies
from ttl_cache import TTLCache

logger = logging.getLogger(__name__)


@dataclass
class ContentSource:
    """Everything needed to acquire one kind of content"""
    kind: str
    url: str
    strategies: List[Tuple[str, Strategy]]
    fallback: Callable[[], Snapshot]
    cache: TTLCache


class StudioEngine:
    """Owns one cache slot per content type and the request stats"""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        fetcher: Optional[ContentFetcher] = None,
        resolver: Optional[BranchResolver] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or get_config().engine
        self.fetcher = fetcher or ContentFetcher(
            timeout_seconds=self.config.timeout_seconds,
            user_agent=self.config.user_agent,
        )
        self.resolver = resolver or BranchResolver(self.config.branches)
        self.stats = Stats()
        self._inflight: Dict[str, "asyncio.Task[Snapshot]"] = {}

        prices_url = self.config.prices_url
        self.sources: Dict[str, ContentSource] = {
            KIND_SCHEDULE: ContentSource(
                kind=KIND_SCHEDULE,
                url=self.config.schedule_url,
                strategies=schedule_strategies(self.resolver, self.config.max_unstructured_per_branch),
                fallback=fallback_schedule,
                cache=TTLCache(self.config.ttl_seconds, clock=clock),
            ),
            KIND_PRICES: ContentSource(
                kind=KIND_PRICES,
                url=prices_url,
                strategies=price_strategies(self.config.max_entries_per_category),
                fallback=lambda: fallback_prices(prices_url),
                cache=TTLCache(self.config.ttl_seconds, clock=clock),
            ),
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def get_schedule(self, branch: Optional[str] = None) -> Snapshot:
        """Schedule for all branches, or for the one matching `branch`"""
        snapshot = await self._acquire(self.sources[KIND_SCHEDULE])
        view = self.client_view(snapshot, branch)
        if view.is_empty and not snapshot.is_fallback:
            known = branch is None or self.resolver.resolve(branch) is not None
            if known:
                logger.warning("Live schedule has nothing to show for %r, serving fallback", branch)
                view = self.client_view(fallback_schedule(), branch)
        self.stats.last_origin[KIND_SCHEDULE] = view.meta.origin
        return view

    async def get_prices(self) -> Snapshot:
        snapshot = await self._acquire(self.sources[KIND_PRICES])
        self.stats.last_origin[KIND_PRICES] = snapshot.meta.origin
        return snapshot

    def client_view(self, snapshot: Snapshot, branch: Optional[str] = None) -> Snapshot:
        return to_client_view(
            snapshot,
            branch,
            resolver=self.resolver,
            exclusion_keywords=self.config.exclusion_keywords,
            max_entries=self.config.max_entries_per_branch,
        )

    def get_stats(self) -> Dict[str, Any]:
        """Counters plus cache state, as a plain dict"""
        stats = self.stats.copy().to_dict()
        stats["cache"] = {kind: source.cache.info() for kind, source in self.sources.items()}
        stats["urls"] = {kind: source.url for kind, source in self.sources.items()}
        return stats

    def clear_cache(self) -> None:
        for source in self.sources.values():
            source.cache.invalidate()
        logger.info("Schedule and price caches cleared")

    async def prefetch(self) -> Dict[str, Any]:
        """Warm both caches; failures are reported, never raised"""
        result: Dict[str, Any] = {}
        for kind, source in self.sources.items():
            try:
                snapshot = await self._acquire(source)
                result[kind] = {
                    "origin": snapshot.meta.origin,
                    "strategy": snapshot.meta.strategy,
                    "keys": list(snapshot.entries),
                }
            except Exception as e:
                logger.error("Prefetch of %s failed: %s", kind, e, exc_info=True)
                result[kind] = {"origin": "error", "error": str(e)}
        return result

    async def aclose(self) -> None:
        """Cancel refreshes still in flight, e.g. at shutdown"""
        tasks = list(self._inflight.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------
    async def _acquire(self, source: ContentSource) -> Snapshot:
        self.stats.requests += 1

        cached = source.cache.get()
        if cached is not None:
            self.stats.cache_hits += 1
            logger.debug("Serving cached %s", source.kind)
            return cached

        # Concurrent misses share one refresh
        task = self._inflight.get(source.kind)
        if task is None:
            task = asyncio.ensure_future(self._refresh(source))
            self._inflight[source.kind] = task
            task.add_done_callback(lambda _t, kind=source.kind: self._inflight.pop(kind, None))
        return await asyncio.shield(task)

    async def _refresh(self, source: ContentSource) -> Snapshot:
        try:
            self.stats.fetches += 1
            html = await self.fetcher.fetch(source.url)
            result = run_cascade(html, source.strategies)
        except AcquisitionError as e:
            self.stats.failures += 1
            logger.warning("Live %s unavailable (%s), using fallback", source.kind, e)
            return source.fallback()
        except Exception:
            self.stats.failures += 1
            logger.error("Unexpected error while acquiring %s, using fallback", source.kind, exc_info=True)
            return source.fallback()

        snapshot = Snapshot(
            kind=source.kind,
            entries=result.mapping,
            meta=SnapshotMeta(
                source=source.url,
                fetched_at=utc_now_iso(),
                strategy=result.strategy,
                origin=ORIGIN_LIVE,
            ),
        )
        source.cache.put(snapshot)
        self.stats.successes += 1
        logger.info(
            "Cached %s from %s via %s (%d keys)",
            source.kind,
            source.url,
            result.strategy,
            len(snapshot.entries),
        )
        return snapshot

import asyncio
import math
import threading
from typing import Awaitable, Callable, Dict, Optional, Tuple

import structlog
from cachetools import LRUCache

from poisync.exceptions import TransportError
from poisync.models.dto import POIDetail

logger = structlog.get_logger(__name__)


class LoggingLRUCache(LRUCache):
    """An LRU cache that logs the POI ids it evicts."""

    def popitem(self):
        poi_id, detail = super().popitem()
        logger.debug("poi_cache_evicted", poi_id=poi_id)
        return poi_id, detail


class POIDetailCache:
    """
    In-memory POI id -> POIDetail map for the process lifetime.

    Entries are never refreshed. Fetches are single-flight: while one
    coroutine fetches an id, others asking for the same id wait for that
    result instead of calling the remote service again.

    `max_entries` bounds the cache with LRU eviction; None keeps everything.
    """

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries
        self._entries = LoggingLRUCache(maxsize=max_entries if max_entries is not None else math.inf)
        self._inflight: Dict[str, asyncio.Future] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, poi_id: str) -> bool:
        with self._lock:
            return poi_id in self._entries

    def get(self, poi_id: str) -> Optional[POIDetail]:
        # LRUCache.get marks the entry as recently used
        with self._lock:
            return self._entries.get(poi_id)

    def put(self, detail: POIDetail) -> POIDetail:
        """Store `detail` unless the id is already cached; returns the cached value."""
        with self._lock:
            existing = self._entries.get(detail.id)
            if existing is not None:
                return existing
            self._entries[detail.id] = detail
            return detail

    async def get_or_fetch(
        self,
        poi_id: str,
        fetch: Callable[[], Awaitable[POIDetail]],
    ) -> Tuple[POIDetail, bool]:
        """
        Cached detail for `poi_id`, running `fetch` on a miss.

        Returns (detail, fetched); `fetched` is True only for the caller whose
        `fetch` ran. A failed fetch raises to every waiter and leaves the id
        uncached.
        """
        with self._lock:
            detail = self.get(poi_id)
            if detail is not None:
                return detail, False
            future = self._inflight.get(poi_id)
            owner = future is None
            if owner:
                future = asyncio.get_running_loop().create_future()
                self._inflight[poi_id] = future

        if not owner:
            logger.debug("poi_fetch_joined", poi_id=poi_id)
            return await asyncio.shield(future), False

        try:
            detail = await fetch()
        except asyncio.CancelledError:
            self._fail(poi_id, future, TransportError(f"Fetch of POI {poi_id} was cancelled"))
            raise
        except Exception as e:
            self._fail(poi_id, future, e)
            raise

        detail = self.put(detail)
        with self._lock:
            self._inflight.pop(poi_id, None)
        future.set_result(detail)
        return detail, True

    def _fail(self, poi_id: str, future: asyncio.Future, error: Exception):
        with self._lock:
            self._inflight.pop(poi_id, None)
        future.set_exception(error)
        # Mark retrieved so an unawaited future does not log a warning
        future.exception()

from __future__ import annotations
import asyncio, logging
from typing import Dict, List, Optional

from .api import WantedAPI
from .cache import TTLCache, cache_key
from .models import Gallery, WantedPersonSummary
from .pipeline import DEFAULT_BATCH_SIZE, collect_gallery
from .utils import MAX_PAGE_SIZE, clamp_page_size

logger = logging.getLogger(__name__)

class WantedGallery:
    """
    Entry point for presentation code.
    Runs the aggregation pipeline per filter combination and keeps the
    finished gallery in a TTL cache. Concurrent misses on the same filter
    share one pipeline run. Raises only when nothing could be retrieved;
    a partial gallery is returned as-is.
    """

    def __init__(
        self,
        api: WantedAPI,
        cache: Optional[TTLCache[Gallery]] = None,
        page_size: int = MAX_PAGE_SIZE,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.api = api
        self.cache: TTLCache[Gallery] = cache if cache is not None else TTLCache()
        self.page_size = clamp_page_size(page_size)
        self.batch_size = max(1, batch_size)
        self._in_flight: Dict[str, asyncio.Task] = {}

    async def _collect(self, key: str, poster_classification: Optional[str]) -> Gallery:
        gallery = await collect_gallery(self.api, self.page_size, poster_classification, self.batch_size)
        logger.info("Collected %d displayable record(s) out of %d (failed pages: %s)",
                    len(gallery.records), gallery.total, list(gallery.failed_pages) or "none")
        self.cache.set(key, gallery)
        return gallery

    async def get_gallery(self, poster_classification: Optional[str] = None) -> Gallery:
        key = cache_key(poster_classification)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._collect(key, poster_classification))
            self._in_flight[key] = task

            def forget(done: asyncio.Task, key: str = key) -> None:
                if self._in_flight.get(key) is done:
                    del self._in_flight[key]

            task.add_done_callback(forget)
        else:
            logger.debug("Joining in-flight aggregation for %s", key)
        # one caller giving up must not cancel the run for the others
        return await asyncio.shield(task)

    async def get_all_with_images(self, poster_classification: Optional[str] = None) -> List[WantedPersonSummary]:
        """Fresh copies of the gallery records; the cached gallery stays untouched."""
        gallery = await self.get_gallery(poster_classification)
        return [{**rec, "image": dict(rec["image"])} for rec in gallery.records]

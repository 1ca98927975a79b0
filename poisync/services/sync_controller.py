# poisync/services/sync_controller.py
"""
Sync cycle: position -> bounding box -> POI search -> per-POI detail
(cache first) -> buckets + telemetry.

Remote failures are logged and contained here. There is no backoff or retry
counter; a POI that failed is tried again the next time a cycle finds it.
"""

import asyncio
import copy
from typing import Any, Dict, Optional, Set, Tuple

import structlog
from structlog.contextvars import bind_contextvars
from pydantic import ValidationError

from poisync.core.config import Settings, settings as default_settings
from poisync.exceptions import DecodeError, RemoteServiceError
from poisync.models.dto import (
    CycleReport,
    CycleStatus,
    POIDetail,
    RemotePOIDetail,
    TelemetryValue,
)
from poisync.services.activecaptain_client import ActiveCaptainClient
from poisync.services.poi_cache import POIDetailCache
from poisync.services.position import PositionProvider
from poisync.services.resource_store import ResourceClassifier
from poisync.services.telemetry import TelemetrySink
from poisync.utils.geodesy import compute_bounding_box
from poisync.utils.text import join_notes, shorten_note

logger = structlog.get_logger(__name__)


def build_poi_detail(poi_id: str, payload: Dict[str, Any], settings: Settings = default_settings) -> POIDetail:
    """
    Turn a raw `pointOfInterest` object into a POIDetail.

    Raises:
        DecodeError: If required fields (name, mapLocation) are missing or malformed.
    """
    try:
        remote = RemotePOIDetail.model_validate(payload)
    except ValidationError as e:
        raise DecodeError(f"POI {poi_id} payload is missing expected fields: {e}") from e

    values = [note.value for note in remote.notes or []]
    notes = [value for value in values if value]
    return POIDetail(
        id=poi_id,
        name=remote.name,
        position=remote.map_location,
        category=remote.poi_type,
        notes=notes,
        url=settings.POI_PAGE_URL_TEMPLATE.format(poi_id=poi_id),
        short_note=shorten_note(values, settings.NOTE_LENGTH_LIMIT, settings.NOTE_ELLIPSIS),
        long_note=join_notes(notes),
        raw=copy.deepcopy(payload),
    )


class SyncController:
    """Runs sync cycles on a startup delay and a fixed interval."""

    def __init__(
        self,
        client: ActiveCaptainClient,
        cache: POIDetailCache,
        classifier: ResourceClassifier,
        telemetry: TelemetrySink,
        positions: PositionProvider,
        settings: Settings = default_settings,
    ):
        self.client = client
        self.cache = cache
        self.classifier = classifier
        self.telemetry = telemetry
        self.positions = positions
        self.settings = settings
        self._cycle_lock = asyncio.Lock()
        self._timers: Set[asyncio.Task] = set()
        self._cycles: Set[asyncio.Task] = set()

    # --- Timers ---

    def start(self):
        """Schedule the startup cycle and the recurring cycle."""
        if self._timers:
            return
        for coro in (self._run_after_delay(), self._run_every_interval()):
            task = asyncio.create_task(coro)
            self._timers.add(task)
            task.add_done_callback(self._timers.discard)
        logger.info(
            "sync_scheduled",
            startup_delay_seconds=self.settings.STARTUP_DELAY_SECONDS,
            interval_minutes=self.settings.CHECK_EVERY_MINUTES,
        )

    async def stop(self):
        tasks = list(self._timers) + list(self._cycles)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._timers.clear()
        self._cycles.clear()
        logger.info("sync_stopped")

    async def _run_after_delay(self):
        await asyncio.sleep(self.settings.STARTUP_DELAY_SECONDS)
        self._spawn_cycle("startup")

    async def _run_every_interval(self):
        interval = self.settings.CHECK_EVERY_MINUTES * 60
        while True:
            await asyncio.sleep(interval)
            # Not awaited: a slow cycle must not delay the next tick
            self._spawn_cycle("interval")

    def _spawn_cycle(self, trigger: str):
        task = asyncio.create_task(self._run_logged(trigger))
        self._cycles.add(task)
        task.add_done_callback(self._cycles.discard)

    async def _run_logged(self, trigger: str):
        bind_contextvars(sync_trigger=trigger)
        try:
            report = await self.run_cycle()
            logger.info("sync_cycle_finished", **report.model_dump(exclude={"bounding_box"}))
        except Exception:
            logger.exception("sync_cycle_crashed")

    # --- Cycle ---

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_lock.locked()

    async def run_cycle(self) -> CycleReport:
        if not self.settings.SKIP_OVERLAPPING_CYCLES:
            return await self._run_cycle()
        if self._cycle_lock.locked():
            logger.warning("sync_cycle_skipped", reason="previous cycle still running")
            return CycleReport(status=CycleStatus.SKIPPED)
        async with self._cycle_lock:
            return await self._run_cycle()

    async def _run_cycle(self) -> CycleReport:
        position = self.positions.get_position()
        if position is None:
            logger.info("sync_no_position")
            return CycleReport(status=CycleStatus.NO_POSITION)

        box = compute_bounding_box(position, self.settings.SEARCH_RADIUS_KM)
        logger.info(
            "poi_search_started",
            latitude=position.latitude,
            longitude=position.longitude,
            radius_km=self.settings.SEARCH_RADIUS_KM,
        )
        try:
            summaries = await self.client.search_box(box, self.settings.ZOOM_LEVEL)
        except RemoteServiceError as e:
            logger.warning("poi_search_failed", error=str(e), status_code=e.status_code)
            return CycleReport(status=CycleStatus.SEARCH_FAILED, bounding_box=box)

        logger.info("poi_search_received", count=len(summaries))
        report = CycleReport(status=CycleStatus.COMPLETED, bounding_box=box, found=len(summaries))
        for summary in summaries:
            published, fetched = await self._resolve(summary.id)
            if not published:
                report.failed += 1
            elif fetched:
                report.fetched += 1
            else:
                report.cached += 1
        return report

    async def resolve_and_publish(self, poi_id: str) -> bool:
        """
        Publish `poi_id`, fetching its details only if they are not cached.
        Returns False if the details could not be resolved this time.
        """
        published, _ = await self._resolve(poi_id)
        return published

    async def _resolve(self, poi_id: str) -> Tuple[bool, bool]:
        try:
            detail, fetched = await self.cache.get_or_fetch(poi_id, lambda: self._fetch_detail(poi_id))
        except RemoteServiceError as e:
            logger.warning("poi_detail_failed", poi_id=poi_id, error=str(e), status_code=e.status_code)
            return False, False

        if fetched:
            logger.debug("poi_detail_fetched", poi_id=poi_id)
        else:
            logger.debug("poi_detail_cached", poi_id=poi_id)
        await self.publish(detail)
        return True, fetched

    async def _fetch_detail(self, poi_id: str) -> POIDetail:
        payload = await self.client.get_detail(poi_id)
        return build_poi_detail(poi_id, payload, self.settings)

    async def publish(self, detail: POIDetail) -> Optional[str]:
        """Classify `detail` into buckets and emit its telemetry value. Returns the path."""
        buckets = self.classifier.classify(detail)
        path = f"{self.settings.TELEMETRY_PATH_PREFIX}.{detail.id}"
        value = TelemetryValue(
            name=detail.name,
            position=detail.position,
            category=detail.category,
            notes=detail.short_note,
            url=detail.url,
        )
        try:
            await self.telemetry.publish(path, value.model_dump())
        except Exception as e:
            logger.error("telemetry_publish_failed", poi_id=detail.id, path=path, error=str(e))
            return None
        logger.debug("poi_published", poi_id=detail.id, buckets=sorted(buckets))
        return path

import copy
import threading
from typing import Any, Dict, List, Optional, Set

import structlog

from poisync.models.dto import NoteResource, POIDetail

logger = structlog.get_logger(__name__)

NOTES_BUCKET = "notes"
CATEGORY_PREFIX = "ac_"

# ActiveCaptain poiType values exposed as category collections
POI_CATEGORIES = (
    "Unknown",
    "Anchorage",
    "Hazard",
    "Marina",
    "LocalKnowledge",
    "Navigational",
    "BoatRamp",
    "Business",
    "Inlet",
    "Bridge",
    "Lock",
    "Dam",
    "Ferry",
    "Airport",
)


def category_bucket(category: str) -> str:
    """Bucket name for a raw remote category, taken verbatim."""
    return f"{CATEGORY_PREFIX}{category}"


class ResourceStore:
    """
    Named buckets of resource entries: bucket name -> POI id -> payload.

    Buckets appear on first write and are never removed. All access goes
    through one lock so readers never see a bucket mid-update. Values are
    deep-copied on the way in and out; callers never hold stored data.
    """

    def __init__(self):
        self._buckets: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()

    def put(self, bucket: str, resource_id: str, value: Dict[str, Any]):
        with self._lock:
            entries = self._buckets.get(bucket)
            if entries is None:
                entries = self._buckets[bucket] = {}
                logger.info("resource_bucket_created", bucket=bucket)
            entries[resource_id] = copy.deepcopy(value)

    def get(self, bucket: str, resource_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            value = self._buckets.get(bucket, {}).get(resource_id)
            return copy.deepcopy(value)

    def snapshot(self, bucket: str) -> Dict[str, Dict[str, Any]]:
        """Copy of the bucket contents at call time; empty for unknown buckets."""
        with self._lock:
            return copy.deepcopy(self._buckets.get(bucket, {}))

    def has_bucket(self, bucket: str) -> bool:
        with self._lock:
            return bucket in self._buckets

    def bucket_names(self) -> List[str]:
        with self._lock:
            return sorted(self._buckets)

    def sizes(self) -> Dict[str, int]:
        with self._lock:
            return {name: len(entries) for name, entries in self._buckets.items()}


class ResourceClassifier:
    """Writes a POIDetail into the buckets it belongs to."""

    def __init__(self, store: ResourceStore, categories_enabled: bool = False):
        self.store = store
        self.categories_enabled = categories_enabled

    def classify(self, detail: POIDetail) -> Set[str]:
        """Returns the names of the buckets updated."""
        updated = {NOTES_BUCKET}
        note = NoteResource(
            name=detail.name,
            description=detail.long_note,
            position=detail.position,
            group=detail.category,
            url=detail.url,
        )
        self.store.put(NOTES_BUCKET, detail.id, note.model_dump())

        if self.categories_enabled:
            bucket = category_bucket(detail.category)
            self.store.put(bucket, detail.id, detail.raw)
            updated.add(bucket)

        return updated

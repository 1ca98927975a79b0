"""
Shared test fixtures for the POI sync test suite.
Provides a fake ActiveCaptain service (served through httpx.MockTransport)
and ready-wired cache, store, telemetry and controller objects.
"""
import asyncio
import json
from typing import Any, Dict, List

import httpx
import pytest

from poisync.core.config import Settings
from poisync.models.dto import Position
from poisync.services.activecaptain_client import ActiveCaptainClient
from poisync.services.poi_cache import POIDetailCache
from poisync.services.position import InMemoryPositionProvider
from poisync.services.resource_store import ResourceClassifier, ResourceStore
from poisync.services.sync_controller import SyncController
from poisync.services.telemetry import InMemoryTelemetrySink


def make_poi_payload(
    name: str = "Dock X",
    poi_type: str = "Marina",
    notes=("Great facilities, friendly staff and fuel on site.",),
    latitude: float = 47.61,
    longitude: float = -122.35,
) -> Dict[str, Any]:
    """Detail endpoint response body."""
    return {
        "pointOfInterest": {
            "name": name,
            "mapLocation": {"latitude": latitude, "longitude": longitude},
            "poiType": poi_type,
            "notes": [{"value": note} for note in notes],
        }
    }


class FakeActiveCaptain:
    """Callable httpx handler standing in for the remote POI service."""

    def __init__(self):
        self.summaries: List[Dict[str, Any]] = []
        self.details: Dict[str, Dict[str, Any]] = {}
        self.search_status = 200
        self.search_delay = 0.0
        self.detail_delay = 0.0
        self.requests: List[httpx.Request] = []
        self.search_bodies: List[Dict[str, Any]] = []

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def detail_calls(self, poi_id: str) -> int:
        suffix = f"/points-of-interest/{poi_id}/summary"
        return sum(1 for r in self.requests if r.url.path.endswith(suffix))

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/points-of-interest/bbox"):
            self.search_bodies.append(json.loads(request.content))
            if self.search_delay:
                await asyncio.sleep(self.search_delay)
            if self.search_status != 200:
                return httpx.Response(self.search_status, json={"error": "boom"})
            return httpx.Response(200, json={"pointsOfInterest": self.summaries})

        poi_id = path.rstrip("/").split("/")[-2]
        if self.detail_delay:
            await asyncio.sleep(self.detail_delay)
        if poi_id not in self.details:
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(200, json=self.details[poi_id])


@pytest.fixture
def poi_payload():
    return make_poi_payload


@pytest.fixture
def settings():
    return Settings(
        SYNC_ENABLED=False,
        CATEGORY_RESOURCES=True,
        API_BASE_URL="https://activecaptain.test/community/api/v1",
    )


@pytest.fixture
def fake_service():
    service = FakeActiveCaptain()
    service.summaries = [{"id": "A"}]
    service.details = {"A": make_poi_payload()}
    return service


@pytest.fixture
def api_client(settings, fake_service):
    return ActiveCaptainClient(settings, transport=fake_service.transport())


@pytest.fixture
def store():
    return ResourceStore()


@pytest.fixture
def cache():
    return POIDetailCache()


@pytest.fixture
def telemetry():
    return InMemoryTelemetrySink()


@pytest.fixture
def positions():
    return InMemoryPositionProvider(Position(latitude=47.6, longitude=-122.3))


@pytest.fixture
def controller(api_client, cache, store, telemetry, positions, settings):
    return SyncController(
        client=api_client,
        cache=cache,
        classifier=ResourceClassifier(store, categories_enabled=settings.CATEGORY_RESOURCES),
        telemetry=telemetry,
        positions=positions,
        settings=settings,
    )

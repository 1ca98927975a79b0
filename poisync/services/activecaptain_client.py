# poisync/services/activecaptain_client.py
"""Async client for the two ActiveCaptain community API calls the sync cycle needs."""

import httpx
from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError

from poisync.core.config import Settings, settings as default_settings
from poisync.exceptions import DecodeError, TransportError
from poisync.models.dto import BoundingBox, POISummary

logger = structlog.get_logger(__name__)

BBOX_PATH = "/points-of-interest/bbox"
DETAIL_PATH = "/points-of-interest/{poi_id}/summary"


class ActiveCaptainClient:
    """
    Thin wrapper around httpx.AsyncClient.

    Every failure surfaces as TransportError (network, timeout, non-200) or
    DecodeError (200 without the expected payload). No retries here; the
    next sync cycle is the retry.
    """

    def __init__(
        self,
        settings: Settings = default_settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=settings.API_BASE_URL,
            headers={"User-Agent": settings.USER_AGENT},
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def aclose(self):
        await self._client.aclose()

    async def search_box(self, box: BoundingBox, zoom_level: int) -> List[POISummary]:
        """POIs inside `box`. A response without `pointsOfInterest` means no results."""
        payload = {
            "north": box.north,
            "south": box.south,
            "east": box.east,
            "west": box.west,
            "zoomLevel": zoom_level,
        }
        data = await self._request("POST", BBOX_PATH, json=payload)

        items = data.get("pointsOfInterest")
        if not items:
            return []
        if not isinstance(items, list):
            raise DecodeError("pointsOfInterest is not a list", url=BBOX_PATH)

        summaries: List[POISummary] = []
        for item in items:
            try:
                summaries.append(POISummary.model_validate(item))
            except ValidationError as e:
                logger.warning("poi_summary_invalid", item=str(item)[:200], error=str(e))
        return summaries

    async def get_detail(self, poi_id: str) -> Dict[str, Any]:
        """The raw `pointOfInterest` object for `poi_id`."""
        path = DETAIL_PATH.format(poi_id=poi_id)
        data = await self._request("GET", path)

        poi = data.get("pointOfInterest")
        if not isinstance(poi, dict):
            raise DecodeError(f"Cannot decode response for POI {poi_id}", url=path)
        return poi

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"Timed out calling {path}: {e}", url=path) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Error calling {path}: {e}", url=path) from e

        if response.status_code != 200:
            raise TransportError(
                f"Unexpected status {response.status_code} from {path}",
                url=path,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise DecodeError(f"Response from {path} is not JSON", url=path) from e
        if not isinstance(data, dict):
            raise DecodeError(f"Response from {path} is not a JSON object", url=path)
        return data

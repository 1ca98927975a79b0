# poisync/api/routes.py
# HTTP query layer over the resource collections, plus position feed and
# manual sync trigger for the host application.

from fastapi import APIRouter, Body, Request, HTTPException, status, Query
from structlog.contextvars import bind_contextvars
import logging
from typing import Any, Dict, List, Optional

from poisync.models.dto import CycleReport, ErrorResponse, Position
from poisync.services.position import InMemoryPositionProvider
from poisync.services.resource_provider import ResourceProvider, ResourceRegistry
from poisync.services.sync_controller import SyncController
from poisync.utils.geodesy import haversine

router = APIRouter()
logger = logging.getLogger(__name__)

# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------
def _provider(request: Request, resource_type: str) -> ResourceProvider:
    registry: ResourceRegistry = request.app.state.registry
    provider = registry.get(resource_type)
    if provider is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=ErrorResponse(
                error="UNKNOWN_RESOURCE_TYPE",
                detail=f"No resource collection named '{resource_type}' is registered.",
            ).model_dump(),
        )
    return provider

def _entry_position(entry: Dict[str, Any]) -> Optional[Position]:
    # notes entries carry `position`, category entries the raw `mapLocation`
    raw = entry.get("position") or entry.get("mapLocation")
    if not isinstance(raw, dict):
        return None
    try:
        return Position(latitude=raw["latitude"], longitude=raw["longitude"])
    except (KeyError, TypeError, ValueError):
        return None

# ----------------------------------------------------------------------
# Resource collections
# ----------------------------------------------------------------------
@router.get("/resources", response_model=List[str])
async def list_resource_types(request: Request):
    """Names of the registered resource collections."""
    return request.app.state.registry.names()

@router.get(
    "/resources/{resource_type}",
    responses={404: {"model": ErrorResponse}},
)
async def list_resources(
    request: Request,
    resource_type: str,
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
    distance_km: Optional[float] = Query(None, gt=0),
    limit: Optional[int] = Query(None, ge=1),
) -> Dict[str, Any]:
    """List a collection, optionally filtered by distance from (lat, lon)."""
    provider = _provider(request, resource_type)
    query = {k: v for k, v in request.query_params.items()}
    resources = provider.list_resources(query)

    if lat is not None and lon is not None and distance_km is not None:
        filtered = {}
        for resource_id, entry in resources.items():
            position = _entry_position(entry)
            if position is None:
                continue
            if haversine(lat, lon, position.latitude, position.longitude) <= distance_km:
                filtered[resource_id] = entry
        resources = filtered

    if limit is not None:
        resources = dict(list(resources.items())[:limit])
    return resources

@router.get(
    "/resources/{resource_type}/{resource_id}",
    responses={404: {"model": ErrorResponse}},
)
async def get_resource(request: Request, resource_type: str, resource_id: str) -> Dict[str, Any]:
    provider = _provider(request, resource_type)
    entry = provider.get_resource(resource_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=ErrorResponse(
                error="RESOURCE_NOT_FOUND",
                detail=f"No '{resource_type}' resource with id {resource_id}.",
            ).model_dump(),
        )
    return entry

@router.api_route(
    "/resources/{resource_type}/{resource_id}",
    methods=["PUT", "POST"],
    responses={404: {"model": ErrorResponse}, 405: {"model": ErrorResponse}},
)
async def set_resource(request: Request, resource_type: str, resource_id: str, value: Any = Body(None)):
    # Always raises UnsupportedOperationError, mapped to 405 in main.py.
    # The body is accepted untyped so a missing or odd body is not a 422.
    _provider(request, resource_type).set_resource(resource_id, value)

@router.delete(
    "/resources/{resource_type}/{resource_id}",
    responses={404: {"model": ErrorResponse}, 405: {"model": ErrorResponse}},
)
async def delete_resource(request: Request, resource_type: str, resource_id: str):
    _provider(request, resource_type).delete_resource(resource_id)

# ----------------------------------------------------------------------
# Position feed
# ----------------------------------------------------------------------
@router.get("/position", responses={404: {"model": ErrorResponse}})
async def get_position(request: Request) -> Position:
    position = request.app.state.positions.get_position()
    if position is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=ErrorResponse(
                error="NO_POSITION",
                detail="No vessel position has been received yet.",
            ).model_dump(),
        )
    return position

@router.put("/position")
async def update_position(request: Request, position: Position) -> Position:
    positions: InMemoryPositionProvider = request.app.state.positions
    positions.update(position)
    logger.debug(f"Position updated: {position.latitude}, {position.longitude}")
    return position

# ----------------------------------------------------------------------
# Sync & telemetry
# ----------------------------------------------------------------------
@router.post("/sync", response_model=CycleReport)
async def trigger_sync(request: Request):
    """Run one sync cycle now and report what it did."""
    controller: SyncController = request.app.state.controller
    bind_contextvars(sync_trigger="manual")
    report = await controller.run_cycle()
    logger.info(f"Manual sync cycle finished with status {report.status.value}")
    return report

@router.get("/telemetry")
async def get_telemetry(request: Request) -> Dict[str, Any]:
    """Latest telemetry value per path."""
    return request.app.state.telemetry.snapshot()

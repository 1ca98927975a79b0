from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Optional

# --- Geometry ---

class Position(BaseModel):
    """Vessel or POI position in decimal degrees."""
    latitude: float = Field(..., ge=-90, le=90, description="Latitude.")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude.")

class BoundingBox(BaseModel):
    """Search box sent to the remote service."""
    north: float
    south: float
    east: float
    west: float

# --- Remote payloads ---

class POISummary(BaseModel):
    """Entry of the `pointsOfInterest` array returned by the bbox search."""
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Remote POI identifier.")

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_string(cls, value: Any) -> Any:
        # The service returns numeric ids
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(int(value))
        return value

class RemoteNote(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: Optional[str] = None

class RemotePOIDetail(BaseModel):
    """The `pointOfInterest` object of the detail endpoint."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str
    map_location: Position = Field(..., alias="mapLocation")
    poi_type: str = Field("Unknown", alias="poiType")
    notes: Optional[List[RemoteNote]] = None

    @field_validator("poi_type", mode="before")
    @classmethod
    def _null_type_is_unknown(cls, value: Any) -> Any:
        return "Unknown" if value is None else value

# --- Cached record ---

class POIDetail(BaseModel):
    """Fully resolved POI. Never modified once cached."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    position: Position
    category: str = Field(..., description="Raw remote category (poiType).")
    notes: List[str] = Field(default_factory=list)
    url: str
    short_note: str = ""
    long_note: str = ""
    raw: Dict[str, Any] = Field(default_factory=dict, description="The pointOfInterest payload as received.")

# --- Projections ---

class NoteResource(BaseModel):
    """Entry of the generic `notes` collection."""
    name: str
    description: str
    position: Position
    group: str
    url: str

class TelemetryValue(BaseModel):
    """Value published under pointsOfInterest.activeCaptain.<id>."""
    name: str
    position: Position
    category: str
    notes: str
    url: str

# --- Sync reporting ---

class CycleStatus(str, Enum):
    COMPLETED = "completed"
    NO_POSITION = "no_position"
    SEARCH_FAILED = "search_failed"
    SKIPPED = "skipped"

class CycleReport(BaseModel):
    status: CycleStatus
    bounding_box: Optional[BoundingBox] = None
    found: int = 0
    fetched: int = 0
    cached: int = 0
    failed: int = 0

# --- Error Response Model ---

class ErrorResponse(BaseModel):
    """Standardized error response model."""
    error: str = Field(..., description="A machine-readable error code.")
    detail: str = Field(..., description="A human-readable explanation.")

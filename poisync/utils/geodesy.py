from math import radians, degrees, sin, cos, sqrt, asin, atan2
from typing import Tuple

from poisync.models.dto import BoundingBox, Position

# Mean radius of the Earth in kilometers
R = 6371.0

# Corner bearings of the search box, in degrees
NORTHWEST_BEARING = -45.0
SOUTHEAST_BEARING = 135.0


def destination(lat: float, lng: float, bearing: float, distance_km: float) -> Tuple[float, float]:
    """
    Calculate the point reached by travelling `distance_km` along a great
    circle from (lat, lng) with initial bearing `bearing` (degrees, clockwise
    from north), on a spherical Earth.

    Returns:
        A tuple of (latitude, longitude) in decimal degrees.
    """
    lat_rad = radians(lat)
    lng_rad = radians(lng)
    bearing_rad = radians(bearing)
    angular = distance_km / R

    new_lat_rad = asin(
        sin(lat_rad) * cos(angular) + cos(lat_rad) * sin(angular) * cos(bearing_rad)
    )
    new_lng_rad = lng_rad + atan2(
        sin(bearing_rad) * sin(angular) * cos(lat_rad),
        cos(angular) - sin(lat_rad) * sin(new_lat_rad),
    )

    return degrees(new_lat_rad), degrees(new_lng_rad)


def compute_bounding_box(center: Position, radius_km: float) -> BoundingBox:
    """
    Square-ish box whose northwest and southeast corners each lie `radius_km`
    from `center`, so the diagonal is 2 * radius_km.
    """
    north, west = destination(center.latitude, center.longitude, NORTHWEST_BEARING, radius_km)
    south, east = destination(center.latitude, center.longitude, SOUTHEAST_BEARING, radius_km)
    return BoundingBox(north=north, south=south, east=east, west=west)


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points
    on the Earth (specified in decimal degrees) using the Haversine formula.

    Args:
        lat1: Latitude of point 1.
        lon1: Longitude of point 1.
        lat2: Latitude of point 2.
        lon2: Longitude of point 2.

    Returns:
        Distance between the two points in kilometers.
    """
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])

    dlon = lon2 - lon1
    dlat = lat2 - lat1

    a = sin(dlat / 2)**2 + cos(lat1) * cos(lat2) * sin(dlon / 2)**2
    c = 2 * asin(sqrt(a))

    return R * c

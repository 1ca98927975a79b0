from poisync.core.config import settings
from poisync.models.dto import Position
from poisync.utils.geodesy import compute_bounding_box, haversine

lat, lon = 47.6, -122.3  # Seattle waterfront

box = compute_bounding_box(Position(latitude=lat, longitude=lon), settings.SEARCH_RADIUS_KM)
print(f"Box: N {box.north:.5f} S {box.south:.5f} E {box.east:.5f} W {box.west:.5f}")
print(f"NW corner: {haversine(lat, lon, box.north, box.west):.3f} km")
print(f"SE corner: {haversine(lat, lon, box.south, box.east):.3f} km")
print(f"Diagonal:  {haversine(box.north, box.west, box.south, box.east):.3f} km")

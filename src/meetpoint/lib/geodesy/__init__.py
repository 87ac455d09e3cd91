"""Geodesy library: pure great-circle math, no state.

Public API:
    - Coordinate: Validated lat/lon value type
    - Viewport: Bounding box for map display
    - haversine_km: Great-circle distance
    - centroid: Arithmetic-mean coordinate
    - bounding_box: Padded box around a set of points
    - format_coordinate: Fixed-precision ``"lat, lon"`` label
"""

from meetpoint.lib.geodesy.great_circle import (
    EARTH_RADIUS_KM,
    Coordinate,
    Viewport,
    bounding_box,
    centroid,
    format_coordinate,
    haversine_km,
)

__all__ = [
    "EARTH_RADIUS_KM",
    "Coordinate",
    "Viewport",
    "bounding_box",
    "centroid",
    "format_coordinate",
    "haversine_km",
]

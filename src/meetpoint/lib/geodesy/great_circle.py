"""Great-circle distance, centroid and bounding-box helpers.

All coordinates are WGS84 degrees. Distances use the haversine formula
on a spherical Earth, which is accurate to roughly 0.5% and plenty for
picking a meeting city.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinate:
    """A point on the globe in decimal degrees."""

    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not (-90 <= self.lat <= 90):
            msg = f"lat must be between -90 and 90, got {self.lat}"
            raise ValueError(msg)
        if not (-180 <= self.lon <= 180):
            msg = f"lon must be between -180 and 180, got {self.lon}"
            raise ValueError(msg)


@dataclass(frozen=True)
class Viewport:
    """Axis-aligned lat/lon box, as a map renderer would fit its bounds to."""

    south: float
    west: float
    north: float
    east: float

    @property
    def center(self) -> Coordinate:
        return Coordinate((self.south + self.north) / 2, (self.west + self.east) / 2)


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Return the great-circle distance between two coordinates in kilometres."""
    d_lat = math.radians(b.lat - a.lat)
    d_lon = math.radians(b.lon - a.lon)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lon / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def centroid(coordinates: Iterable[Coordinate]) -> Coordinate:
    """Arithmetic mean of a set of coordinates.

    Each coordinate counts once, so a city entered twice pulls the
    centroid twice as hard.

    Args:
        coordinates: Coordinates to average.

    Returns:
        The mean coordinate.

    Raises:
        ValueError: If no coordinates were given.
    """
    sum_lat = 0.0
    sum_lon = 0.0
    count = 0
    for coordinate in coordinates:
        sum_lat += coordinate.lat
        sum_lon += coordinate.lon
        count += 1
    if count == 0:
        msg = "Cannot compute the centroid of an empty set"
        raise ValueError(msg)
    return Coordinate(sum_lat / count, sum_lon / count)


def format_coordinate(coordinate: Coordinate, digits: int = 4) -> str:
    """Render a coordinate as ``"lat, lon"`` with a fixed number of decimals."""
    return f"{coordinate.lat:.{digits}f}, {coordinate.lon:.{digits}f}"


def bounding_box(coordinates: Iterable[Coordinate], padding: float = 0.1) -> Viewport:
    """Compute the padded bounding box of a set of coordinates.

    Args:
        coordinates: Points that must all be visible.
        padding: Fraction of the span added on every side. A single point
            gets no padding because its span is zero.

    Returns:
        Viewport clamped to valid lat/lon ranges.

    Raises:
        ValueError: If no coordinates were given.
    """
    points = list(coordinates)
    if not points:
        msg = "Cannot compute the bounding box of an empty set"
        raise ValueError(msg)

    south = min(p.lat for p in points)
    north = max(p.lat for p in points)
    west = min(p.lon for p in points)
    east = max(p.lon for p in points)

    pad_lat = (north - south) * padding
    pad_lon = (east - west) * padding
    return Viewport(
        south=max(south - pad_lat, -90.0),
        west=max(west - pad_lon, -180.0),
        north=min(north + pad_lat, 90.0),
        east=min(east + pad_lon, 180.0),
    )

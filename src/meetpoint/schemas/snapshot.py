"""Pydantic v2 schemas for the persisted session snapshot.

Each top-level model is stored under its own storage key and must
round-trip exactly through ``model_dump_json`` / ``model_validate_json``.
"""

from pydantic import BaseModel, Field

from meetpoint.lib.geodesy import Coordinate, Viewport


class CoordinateSnapshot(BaseModel):
    """A persisted lat/lon pair."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)

    @classmethod
    def from_coordinate(cls, coordinate: Coordinate) -> "CoordinateSnapshot":
        return cls(lat=coordinate.lat, lon=coordinate.lon)

    def to_coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lon)


class EntrySnapshot(BaseModel):
    """One resolved city occurrence."""

    name: str = Field(..., min_length=1)
    coordinate: CoordinateSnapshot
    display_label: str


class CitiesSnapshot(BaseModel):
    """The resolved city list, in insertion order."""

    version: int = 1
    entries: list[EntrySnapshot] = Field(default_factory=list)


class ForwardCacheRecord(BaseModel):
    """Cached forward lookup."""

    coordinate: CoordinateSnapshot
    display_label: str


class ReverseCacheRecord(BaseModel):
    """Cached reverse or settlement lookup.

    ``coordinate`` is only set for settlement lookups, where it holds the
    settlement's own location.
    """

    place_label: str
    country: str
    full_address: str
    coordinate: CoordinateSnapshot | None = None


class LookupCacheSnapshot(BaseModel):
    """Both lookup maps, keyed exactly as in memory."""

    version: int = 1
    forward: dict[str, ForwardCacheRecord] = Field(default_factory=dict)
    reverse: dict[str, ReverseCacheRecord] = Field(default_factory=dict)


class ResultLocationSnapshot(BaseModel):
    """The displayed meeting point."""

    coordinate: CoordinateSnapshot
    place_label: str
    country: str
    full_address: str


class AggregateSnapshot(BaseModel):
    """Last computed aggregate."""

    version: int = 1
    centroid: CoordinateSnapshot
    result_location: ResultLocationSnapshot
    member_count: int = Field(..., gt=0)


class ViewportSnapshot(BaseModel):
    """Last map viewport."""

    version: int = 1
    south: float = Field(..., ge=-90, le=90)
    west: float = Field(..., ge=-180, le=180)
    north: float = Field(..., ge=-90, le=90)
    east: float = Field(..., ge=-180, le=180)

    @classmethod
    def from_viewport(cls, viewport: Viewport) -> "ViewportSnapshot":
        return cls(south=viewport.south, west=viewport.west, north=viewport.north, east=viewport.east)

    def to_viewport(self) -> Viewport:
        return Viewport(south=self.south, west=self.west, north=self.north, east=self.east)

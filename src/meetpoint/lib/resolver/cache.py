"""Session-lifetime memoization of forward and reverse lookups.

Two independent maps: forward (normalized name -> ResolvedLocation) and
reverse (rounded coordinate key -> PlaceLabel or Settlement). Entries are
write-once and never evicted; the whole cache is persisted and restored
as one snapshot.
"""

from enum import StrEnum

from loguru import logger

from meetpoint.lib.geodesy import Coordinate
from meetpoint.lib.resolver.base import PlaceLabel, ResolvedLocation, Settlement
from meetpoint.schemas.snapshot import (
    CoordinateSnapshot,
    ForwardCacheRecord,
    LookupCacheSnapshot,
    ReverseCacheRecord,
)

ReverseValue = PlaceLabel | Settlement

# 4 decimal places is an ~11 m grid
REVERSE_KEY_DIGITS = 4


class ReverseNamespace(StrEnum):
    """Keeps plain address lookups apart from settlement lookups of the same point."""

    ADDRESS = ""
    SETTLEMENT = "nearest:"


def forward_key(name: str) -> str:
    """Normalize a place name into a forward cache key."""
    return name.strip().lower()


def reverse_key(coordinate: Coordinate, namespace: ReverseNamespace = ReverseNamespace.ADDRESS) -> str:
    """Build a reverse cache key from a coordinate rounded to a fixed grid.

    Rounding plus fixed-width formatting makes nearby floats that print
    differently share a key. Negative zero is folded into zero.
    """
    lat = round(coordinate.lat, REVERSE_KEY_DIGITS) + 0.0
    lon = round(coordinate.lon, REVERSE_KEY_DIGITS) + 0.0
    return f"{namespace.value}{lat:.{REVERSE_KEY_DIGITS}f}_{lon:.{REVERSE_KEY_DIGITS}f}"


class LookupCache:
    """In-memory forward and reverse lookup cache."""

    def __init__(self) -> None:
        self._forward: dict[str, ResolvedLocation] = {}
        self._reverse: dict[str, ReverseValue] = {}
        self.hits = 0
        self.misses = 0

    def get_forward(self, name: str) -> ResolvedLocation | None:
        location = self._forward.get(forward_key(name))
        self._record_lookup(location is not None)
        return location

    def put_forward(self, name: str, location: ResolvedLocation) -> bool:
        """Store a forward result unless the key is already present.

        Returns:
            True if the value was written, False if an entry already existed.
        """
        key = forward_key(name)
        if key in self._forward:
            return False
        self._forward[key] = location
        return True

    def get_reverse(self, key: str) -> ReverseValue | None:
        value = self._reverse.get(key)
        self._record_lookup(value is not None)
        return value

    def put_reverse(self, key: str, value: ReverseValue) -> bool:
        """Store a reverse result unless the key is already present.

        Negative results (empty or placeholder labels) are stored too.

        Returns:
            True if the value was written, False if an entry already existed.
        """
        if key in self._reverse:
            return False
        self._reverse[key] = value
        return True

    def stats(self) -> dict[str, int]:
        return {
            "forward": len(self._forward),
            "reverse": len(self._reverse),
            "hits": self.hits,
            "misses": self.misses,
        }

    def clear(self) -> None:
        self._forward.clear()
        self._reverse.clear()
        self.hits = 0
        self.misses = 0

    def to_snapshot(self) -> LookupCacheSnapshot:
        """Serialize both maps into a persistable snapshot."""
        forward = {
            key: ForwardCacheRecord(
                coordinate=CoordinateSnapshot.from_coordinate(loc.coordinate),
                display_label=loc.display_label,
            )
            for key, loc in self._forward.items()
        }
        reverse = {key: _reverse_record(value) for key, value in self._reverse.items()}
        return LookupCacheSnapshot(forward=forward, reverse=reverse)

    def load_snapshot(self, snapshot: LookupCacheSnapshot) -> None:
        """Merge a snapshot produced by :meth:`to_snapshot` into this cache.

        Keys already present in memory win, as with any other write.
        """
        for key, record in snapshot.forward.items():
            self._forward.setdefault(
                key,
                ResolvedLocation(coordinate=record.coordinate.to_coordinate(), display_label=record.display_label),
            )
        for key, reverse_record in snapshot.reverse.items():
            self._reverse.setdefault(key, _reverse_value(reverse_record))
        logger.debug(f"Restored lookup cache: {len(self._forward)} forward, {len(self._reverse)} reverse")

    @classmethod
    def from_snapshot(cls, snapshot: LookupCacheSnapshot) -> "LookupCache":
        """Build a fresh cache from a snapshot."""
        cache = cls()
        cache.load_snapshot(snapshot)
        return cache

    def _record_lookup(self, hit: bool) -> None:
        if hit:
            self.hits += 1
        else:
            self.misses += 1


def _reverse_record(value: ReverseValue) -> ReverseCacheRecord:
    coordinate = None
    if isinstance(value, Settlement):
        coordinate = CoordinateSnapshot.from_coordinate(value.coordinate)
    return ReverseCacheRecord(
        place_label=value.place_label,
        country=value.country,
        full_address=value.full_address,
        coordinate=coordinate,
    )


def _reverse_value(record: ReverseCacheRecord) -> ReverseValue:
    if record.coordinate is None:
        return PlaceLabel(
            place_label=record.place_label,
            country=record.country,
            full_address=record.full_address,
        )
    return Settlement(
        coordinate=record.coordinate.to_coordinate(),
        place_label=record.place_label,
        country=record.country,
        full_address=record.full_address,
    )

"""Meeting-point computation over the resolved cities.

The centroid of every resolved entry is reverse-looked-up at fine
precision. If that names a genuine settlement, the centroid itself is the
meeting point. Otherwise the resolver's nearest-settlement search supplies
the meeting point, whose coordinate may differ from the centroid.

Recomputes are not serialized against each other. Each one takes a
generation number and only the most recently started recompute may
publish, so a slow stale recompute can never overwrite a newer result.
"""

from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from meetpoint.lib.geodesy import Coordinate, centroid, haversine_km
from meetpoint.lib.resolver import (
    BasePlaceResolver,
    LookupCache,
    PlaceLabel,
    PlaceResolverError,
    ReverseNamespace,
    ReversePrecision,
    Settlement,
    is_genuine_settlement,
    reverse_key,
)
from meetpoint.services.location_set import LocationSet


@dataclass(frozen=True)
class ResultLocation:
    """The displayed meeting point."""

    coordinate: Coordinate
    place_label: str
    country: str
    full_address: str


@dataclass(frozen=True)
class Aggregate:
    """Derived meeting point for the current set of resolved cities."""

    centroid: Coordinate
    result_location: ResultLocation
    member_count: int

    def distance_km_to(self, coordinate: Coordinate) -> float:
        """Great-circle distance from the meeting point to ``coordinate``."""
        return haversine_km(self.result_location.coordinate, coordinate)


AggregateListener = Callable[[Aggregate | None], None]


class AggregateEngine:
    """Recomputes the meeting point and publishes whole replacements.

    Args:
        resolver: Reverse and nearest-settlement provider.
        cache: Reverse cache shared with the rest of the session.
        on_change: Receives every published Aggregate, or None when no
            entry is resolved.
    """

    def __init__(self, resolver: BasePlaceResolver, cache: LookupCache, on_change: AggregateListener) -> None:
        self._resolver = resolver
        self._cache = cache
        self._on_change = on_change
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    async def recompute(self, location_set: LocationSet) -> Aggregate | None:
        """Recompute and publish the aggregate for ``location_set``.

        Returns:
            The computed aggregate (or None), whether or not it was published.
        """
        self._generation += 1
        generation = self._generation

        members = [entry.coordinate for entry in location_set.resolved_view()]
        if not members:
            self._publish(generation, None)
            return None

        center = centroid(members)
        result = await self._locate(center)
        aggregate = Aggregate(centroid=center, result_location=result, member_count=len(members))
        self._publish(generation, aggregate)
        return aggregate

    def invalidate(self) -> None:
        """Prevent every in-flight recompute from publishing."""
        self._generation += 1

    async def _locate(self, center: Coordinate) -> ResultLocation:
        label = await self._reverse(center)
        if label is not None and is_genuine_settlement(label.place_label):
            return ResultLocation(
                coordinate=center,
                place_label=label.place_label,
                country=label.country,
                full_address=label.full_address,
            )

        settlement = await self._nearest_settlement(center)
        return ResultLocation(
            coordinate=settlement.coordinate,
            place_label=settlement.place_label,
            country=settlement.country,
            full_address=settlement.full_address,
        )

    async def _reverse(self, center: Coordinate) -> PlaceLabel | None:
        key = reverse_key(center, ReverseNamespace.ADDRESS)
        cached = self._cache.get_reverse(key)
        if isinstance(cached, PlaceLabel):
            logger.debug(f"Reverse cache hit for {key}")
            return cached

        try:
            label = await self._resolver.reverse(center, ReversePrecision.FINE)
        except PlaceResolverError as e:
            logger.warning(f"Reverse lookup failed for {key}, falling back to nearest settlement: {e}")
            return None

        self._cache.put_reverse(key, label)
        return label

    async def _nearest_settlement(self, center: Coordinate) -> Settlement:
        key = reverse_key(center, ReverseNamespace.SETTLEMENT)
        cached = self._cache.get_reverse(key)
        if isinstance(cached, Settlement):
            logger.debug(f"Settlement cache hit for {key}")
            return cached

        settlement = await self._resolver.nearest_settlement(center)
        self._cache.put_reverse(key, settlement)
        return settlement

    def _publish(self, generation: int, aggregate: Aggregate | None) -> None:
        if generation != self._generation:
            logger.debug(f"Discarding stale aggregate from recompute {generation} (latest {self._generation})")
            return
        self._on_change(aggregate)

"""Shared test fixtures: a scripted place resolver, a recording presenter and stores."""

import asyncio

import pytest

from meetpoint.lib.geodesy import Coordinate
from meetpoint.lib.persistence import InMemoryStore
from meetpoint.lib.presentation import PresentationEvent
from meetpoint.lib.resolver import (
    BasePlaceResolver,
    PlaceLabel,
    PlaceNotFoundError,
    ResolvedLocation,
    ReversePrecision,
    Settlement,
    TransientResolverError,
)
from meetpoint.services.session import MeetingPointSession

CITY_COORDS: dict[str, tuple[float, float]] = {
    "paris": (48.8566, 2.3522),
    "berlin": (52.52, 13.405),
    "madrid": (40.4168, -3.7038),
    "a": (0.0, 0.0),
    "b": (0.0, 10.0),
    "c": (10.0, 0.0),
    "d": (10.0, 10.0),
}


class StubResolver(BasePlaceResolver):
    """In-memory resolver that records calls and peak forward concurrency."""

    def __init__(self) -> None:
        self.places = dict(CITY_COORDS)
        self.transient: set[str] = set()
        self.delay = 0.0
        self.reverse_label = PlaceLabel(
            place_label="Centreville",
            country="Testland",
            full_address="Centreville, Testland",
        )
        self.reverse_error: Exception | None = None
        self.settlement: Settlement | None = None
        self.forward_calls: list[str] = []
        self.reverse_calls: list[tuple[Coordinate, ReversePrecision]] = []
        self.settlement_calls: list[Coordinate] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def provider_name(self) -> str:
        return "stub"

    async def forward(self, name: str) -> ResolvedLocation:
        self.forward_calls.append(name)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            key = name.strip().lower()
            if key in self.transient:
                raise TransientResolverError("stub", "Connection to resolver failed")
            if key not in self.places:
                raise PlaceNotFoundError(name)
            lat, lon = self.places[key]
            return ResolvedLocation(coordinate=Coordinate(lat, lon), display_label=f"{name}, Testland")
        finally:
            self.in_flight -= 1

    async def reverse(self, coordinate: Coordinate, precision: ReversePrecision) -> PlaceLabel:
        self.reverse_calls.append((coordinate, precision))
        await asyncio.sleep(0)
        if self.reverse_error is not None:
            raise self.reverse_error
        return self.reverse_label

    async def nearest_settlement(self, coordinate: Coordinate) -> Settlement:
        self.settlement_calls.append(coordinate)
        await asyncio.sleep(0)
        if self.settlement is not None:
            return self.settlement
        return Settlement(
            coordinate=coordinate,
            place_label="Nearville",
            country="Testland",
            full_address="Nearville, Testland",
        )


class RecordingPresenter:
    """Collects every event it is notified of."""

    def __init__(self) -> None:
        self.events: list[PresentationEvent] = []

    def notify(self, event: PresentationEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list:
        return [e for e in self.events if isinstance(e, event_type)]


@pytest.fixture
def resolver() -> StubResolver:
    """Scripted resolver knowing Paris, Berlin, Madrid and the A-D square."""
    return StubResolver()


@pytest.fixture
def presenter() -> RecordingPresenter:
    return RecordingPresenter()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def session(resolver: StubResolver, store: InMemoryStore, presenter: RecordingPresenter) -> MeetingPointSession:
    """A session with no pacing delay."""
    return MeetingPointSession(resolver, store, presenter, pacing_interval=0)

"""Unit tests for the presentation port helpers."""

from meetpoint.lib.geodesy import Coordinate
from meetpoint.lib.presentation import (
    AggregateChanged,
    EntriesChanged,
    LoggingPresenter,
    NullPresenter,
    PresentationEvent,
    ResolutionError,
    safe_notify,
)
from meetpoint.services.aggregate_engine import Aggregate, ResultLocation
from meetpoint.services.location_set import LocationSet


class ExplodingPresenter:
    def __init__(self) -> None:
        self.calls = 0

    def notify(self, event: PresentationEvent) -> None:
        self.calls += 1
        msg = "renderer crashed"
        raise RuntimeError(msg)


def _events() -> list[PresentationEvent]:
    location_set = LocationSet()
    location_set.add("Paris")
    aggregate = Aggregate(
        centroid=Coordinate(1, 1),
        result_location=ResultLocation(Coordinate(1, 1), "Somewhere", "Testland", "Somewhere, Testland"),
        member_count=1,
    )
    return [
        EntriesChanged(location_set.grouped_view()),
        EntriesChanged([]),
        AggregateChanged(aggregate),
        AggregateChanged(None),
        ResolutionError(name="Atlantis", message="Place not found: 'Atlantis'"),
    ]


class TestSafeNotify:
    """Tests for failure-isolating dispatch."""

    def test_presenter_exception_is_swallowed(self) -> None:
        presenter = ExplodingPresenter()
        safe_notify(presenter, ResolutionError(name="x", message="y"))
        assert presenter.calls == 1


class TestBuiltInPresenters:
    """Tests for NullPresenter and LoggingPresenter."""

    def test_null_presenter_accepts_everything(self) -> None:
        presenter = NullPresenter()
        for event in _events():
            presenter.notify(event)

    def test_logging_presenter_handles_every_event(self) -> None:
        presenter = LoggingPresenter()
        for event in _events():
            presenter.notify(event)

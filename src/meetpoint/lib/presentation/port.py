"""Renderer-facing port. The core pushes events; it never reads display state."""

from typing import Protocol

from loguru import logger

from meetpoint.lib.presentation.events import (
    AggregateChanged,
    EntriesChanged,
    PresentationEvent,
    ResolutionError,
)


class PresentationPort(Protocol):
    """Receives view-model events from the core."""

    def notify(self, event: PresentationEvent) -> None:
        """Handle one event. Must not block."""
        ...


class NullPresenter:
    """Discards every event."""

    def notify(self, event: PresentationEvent) -> None:
        return None


class LoggingPresenter:
    """Writes every event to the log. Useful for headless sessions."""

    def notify(self, event: PresentationEvent) -> None:
        match event:
            case EntriesChanged(groups=groups):
                logger.info(f"Cities changed: {', '.join(f'{g.name} x{g.count}' for g in groups) or '(none)'}")
            case AggregateChanged(aggregate=None):
                logger.info("Meeting point cleared")
            case AggregateChanged(aggregate=aggregate):
                loc = aggregate.result_location
                logger.info(
                    f"Meeting point: {loc.place_label}, {loc.country} "
                    f"({loc.coordinate.lat:.6f}, {loc.coordinate.lon:.6f})"
                )
            case ResolutionError(name=name, message=message):
                logger.warning(f"Could not resolve {name!r}: {message}")


def safe_notify(presenter: PresentationPort, event: PresentationEvent) -> None:
    """Deliver an event, logging instead of propagating renderer failures."""
    try:
        presenter.notify(event)
    except Exception:
        logger.exception(f"Presenter failed to handle {type(event).__name__}")

"""View-model events emitted by the session to a renderer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from meetpoint.services.aggregate_engine import Aggregate
    from meetpoint.services.location_set import EntryGroup


@dataclass(frozen=True)
class EntriesChanged:
    """The visible city list changed."""

    groups: list[EntryGroup]


@dataclass(frozen=True)
class AggregateChanged:
    """A new meeting point was computed, or ``None`` when nothing is resolved."""

    aggregate: Aggregate | None


@dataclass(frozen=True)
class ResolutionError:
    """A city name could not be resolved and its pending entries were dropped."""

    name: str
    message: str


PresentationEvent = EntriesChanged | AggregateChanged | ResolutionError

"""Meeting-point session: the single owner of all mutable state.

One session per application instance owns the LocationSet, LookupCache,
ResolutionQueue and AggregateEngine, and the last published Aggregate and
viewport. User actions call into the session; the session notifies a
PresentationPort and persists through a PersistenceGateway. Neither
collaborator ever calls back into the core.

Control flow for an added city::

    add_city -> LocationSet.add (pending) -> ResolutionQueue.enqueue
      -> resolver.forward -> LocationSet.resolve_pending_named
      -> AggregateEngine.recompute (background) -> save (background) -> notify
"""

import asyncio
from dataclasses import dataclass
from typing import TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from meetpoint.core.background import InProcessTaskRunner
from meetpoint.lib.geodesy import Viewport, bounding_box
from meetpoint.lib.persistence import PersistenceError, PersistenceGateway, StorageKey
from meetpoint.lib.presentation import (
    AggregateChanged,
    EntriesChanged,
    NullPresenter,
    PresentationPort,
    ResolutionError,
    safe_notify,
)
from meetpoint.lib.resolver import BasePlaceResolver, LookupCache, ResolvedLocation
from meetpoint.schemas.snapshot import (
    AggregateSnapshot,
    CitiesSnapshot,
    CoordinateSnapshot,
    EntrySnapshot,
    LookupCacheSnapshot,
    ResultLocationSnapshot,
    ViewportSnapshot,
)
from meetpoint.services.aggregate_engine import Aggregate, AggregateEngine, ResultLocation
from meetpoint.services.location_set import EntryGroup, EntryId, FailedEntry, LocationSet
from meetpoint.services.resolution_queue import DEFAULT_PACING_INTERVAL, QueueState, ResolutionQueue

VIEWPORT_PADDING = 0.1

SnapshotT = TypeVar("SnapshotT", bound=BaseModel)


@dataclass(frozen=True)
class ItineraryLeg:
    """A grouped city and its distance to the meeting point.

    ``distance_km`` is None while the city is unresolved or no meeting
    point exists.
    """

    group: EntryGroup
    distance_km: float | None


class MeetingPointSession:
    """Accumulates cities and maintains their meeting point.

    Args:
        resolver: Place resolver used for every lookup.
        store: Durable snapshot store.
        presenter: Receives view-model events. Defaults to discarding them.
        pacing_interval: Seconds between consecutive forward lookups.
        task_runner: Runner for background recomputes and saves.
    """

    def __init__(
        self,
        resolver: BasePlaceResolver,
        store: PersistenceGateway,
        presenter: PresentationPort | None = None,
        *,
        pacing_interval: float = DEFAULT_PACING_INTERVAL,
        task_runner: InProcessTaskRunner | None = None,
    ) -> None:
        self._store = store
        self._presenter = presenter or NullPresenter()
        self._task_runner = task_runner or InProcessTaskRunner()
        self._location_set = LocationSet()
        self._cache = LookupCache()
        self._aggregate: Aggregate | None = None
        self._viewport: Viewport | None = None
        self._save_lock = asyncio.Lock()
        self._save_scheduled = False
        self._engine = AggregateEngine(resolver, self._cache, self._on_aggregate)
        self._queue = ResolutionQueue(
            resolver,
            self._cache,
            self._location_set,
            on_resolved=self._on_resolved,
            on_failed=self._on_failed,
            pacing_interval=pacing_interval,
        )

    @property
    def location_set(self) -> LocationSet:
        return self._location_set

    @property
    def cache(self) -> LookupCache:
        return self._cache

    @property
    def aggregate(self) -> Aggregate | None:
        return self._aggregate

    @property
    def viewport(self) -> Viewport | None:
        return self._viewport

    @property
    def queue_state(self) -> QueueState:
        return self._queue.state

    def groups(self) -> list[EntryGroup]:
        return self._location_set.grouped_view()

    def itinerary(self) -> list[ItineraryLeg]:
        """Distance from the meeting point to each grouped city."""
        aggregate = self._aggregate
        legs = []
        for group in self._location_set.grouped_view():
            distance = None
            if aggregate is not None and group.is_resolved:
                distance = aggregate.distance_km_to(group.representative.coordinate)
            legs.append(ItineraryLeg(group=group, distance_km=distance))
        return legs

    # --- user actions ---

    def add_city(self, name: str) -> EntryId:
        """Add one occurrence of a city and queue its lookup.

        Args:
            name: City name as typed by the user.

        Returns:
            The new entry's id.

        Raises:
            ValueError: If the name is blank.
        """
        name = name.strip()
        if not name:
            msg = "City name is required"
            raise ValueError(msg)

        entry_id = self._location_set.add(name)
        self._emit_entries()
        self._queue.enqueue(name)
        return entry_id

    def remove_city(self, name: str) -> bool:
        """Remove the first occurrence of a city by name.

        Returns:
            False if no entry matched.
        """
        removed = self._location_set.remove_first_by_name(name)
        if removed is None:
            return False

        logger.info(f"Removed one occurrence of {removed.name!r}")
        self._emit_entries()
        self._schedule_recompute()
        return True

    def clear(self) -> None:
        """Reset to the empty session. The lookup cache is kept."""
        self._location_set.clear()
        self._engine.invalidate()
        self._emit_entries()
        self._on_aggregate(None)

    async def restore(self) -> None:
        """Load the last persisted snapshot into this session.

        Missing or unreadable keys are treated as empty state. Must run on a
        fresh session, before any city is added.

        Raises:
            RuntimeError: If the session already holds cities or a meeting point.
        """
        if len(self._location_set) or self._aggregate is not None:
            msg = "restore() must run on a fresh session"
            raise RuntimeError(msg)

        cache_snapshot = await self._load(StorageKey.LOOKUP_CACHE, LookupCacheSnapshot)
        if cache_snapshot is not None:
            self._cache.load_snapshot(cache_snapshot)

        cities = await self._load(StorageKey.CITIES, CitiesSnapshot)
        if cities is not None:
            for item in cities.entries:
                location = ResolvedLocation(
                    coordinate=item.coordinate.to_coordinate(),
                    display_label=item.display_label,
                )
                self._location_set.add_resolved(item.name, location)

        aggregate = await self._load(StorageKey.AGGREGATE, AggregateSnapshot)
        if aggregate is not None:
            self._aggregate = _aggregate_from_snapshot(aggregate)
        viewport = await self._load(StorageKey.VIEWPORT, ViewportSnapshot)
        if viewport is not None:
            self._viewport = viewport.to_viewport()

        logger.info(f"Restored session with {len(self._location_set)} cities")
        self._emit_entries()
        safe_notify(self._presenter, AggregateChanged(self._aggregate))
        if self._location_set.has_resolved():
            self._schedule_recompute()

    async def wait_idle(self) -> None:
        """Wait until no lookup, recompute or save is outstanding."""
        while True:
            await self._queue.join()
            await self._task_runner.drain()
            if self._queue.state is QueueState.IDLE and self._task_runner.active_count == 0:
                return

    async def close(self) -> None:
        """Drain outstanding work and write a final snapshot."""
        await self.wait_idle()
        await self._save_snapshot()

    # --- queue and engine callbacks ---

    def _on_resolved(self, name: str, entry_ids: list[EntryId]) -> None:
        if not entry_ids:
            # nothing moved, but the forward cache may have grown
            self._schedule_save()
            return
        logger.info(f"Resolved {name!r} for {len(entry_ids)} entries")
        self._emit_entries()
        self._schedule_recompute()

    def _on_failed(self, name: str, dropped: list[FailedEntry], message: str) -> None:
        safe_notify(self._presenter, ResolutionError(name=name, message=message))
        if dropped:
            self._emit_entries()

    def _on_aggregate(self, aggregate: Aggregate | None) -> None:
        self._aggregate = aggregate
        self._viewport = self._compute_viewport(aggregate)
        safe_notify(self._presenter, AggregateChanged(aggregate))
        self._schedule_save()

    def _compute_viewport(self, aggregate: Aggregate | None) -> Viewport | None:
        if aggregate is None:
            return None
        points = [entry.coordinate for entry in self._location_set.resolved_view()]
        points.append(aggregate.result_location.coordinate)
        return bounding_box(points, padding=VIEWPORT_PADDING)

    def _emit_entries(self) -> None:
        safe_notify(self._presenter, EntriesChanged(self._location_set.grouped_view()))

    # --- background work ---

    def _schedule_recompute(self) -> None:
        self._task_runner.submit_task(self._engine.recompute(self._location_set), name="recompute")

    def _schedule_save(self) -> None:
        if self._save_scheduled:
            return
        self._save_scheduled = True
        self._task_runner.submit_task(self._save_snapshot(), name="save-snapshot")

    async def _save_snapshot(self) -> None:
        """Write all four keys. Failures are logged and swallowed."""
        async with self._save_lock:
            self._save_scheduled = False
            payloads = self._serialize()
            for key, payload in payloads.items():
                try:
                    if payload is None:
                        await self._store.delete(key)
                    else:
                        await self._store.save(key, payload)
                except PersistenceError as e:
                    logger.warning(f"Failed to persist {key.value}: {e.message}")
                except Exception:
                    logger.exception(f"Store raised unexpectedly while persisting {key.value}")

    def _serialize(self) -> dict[StorageKey, str | None]:
        cities = CitiesSnapshot(
            entries=[
                EntrySnapshot(
                    name=entry.name,
                    coordinate=CoordinateSnapshot.from_coordinate(entry.coordinate),
                    display_label=entry.display_label,
                )
                for entry in self._location_set.resolved_view()
            ]
        )
        aggregate = None if self._aggregate is None else _aggregate_to_snapshot(self._aggregate)
        viewport = None if self._viewport is None else ViewportSnapshot.from_viewport(self._viewport)
        return {
            StorageKey.CITIES: cities.model_dump_json(),
            StorageKey.AGGREGATE: None if aggregate is None else aggregate.model_dump_json(),
            StorageKey.VIEWPORT: None if viewport is None else viewport.model_dump_json(),
            StorageKey.LOOKUP_CACHE: self._cache.to_snapshot().model_dump_json(),
        }

    async def _load(self, key: StorageKey, model: type[SnapshotT]) -> SnapshotT | None:
        try:
            payload = await self._store.load(key)
        except PersistenceError as e:
            logger.warning(f"Failed to load {key.value}: {e.message}")
            return None
        except Exception:
            logger.exception(f"Store raised unexpectedly while loading {key.value}")
            return None
        if payload is None:
            return None
        try:
            return model.model_validate_json(payload)
        except ValidationError as e:
            logger.warning(f"Ignoring corrupt {key.value} snapshot: {e.error_count()} validation errors")
            return None


def _aggregate_to_snapshot(aggregate: Aggregate) -> AggregateSnapshot:
    loc = aggregate.result_location
    return AggregateSnapshot(
        centroid=CoordinateSnapshot.from_coordinate(aggregate.centroid),
        result_location=ResultLocationSnapshot(
            coordinate=CoordinateSnapshot.from_coordinate(loc.coordinate),
            place_label=loc.place_label,
            country=loc.country,
            full_address=loc.full_address,
        ),
        member_count=aggregate.member_count,
    )


def _aggregate_from_snapshot(snapshot: AggregateSnapshot) -> Aggregate:
    loc = snapshot.result_location
    return Aggregate(
        centroid=snapshot.centroid.to_coordinate(),
        result_location=ResultLocation(
            coordinate=loc.coordinate.to_coordinate(),
            place_label=loc.place_label,
            country=loc.country,
            full_address=loc.full_address,
        ),
        member_count=snapshot.member_count,
    )

"""Serialized forward resolution of city names.

A FIFO of names drained by a single asyncio worker task, so at most one
forward lookup is ever in flight against the (rate-limited) resolver.
The queue is a two-state machine: IDLE until the first enqueue starts a
worker, DRAINING until that worker empties the queue. Names enqueued
while draining are picked up by the running worker.
"""

import asyncio
import enum
from collections import deque
from collections.abc import Callable

from loguru import logger

from meetpoint.lib.resolver import BasePlaceResolver, LookupCache, PlaceResolverError, ResolvedLocation
from meetpoint.services.location_set import EntryId, FailedEntry, LocationSet

DEFAULT_PACING_INTERVAL = 0.3

ResolvedCallback = Callable[[str, list[EntryId]], None]
FailedCallback = Callable[[str, list[FailedEntry], str], None]


class QueueState(enum.StrEnum):
    """Worker state of the resolution queue."""

    IDLE = "idle"
    DRAINING = "draining"


class ResolutionQueue:
    """Single-worker FIFO that resolves names into a LocationSet.

    Args:
        resolver: Forward-lookup provider.
        cache: Forward cache consulted before any network call.
        location_set: Entries to resolve or drop.
        on_resolved: Called with the name and transitioned entry ids after a
            successful lookup. Must not block; schedule slow work elsewhere.
        on_failed: Called with the name, dropped entries and an error message
            after a failed lookup.
        pacing_interval: Seconds to wait before the next lookup when more
            names are queued. Raised to the resolver's ``rate_limit_delay``
            when that is longer.
    """

    def __init__(
        self,
        resolver: BasePlaceResolver,
        cache: LookupCache,
        location_set: LocationSet,
        *,
        on_resolved: ResolvedCallback,
        on_failed: FailedCallback,
        pacing_interval: float = DEFAULT_PACING_INTERVAL,
    ) -> None:
        self._resolver = resolver
        self._cache = cache
        self._location_set = location_set
        self._on_resolved = on_resolved
        self._on_failed = on_failed
        self._pacing_interval = max(pacing_interval, resolver.rate_limit_delay)
        self._names: deque[str] = deque()
        self._state = QueueState.IDLE
        self._worker: asyncio.Task[None] | None = None

    @property
    def state(self) -> QueueState:
        return self._state

    def __len__(self) -> int:
        return len(self._names)

    def enqueue(self, name: str) -> None:
        """Queue a name and start the worker if it is idle.

        Must be called from within a running event loop.
        """
        self._names.append(name)
        if self._state is QueueState.IDLE:
            self._state = QueueState.DRAINING
            self._worker = asyncio.create_task(self._drain(), name="resolution-queue")

    async def join(self) -> None:
        """Wait until the queue is empty and the worker has stopped."""
        while self._worker is not None:
            await asyncio.shield(self._worker)

    async def _drain(self) -> None:
        try:
            while self._names:
                name = self._names.popleft()
                try:
                    await self._process(name)
                except Exception:
                    logger.exception(f"Unexpected error while resolving {name!r}; continuing")
                if self._names and self._pacing_interval > 0:
                    await asyncio.sleep(self._pacing_interval)
        finally:
            self._state = QueueState.IDLE
            self._worker = None

    async def _process(self, name: str) -> None:
        try:
            location = await self._lookup(name)
        except PlaceResolverError as e:
            self._fail(name, str(e))
            return
        except Exception as e:
            logger.exception(f"Resolver raised unexpectedly for {name!r}")
            self._fail(name, f"Unexpected resolver error: {e}")
            return

        resolved = self._location_set.resolve_pending_named(name, location)
        if not resolved:
            logger.debug(f"No pending entries left for {name!r}; result discarded")
        self._on_resolved(name, resolved)

    def _fail(self, name: str, message: str) -> None:
        dropped = self._location_set.drop_all_pending_named(name)
        logger.warning(f"Resolution failed for {name!r}, dropped {len(dropped)} pending entries: {message}")
        self._on_failed(name, dropped, message)

    async def _lookup(self, name: str) -> ResolvedLocation:
        cached = self._cache.get_forward(name)
        if cached is not None:
            logger.debug(f"Forward cache hit for {name!r}")
            return cached

        location = await self._resolver.forward(name)
        self._cache.put_forward(name, location)
        return location

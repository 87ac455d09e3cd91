"""Unit tests for the serialized ResolutionQueue."""

from unittest.mock import AsyncMock, patch

from meetpoint.lib.geodesy import Coordinate
from meetpoint.lib.resolver import LookupCache, ResolvedLocation
from meetpoint.services.location_set import EntryId, FailedEntry, LocationSet, PendingEntry, ResolvedEntry
from meetpoint.services.resolution_queue import QueueState, ResolutionQueue
from tests.conftest import StubResolver


class CrashingResolver(StubResolver):
    """Raises a non-resolver exception for one name."""

    async def forward(self, name: str) -> ResolvedLocation:
        if name == "Paris":
            msg = "socket reset"
            raise RuntimeError(msg)
        return await super().forward(name)


class RateLimitedResolver(StubResolver):
    @property
    def rate_limit_delay(self) -> float:
        return 0.5


class Harness:
    """Wires a queue to a LocationSet and records its callbacks."""

    def __init__(self, resolver, pacing_interval: float = 0) -> None:
        self.resolver = resolver
        self.cache = LookupCache()
        self.location_set = LocationSet()
        self.resolved: list[tuple[str, list[EntryId]]] = []
        self.failed: list[tuple[str, list[FailedEntry], str]] = []
        self.queue = ResolutionQueue(
            resolver,
            self.cache,
            self.location_set,
            on_resolved=lambda name, ids: self.resolved.append((name, ids)),
            on_failed=lambda name, dropped, message: self.failed.append((name, dropped, message)),
            pacing_interval=pacing_interval,
        )

    def add(self, *names: str) -> None:
        for name in names:
            self.location_set.add(name)
            self.queue.enqueue(name)


class TestSerialization:
    """Tests for single-worker FIFO behavior."""

    async def test_never_more_than_one_lookup_in_flight(self, resolver) -> None:
        resolver.delay = 0.01
        harness = Harness(resolver)

        harness.add("A", "B", "C")
        await harness.queue.join()

        assert resolver.max_in_flight == 1
        assert resolver.forward_calls == ["A", "B", "C"]
        assert all(isinstance(e, ResolvedEntry) for e in harness.location_set.entries)

    async def test_state_machine(self, resolver) -> None:
        harness = Harness(resolver)
        assert harness.queue.state is QueueState.IDLE

        harness.add("A")
        assert harness.queue.state is QueueState.DRAINING

        await harness.queue.join()
        assert harness.queue.state is QueueState.IDLE
        assert len(harness.queue) == 0

    async def test_enqueue_while_draining_reuses_worker(self, resolver) -> None:
        harness = Harness(resolver)

        def on_resolved(name: str, ids: list[EntryId]) -> None:
            harness.resolved.append((name, ids))
            if name == "A":
                harness.add("B")

        harness.queue._on_resolved = on_resolved
        harness.add("A")
        await harness.queue.join()

        assert [name for name, _ in harness.resolved] == ["A", "B"]
        assert resolver.max_in_flight == 1

    async def test_restarts_after_going_idle(self, resolver) -> None:
        harness = Harness(resolver)
        harness.add("A")
        await harness.queue.join()
        harness.add("B")
        await harness.queue.join()

        assert resolver.forward_calls == ["A", "B"]
        assert harness.queue.state is QueueState.IDLE

    async def test_pacing_only_between_lookups(self, resolver) -> None:
        harness = Harness(resolver, pacing_interval=0.3)

        with patch("meetpoint.services.resolution_queue.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            harness.add("A", "B")
            await harness.queue.join()

        pacing_calls = [c for c in mock_sleep.call_args_list if c.args == (0.3,)]
        assert len(pacing_calls) == 1


class TestResolution:
    """Tests for cache use and fan-out."""

    async def test_duplicate_names_resolve_together(self, resolver) -> None:
        harness = Harness(resolver)

        harness.add("Paris", "Paris")
        await harness.queue.join()

        entries = harness.location_set.entries
        assert all(isinstance(e, ResolvedEntry) for e in entries)
        assert entries[0].coordinate == entries[1].coordinate
        assert entries[0].display_label == entries[1].display_label
        assert resolver.forward_calls == ["Paris"]
        assert harness.resolved == [("Paris", [entries[0].entry_id, entries[1].entry_id]), ("Paris", [])]

    async def test_cache_hit_skips_network(self, resolver) -> None:
        harness = Harness(resolver)
        harness.cache.put_forward("paris", ResolvedLocation(Coordinate(1, 2), "Cached Paris"))

        harness.add("Paris")
        await harness.queue.join()

        assert resolver.forward_calls == []
        (entry,) = harness.location_set.entries
        assert isinstance(entry, ResolvedEntry)
        assert entry.display_label == "Cached Paris"

    async def test_success_writes_forward_cache(self, resolver) -> None:
        harness = Harness(resolver)
        harness.add("Berlin")
        await harness.queue.join()

        cached = harness.cache.get_forward("berlin")
        assert cached is not None
        assert cached.coordinate == Coordinate(52.52, 13.405)

    async def test_removed_entry_result_is_discarded(self, resolver) -> None:
        harness = Harness(resolver)
        harness.add("Paris")
        harness.location_set.remove_first_by_name("Paris")

        await harness.queue.join()

        assert len(harness.location_set) == 0
        assert harness.resolved == [("Paris", [])]
        assert harness.cache.get_forward("Paris") is not None


class TestFailures:
    """Tests for failure cleanup and loop continuation."""

    async def test_not_found_drops_only_that_name(self, resolver) -> None:
        harness = Harness(resolver)

        harness.add("Atlantis", "Paris", "Atlantis")
        await harness.queue.join()

        assert [e.name for e in harness.location_set.entries] == ["Paris"]
        name, dropped, message = harness.failed[0]
        assert name == "Atlantis"
        assert len(dropped) == 2
        assert "Atlantis" in message

    async def test_failed_attempts_do_not_write_cache(self, resolver) -> None:
        harness = Harness(resolver)

        harness.add("Atlantis", "Atlantis")
        await harness.queue.join()

        assert resolver.forward_calls == ["Atlantis", "Atlantis"]
        assert harness.cache.get_forward("Atlantis") is None
        assert [len(dropped) for _, dropped, _ in harness.failed] == [2, 0]

    async def test_transient_error_treated_like_not_found(self, resolver) -> None:
        resolver.transient.add("berlin")
        harness = Harness(resolver)

        harness.add("Berlin", "Madrid")
        await harness.queue.join()

        assert [e.name for e in harness.location_set.entries] == ["Madrid"]
        assert harness.failed[0][0] == "Berlin"
        assert "Connection to resolver failed" in harness.failed[0][2]

    async def test_entries_added_after_failure_stay_pending(self, resolver) -> None:
        harness = Harness(resolver)

        def on_failed(name: str, dropped: list[FailedEntry], message: str) -> None:
            harness.failed.append((name, dropped, message))
            harness.location_set.add("Atlantis")

        harness.queue._on_failed = on_failed
        harness.add("Atlantis")
        await harness.queue.join()

        (entry,) = harness.location_set.entries
        assert isinstance(entry, PendingEntry)

    async def test_callback_error_does_not_stop_the_loop(self, resolver) -> None:
        harness = Harness(resolver)

        def on_resolved(name: str, ids: list[EntryId]) -> None:
            if name == "A":
                msg = "renderer exploded"
                raise RuntimeError(msg)
            harness.resolved.append((name, ids))

        harness.queue._on_resolved = on_resolved
        harness.add("A", "B")
        await harness.queue.join()

        assert [name for name, _ in harness.resolved] == ["B"]
        assert harness.queue.state is QueueState.IDLE

    async def test_unexpected_resolver_exception_drops_pending(self) -> None:
        harness = Harness(CrashingResolver())

        harness.add("Paris", "Berlin", "Paris")
        await harness.queue.join()

        assert [e.name for e in harness.location_set.entries] == ["Berlin"]
        assert isinstance(harness.location_set.entries[0], ResolvedEntry)
        name, dropped, message = harness.failed[0]
        assert name == "Paris"
        assert len(dropped) == 2
        assert "socket reset" in message
        assert harness.cache.get_forward("Paris") is None


class TestPacing:
    """Tests for the delay between consecutive lookups."""

    async def test_resolver_rate_limit_raises_pacing(self) -> None:
        harness = Harness(RateLimitedResolver(), pacing_interval=0.1)

        with patch("meetpoint.services.resolution_queue.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            harness.add("A", "B")
            await harness.queue.join()

        assert [c for c in mock_sleep.call_args_list if c.args == (0.5,)] != []
        assert [c for c in mock_sleep.call_args_list if c.args == (0.1,)] == []

    async def test_longer_pacing_interval_wins(self) -> None:
        harness = Harness(RateLimitedResolver(), pacing_interval=2.0)

        with patch("meetpoint.services.resolution_queue.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            harness.add("A", "B")
            await harness.queue.join()

        assert len([c for c in mock_sleep.call_args_list if c.args == (2.0,)]) == 1

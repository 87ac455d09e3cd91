"""Authoritative ordered multiset of requested cities.

Entries are tagged variants: a city is added as :class:`PendingEntry`,
becomes :class:`ResolvedEntry` once its coordinate is known, or is dropped
(reported as :class:`FailedEntry`) when resolution fails. Duplicate names
are allowed and each occurrence is tracked independently. Insertion order
decides display order and which duplicate a by-name removal hits.
"""

import itertools
from collections.abc import Iterator
from dataclasses import dataclass

from meetpoint.lib.geodesy import Coordinate
from meetpoint.lib.resolver import ResolvedLocation

EntryId = int


def name_key(name: str) -> str:
    """Case-insensitive grouping key for a city name."""
    return name.strip().lower()


@dataclass(frozen=True)
class PendingEntry:
    """A city waiting for its forward lookup."""

    entry_id: EntryId
    name: str


@dataclass(frozen=True)
class ResolvedEntry:
    """A city with a known coordinate."""

    entry_id: EntryId
    name: str
    coordinate: Coordinate
    display_label: str


@dataclass(frozen=True)
class FailedEntry:
    """A city whose lookup failed. Reported once, never stored."""

    entry_id: EntryId
    name: str


Entry = PendingEntry | ResolvedEntry | FailedEntry


@dataclass(frozen=True)
class EntryGroup:
    """All occurrences of one city name, for display.

    ``representative`` is the first resolved occurrence, or the first
    occurrence if none has resolved yet.
    """

    key: str
    representative: PendingEntry | ResolvedEntry
    count: int
    resolved_count: int

    @property
    def name(self) -> str:
        return self.representative.name

    @property
    def is_resolved(self) -> bool:
        return isinstance(self.representative, ResolvedEntry)


class LocationSet:
    """Ordered sequence of pending and resolved city entries."""

    def __init__(self) -> None:
        self._entries: list[PendingEntry | ResolvedEntry] = []
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> tuple[PendingEntry | ResolvedEntry, ...]:
        return tuple(self._entries)

    def add(self, name: str) -> EntryId:
        """Append a pending entry and return its identity token."""
        entry = PendingEntry(entry_id=next(self._ids), name=name)
        self._entries.append(entry)
        return entry.entry_id

    def add_resolved(self, name: str, location: ResolvedLocation) -> EntryId:
        """Append an already resolved entry (used when restoring a snapshot)."""
        entry = ResolvedEntry(
            entry_id=next(self._ids),
            name=name,
            coordinate=location.coordinate,
            display_label=location.display_label,
        )
        self._entries.append(entry)
        return entry.entry_id

    def get(self, entry_id: EntryId) -> PendingEntry | ResolvedEntry | None:
        index = self._index_of(entry_id)
        return None if index is None else self._entries[index]

    def mark_resolved(self, entry_id: EntryId, location: ResolvedLocation) -> bool:
        """Transition one entry from pending to resolved.

        Returns:
            False (and changes nothing) if the entry was removed or is not pending.
        """
        index = self._index_of(entry_id)
        if index is None:
            return False
        entry = self._entries[index]
        if not isinstance(entry, PendingEntry):
            return False
        self._entries[index] = ResolvedEntry(
            entry_id=entry.entry_id,
            name=entry.name,
            coordinate=location.coordinate,
            display_label=location.display_label,
        )
        return True

    def resolve_pending_named(self, name: str, location: ResolvedLocation) -> list[EntryId]:
        """Resolve every pending entry whose name matches, case-insensitively.

        Returns:
            The ids of the entries that transitioned.
        """
        key = name_key(name)
        targets = [e.entry_id for e in self._entries if isinstance(e, PendingEntry) and name_key(e.name) == key]
        return [entry_id for entry_id in targets if self.mark_resolved(entry_id, location)]

    def mark_failed(self, entry_id: EntryId) -> FailedEntry | None:
        """Remove a pending entry whose lookup failed.

        Returns:
            The failed entry, or None if it was not pending.
        """
        index = self._index_of(entry_id)
        if index is None or not isinstance(self._entries[index], PendingEntry):
            return None
        entry = self._entries.pop(index)
        return FailedEntry(entry_id=entry.entry_id, name=entry.name)

    def drop_all_pending_named(self, name: str) -> list[FailedEntry]:
        """Remove every pending entry with this name; resolved ones stay."""
        key = name_key(name)
        dropped: list[FailedEntry] = []
        kept: list[PendingEntry | ResolvedEntry] = []
        for entry in self._entries:
            if isinstance(entry, PendingEntry) and name_key(entry.name) == key:
                dropped.append(FailedEntry(entry_id=entry.entry_id, name=entry.name))
            else:
                kept.append(entry)
        self._entries = kept
        return dropped

    def remove_first_by_name(self, name: str) -> PendingEntry | ResolvedEntry | None:
        """Remove the earliest entry with a matching name.

        Returns:
            The removed entry, or None if no entry matched.
        """
        key = name_key(name)
        for index, entry in enumerate(self._entries):
            if name_key(entry.name) == key:
                return self._entries.pop(index)
        return None

    def clear(self) -> None:
        self._entries = []

    def resolved_view(self) -> Iterator[ResolvedEntry]:
        """Yield resolved entries lazily, in insertion order."""
        return (e for e in self._entries if isinstance(e, ResolvedEntry))

    def has_resolved(self) -> bool:
        return any(True for _ in self.resolved_view())

    def pending_names(self) -> list[str]:
        return [e.name for e in self._entries if isinstance(e, PendingEntry)]

    def grouped_view(self) -> list[EntryGroup]:
        """Group entries by case-insensitive name, in first-seen order.

        Recomputed from the entry sequence on every call.
        """
        first: dict[str, PendingEntry | ResolvedEntry] = {}
        first_resolved: dict[str, ResolvedEntry] = {}
        counts: dict[str, int] = {}
        resolved_counts: dict[str, int] = {}

        for entry in self._entries:
            key = name_key(entry.name)
            first.setdefault(key, entry)
            counts[key] = counts.get(key, 0) + 1
            if isinstance(entry, ResolvedEntry):
                first_resolved.setdefault(key, entry)
                resolved_counts[key] = resolved_counts.get(key, 0) + 1

        return [
            EntryGroup(
                key=key,
                representative=first_resolved.get(key, entry),
                count=counts[key],
                resolved_count=resolved_counts.get(key, 0),
            )
            for key, entry in first.items()
        ]

    def _index_of(self, entry_id: EntryId) -> int | None:
        for index, entry in enumerate(self._entries):
            if entry.entry_id == entry_id:
                return index
        return None

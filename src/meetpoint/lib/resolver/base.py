"""Abstract place resolver interface and the value types it returns."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum

from meetpoint.lib.geodesy import Coordinate

UNKNOWN_LABEL = "Unknown"
NEAREST_SETTLEMENT_LABEL = "Nearest settlement"

# Placeholder labels that never name a real place
_SENTINEL_LABELS = frozenset({UNKNOWN_LABEL.lower(), NEAREST_SETTLEMENT_LABEL.lower()})


class ReversePrecision(StrEnum):
    """Reverse-lookup tier: ``fine`` for a direct lookup, ``coarse`` as fallback."""

    FINE = "fine"
    COARSE = "coarse"


@dataclass(frozen=True)
class ResolvedLocation:
    """Result of a forward (name -> coordinate) lookup."""

    coordinate: Coordinate
    display_label: str


@dataclass(frozen=True)
class PlaceLabel:
    """Result of a reverse (coordinate -> place) lookup.

    ``place_label`` may be empty or a sentinel when the point is not in a
    named settlement (open sea, wilderness).
    """

    place_label: str
    country: str
    full_address: str


@dataclass(frozen=True)
class Settlement:
    """A settlement found near a query point.

    ``coordinate`` is the settlement's own location and may differ from
    the point that was searched around.
    """

    coordinate: Coordinate
    place_label: str
    country: str
    full_address: str


def is_genuine_settlement(place_label: str | None) -> bool:
    """Return True if a label names a real settlement, not a placeholder."""
    if not place_label or not place_label.strip():
        return False
    return place_label.strip().lower() not in _SENTINEL_LABELS


class PlaceResolverError(Exception):
    """Base class for forward-resolution failures surfaced to the queue."""


class PlaceNotFoundError(PlaceResolverError):
    """Raised when the upstream service has no candidate for a name.

    Args:
        name: The name that could not be resolved.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Place not found: {name!r}")


class TransientResolverError(PlaceResolverError):
    """Raised when a resolver experiences a transport or service error.

    Distinguishes provider failures (timeout, HTTP error, connection error,
    unparseable payload) from a clean "no match" answer.

    Args:
        provider_name: Name of the failing provider.
        message: Human-readable error description.
        status_code: Optional HTTP status code from the provider.
    """

    def __init__(self, provider_name: str, message: str, status_code: int | None = None) -> None:
        self.provider_name = provider_name
        self.message = message
        self.status_code = status_code
        super().__init__(f"{provider_name}: {message}")


class BasePlaceResolver(ABC):
    """Abstract resolver interface. All providers must implement this."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this resolver provider."""

    @property
    def rate_limit_delay(self) -> float:
        """Minimum delay in seconds between requests (for rate-limited providers)."""
        return 0.0

    @abstractmethod
    async def forward(self, name: str) -> ResolvedLocation:
        """Resolve a place name to a coordinate.

        Args:
            name: User-supplied place name.

        Returns:
            The best matching location.

        Raises:
            PlaceNotFoundError: If there is no candidate.
            TransientResolverError: On transport or service errors.
        """

    @abstractmethod
    async def reverse(self, coordinate: Coordinate, precision: ReversePrecision) -> PlaceLabel:
        """Describe the place at a coordinate.

        Args:
            coordinate: Point to look up.
            precision: Lookup tier.

        Returns:
            PlaceLabel, possibly with an empty or sentinel ``place_label``.

        Raises:
            TransientResolverError: On transport or service errors.
        """

    @abstractmethod
    async def nearest_settlement(self, coordinate: Coordinate) -> Settlement:
        """Find the settlement closest to a coordinate.

        Implementations must always return a value, degrading to a label
        built from the raw coordinate when nothing better is available.

        Args:
            coordinate: Point to search around.

        Returns:
            The located settlement.
        """

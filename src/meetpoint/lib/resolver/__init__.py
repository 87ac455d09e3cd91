"""Resolver library: place-name and coordinate lookups with caching.

Public API:
    - BasePlaceResolver: Abstract provider interface
    - NominatimPlaceResolver: OpenStreetMap Nominatim provider
    - ResolvedLocation / PlaceLabel / Settlement: Result dataclasses
    - ReversePrecision: Reverse-lookup tier enum
    - PlaceResolverError / PlaceNotFoundError / TransientResolverError: Failure taxonomy
    - is_genuine_settlement: Sentinel-label check
    - LookupCache: Forward/reverse memoization with snapshot support
    - forward_key / reverse_key / ReverseNamespace: Cache key derivation
    - get_resolver: Provider factory
"""

from typing import Any

from meetpoint.lib.resolver.base import (
    NEAREST_SETTLEMENT_LABEL,
    UNKNOWN_LABEL,
    BasePlaceResolver,
    PlaceLabel,
    PlaceNotFoundError,
    PlaceResolverError,
    ResolvedLocation,
    ReversePrecision,
    Settlement,
    TransientResolverError,
    is_genuine_settlement,
)
from meetpoint.lib.resolver.cache import LookupCache, ReverseNamespace, forward_key, reverse_key
from meetpoint.lib.resolver.nominatim import NominatimPlaceResolver

_PROVIDERS: dict[str, type[BasePlaceResolver]] = {
    "nominatim": NominatimPlaceResolver,
}


def get_resolver(provider: str = "nominatim", **kwargs: Any) -> BasePlaceResolver:
    """Get a resolver instance by provider name.

    Args:
        provider: Provider name (e.g., "nominatim").
        **kwargs: Additional arguments forwarded to the provider constructor.

    Returns:
        An instance of the requested resolver.

    Raises:
        ValueError: If the provider is not registered.
    """
    cls = _PROVIDERS.get(provider)
    if cls is None:
        msg = f"Unknown resolver provider: {provider!r}. Available: {list(_PROVIDERS.keys())}"
        raise ValueError(msg)
    return cls(**kwargs)


__all__ = [
    "NEAREST_SETTLEMENT_LABEL",
    "UNKNOWN_LABEL",
    "BasePlaceResolver",
    "LookupCache",
    "NominatimPlaceResolver",
    "PlaceLabel",
    "PlaceNotFoundError",
    "PlaceResolverError",
    "ResolvedLocation",
    "ReverseNamespace",
    "ReversePrecision",
    "Settlement",
    "TransientResolverError",
    "forward_key",
    "get_resolver",
    "is_genuine_settlement",
    "reverse_key",
]

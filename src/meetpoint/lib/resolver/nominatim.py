"""OpenStreetMap Nominatim place resolver.

Uses the Nominatim search and reverse APIs
(https://nominatim.org/release-docs/develop/api/Overview/). Free but
rate-limited; every request must carry an identifying User-Agent.
"""

from typing import Any

import httpx
from loguru import logger

from meetpoint.lib.geodesy import Coordinate, format_coordinate, haversine_km
from meetpoint.lib.resolver.base import (
    UNKNOWN_LABEL,
    BasePlaceResolver,
    PlaceLabel,
    PlaceNotFoundError,
    ResolvedLocation,
    ReversePrecision,
    Settlement,
    TransientResolverError,
    is_genuine_settlement,
)

NOMINATIM_BASE_URL = "https://nominatim.openstreetmap.org"
DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "meetpoint/1.0"
DEFAULT_FINE_ZOOM = 10
DEFAULT_COARSE_ZOOM = 5
DEFAULT_SETTLEMENT_SPAN = 1.0

# Address keys that name a settlement, most specific first
_SETTLEMENT_KEYS = ("city", "town", "village", "municipality")

# Special phrases for the bounded place-type search, tried in order
_SETTLEMENT_PHRASES = ("[city]", "[town]")

_SETTLEMENT_CANDIDATE_LIMIT = 10


class NominatimPlaceResolver(BasePlaceResolver):
    """OpenStreetMap Nominatim place resolver."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        email: str = "",
        user_agent: str = DEFAULT_USER_AGENT,
        base_url: str = NOMINATIM_BASE_URL,
        fine_zoom: int = DEFAULT_FINE_ZOOM,
        coarse_zoom: int = DEFAULT_COARSE_ZOOM,
        settlement_span: float = DEFAULT_SETTLEMENT_SPAN,
    ) -> None:
        if not user_agent:
            msg = "Nominatim requires an identifying user agent"
            raise ValueError(msg)
        self._timeout = timeout
        self._email = email
        self._user_agent = user_agent
        self._base_url = base_url.rstrip("/")
        self._zoom = {ReversePrecision.FINE: fine_zoom, ReversePrecision.COARSE: coarse_zoom}
        self._settlement_span = settlement_span

    @property
    def provider_name(self) -> str:
        return "nominatim"

    @property
    def rate_limit_delay(self) -> float:
        return 1.0

    async def forward(self, name: str) -> ResolvedLocation:
        """Resolve a place name using the Nominatim search API.

        Args:
            name: Place name, e.g. "Paris".

        Returns:
            The top-ranked match.

        Raises:
            PlaceNotFoundError: If Nominatim returns no candidate.
            TransientResolverError: On transport or service errors.
        """
        data = await self._get("/search", {"q": name, "format": "json", "limit": 1})
        location = self._parse_search(data)
        if location is None:
            raise PlaceNotFoundError(name)
        return location

    async def reverse(self, coordinate: Coordinate, precision: ReversePrecision) -> PlaceLabel:
        """Describe a coordinate using the Nominatim reverse API.

        Args:
            coordinate: Point to look up.
            precision: ``fine`` maps to city-level zoom, ``coarse`` to state-level zoom.

        Returns:
            PlaceLabel; ``place_label`` is empty when no settlement key is present.

        Raises:
            TransientResolverError: On transport or service errors.
        """
        params: dict[str, str | int | float] = {
            "lat": coordinate.lat,
            "lon": coordinate.lon,
            "format": "json",
            "zoom": self._zoom[precision],
            "addressdetails": 1,
        }
        data = await self._get("/reverse", params)
        return self._parse_reverse(data, coordinate)

    async def nearest_settlement(self, coordinate: Coordinate) -> Settlement:
        """Find the settlement nearest to a coordinate.

        Tries a bounded place-type search around the point, then a coarse
        reverse lookup, then falls back to the formatted coordinate itself.
        Never raises.
        """
        try:
            found = await self._search_settlement(coordinate)
            if found is not None:
                return found
        except TransientResolverError as e:
            logger.warning(f"Nominatim settlement search failed, degrading to coarse reverse: {e.message}")

        try:
            label = await self.reverse(coordinate, ReversePrecision.COARSE)
            if is_genuine_settlement(label.place_label):
                return Settlement(
                    coordinate=coordinate,
                    place_label=label.place_label,
                    country=label.country,
                    full_address=label.full_address,
                )
        except TransientResolverError as e:
            logger.warning(f"Nominatim coarse reverse failed, using raw coordinates: {e.message}")

        formatted = format_coordinate(coordinate)
        return Settlement(
            coordinate=coordinate,
            place_label=formatted,
            country=UNKNOWN_LABEL,
            full_address=formatted,
        )

    async def _search_settlement(self, coordinate: Coordinate) -> Settlement | None:
        """Search a viewbox around the point for settlements and pick the nearest."""
        span = self._settlement_span
        viewbox = ",".join(
            str(v)
            for v in (
                max(coordinate.lon - span, -180.0),
                min(coordinate.lat + span, 90.0),
                min(coordinate.lon + span, 180.0),
                max(coordinate.lat - span, -90.0),
            )
        )
        for phrase in _SETTLEMENT_PHRASES:
            params: dict[str, str | int | float] = {
                "q": phrase,
                "format": "json",
                "viewbox": viewbox,
                "bounded": 1,
                "addressdetails": 1,
                "limit": _SETTLEMENT_CANDIDATE_LIMIT,
            }
            data = await self._get("/search", params)
            found = self._pick_nearest(data, coordinate)
            if found is not None:
                return found
        return None

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        """Issue a GET against Nominatim and decode the JSON body.

        Raises:
            TransientResolverError: On any transport, status or decoding failure.
        """
        if self._email:
            params = {**params, "email": self._email}
        headers = {"User-Agent": self._user_agent}

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(f"{self._base_url}{path}", params=params, headers=headers)
                response.raise_for_status()

            return response.json()

        except httpx.TimeoutException as e:
            logger.warning(f"Nominatim {path} timeout")
            raise TransientResolverError("nominatim", "Request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Nominatim {path} HTTP error {e.response.status_code}")
            raise TransientResolverError(
                "nominatim",
                f"Provider returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.ConnectError as e:
            logger.warning(f"Nominatim {path} connection error")
            raise TransientResolverError("nominatim", "Connection to resolver failed") from e
        except Exception as e:
            logger.exception(f"Nominatim {path} unexpected error")
            raise TransientResolverError("nominatim", f"Unexpected error: {e}") from e

    def _parse_search(self, data: list[dict]) -> ResolvedLocation | None:
        """Parse a Nominatim search response into a ResolvedLocation.

        Args:
            data: Raw JSON response (list of results).

        Returns:
            ResolvedLocation or None if there were no results.
        """
        if not data:
            return None
        if not isinstance(data, list):
            raise TransientResolverError("nominatim", "Failed to parse response: expected a list")

        best = data[0]
        coordinate = self._parse_coordinate(best)
        return ResolvedLocation(
            coordinate=coordinate,
            display_label=best.get("display_name") or format_coordinate(coordinate),
        )

    @staticmethod
    def _parse_reverse(data: dict, coordinate: Coordinate) -> PlaceLabel:
        """Parse a Nominatim reverse response into a PlaceLabel.

        Nominatim answers ``{"error": ...}`` for points with nothing nearby;
        that is a valid empty answer, not a failure.
        """
        if not isinstance(data, dict):
            raise TransientResolverError("nominatim", "Failed to parse response: expected an object")

        address = data.get("address")
        if not address:
            return PlaceLabel(
                place_label="",
                country=UNKNOWN_LABEL,
                full_address=data.get("display_name") or format_coordinate(coordinate),
            )

        return PlaceLabel(
            place_label=_settlement_name(address) or "",
            country=address.get("country") or UNKNOWN_LABEL,
            full_address=data.get("display_name") or format_coordinate(coordinate),
        )

    def _pick_nearest(self, data: list[dict], origin: Coordinate) -> Settlement | None:
        """Choose the candidate closest to ``origin`` from a search response."""
        best: Settlement | None = None
        best_distance = float("inf")
        for candidate in data or []:
            try:
                coordinate = self._parse_coordinate(candidate)
            except TransientResolverError:
                continue
            address = candidate.get("address") or {}
            label = _settlement_name(address) or candidate.get("name") or ""
            if not is_genuine_settlement(label):
                continue
            distance = haversine_km(origin, coordinate)
            if distance < best_distance:
                best_distance = distance
                best = Settlement(
                    coordinate=coordinate,
                    place_label=label,
                    country=address.get("country") or UNKNOWN_LABEL,
                    full_address=candidate.get("display_name") or label,
                )
        return best

    @staticmethod
    def _parse_coordinate(item: dict) -> Coordinate:
        try:
            return Coordinate(float(item["lat"]), float(item["lon"]))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Failed to parse Nominatim coordinate: {e}")
            raise TransientResolverError("nominatim", f"Failed to parse response: {e}") from e


def _settlement_name(address: dict) -> str | None:
    for key in _SETTLEMENT_KEYS:
        if address.get(key):
            return address[key]
    return None

"""Unit tests for resolver value types, errors and the provider factory."""

import pytest

from meetpoint.lib.resolver import (
    NEAREST_SETTLEMENT_LABEL,
    UNKNOWN_LABEL,
    NominatimPlaceResolver,
    PlaceNotFoundError,
    PlaceResolverError,
    TransientResolverError,
    get_resolver,
    is_genuine_settlement,
)


class TestIsGenuineSettlement:
    """Tests for the sentinel-label check."""

    def test_real_name(self) -> None:
        assert is_genuine_settlement("Lyon") is True

    @pytest.mark.parametrize("label", ["", "   ", None])
    def test_empty_is_not_genuine(self, label: str | None) -> None:
        assert is_genuine_settlement(label) is False

    def test_sentinels_are_not_genuine(self) -> None:
        assert is_genuine_settlement(UNKNOWN_LABEL) is False
        assert is_genuine_settlement(NEAREST_SETTLEMENT_LABEL) is False

    def test_sentinel_check_is_case_insensitive(self) -> None:
        assert is_genuine_settlement("  unknown ") is False
        assert is_genuine_settlement("NEAREST SETTLEMENT") is False


class TestErrors:
    """Tests for the failure taxonomy."""

    def test_not_found_carries_name(self) -> None:
        error = PlaceNotFoundError("Atlantis")
        assert error.name == "Atlantis"
        assert "Atlantis" in str(error)
        assert isinstance(error, PlaceResolverError)

    def test_transient_carries_provider_and_status(self) -> None:
        error = TransientResolverError("nominatim", "Provider returned HTTP 503", status_code=503)
        assert error.provider_name == "nominatim"
        assert error.status_code == 503
        assert str(error) == "nominatim: Provider returned HTTP 503"
        assert isinstance(error, PlaceResolverError)


class TestGetResolver:
    """Tests for the provider factory."""

    def test_nominatim(self) -> None:
        resolver = get_resolver("nominatim", timeout=2.0)
        assert isinstance(resolver, NominatimPlaceResolver)

    def test_unknown_provider_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown resolver provider"):
            get_resolver("nope")

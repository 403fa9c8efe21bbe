"""Tests for availability zone resolution."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from vpc_topology.errors import InvalidZoneCountError, NoZonesAvailableError
from vpc_topology.zones import resolve_zones


class TestResolveZones:
    """Tests for resolve_zones."""

    @pytest.mark.parametrize(
        ("requested", "available", "expected"),
        [
            (1, ["a", "b", "c"], 1),
            (3, ["a", "b", "c"], 3),
            (5, ["a", "b", "c"], 3),
            (2, ["a"], 1),
        ],
    )
    def test_bound(self, requested: int, available: list[str], expected: int) -> None:
        """Test the result is exactly min(requested, available) long."""
        assert len(resolve_zones(requested, available)) == expected

    def test_keeps_discovery_order(self) -> None:
        """Test zones are not re-sorted."""
        assert resolve_zones(2, ["us-east-1c", "us-east-1a", "us-east-1b"]) == [
            "us-east-1c",
            "us-east-1a",
        ]

    @patch("vpc_topology.zones.log")
    def test_shortfall_is_logged(self, mock_log: MagicMock) -> None:
        """Test asking for more zones than exist returns all of them with a warning."""
        available = ["us-east-1a", "us-east-1b", "us-east-1c"]

        result = resolve_zones(5, available)

        assert result == available
        mock_log.warning.assert_called_once_with(
            "zone_count_shortfall",
            requested=5,
            available=3,
            zones=available,
        )

    @patch("vpc_topology.zones.log")
    def test_no_warning_when_enough(self, mock_log: MagicMock) -> None:
        """Test no warning when the region has enough zones."""
        resolve_zones(2, ["a", "b", "c"])

        mock_log.warning.assert_not_called()

    def test_duplicates_removed(self) -> None:
        """Test repeated zone names count once."""
        assert resolve_zones(3, ["a", "a", "b"]) == ["a", "b"]

    def test_no_zones(self) -> None:
        """Test an empty zone list is fatal."""
        with pytest.raises(NoZonesAvailableError):
            resolve_zones(2, [])

    @pytest.mark.parametrize("requested", [0, -1])
    def test_invalid_count(self, requested: int) -> None:
        """Test non-positive counts are rejected."""
        with pytest.raises(InvalidZoneCountError):
            resolve_zones(requested, ["a"])

"""Tests for zone allocation."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from vpc_topology.allocator import allocate, allocate_available
from vpc_topology.errors import InsufficientBlocksError
from vpc_topology.types import AddressBlock, SubnetRole


class TestAllocate:
    """Tests for strict allocation."""

    def test_pairing_order(self, zones: list[str], blocks: list[AddressBlock]) -> None:
        """Test zone i gets blocks 2i (public) and 2i+1 (private)."""
        result = allocate(zones, blocks)

        for i, allocation in enumerate(result):
            assert allocation.index == i
            assert allocation.zone == zones[i]
            assert allocation.public.block == blocks[2 * i]
            assert allocation.public.role == SubnetRole.PUBLIC
            assert allocation.private.block == blocks[2 * i + 1]
            assert allocation.private.role == SubnetRole.PRIVATE
            assert allocation.subnets == (allocation.public, allocation.private)

    def test_single_terminal_on_last(self, zones: list[str], blocks: list[AddressBlock]) -> None:
        """Test exactly one allocation is terminal and it is the last zone."""
        result = allocate(zones, blocks)

        assert [a.terminal for a in result] == [False, False, True]

    def test_two_zones(self, blocks: list[AddressBlock]) -> None:
        """Test two zones with four blocks."""
        result = allocate(["us-east-1a", "us-east-1b"], blocks[:4])

        assert len(result) == 2
        assert not result[0].terminal
        assert result[1].terminal
        assert result[1].zone == "us-east-1b"

    def test_extra_blocks_unused(self, blocks: list[AddressBlock]) -> None:
        """Test surplus blocks are left alone."""
        result = allocate(["us-east-1a"], blocks)

        assert len(result) == 1
        assert result[0].private.block == blocks[1]

    def test_insufficient(self, zones: list[str], blocks: list[AddressBlock]) -> None:
        """Test fewer than two blocks per zone is fatal."""
        with pytest.raises(InsufficientBlocksError) as exc_info:
            allocate(zones, blocks[:5])

        assert exc_info.value.zones == 3
        assert exc_info.value.blocks == 5


class TestAllocateAvailable:
    """Tests for degraded allocation."""

    def test_all_zones_fit(self, zones: list[str], blocks: list[AddressBlock]) -> None:
        """Test no zone is skipped when blocks suffice."""
        allocations, skipped = allocate_available(zones, blocks)

        assert len(allocations) == 3
        assert skipped == []
        assert allocations[-1].terminal

    @patch("vpc_topology.allocator.log")
    def test_skips_and_shifts_terminal(
        self,
        mock_log: MagicMock,
        zones: list[str],
        blocks: list[AddressBlock],
    ) -> None:
        """Test the zone without a pair is skipped and the marker moves back."""
        allocations, skipped = allocate_available(zones, blocks[:5])

        assert [a.zone for a in allocations] == ["us-east-1a", "us-east-1b"]
        assert [a.terminal for a in allocations] == [False, True]

        assert len(skipped) == 1
        assert skipped[0].zone == "us-east-1c"
        assert skipped[0].index == 2
        assert skipped[0].blocks_left == 1
        mock_log.warning.assert_called_once()
        assert mock_log.warning.call_args.args == ("zone_allocation_skipped",)

    def test_nothing_fits(self, zones: list[str], blocks: list[AddressBlock]) -> None:
        """Test degraded mode still fails when no zone can be paired."""
        with pytest.raises(InsufficientBlocksError):
            allocate_available(zones, blocks[:1])

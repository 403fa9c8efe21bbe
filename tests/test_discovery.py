"""Tests for provider discovery."""

from __future__ import annotations

import asyncio

from vpc_topology.discovery import (
    TopologyEnvironment,
    discover,
    list_occupied_blocks,
    run_discovery,
)
from vpc_topology.types import AddressBlock


class FakeDiscoveryClient:
    """In-memory discovery client recording what was asked."""

    def __init__(self, subnets: dict[str, str], zones: list[str]) -> None:
        self.subnets = subnets
        self.zones = zones
        self.network_ids: list[str | None] = []
        self.cidr_lookups: list[str] = []

    async def list_subnet_ids(self, network_id: str | None) -> list[str]:
        self.network_ids.append(network_id)
        await asyncio.sleep(0)
        return list(self.subnets)

    async def get_subnet_cidr(self, subnet_id: str) -> str:
        self.cidr_lookups.append(subnet_id)
        await asyncio.sleep(0)
        return self.subnets[subnet_id]

    async def list_availability_zones(self) -> list[str]:
        await asyncio.sleep(0)
        return list(self.zones)


class TestListOccupiedBlocks:
    """Tests for list_occupied_blocks."""

    def test_collects_blocks(self) -> None:
        """Test every subnet CIDR is looked up once."""
        client = FakeDiscoveryClient(
            {"subnet-1": "10.0.0.0/24", "subnet-2": "10.0.5.0/24"},
            zones=[],
        )

        occupied = asyncio.run(list_occupied_blocks(client, "vpc-123"))

        assert occupied == frozenset(
            {AddressBlock.parse("10.0.0.0/24"), AddressBlock.parse("10.0.5.0/24")}
        )
        assert client.network_ids == ["vpc-123"]
        assert sorted(client.cidr_lookups) == ["subnet-1", "subnet-2"]

    def test_drops_non_ipv4(self) -> None:
        """Test IPv6 ranges are ignored."""
        client = FakeDiscoveryClient(
            {"subnet-1": "10.0.0.0/24", "subnet-2": "2001:db8::/64"},
            zones=[],
        )

        occupied = asyncio.run(list_occupied_blocks(client))

        assert occupied == frozenset({AddressBlock.parse("10.0.0.0/24")})
        assert client.network_ids == [None]

    def test_empty(self) -> None:
        """Test an account with no subnets."""
        client = FakeDiscoveryClient({}, zones=[])

        assert asyncio.run(list_occupied_blocks(client)) == frozenset()


class TestDiscover:
    """Tests for discover and run_discovery."""

    def test_joins_both_lookups(self) -> None:
        """Test occupied blocks and zones are returned together."""
        client = FakeDiscoveryClient({"subnet-1": "10.0.3.0/24"}, zones=["us-east-1a", "us-east-1b"])

        env = asyncio.run(discover(client))

        assert env == TopologyEnvironment(
            occupied=frozenset({AddressBlock.parse("10.0.3.0/24")}),
            zones=("us-east-1a", "us-east-1b"),
        )

    def test_run_discovery_sync(self) -> None:
        """Test the synchronous entry point outside an event loop."""
        client = FakeDiscoveryClient({}, zones=["us-east-1a"])

        env = run_discovery(client)

        assert env.zones == ("us-east-1a",)

    def test_run_discovery_inside_running_loop(self) -> None:
        """Test the synchronous entry point while a loop is already running."""
        client = FakeDiscoveryClient({"subnet-1": "10.0.0.0/24"}, zones=["us-east-1a"])

        async def main() -> TopologyEnvironment:
            return run_discovery(client, "vpc-123")

        env = asyncio.run(main())

        assert env.occupied == frozenset({AddressBlock.parse("10.0.0.0/24")})
        assert client.network_ids == ["vpc-123"]

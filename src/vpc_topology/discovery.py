"""Provider lookups that feed the planner.

Two independent lookups run concurrently: the address blocks already in use
(so new subnets avoid them) and the availability zones of the region. The
planner waits for both before partitioning starts.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

import pulumi_aws as aws

from vpc_topology.errors import InvalidAddressBlockError
from vpc_topology.logging import get_logger
from vpc_topology.types import AddressBlock, OccupiedSet, Zone

log = get_logger("vpc_topology.discovery")

T = TypeVar("T")


class DiscoveryClient(Protocol):
    """Read-only view of the provider account."""

    async def list_subnet_ids(self, network_id: str | None) -> list[str]:
        """Ids of existing subnets, in ``network_id`` or the whole region if None."""
        ...

    async def get_subnet_cidr(self, subnet_id: str) -> str: ...

    async def list_availability_zones(self) -> list[Zone]: ...


class AwsDiscoveryClient:
    """`DiscoveryClient` backed by pulumi_aws data source invokes.

    Invokes are blocking calls, so each runs on a worker thread.
    """

    async def list_subnet_ids(self, network_id: str | None) -> list[str]:
        filters = (
            [aws.ec2.GetSubnetsFilterArgs(name="vpc-id", values=[network_id])]
            if network_id
            else None
        )
        result = await asyncio.to_thread(aws.ec2.get_subnets, filters=filters)
        return list(result.ids)

    async def get_subnet_cidr(self, subnet_id: str) -> str:
        result = await asyncio.to_thread(aws.ec2.get_subnet, id=subnet_id)
        return result.cidr_block

    async def list_availability_zones(self) -> list[Zone]:
        result = await asyncio.to_thread(aws.get_availability_zones, state="available")
        return list(result.names)


@dataclass(frozen=True)
class TopologyEnvironment:
    """Result of discovery: what is in use and where subnets can go."""

    occupied: OccupiedSet
    zones: tuple[Zone, ...]


async def list_occupied_blocks(
    client: DiscoveryClient,
    network_id: str | None = None,
) -> OccupiedSet:
    """Collect the CIDR blocks of existing subnets.

    Blocks that are not IPv4 are skipped with a log line; they cannot collide
    with an IPv4 partition.
    """
    subnet_ids = await client.list_subnet_ids(network_id)
    cidrs = await asyncio.gather(*(client.get_subnet_cidr(i) for i in subnet_ids))

    occupied: set[AddressBlock] = set()
    for subnet_id, cidr in zip(subnet_ids, cidrs, strict=True):
        try:
            occupied.add(AddressBlock.parse(cidr))
        except InvalidAddressBlockError as e:
            log.info("occupied_block_ignored", subnet_id=subnet_id, cidr=cidr, reason=e.message)

    log.debug("occupied_blocks_listed", network_id=network_id, count=len(occupied))
    return frozenset(occupied)


async def discover(
    client: DiscoveryClient,
    network_id: str | None = None,
) -> TopologyEnvironment:
    """Run both lookups concurrently and join them."""
    occupied, zones = await asyncio.gather(
        list_occupied_blocks(client, network_id),
        client.list_availability_zones(),
    )
    log.info("discovery_complete", occupied=len(occupied), zones=list(zones))
    return TopologyEnvironment(occupied=occupied, zones=tuple(zones))


def _run(coro: Coroutine[Any, Any, T]) -> T:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    # Already inside a loop (the Pulumi runtime): run on a fresh loop elsewhere
    with ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


def run_discovery(
    client: DiscoveryClient | None = None,
    network_id: str | None = None,
) -> TopologyEnvironment:
    """Synchronous entry point for `discover`, usable from a Pulumi program."""
    return _run(discover(client or AwsDiscoveryClient(), network_id))

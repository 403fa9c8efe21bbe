"""
Topology Planner - discovery to plan

Pipeline:
    discover (occupied blocks || zones)
      -> resolve_zones
      -> take 2 blocks per zone from the partitioner
      -> allocate (strict) or allocate_available (degraded)
      -> build_plan

Everything after discovery is pure, so `plan_from_environment` can be used
with a hand-built `TopologyEnvironment` for dry runs and tests.
"""

from __future__ import annotations

from itertools import islice

from vpc_topology.allocator import allocate, allocate_available
from vpc_topology.config import TopologyConfig
from vpc_topology.discovery import DiscoveryClient, TopologyEnvironment, discover
from vpc_topology.graph import build_plan
from vpc_topology.logging import get_logger
from vpc_topology.partitioner import partition, take_blocks
from vpc_topology.types import Plan
from vpc_topology.zones import resolve_zones

log = get_logger("vpc_topology.planner")


def plan_from_environment(config: TopologyConfig, env: TopologyEnvironment) -> Plan:
    """Plan a topology against already discovered state.

    Raises:
        InvalidZoneCountError, NoZonesAvailableError: Zone resolution failed.
        InvalidPrefixError: ``subnet_prefix_length`` does not fit the VPC block.
        AddressSpaceExhaustedError: Strict mode, not enough free blocks.
        InsufficientBlocksError: Degraded mode, not even one zone fits.
    """
    zones = resolve_zones(config.requested_zone_count, env.zones)
    needed = 2 * len(zones)

    if config.allow_degraded_zones:
        blocks = list(
            islice(partition(config.vpc_block, config.subnet_prefix_length, env.occupied), needed)
        )
        allocations, skipped = allocate_available(zones, blocks)
    else:
        blocks = take_blocks(config.vpc_block, config.subnet_prefix_length, env.occupied, needed)
        allocations, skipped = allocate(zones, blocks), []

    log.info(
        "allocations_ready",
        zones=[a.zone for a in allocations],
        blocks=[str(b) for b in blocks],
        skipped=len(skipped),
    )
    return build_plan(allocations, config, skipped=skipped)


async def plan_topology(
    config: TopologyConfig,
    client: DiscoveryClient,
    *,
    network_id: str | None = None,
) -> Plan:
    """Discover provider state, then plan against it."""
    env = await discover(client, network_id)
    return plan_from_environment(config, env)

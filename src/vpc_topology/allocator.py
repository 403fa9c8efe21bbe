"""Pairing of address blocks into per-zone public/private allocations."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from vpc_topology.errors import InsufficientBlocksError, ZoneAllocationSkipped
from vpc_topology.logging import get_logger
from vpc_topology.types import AddressBlock, SubnetAllocation, SubnetRole, Zone, ZoneAllocation

log = get_logger("vpc_topology.allocator")


def _pair(index: int, zone: Zone, public: AddressBlock, private: AddressBlock) -> ZoneAllocation:
    return ZoneAllocation(
        index=index,
        zone=zone,
        public=SubnetAllocation(zone=zone, role=SubnetRole.PUBLIC, block=public),
        private=SubnetAllocation(zone=zone, role=SubnetRole.PRIVATE, block=private),
    )


def _mark_terminal(allocations: list[ZoneAllocation]) -> list[ZoneAllocation]:
    if not allocations:
        return allocations
    allocations[-1] = replace(allocations[-1], terminal=True)
    return allocations


def allocate(zones: Sequence[Zone], blocks: Sequence[AddressBlock]) -> list[ZoneAllocation]:
    """Assign ``blocks[2i]`` as public and ``blocks[2i+1]`` as private to zone ``i``.

    Public precedes private within each zone. Route table association and load
    balancer subnet membership rely on that order.

    Raises:
        InsufficientBlocksError: Fewer than ``2 * len(zones)`` blocks.
    """
    if len(blocks) < 2 * len(zones):
        raise InsufficientBlocksError(zones=len(zones), blocks=len(blocks))

    allocations = [
        _pair(i, zone, blocks[2 * i], blocks[2 * i + 1]) for i, zone in enumerate(zones)
    ]
    return _mark_terminal(allocations)


def allocate_available(
    zones: Sequence[Zone],
    blocks: Sequence[AddressBlock],
) -> tuple[list[ZoneAllocation], list[ZoneAllocationSkipped]]:
    """Pair as many zones as the blocks allow, skipping the rest.

    A zone that cannot get a full pair is omitted with a diagnostic, and the
    terminal marker lands on the last zone that was paired.

    Returns:
        (allocations, skipped diagnostics)

    Raises:
        InsufficientBlocksError: Not even one zone could be paired.
    """
    allocations: list[ZoneAllocation] = []
    skipped: list[ZoneAllocationSkipped] = []

    for i, zone in enumerate(zones):
        if len(blocks) > 2 * i + 1:
            allocations.append(_pair(i, zone, blocks[2 * i], blocks[2 * i + 1]))
            continue

        diagnostic = ZoneAllocationSkipped(zone, i, blocks_left=max(len(blocks) - 2 * i, 0))
        log.warning("zone_allocation_skipped", zone=zone, index=i, reason=diagnostic.message)
        skipped.append(diagnostic)

    if not allocations:
        raise InsufficientBlocksError(zones=len(zones), blocks=len(blocks))

    return _mark_terminal(allocations), skipped

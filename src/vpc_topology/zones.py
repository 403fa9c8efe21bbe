"""Availability zone resolution."""

from __future__ import annotations

from collections.abc import Iterable

from vpc_topology.errors import InvalidZoneCountError, NoZonesAvailableError
from vpc_topology.logging import get_logger
from vpc_topology.types import Zone

log = get_logger("vpc_topology.zones")


def resolve_zones(requested_count: int, available: Iterable[Zone]) -> list[Zone]:
    """Bound the discovered zones by the requested count.

    Discovery order is kept as-is (not sorted): it is the provider's own
    deterministic enumeration. Running with fewer zones than requested is a
    degraded but valid mode and is only logged.

    Args:
        requested_count: How many zones the stack asked for.
        available: Zone names in discovery order.

    Returns:
        The first ``min(requested_count, len(available))`` distinct zones.

    Raises:
        InvalidZoneCountError: ``requested_count`` is below 1.
        NoZonesAvailableError: ``available`` is empty.
    """
    if requested_count < 1:
        raise InvalidZoneCountError(requested_count)

    zones = list(dict.fromkeys(available))
    if not zones:
        raise NoZonesAvailableError()

    if requested_count > len(zones):
        log.warning(
            "zone_count_shortfall",
            requested=requested_count,
            available=len(zones),
            zones=zones,
        )

    return zones[:requested_count]

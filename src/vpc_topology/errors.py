"""Topology planning error types."""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    """Standardized topology planning error codes."""

    INVALID_ADDRESS_BLOCK = "INVALID_ADDRESS_BLOCK"
    INVALID_PREFIX = "INVALID_PREFIX"
    ADDRESS_SPACE_EXHAUSTED = "ADDRESS_SPACE_EXHAUSTED"
    NO_ZONES_AVAILABLE = "NO_ZONES_AVAILABLE"
    INVALID_ZONE_COUNT = "INVALID_ZONE_COUNT"
    INSUFFICIENT_BLOCKS = "INSUFFICIENT_BLOCKS"
    ZONE_ALLOCATION_SKIPPED = "ZONE_ALLOCATION_SKIPPED"
    PLAN_INTEGRITY = "PLAN_INTEGRITY"
    CONFIGURATION = "CONFIGURATION"


class TopologyError(Exception):
    """Topology planning error with a standardized error code."""

    code: ErrorCode

    def __init__(self, code: ErrorCode, message: str) -> None:
        """Initialize topology error.

        Args:
            code: Standardized error code.
            message: Human-readable message naming the violated invariant.
        """
        super().__init__(message)
        self.code = code
        self.message = message

    def is_code(self, code: ErrorCode) -> bool:
        """Check if this error matches a specific code."""
        return self.code == code


class InvalidAddressBlockError(TopologyError):
    """A CIDR string could not be parsed as an IPv4 address block."""

    def __init__(self, cidr: str, reason: str) -> None:
        super().__init__(ErrorCode.INVALID_ADDRESS_BLOCK, f"Invalid address block {cidr!r}: {reason}")
        self.cidr = cidr


class InvalidPrefixError(TopologyError):
    """Requested subnet prefix is not strictly longer than the network prefix."""

    def __init__(self, base: str, base_prefix: int, child_prefix: int) -> None:
        super().__init__(
            ErrorCode.INVALID_PREFIX,
            f"Subnet prefix /{child_prefix} must be longer than /{base_prefix} "
            f"(network {base}) and at most /32",
        )
        self.base_prefix = base_prefix
        self.child_prefix = child_prefix


class AddressSpaceExhaustedError(TopologyError):
    """Not enough disjoint blocks of the requested size remain."""

    def __init__(self, *, requested: int, available: int, child_prefix: int, occupied: int) -> None:
        super().__init__(
            ErrorCode.ADDRESS_SPACE_EXHAUSTED,
            f"requested {requested} subnets of /{child_prefix} but only {available} "
            f"disjoint blocks remain after excluding {occupied} occupied ranges",
        )
        self.requested = requested
        self.available = available
        self.child_prefix = child_prefix
        self.occupied = occupied


class NoZonesAvailableError(TopologyError):
    """The availability zone lookup returned nothing."""

    def __init__(self) -> None:
        super().__init__(ErrorCode.NO_ZONES_AVAILABLE, "No availability zones available in region")


class InvalidZoneCountError(TopologyError):
    """Requested zone count is not a positive integer."""

    def __init__(self, requested: int) -> None:
        super().__init__(
            ErrorCode.INVALID_ZONE_COUNT,
            f"Requested zone count must be at least 1, got {requested}",
        )
        self.requested = requested


class InsufficientBlocksError(TopologyError):
    """Fewer than two blocks per zone were handed to the allocator."""

    def __init__(self, *, zones: int, blocks: int) -> None:
        super().__init__(
            ErrorCode.INSUFFICIENT_BLOCKS,
            f"{zones} zones need {2 * zones} blocks (one public, one private each) "
            f"but only {blocks} were provided",
        )
        self.zones = zones
        self.blocks = blocks


class ZoneAllocationSkipped(TopologyError):
    """Non-fatal diagnostic: a zone could not be given a public/private pair.

    Collected and logged by the allocator, never raised by the pipeline.
    """

    def __init__(self, zone: str, index: int, blocks_left: int) -> None:
        super().__init__(
            ErrorCode.ZONE_ALLOCATION_SKIPPED,
            f"Zone {zone} (position {index}) skipped: needs 2 blocks, {blocks_left} left",
        )
        self.zone = zone
        self.index = index
        self.blocks_left = blocks_left


class PlanIntegrityError(TopologyError):
    """A plan node references a missing node, repeats an id, or forms a cycle."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.PLAN_INTEGRITY, message)


class ConfigurationError(TopologyError):
    """Required configuration is missing or invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.CONFIGURATION, message)

"""Address space partitioning.

Pure routines that carve a network block into fixed-size subnet blocks while
steering around ranges that are already in use. No Pulumi or provider imports,
so they can be exercised without any external lookup.

Scan order:
-----------
Candidates are visited in ascending address order, aligned on the child block
size. A candidate that collides with an occupied range is not retried one slot
at a time: the scan jumps to the first aligned address after the end of the
colliding range, so a /17 already in use inside a /16 costs one step, not 128.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from itertools import islice

from vpc_topology.errors import AddressSpaceExhaustedError, InvalidPrefixError
from vpc_topology.types import AddressBlock

_MAX_PREFIX = 32


def _align_up(address: int, step: int) -> int:
    return -(-address // step) * step


def _relevant(base: AddressBlock, occupied: Iterable[AddressBlock]) -> list[AddressBlock]:
    """Occupied blocks that actually intersect ``base``, in address order."""
    return sorted(block for block in set(occupied) if block.overlaps(base))


def _free_blocks(
    base: AddressBlock,
    child_prefix: int,
    occupied: list[AddressBlock],
) -> Iterator[AddressBlock]:
    step = 2 ** (_MAX_PREFIX - child_prefix)
    address = base.first
    end = base.last + 1

    while address < end:
        candidate = AddressBlock.from_int(address, child_prefix)
        blocker = next((block for block in occupied if block.overlaps(candidate)), None)
        if blocker is None:
            yield candidate
            address += step
        else:
            address = max(address + step, _align_up(blocker.last + 1, step))


def partition(
    base: AddressBlock,
    child_prefix: int,
    occupied: Iterable[AddressBlock] = (),
) -> Iterator[AddressBlock]:
    """Lazily yield disjoint ``/child_prefix`` blocks of ``base`` that avoid ``occupied``.

    Args:
        base: The network block to carve up.
        child_prefix: Prefix length of every emitted block.
        occupied: Blocks already in use. Ones outside ``base`` are ignored.

    Returns:
        Iterator over blocks in ascending address order. It ends when the
        address space is exhausted; callers take only the prefix they need.

    Raises:
        InvalidPrefixError: ``child_prefix`` is not longer than the base prefix
            or exceeds /32. Raised at call time, before iteration starts.
    """
    if not base.prefix_length < child_prefix <= _MAX_PREFIX:
        raise InvalidPrefixError(str(base), base.prefix_length, child_prefix)

    return _free_blocks(base, child_prefix, _relevant(base, occupied))


def take_blocks(
    base: AddressBlock,
    child_prefix: int,
    occupied: Iterable[AddressBlock],
    count: int,
) -> list[AddressBlock]:
    """Take exactly ``count`` blocks from `partition`.

    Raises:
        InvalidPrefixError: See `partition`.
        AddressSpaceExhaustedError: Fewer than ``count`` disjoint blocks exist.
    """
    occupied = list(occupied)
    blocks = list(islice(partition(base, child_prefix, occupied), count))
    if len(blocks) < count:
        raise AddressSpaceExhaustedError(
            requested=count,
            available=len(blocks),
            child_prefix=child_prefix,
            occupied=len(_relevant(base, occupied)),
        )
    return blocks

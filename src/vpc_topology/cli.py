"""Offline topology planning CLI.

Runs the partitioner, allocator and graph builder without touching a cloud
account. Zones and occupied ranges are passed on the command line instead of
being discovered.

Commands:
    allocate - Show the subnet block assigned to each zone
    plan     - Build the full resource plan from a JSON config

Usage:
    # Three zones in a /16, /24 subnets, skipping an existing range
    vpc-topology allocate --vpc-cidr 10.0.0.0/16 --prefix 24 \\
        --zones us-east-1a,us-east-1b,us-east-1c --occupied 10.0.0.0/24

    # Full plan
    vpc-topology plan --config topology.json --zones us-east-1a,us-east-1b
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from vpc_topology.allocator import allocate
from vpc_topology.config import TopologyConfig
from vpc_topology.discovery import TopologyEnvironment
from vpc_topology.errors import TopologyError
from vpc_topology.partitioner import take_blocks
from vpc_topology.planner import plan_from_environment
from vpc_topology.types import AddressBlock, Plan, ZoneAllocation
from vpc_topology.zones import resolve_zones

console = Console()


def _zones(value: str) -> list[str]:
    return [zone.strip() for zone in value.split(",") if zone.strip()]


def _occupied(values: list[str] | None) -> frozenset[AddressBlock]:
    return frozenset(AddressBlock.parse(cidr) for cidr in values or [])


def print_allocations(allocations: list[ZoneAllocation], title: str = "Zone Allocations") -> None:
    """Print zone allocations in a formatted table."""
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Zone", style="cyan")
    table.add_column("Public", style="green")
    table.add_column("Private", style="yellow")
    table.add_column("Terminal", justify="center")

    for allocation in allocations:
        table.add_row(
            str(allocation.index),
            allocation.zone,
            str(allocation.public.block),
            str(allocation.private.block),
            "[bold]yes[/bold]" if allocation.terminal else "",
        )

    console.print(table)


def print_plan(plan: Plan, title: str = "Topology Plan") -> None:
    """Print plan nodes in construction order."""
    table = Table(title=title, box=box.ROUNDED, show_lines=False)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Node", style="cyan")
    table.add_column("Kind")
    table.add_column("Zone", style="dim")
    table.add_column("Depends on", style="dim")

    for i, node in enumerate(plan.topological_order()):
        table.add_row(
            str(i),
            node.id,
            str(node.kind),
            node.zone or "",
            ", ".join(sorted(node.depends_on)),
        )

    console.print(table)
    for diagnostic in plan.skipped:
        console.print(f"[yellow]Skipped:[/yellow] {escape(diagnostic.message)}")


def cmd_allocate(args: argparse.Namespace) -> None:
    available = _zones(args.zones)
    count = len(available) if args.count is None else args.count
    zones = resolve_zones(count, available)
    blocks = take_blocks(
        AddressBlock.parse(args.vpc_cidr),
        args.prefix,
        _occupied(args.occupied),
        2 * len(zones),
    )
    print_allocations(allocate(zones, blocks))


def cmd_plan(args: argparse.Namespace) -> None:
    config = TopologyConfig.from_file(args.config)
    env = TopologyEnvironment(occupied=_occupied(args.occupied), zones=tuple(_zones(args.zones)))
    plan = plan_from_environment(config, env)
    print_allocations(list(plan.allocations))
    print_plan(plan)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Multi-zone VPC topology planner")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Allocate command
    allocate_parser = subparsers.add_parser("allocate", help="Show per-zone subnet blocks")
    allocate_parser.add_argument("--vpc-cidr", required=True, help="VPC block, e.g. 10.0.0.0/16")
    allocate_parser.add_argument("--prefix", type=int, required=True, help="Subnet prefix length")
    allocate_parser.add_argument("--zones", required=True, help="Comma-separated zone names")
    allocate_parser.add_argument(
        "--count",
        type=int,
        help="Requested zone count (defaults to the number of zones given)",
    )
    allocate_parser.add_argument(
        "--occupied",
        nargs="*",
        metavar="CIDR",
        help="Address ranges already in use",
    )

    # Plan command
    plan_parser = subparsers.add_parser("plan", help="Build the resource plan")
    plan_parser.add_argument("--config", type=Path, required=True, help="Topology JSON config")
    plan_parser.add_argument("--zones", required=True, help="Comma-separated zone names")
    plan_parser.add_argument(
        "--occupied",
        nargs="*",
        metavar="CIDR",
        help="Address ranges already in use",
    )

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        if args.command == "allocate":
            cmd_allocate(args)
        elif args.command == "plan":
            cmd_plan(args)
    except TopologyError as e:
        console.print(f"[red bold]{e.code}:[/red bold] {escape(e.message)}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Multi-zone VPC topology planner.

Carves a VPC block into per-zone public/private subnets that avoid ranges
already in use, and expands them into a dependency-ordered resource plan.
The Pulumi component that realizes a plan lives in `vpc_topology.executor`.
"""

from vpc_topology.allocator import allocate, allocate_available
from vpc_topology.config import TopologyConfig
from vpc_topology.discovery import TopologyEnvironment, discover, run_discovery
from vpc_topology.errors import ErrorCode, TopologyError
from vpc_topology.graph import build_plan
from vpc_topology.partitioner import partition, take_blocks
from vpc_topology.planner import plan_from_environment, plan_topology
from vpc_topology.types import AddressBlock, NodeRef, Plan, ResourceKind, ResourceNode, ZoneAllocation
from vpc_topology.zones import resolve_zones

__all__ = [
    "AddressBlock",
    "ErrorCode",
    "NodeRef",
    "Plan",
    "ResourceKind",
    "ResourceNode",
    "TopologyConfig",
    "TopologyEnvironment",
    "TopologyError",
    "ZoneAllocation",
    "allocate",
    "allocate_available",
    "build_plan",
    "discover",
    "partition",
    "plan_from_environment",
    "plan_topology",
    "resolve_zones",
    "run_discovery",
    "take_blocks",
]

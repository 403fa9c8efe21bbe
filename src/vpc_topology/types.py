"""Shared value types: address blocks, zone allocations, plan nodes."""

from __future__ import annotations

import ipaddress
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeAlias

from vpc_topology.errors import InvalidAddressBlockError, PlanIntegrityError, ZoneAllocationSkipped

Zone: TypeAlias = str


# =============================================================================
# Address blocks
# =============================================================================


@dataclass(frozen=True, order=True)
class AddressBlock:
    """An IPv4 network address plus prefix length, e.g. ``10.0.0.0/16``."""

    network: ipaddress.IPv4Network

    @classmethod
    def parse(cls, cidr: str) -> AddressBlock:
        """Parse a CIDR string.

        Host bits are zeroed rather than rejected, which is what the provider
        does on CreateVpc/CreateSubnet.
        """
        try:
            network = ipaddress.ip_network(cidr, strict=False)
        except ValueError as e:
            raise InvalidAddressBlockError(cidr, str(e)) from e
        if not isinstance(network, ipaddress.IPv4Network):
            raise InvalidAddressBlockError(cidr, "only IPv4 blocks are supported")
        return cls(network)

    @classmethod
    def from_int(cls, address: int, prefix_length: int) -> AddressBlock:
        return cls(ipaddress.IPv4Network((address, prefix_length)))

    @property
    def prefix_length(self) -> int:
        return self.network.prefixlen

    @property
    def first(self) -> int:
        """First address as an integer."""
        return int(self.network.network_address)

    @property
    def last(self) -> int:
        """Last (broadcast) address as an integer."""
        return int(self.network.broadcast_address)

    @property
    def size(self) -> int:
        return self.network.num_addresses

    def contains(self, other: AddressBlock) -> bool:
        """True when ``other`` lies entirely inside this block."""
        return other.network.subnet_of(self.network)

    def overlaps(self, other: AddressBlock) -> bool:
        return self.network.overlaps(other.network)

    def subdivide(self, prefix_length: int) -> Iterator[AddressBlock]:
        """Yield every child block of ``prefix_length``, in address order."""
        for child in self.network.subnets(new_prefix=prefix_length):
            yield AddressBlock(child)

    def __str__(self) -> str:
        return str(self.network)


OccupiedSet: TypeAlias = frozenset[AddressBlock]


# =============================================================================
# Zone allocations
# =============================================================================


class SubnetRole(StrEnum):
    """Role of a subnet within its zone."""

    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True)
class SubnetAllocation:
    """One address block assigned to one role in one zone."""

    zone: Zone
    role: SubnetRole
    block: AddressBlock


@dataclass(frozen=True)
class ZoneAllocation:
    """The public/private pair for one zone.

    ``terminal`` is set on exactly one allocation of a run: the last zone that
    was successfully paired. The shared, zone-count-independent resources are
    built while processing it.
    """

    index: int
    zone: Zone
    public: SubnetAllocation
    private: SubnetAllocation
    terminal: bool = False

    @property
    def subnets(self) -> tuple[SubnetAllocation, SubnetAllocation]:
        return (self.public, self.private)


# =============================================================================
# Plan graph
# =============================================================================


class ResourceKind(StrEnum):
    """Kinds of resources a plan can describe."""

    NETWORK = "Network"
    GATEWAY = "Gateway"
    ROUTE_TABLE = "RouteTable"
    ROUTE = "Route"
    SUBNET = "Subnet"
    ROUTE_TABLE_ASSOCIATION = "RouteTableAssociation"
    SECURITY_GROUP = "SecurityGroup"
    DB_PARAMETER_GROUP = "DbParameterGroup"
    DB_SUBNET_GROUP = "DbSubnetGroup"
    DATABASE = "Database"
    INSTANCE_ROLE = "InstanceRole"
    IAM_POLICY = "IamPolicy"
    ROLE_POLICY_ATTACHMENT = "RolePolicyAttachment"
    INSTANCE_PROFILE = "InstanceProfile"
    NOTIFICATION_TOPIC = "NotificationTopic"
    LAUNCH_TEMPLATE = "LaunchTemplate"
    LOAD_BALANCER = "LoadBalancer"
    TARGET_GROUP = "TargetGroup"
    LISTENER = "Listener"
    AUTOSCALING_GROUP = "AutoscalingGroup"
    SCALING_POLICY = "ScalingPolicy"
    METRIC_ALARM = "MetricAlarm"
    DNS_RECORD = "DnsRecord"


@dataclass(frozen=True)
class NodeRef:
    """Reference to an output attribute of another plan node.

    The executor replaces it with the created resource's attribute, e.g.
    ``NodeRef("app-load-balancer", "dns_name")``.
    """

    node_id: str
    attribute: str = "id"


@dataclass(frozen=True)
class ResourceNode:
    """A single resource description.

    ``attributes`` are provider arguments and may contain `NodeRef` values at
    any nesting depth. ``metadata`` holds data for the executor that is not a
    provider argument (bootstrap environment, hosted zone name).
    """

    id: str
    kind: ResourceKind
    attributes: Mapping[str, Any] = field(default_factory=dict)
    depends_on: frozenset[str] = frozenset()
    zone: Zone | None = None
    role: SubnetRole | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


def collect_refs(value: Any) -> Iterator[NodeRef]:
    """Yield every `NodeRef` nested in mappings, lists and tuples."""
    if isinstance(value, NodeRef):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from collect_refs(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from collect_refs(item)


@dataclass(frozen=True)
class Plan:
    """Dependency-ordered, immutable collection of resource nodes.

    Nodes are stored in construction order, which is a valid topological
    order: a node is only ever added after all of its dependencies.
    """

    nodes: tuple[ResourceNode, ...]
    allocations: tuple[ZoneAllocation, ...] = ()
    skipped: tuple[ZoneAllocationSkipped, ...] = ()

    def __iter__(self) -> Iterator[ResourceNode]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return any(node.id == node_id for node in self.nodes)

    @property
    def root(self) -> ResourceNode:
        """The network node every other node hangs off."""
        return self.nodes[0]

    def get(self, node_id: str) -> ResourceNode:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

    def of_kind(self, kind: ResourceKind) -> list[ResourceNode]:
        return [node for node in self.nodes if node.kind == kind]

    def dependencies(self, node_id: str, *, transitive: bool = False) -> set[str]:
        """Ids a node depends on, optionally following edges all the way down."""
        direct = set(self.get(node_id).depends_on)
        if not transitive:
            return direct

        seen: set[str] = set()
        stack = list(direct)
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self.get(current).depends_on)
        return seen

    def topological_order(self) -> list[ResourceNode]:
        """Return the nodes in dependency order, verifying the graph.

        Raises:
            PlanIntegrityError: A node repeats an id, or depends on a node that
                does not come before it (unknown node or cycle).
        """
        placed: set[str] = set()
        for node in self.nodes:
            if node.id in placed:
                raise PlanIntegrityError(f"Duplicate node id {node.id!r}")
            missing = node.depends_on - placed
            if missing:
                raise PlanIntegrityError(
                    f"Node {node.id!r} depends on {sorted(missing)} which are not constructed before it"
                )
            placed.add(node.id)
        return list(self.nodes)

"""
Topology Graph Builder - Plan Construction

This module expands zone allocations into a dependency graph of resource
descriptions that the executor realizes in order.

Graph Layout:
-------------
1. Core (built once, independent of zone count)
   - Network, Internet Gateway
   - Public route table + default route via the gateway
   - Private route table (VPC-local only)

2. Per zone (in allocation order)
   - Public and private subnet
   - Route table association for each

3. Shared tier (built once, on the terminal zone)
   - Security groups: load balancer -> app -> database
   - Database: parameter group, subnet group over every private subnet, instance
   - Identity: instance role, CloudWatch agent policy, instance profile
   - Notification topic, publish policy on it attached to the instance role
   - Compute: launch template, autoscaling group, scaling policies and alarms
   - Ingress: load balancer over every public subnet, target group, HTTPS listener
   - DNS alias record to the load balancer

Ordering Rules:
---------------
- A node may only reference nodes that already exist. `_PlanGraph.add`
  rejects forward references, so the node list is a topological order by
  construction and no cycle can form.
- Zones are processed strictly in order. The shared tier needs the complete
  list of subnet ids from every zone before it, carried in `ZoneAccumulator`.

Autoscaling Scope:
------------------
The autoscaling group is placed in the terminal zone's public subnet only,
while the load balancer spans every public subnet (single-zone compute,
multi-zone ingress).
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any

from vpc_topology.bootstrap import bootstrap_environment
from vpc_topology.config import TopologyConfig
from vpc_topology.errors import PlanIntegrityError, ZoneAllocationSkipped
from vpc_topology.logging import get_logger
from vpc_topology.types import (
    NodeRef,
    Plan,
    ResourceKind,
    ResourceNode,
    SubnetAllocation,
    SubnetRole,
    Zone,
    ZoneAllocation,
    collect_refs,
)

log = get_logger("vpc_topology.graph")

ASSUME_ROLE_POLICY = json.dumps(
    {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Action": "sts:AssumeRole",
                "Effect": "Allow",
                "Principal": {"Service": "ec2.amazonaws.com"},
            }
        ],
    }
)
CLOUDWATCH_AGENT_POLICY_ARN = "arn:aws:iam::aws:policy/CloudWatchAgentServerPolicy"
SSL_POLICY = "ELBSecurityPolicy-2016-08"

ALLOW_ALL_EGRESS = [
    {
        "protocol": "-1",
        "from_port": 0,
        "to_port": 0,
        "cidr_blocks": ["0.0.0.0/0"],
    }
]


class _PlanGraph:
    """Append-only node registry that enforces backward-only edges."""

    def __init__(self) -> None:
        self._nodes: dict[str, ResourceNode] = {}

    def add(
        self,
        node_id: str,
        kind: ResourceKind,
        attributes: Mapping[str, Any] | None = None,
        *,
        depends_on: Iterable[str] = (),
        zone: Zone | None = None,
        role: SubnetRole | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> ResourceNode:
        if node_id in self._nodes:
            raise PlanIntegrityError(f"Duplicate node id {node_id!r}")

        attributes = dict(attributes or {})
        metadata = dict(metadata or {})
        edges = set(depends_on)
        edges.update(ref.node_id for ref in collect_refs(attributes))
        edges.update(ref.node_id for ref in collect_refs(metadata))

        unknown = edges - self._nodes.keys()
        if unknown:
            raise PlanIntegrityError(
                f"Node {node_id!r} references {sorted(unknown)} before they are constructed"
            )

        node = ResourceNode(
            id=node_id,
            kind=kind,
            attributes=attributes,
            depends_on=frozenset(edges),
            zone=zone,
            role=role,
            metadata=metadata,
        )
        self._nodes[node_id] = node
        return node

    def nodes(self) -> tuple[ResourceNode, ...]:
        return tuple(self._nodes.values())


def ref(node: ResourceNode, attribute: str = "id") -> NodeRef:
    return NodeRef(node.id, attribute)


@dataclass(frozen=True)
class _CoreNodes:
    network: ResourceNode
    gateway: ResourceNode
    public_route_table: ResourceNode
    private_route_table: ResourceNode


@dataclass(frozen=True)
class ZoneAccumulator:
    """Subnet ids collected across zone steps, in zone order.

    Returned (not mutated) by each zone step so a step can be tested on its own.
    """

    zones: tuple[Zone, ...] = ()
    public_subnet_ids: tuple[str, ...] = ()
    private_subnet_ids: tuple[str, ...] = ()

    def extend(self, zone: Zone, public_subnet_id: str, private_subnet_id: str) -> ZoneAccumulator:
        return ZoneAccumulator(
            zones=(*self.zones, zone),
            public_subnet_ids=(*self.public_subnet_ids, public_subnet_id),
            private_subnet_ids=(*self.private_subnet_ids, private_subnet_id),
        )

    @property
    def last_public_subnet_id(self) -> str:
        return self.public_subnet_ids[-1]


def _with_single_terminal(allocations: Sequence[ZoneAllocation]) -> list[ZoneAllocation]:
    """Check there is exactly one terminal marker, on the last allocation."""
    allocations = list(allocations)
    if not allocations:
        return allocations

    marked = [a for a in allocations if a.terminal]
    if not marked:
        log.warning("terminal_marker_missing", assigned_to=allocations[-1].zone)
        allocations[-1] = replace(allocations[-1], terminal=True)
        return allocations
    if len(marked) > 1:
        raise PlanIntegrityError(
            f"Terminal marker set on {len(marked)} zones ({[a.zone for a in marked]}), expected one"
        )
    if not allocations[-1].terminal:
        raise PlanIntegrityError(
            f"Terminal marker is on zone {marked[0].zone} but zone {allocations[-1].zone} follows it"
        )
    return allocations


class TopologyGraphBuilder:
    """Builds a `Plan` from zone allocations."""

    def __init__(self, config: TopologyConfig) -> None:
        self.config = config

    def _id(self, suffix: str) -> str:
        return f"{self.config.name}-{suffix}"

    def build(
        self,
        allocations: Sequence[ZoneAllocation],
        *,
        skipped: Sequence[ZoneAllocationSkipped] = (),
    ) -> Plan:
        """Build the plan.

        Args:
            allocations: Zone allocations in zone order.
            skipped: Diagnostics for zones the allocator left out, kept on
                the plan for reporting.

        Raises:
            PlanIntegrityError: Malformed terminal markers or a dangling edge.
        """
        allocations = _with_single_terminal(allocations)
        graph = _PlanGraph()
        core = self._add_core(graph)

        accumulator = ZoneAccumulator()
        for allocation in allocations:
            accumulator = self._add_zone(graph, core, accumulator, allocation)
            if allocation.terminal:
                self._add_shared(graph, core, accumulator)

        if not allocations:
            log.warning("plan_without_zones", network=core.network.id)

        plan = Plan(nodes=graph.nodes(), allocations=tuple(allocations), skipped=tuple(skipped))
        log.info(
            "plan_built",
            nodes=len(plan),
            zones=list(accumulator.zones),
            skipped=[s.zone for s in skipped],
        )
        return plan

    # =========================================================================
    # Core - network, gateway, route tables
    # =========================================================================

    def _add_core(self, graph: _PlanGraph) -> _CoreNodes:
        cfg = self.config

        network = graph.add(
            self._id("vpc"),
            ResourceKind.NETWORK,
            {
                "cidr_block": str(cfg.vpc_block),
                "enable_dns_support": True,
                "enable_dns_hostnames": True,
                "tags": cfg.get_tags(self._id("vpc")),
            },
        )

        gateway = graph.add(
            self._id("igw"),
            ResourceKind.GATEWAY,
            {"vpc_id": ref(network), "tags": cfg.get_tags(self._id("igw"))},
        )

        public_rt = graph.add(
            self._id("public-rt"),
            ResourceKind.ROUTE_TABLE,
            {"vpc_id": ref(network), "tags": cfg.get_tags(self._id("public-rt"))},
            role=SubnetRole.PUBLIC,
        )

        # Public route table: public_route_cidr -> Internet Gateway
        graph.add(
            self._id("public-internet-route"),
            ResourceKind.ROUTE,
            {
                "route_table_id": ref(public_rt),
                "destination_cidr_block": cfg.public_route_cidr,
                "gateway_id": ref(gateway),
            },
        )

        # Private route table: no routes, VPC-local only
        private_rt = graph.add(
            self._id("private-rt"),
            ResourceKind.ROUTE_TABLE,
            {"vpc_id": ref(network), "tags": cfg.get_tags(self._id("private-rt"))},
            role=SubnetRole.PRIVATE,
        )

        return _CoreNodes(network, gateway, public_rt, private_rt)

    # =========================================================================
    # Per zone - subnets and route table associations
    # =========================================================================

    def _add_subnet(
        self,
        graph: _PlanGraph,
        core: _CoreNodes,
        allocation: SubnetAllocation,
    ) -> ResourceNode:
        subnet_id = self._id(f"{allocation.role}-subnet-{allocation.zone}")
        route_table = (
            core.public_route_table
            if allocation.role == SubnetRole.PUBLIC
            else core.private_route_table
        )

        subnet = graph.add(
            subnet_id,
            ResourceKind.SUBNET,
            {
                "vpc_id": ref(core.network),
                "cidr_block": str(allocation.block),
                "availability_zone": allocation.zone,
                "map_public_ip_on_launch": allocation.role == SubnetRole.PUBLIC,
                "tags": {
                    **self.config.get_tags(subnet_id),
                    "Zone": allocation.zone,
                    "Tier": str(allocation.role),
                },
            },
            zone=allocation.zone,
            role=allocation.role,
        )

        graph.add(
            self._id(f"{allocation.role}-rt-association-{allocation.zone}"),
            ResourceKind.ROUTE_TABLE_ASSOCIATION,
            {"subnet_id": ref(subnet), "route_table_id": ref(route_table)},
            zone=allocation.zone,
            role=allocation.role,
        )
        return subnet

    def _add_zone(
        self,
        graph: _PlanGraph,
        core: _CoreNodes,
        accumulator: ZoneAccumulator,
        allocation: ZoneAllocation,
    ) -> ZoneAccumulator:
        public = self._add_subnet(graph, core, allocation.public)
        private = self._add_subnet(graph, core, allocation.private)
        return accumulator.extend(allocation.zone, public.id, private.id)

    # =========================================================================
    # Shared tier - terminal zone only
    # =========================================================================

    def _add_shared(
        self,
        graph: _PlanGraph,
        core: _CoreNodes,
        accumulator: ZoneAccumulator,
    ) -> None:
        cfg = self.config
        ports = cfg.ports
        vpc = ref(core.network)
        public_subnets = [NodeRef(i) for i in accumulator.public_subnet_ids]
        private_subnets = [NodeRef(i) for i in accumulator.private_subnet_ids]

        # Security groups ----------------------------------------------------
        lb_sg = graph.add(
            self._id("lb-sg"),
            ResourceKind.SECURITY_GROUP,
            {
                "vpc_id": vpc,
                "description": "Security group for the load balancer",
                "ingress": [
                    {
                        "protocol": "tcp",
                        "from_port": ports.https,
                        "to_port": ports.https,
                        "cidr_blocks": [cfg.public_route_cidr],
                    },
                ],
                "egress": ALLOW_ALL_EGRESS,
                "tags": cfg.get_tags(self._id("lb-sg")),
            },
        )

        app_sg = graph.add(
            self._id("app-sg"),
            ResourceKind.SECURITY_GROUP,
            {
                "vpc_id": vpc,
                "description": "Security group for web application",
                "ingress": [
                    {
                        "protocol": "tcp",
                        "from_port": ports.ssh,
                        "to_port": ports.ssh,
                        "cidr_blocks": [cfg.public_route_cidr],
                    },
                    # App port only reachable through the load balancer
                    {
                        "protocol": "tcp",
                        "from_port": ports.app,
                        "to_port": ports.app,
                        "security_groups": [ref(lb_sg)],
                    },
                ],
                "egress": ALLOW_ALL_EGRESS,
                "tags": cfg.get_tags(self._id("app-sg")),
            },
        )

        db_sg = graph.add(
            self._id("db-sg"),
            ResourceKind.SECURITY_GROUP,
            {
                "vpc_id": vpc,
                "description": "Database security group",
                "ingress": [
                    {
                        "protocol": "tcp",
                        "from_port": cfg.database.port,
                        "to_port": cfg.database.port,
                        "security_groups": [ref(app_sg)],
                    },
                ],
                "tags": cfg.get_tags(self._id("db-sg")),
            },
        )

        # Database -----------------------------------------------------------
        database = self._add_database(graph, db_sg, private_subnets)

        # Identity and notifications -----------------------------------------
        role = graph.add(
            self._id("instance-role"),
            ResourceKind.INSTANCE_ROLE,
            {
                "assume_role_policy": ASSUME_ROLE_POLICY,
                "tags": cfg.get_tags(self._id("instance-role")),
            },
        )
        graph.add(
            self._id("cloudwatch-agent-policy"),
            ResourceKind.ROLE_POLICY_ATTACHMENT,
            {"role": ref(role, "name"), "policy_arn": CLOUDWATCH_AGENT_POLICY_ARN},
        )
        profile = graph.add(
            self._id("instance-profile"),
            ResourceKind.INSTANCE_PROFILE,
            {"role": ref(role, "name")},
        )
        topic = graph.add(
            self._id("notifications"),
            ResourceKind.NOTIFICATION_TOPIC,
            {
                "display_name": f"{cfg.name} notifications",
                "tags": cfg.get_tags(self._id("notifications")),
            },
        )
        publish_policy = graph.add(
            self._id("sns-publish-policy"),
            ResourceKind.IAM_POLICY,
            {
                "description": f"Allow {cfg.name} instances to publish to the notification topic",
                "policy": {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Action": ["sns:Publish"],
                            "Effect": "Allow",
                            "Resource": ref(topic, "arn"),
                        }
                    ],
                },
                "tags": cfg.get_tags(self._id("sns-publish-policy")),
            },
        )
        graph.add(
            self._id("sns-publish-policy-attachment"),
            ResourceKind.ROLE_POLICY_ATTACHMENT,
            {"role": ref(role, "name"), "policy_arn": ref(publish_policy, "arn")},
        )

        # Compute ------------------------------------------------------------
        launch_template = graph.add(
            self._id("launch-template"),
            ResourceKind.LAUNCH_TEMPLATE,
            {
                "image_id": cfg.compute.image_id,
                "instance_type": cfg.compute.instance_type,
                "key_name": cfg.compute.key_name,
                "iam_instance_profile": {"arn": ref(profile, "arn")},
                "network_interfaces": [
                    {
                        "associate_public_ip_address": "true",
                        "security_groups": [ref(app_sg)],
                    }
                ],
                "block_device_mappings": [
                    {
                        "device_name": "/dev/xvda",
                        "ebs": {
                            "volume_size": cfg.compute.root_volume_size,
                            "volume_type": "gp2",
                            "delete_on_termination": "true",
                        },
                    }
                ],
                "tag_specifications": [
                    {"resource_type": "instance", "tags": cfg.get_tags(self._id("web"))},
                ],
            },
            metadata={"bootstrap_environment": bootstrap_environment(database, topic, cfg)},
        )

        # Ingress ------------------------------------------------------------
        load_balancer = graph.add(
            self._id("alb"),
            ResourceKind.LOAD_BALANCER,
            {
                "internal": False,
                "load_balancer_type": "application",
                "security_groups": [ref(lb_sg)],
                "subnets": public_subnets,
                "tags": cfg.get_tags(self._id("alb")),
            },
        )

        target_group = graph.add(
            self._id("tg"),
            ResourceKind.TARGET_GROUP,
            {
                "port": ports.app,
                "protocol": "HTTP",
                "target_type": "instance",
                "vpc_id": vpc,
                "health_check": {
                    "enabled": True,
                    "interval": 30,
                    "path": "/",
                    "port": "traffic-port",
                    "protocol": "HTTP",
                    "healthy_threshold": 5,
                    "unhealthy_threshold": 2,
                    "timeout": 5,
                },
                "tags": cfg.get_tags(self._id("tg")),
            },
            depends_on=[load_balancer.id],
        )

        graph.add(
            self._id("https-listener"),
            ResourceKind.LISTENER,
            {
                "load_balancer_arn": ref(load_balancer, "arn"),
                "port": ports.https,
                "protocol": "HTTPS",
                "ssl_policy": SSL_POLICY,
                "certificate_arn": cfg.certificate_ref,
                "default_actions": [
                    {"type": "forward", "target_group_arn": ref(target_group, "arn")},
                ],
            },
        )

        self._add_autoscaling(graph, launch_template, target_group, accumulator)

        # DNS ----------------------------------------------------------------
        graph.add(
            self._id("dns-record"),
            ResourceKind.DNS_RECORD,
            {
                "name": cfg.dns.sub_domain,
                "type": cfg.dns.record_type,
                "aliases": [
                    {
                        "name": ref(load_balancer, "dns_name"),
                        "zone_id": ref(load_balancer, "zone_id"),
                        "evaluate_target_health": True,
                    }
                ],
            },
            metadata={"hosted_zone": cfg.dns.sub_domain},
        )

    def _add_database(
        self,
        graph: _PlanGraph,
        db_sg: ResourceNode,
        private_subnets: list[NodeRef],
    ) -> ResourceNode:
        db = self.config.database
        private_ids = [subnet.node_id for subnet in private_subnets]

        parameter_group = graph.add(
            self._id("db-parameter-group"),
            ResourceKind.DB_PARAMETER_GROUP,
            {"family": db.parameter_group_family, "description": "DB parameter group"},
            depends_on=private_ids,
        )

        # Spans every private subnet collected so far
        subnet_group = graph.add(
            self._id("db-subnet-group"),
            ResourceKind.DB_SUBNET_GROUP,
            {
                "subnet_ids": private_subnets,
                "tags": self.config.get_tags(self._id("db-subnet-group")),
            },
        )

        return graph.add(
            self._id("db"),
            ResourceKind.DATABASE,
            {
                "engine": db.engine,
                "instance_class": db.instance_class,
                "allocated_storage": db.allocated_storage,
                "db_name": db.credentials.name,
                "username": db.credentials.username,
                "password": db.credentials.password,
                "parameter_group_name": ref(parameter_group, "name"),
                "vpc_security_group_ids": [ref(db_sg)],
                "db_subnet_group_name": ref(subnet_group, "name"),
                "skip_final_snapshot": db.skip_final_snapshot,
                "publicly_accessible": db.publicly_accessible,
                "identifier": db.identifier,
                "tags": self.config.get_tags(self._id("db")),
            },
        )

    def _add_autoscaling(
        self,
        graph: _PlanGraph,
        launch_template: ResourceNode,
        target_group: ResourceNode,
        accumulator: ZoneAccumulator,
    ) -> None:
        compute = self.config.compute

        group = graph.add(
            self._id("asg"),
            ResourceKind.AUTOSCALING_GROUP,
            {
                # Terminal zone's public subnet only, see module docstring
                "vpc_zone_identifiers": [NodeRef(accumulator.last_public_subnet_id)],
                "min_size": compute.min_size,
                "max_size": compute.max_size,
                "desired_capacity": compute.desired_capacity,
                "launch_template": {"id": ref(launch_template), "version": "$Latest"},
                "target_group_arns": [ref(target_group, "arn")],
                "health_check_grace_period": compute.health_check_grace_period,
                "tags": [
                    {"key": "Name", "value": self._id("web"), "propagate_at_launch": True},
                ],
            },
        )

        for direction, adjustment, operator, threshold in (
            ("up", 1, "GreaterThanThreshold", compute.scale_up_threshold),
            ("down", -1, "LessThanThreshold", compute.scale_down_threshold),
        ):
            policy = graph.add(
                self._id(f"scale-{direction}-policy"),
                ResourceKind.SCALING_POLICY,
                {
                    "autoscaling_group_name": ref(group, "name"),
                    "adjustment_type": "ChangeInCapacity",
                    "scaling_adjustment": adjustment,
                    "cooldown": compute.cooldown,
                },
            )
            graph.add(
                self._id(f"cpu-{'high' if adjustment > 0 else 'low'}-alarm"),
                ResourceKind.METRIC_ALARM,
                {
                    "comparison_operator": operator,
                    "evaluation_periods": 2,
                    "metric_name": "CPUUtilization",
                    "namespace": "AWS/EC2",
                    "period": 300,
                    "statistic": "Average",
                    "threshold": threshold,
                    "alarm_actions": [ref(policy, "arn")],
                    "dimensions": {"AutoScalingGroupName": ref(group, "name")},
                },
            )


def build_plan(
    allocations: Sequence[ZoneAllocation],
    config: TopologyConfig,
    *,
    skipped: Sequence[ZoneAllocationSkipped] = (),
) -> Plan:
    """Build the plan for ``allocations`` with ``config``."""
    return TopologyGraphBuilder(config).build(allocations, skipped=skipped)

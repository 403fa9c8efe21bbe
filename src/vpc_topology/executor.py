"""
Topology Component - plan realization

Walks a `Plan` in dependency order and creates one pulumi_aws resource per
node, parented to a single component so the whole topology shows up as one
tree in `pulumi preview`.

Attribute resolution:
---------------------
- `NodeRef`     -> output attribute of the already created resource
- `SecretStr`   -> `pulumi.Output.secret`, never logged or exported in clear
- dicts/lists   -> resolved recursively and passed as pulumi_aws input dicts

Three node kinds need data that is not a provider argument:
- Launch template: `bootstrap_environment` metadata is rendered into
  base64 user data once the database address and topic ARN are known.
- IAM policy: the structured `policy` document is serialized to JSON once
  the ARNs it references are known.
- DNS record: the hosted zone id is looked up by name from `hosted_zone`.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import Any

import pulumi
import pulumi_aws as aws
from pydantic import SecretStr

from vpc_topology.bootstrap import encode_user_data, render_user_data
from vpc_topology.errors import PlanIntegrityError
from vpc_topology.logging import get_logger
from vpc_topology.types import NodeRef, Plan, ResourceKind, ResourceNode, SubnetRole

log = get_logger("vpc_topology.executor")

RESOURCE_TYPES: dict[ResourceKind, type[pulumi.CustomResource]] = {
    ResourceKind.NETWORK: aws.ec2.Vpc,
    ResourceKind.GATEWAY: aws.ec2.InternetGateway,
    ResourceKind.ROUTE_TABLE: aws.ec2.RouteTable,
    ResourceKind.ROUTE: aws.ec2.Route,
    ResourceKind.SUBNET: aws.ec2.Subnet,
    ResourceKind.ROUTE_TABLE_ASSOCIATION: aws.ec2.RouteTableAssociation,
    ResourceKind.SECURITY_GROUP: aws.ec2.SecurityGroup,
    ResourceKind.DB_PARAMETER_GROUP: aws.rds.ParameterGroup,
    ResourceKind.DB_SUBNET_GROUP: aws.rds.SubnetGroup,
    ResourceKind.DATABASE: aws.rds.Instance,
    ResourceKind.INSTANCE_ROLE: aws.iam.Role,
    ResourceKind.IAM_POLICY: aws.iam.Policy,
    ResourceKind.ROLE_POLICY_ATTACHMENT: aws.iam.RolePolicyAttachment,
    ResourceKind.INSTANCE_PROFILE: aws.iam.InstanceProfile,
    ResourceKind.NOTIFICATION_TOPIC: aws.sns.Topic,
    ResourceKind.LAUNCH_TEMPLATE: aws.ec2.LaunchTemplate,
    ResourceKind.LOAD_BALANCER: aws.lb.LoadBalancer,
    ResourceKind.TARGET_GROUP: aws.lb.TargetGroup,
    ResourceKind.LISTENER: aws.lb.Listener,
    ResourceKind.AUTOSCALING_GROUP: aws.autoscaling.Group,
    ResourceKind.SCALING_POLICY: aws.autoscaling.Policy,
    ResourceKind.METRIC_ALARM: aws.cloudwatch.MetricAlarm,
    ResourceKind.DNS_RECORD: aws.route53.Record,
}


class TopologyStack(pulumi.ComponentResource):
    """Every resource of a plan, created under one component."""

    def __init__(
        self,
        name: str,
        plan: Plan,
        *,
        renderer: Callable[[Mapping[str, str]], str] = render_user_data,
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__("custom:network:Topology", name, None, opts)
        self._renderer = renderer

        self.resources: dict[str, pulumi.CustomResource] = {}
        for node in plan.topological_order():
            self.resources[node.id] = self._create(node)

        log.info("topology_registered", name=name, resources=len(self.resources))

        # =====================================================================
        # Outputs
        # =====================================================================
        self.vpc_id = self.resources[plan.root.id].id
        self.public_subnet_ids = self._subnet_ids(plan, SubnetRole.PUBLIC)
        self.private_subnet_ids = self._subnet_ids(plan, SubnetRole.PRIVATE)

        outputs: dict[str, Any] = {
            "vpc_id": self.vpc_id,
            "public_subnet_ids": self.public_subnet_ids,
            "private_subnet_ids": self.private_subnet_ids,
        }
        for key, kind, attribute in (
            ("database_endpoint", ResourceKind.DATABASE, "endpoint"),
            ("load_balancer_dns_name", ResourceKind.LOAD_BALANCER, "dns_name"),
            ("launch_template_id", ResourceKind.LAUNCH_TEMPLATE, "id"),
            ("notification_topic_arn", ResourceKind.NOTIFICATION_TOPIC, "arn"),
        ):
            nodes = plan.of_kind(kind)
            if nodes:
                outputs[key] = getattr(self.resources[nodes[0].id], attribute)
        self.outputs = outputs
        self.database_endpoint = outputs.get("database_endpoint")
        self.load_balancer_dns_name = outputs.get("load_balancer_dns_name")
        self.launch_template_id = outputs.get("launch_template_id")

        self.register_outputs(outputs)

    def _subnet_ids(self, plan: Plan, role: SubnetRole) -> list[pulumi.Output[str]]:
        return [
            self.resources[node.id].id
            for node in plan.of_kind(ResourceKind.SUBNET)
            if node.role == role
        ]

    def _resolve(self, value: Any) -> Any:
        if isinstance(value, NodeRef):
            try:
                resource = self.resources[value.node_id]
            except KeyError as e:
                raise PlanIntegrityError(
                    f"Reference to {value.node_id!r} before it was created"
                ) from e
            return getattr(resource, value.attribute)
        if isinstance(value, SecretStr):
            return pulumi.Output.secret(value.get_secret_value())
        if isinstance(value, Mapping):
            return {key: self._resolve(item) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._resolve(item) for item in value]
        return value

    def _create(self, node: ResourceNode) -> pulumi.CustomResource:
        args = self._resolve(node.attributes)

        if node.kind == ResourceKind.LAUNCH_TEMPLATE:
            environment = self._resolve(node.metadata.get("bootstrap_environment", {}))
            args["user_data"] = pulumi.Output.all(**environment).apply(
                lambda env: encode_user_data(self._renderer(env))
            )
        elif node.kind == ResourceKind.IAM_POLICY:
            args["policy"] = pulumi.Output.from_input(args["policy"]).apply(json.dumps)
        elif node.kind == ResourceKind.DNS_RECORD and "zone_id" not in args:
            hosted_zone = aws.route53.get_zone_output(
                name=node.metadata["hosted_zone"],
                private_zone=False,
            )
            args["zone_id"] = hosted_zone.zone_id

        resource_type = RESOURCE_TYPES[node.kind]
        return resource_type(
            node.id,
            **args,
            opts=pulumi.ResourceOptions(
                parent=self,
                depends_on=[self.resources[dep] for dep in sorted(node.depends_on)],
            ),
        )

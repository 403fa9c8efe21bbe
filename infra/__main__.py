"""
VPC Topology Infrastructure - Main Pulumi Program

Plans and deploys a multi-zone web application network: one VPC, a
public/private subnet pair per availability zone, and a shared tier
(database, autoscaled compute behind an HTTPS load balancer, DNS alias)
built once on top of every zone.

Flow:
-----
stack config + .env -> TopologyConfig
provider lookups    -> occupied subnet blocks || availability zones
planner             -> Plan (dependency ordered resource nodes)
TopologyStack       -> pulumi_aws resources

Configuration:
--------------
    pulumi config set region us-east-1
    pulumi config set vpcCidr 10.0.0.0/16
    pulumi config set subnetPrefixLength 24
    pulumi config set numOfSubnets 3
    ...

DB_PASSWORD is read from the environment (infra/.env for local runs),
never from stack config.
"""

import pulumi
from dotenv import load_dotenv

from vpc_topology.config import TopologyConfig
from vpc_topology.discovery import run_discovery
from vpc_topology.executor import TopologyStack
from vpc_topology.logging import get_logger
from vpc_topology.planner import plan_from_environment

# Load .env file if present (for local development)
load_dotenv()

log = get_logger("infra")

stack_config = pulumi.Config()
config = TopologyConfig.from_pulumi(stack_config)

# =============================================================================
# Discovery - what already exists in the account
# =============================================================================
# Without discoveryVpcId every subnet in the region counts as occupied, so
# new blocks never collide with anything already deployed.

environment = run_discovery(network_id=stack_config.get("discoveryVpcId"))

# =============================================================================
# Plan - zones, subnet blocks, resource graph
# =============================================================================

plan = plan_from_environment(config, environment)
for diagnostic in plan.skipped:
    pulumi.log.warn(diagnostic.message)

# =============================================================================
# Topology - realize the plan
# =============================================================================

topology = TopologyStack(config.name, plan)

# =============================================================================
# Outputs
# =============================================================================

pulumi.export("vpc_id", topology.vpc_id)
pulumi.export("public_subnet_ids", topology.public_subnet_ids)
pulumi.export("private_subnet_ids", topology.private_subnet_ids)
pulumi.export("zones", [a.zone for a in plan.allocations])

for key in ("database_endpoint", "load_balancer_dns_name", "launch_template_id"):
    if key in topology.outputs:
        pulumi.export(key, topology.outputs[key])

log.info("stack_outputs_exported", nodes=len(plan), zones=len(plan.allocations))

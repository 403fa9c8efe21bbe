"""Pytest fixtures and configuration for topology tests."""

from __future__ import annotations

import os

# Set environment variables BEFORE any imports that might load settings
# This is necessary because settings are cached at import time
os.environ.setdefault("APP_MODE", "development")
os.environ.setdefault("LOG_LEVEL", "silent")
os.environ.setdefault("DB_PASSWORD", "test-db-password")

import pytest
from pydantic import SecretStr

from vpc_topology.allocator import allocate
from vpc_topology.config import (
    ComputeConfig,
    DatabaseConfig,
    DatabaseCredentials,
    DnsConfig,
    PortConfig,
    TopologyConfig,
)
from vpc_topology.types import AddressBlock, ZoneAllocation


@pytest.fixture
def sample_config() -> TopologyConfig:
    """Topology config for a /16 VPC split into /24 subnets over three zones."""
    return TopologyConfig(
        name="webapp",
        region="us-east-1",
        vpc_cidr="10.0.0.0/16",
        subnet_prefix_length=24,
        requested_zone_count=3,
        ports=PortConfig(ssh=22, http=80, https=443, app=8080),
        database=DatabaseConfig(
            engine="mariadb",
            instance_class="db.t3.micro",
            allocated_storage=20,
            credentials=DatabaseCredentials(
                name="csye6225",
                username="csye6225",
                password=SecretStr("test-db-password"),
            ),
            identifier="csye6225",
            skip_final_snapshot=True,
            publicly_accessible=False,
        ),
        compute=ComputeConfig(
            image_id="ami-0123456789abcdef0",
            instance_type="t2.micro",
            key_name="deployer",
        ),
        dns=DnsConfig(sub_domain="demo.example.com"),
        certificate_ref="arn:aws:acm:us-east-1:123456789012:certificate/test",
    )


@pytest.fixture
def zones() -> list[str]:
    """Three availability zones in discovery order."""
    return ["us-east-1a", "us-east-1b", "us-east-1c"]


@pytest.fixture
def blocks() -> list[AddressBlock]:
    """Six consecutive /24 blocks from 10.0.0.0/16."""
    return [AddressBlock.parse(f"10.0.{i}.0/24") for i in range(6)]


@pytest.fixture
def allocations(zones: list[str], blocks: list[AddressBlock]) -> list[ZoneAllocation]:
    """Strict allocations for three zones, terminal on the last one."""
    return allocate(zones, blocks)

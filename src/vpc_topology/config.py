"""Topology configuration - single source of truth.

Every parameter the planner and executor need is declared here, not scattered
across modules or hardcoded in the Pulumi program.

Usage:
    from vpc_topology.config import TopologyConfig

    # In infra/__main__.py
    config = TopologyConfig.from_pulumi()

    # From a JSON file (CLI dry runs)
    config = TopologyConfig.from_file(Path("topology.json"))
"""

from __future__ import annotations

from pathlib import Path

import pulumi
from pydantic import Field, SecretStr, ValidationError, field_validator

from vpc_topology.base import StrictModel
from vpc_topology.errors import ConfigurationError, InvalidAddressBlockError
from vpc_topology.settings import get_settings
from vpc_topology.types import AddressBlock


class PortConfig(StrictModel):
    """Ports opened by the security groups.

    The load balancer only listens on `https`. `http` is accepted from stack
    config but opens nothing, so it is optional.
    """

    ssh: int = Field(ge=1, le=65535)
    http: int | None = Field(default=None, ge=1, le=65535)
    https: int = Field(ge=1, le=65535)
    app: int = Field(ge=1, le=65535)


class DatabaseCredentials(StrictModel):
    """Initial database name and master credentials."""

    name: str
    username: str
    password: SecretStr


class DatabaseConfig(StrictModel):
    """Managed database instance settings."""

    engine: str
    instance_class: str
    allocated_storage: int = Field(ge=1)
    credentials: DatabaseCredentials
    identifier: str
    skip_final_snapshot: bool
    publicly_accessible: bool
    port: int = Field(default=3306, ge=1, le=65535)
    parameter_group_family: str = "mariadb10.6"


class ComputeConfig(StrictModel):
    """Launch template and autoscaling settings for the compute tier."""

    image_id: str
    instance_type: str
    key_name: str
    root_volume_size: int = Field(default=25, ge=1)
    min_size: int = Field(default=1, ge=0)
    max_size: int = Field(default=3, ge=1)
    desired_capacity: int = Field(default=1, ge=0)
    health_check_grace_period: int = 300
    cooldown: int = 60
    scale_up_threshold: float = 5.0
    scale_down_threshold: float = 3.0


class DnsConfig(StrictModel):
    """Alias record pointing at the load balancer."""

    sub_domain: str
    record_type: str = "A"


class TopologyConfig(StrictModel):
    """Topology configuration for one provisioning run."""

    # Identification
    name: str = "webapp"
    project_tag: str = "vpc-topology"
    region: str

    # Network
    vpc_cidr: str
    subnet_prefix_length: int = Field(ge=1, le=32)
    requested_zone_count: int = Field(ge=1)
    public_route_cidr: str = "0.0.0.0/0"

    # Tiers
    ports: PortConfig
    database: DatabaseConfig
    compute: ComputeConfig
    dns: DnsConfig
    certificate_ref: str

    # Skip zones that cannot get a full subnet pair instead of failing the run
    allow_degraded_zones: bool = False

    @field_validator("vpc_cidr", "public_route_cidr")
    @classmethod
    def _check_cidr(cls, value: str) -> str:
        try:
            AddressBlock.parse(value)
        except InvalidAddressBlockError as e:
            raise ValueError(e.message) from e
        return value

    @property
    def vpc_block(self) -> AddressBlock:
        return AddressBlock.parse(self.vpc_cidr)

    @classmethod
    def from_pulumi(cls, config: pulumi.Config | None = None) -> TopologyConfig:
        """Load config from the Pulumi stack.

        Keys follow the stack's existing naming, e.g.
        `pulumi config set numOfSubnets 3`. The database password is read
        from the DB_PASSWORD environment variable, never from stack config.

        Raises:
            ConfigurationError: A required key or the password is missing,
                or a value fails validation.
        """
        config = config or pulumi.Config()
        settings = get_settings()
        if settings.db_password is None:
            raise ConfigurationError(
                "Missing required environment variable: DB_PASSWORD\n"
                "Copy infra/.env.example to infra/.env and set your values."
            )

        try:
            return cls(
                name=config.get("vpcName") or cls.model_fields["name"].default,
                region=config.require("region"),
                vpc_cidr=config.require("vpcCidr"),
                subnet_prefix_length=config.require_int("subnetPrefixLength"),
                requested_zone_count=config.require_int("numOfSubnets"),
                public_route_cidr=(
                    config.get("publicRouteCidr") or cls.model_fields["public_route_cidr"].default
                ),
                ports=PortConfig(
                    ssh=config.require_int("sshPort"),
                    http=config.get_int("httpPort"),
                    https=config.require_int("httpsPort"),
                    app=config.require_int("appPort"),
                ),
                database=DatabaseConfig(
                    engine=config.require("db_engine"),
                    instance_class=config.require("instance_class"),
                    allocated_storage=config.require_int("allocated_storage"),
                    credentials=DatabaseCredentials(
                        name=config.require("db_name"),
                        username=config.require("db_username"),
                        password=settings.db_password,
                    ),
                    identifier=config.require("identifier"),
                    skip_final_snapshot=config.require_bool("skip_final_snapshot"),
                    publicly_accessible=config.require_bool("publicly_accessible"),
                ),
                compute=ComputeConfig(
                    image_id=config.require("instanceAmi"),
                    instance_type=config.require("instanceType"),
                    key_name=config.require("keyName"),
                    root_volume_size=config.require_int("rootVolumeSize"),
                ),
                dns=DnsConfig(
                    sub_domain=config.require("subDomain"),
                    record_type=config.require("recordType"),
                ),
                certificate_ref=config.require("sslCertificateArn"),
                allow_degraded_zones=config.get_bool("allowDegradedZones") or False,
            )
        except (pulumi.ConfigMissingError, pulumi.ConfigTypeError) as e:
            raise ConfigurationError(str(e)) from e
        except ValidationError as e:
            raise ConfigurationError(f"Invalid topology configuration:\n{e}") from e

    @classmethod
    def from_file(cls, path: Path) -> TopologyConfig:
        """Load config from a JSON file.

        Raises:
            ConfigurationError: The file is missing or fails validation.
        """
        try:
            return cls.model_validate_json(path.read_text())
        except FileNotFoundError as e:
            raise ConfigurationError(f"Config file not found: {path}") from e
        except ValidationError as e:
            raise ConfigurationError(f"Invalid topology configuration in {path}:\n{e}") from e

    def get_tags(self, name: str) -> dict[str, str]:
        """Generate standard tags for a resource.

        Args:
            name: Resource name

        Returns:
            Dict of tags including Name and Project
        """
        return {
            "Name": name,
            "Project": self.project_tag,
        }

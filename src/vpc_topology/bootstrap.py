"""Compute tier bootstrap data.

The plan carries the bootstrap environment as structured key/value data on the
launch template node. Values are either plain strings, secrets, or `NodeRef`
placeholders for outputs that only exist once the database and topic are
created. Turning that mapping into a user-data script is the executor's job;
`render_user_data` is the renderer it uses by default.
"""

from __future__ import annotations

import base64
import shlex
from collections.abc import Mapping
from typing import Any

from vpc_topology.config import TopologyConfig
from vpc_topology.types import NodeRef, ResourceNode

PROPERTIES_FILE = "/opt/csye6225/webapp/application.properties"
CLOUDWATCH_AGENT_CTL = "/opt/aws/amazon-cloudwatch-agent/bin/amazon-cloudwatch-agent-ctl"
CLOUDWATCH_AGENT_CONFIG = "/opt/aws/amazon-cloudwatch-agent/etc/amazon-cloudwatch-agent.json"


def bootstrap_environment(
    database: ResourceNode,
    topic: ResourceNode,
    config: TopologyConfig,
) -> dict[str, Any]:
    """Environment variables the web application reads at boot."""
    credentials = config.database.credentials
    return {
        "DB_HOST": NodeRef(database.id, "address"),
        "DB_USER": credentials.username,
        "DB_PASSWORD": credentials.password,
        "DB_NAME": credentials.name,
        "DB_ENGINE": config.database.engine,
        "AWS_REGION": config.region,
        "SNS_TOPIC_ARN": NodeRef(topic.id, "arn"),
    }


def render_user_data(environment: Mapping[str, str], properties_file: str = PROPERTIES_FILE) -> str:
    """Render a boot script that writes ``environment`` and restarts the CloudWatch agent."""
    lines = [
        "#!/bin/bash",
        f"ENV_FILE={shlex.quote(properties_file)}",
        "",
        "# Writing environment variables to a file",
        ': > "${ENV_FILE}"',
    ]
    lines += [
        f'echo {shlex.quote(f"{key}={value}")} >> "${{ENV_FILE}}"'
        for key, value in environment.items()
    ]
    lines += [
        "",
        "# Restart the CloudWatch Agent",
        f"sudo {CLOUDWATCH_AGENT_CTL} \\",
        "    -m ec2 \\",
        f"    -c file:{CLOUDWATCH_AGENT_CONFIG} \\",
        "    -s",
        "",
    ]
    return "\n".join(lines)


def encode_user_data(script: str) -> str:
    """Base64 encode a script, as launch templates expect."""
    return base64.b64encode(script.encode("utf-8")).decode("ascii")

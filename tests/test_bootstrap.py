"""Tests for compute bootstrap data."""

from __future__ import annotations

import base64

from pydantic import SecretStr

from vpc_topology.bootstrap import (
    PROPERTIES_FILE,
    bootstrap_environment,
    encode_user_data,
    render_user_data,
)
from vpc_topology.config import TopologyConfig
from vpc_topology.types import NodeRef, ResourceKind, ResourceNode


class TestBootstrapEnvironment:
    """Tests for bootstrap_environment."""

    def test_references_and_values(self, sample_config: TopologyConfig) -> None:
        """Test outputs are references and config values are literal."""
        database = ResourceNode(id="webapp-db", kind=ResourceKind.DATABASE)
        topic = ResourceNode(id="webapp-notifications", kind=ResourceKind.NOTIFICATION_TOPIC)

        environment = bootstrap_environment(database, topic, sample_config)

        assert environment["DB_HOST"] == NodeRef("webapp-db", "address")
        assert environment["SNS_TOPIC_ARN"] == NodeRef("webapp-notifications", "arn")
        assert environment["DB_USER"] == "csye6225"
        assert environment["DB_ENGINE"] == "mariadb"
        assert environment["AWS_REGION"] == "us-east-1"
        assert isinstance(environment["DB_PASSWORD"], SecretStr)


class TestRenderUserData:
    """Tests for render_user_data and encode_user_data."""

    def test_writes_every_variable(self) -> None:
        """Test each variable is appended to the properties file."""
        script = render_user_data({"DB_HOST": "db.internal", "DB_NAME": "app"})

        assert script.startswith("#!/bin/bash\n")
        assert f"ENV_FILE={PROPERTIES_FILE}" in script
        assert 'echo DB_HOST=db.internal >> "${ENV_FILE}"' in script
        assert 'echo DB_NAME=app >> "${ENV_FILE}"' in script
        assert "amazon-cloudwatch-agent-ctl" in script

    def test_quotes_values(self) -> None:
        """Test shell metacharacters in values are quoted."""
        script = render_user_data({"DB_PASSWORD": "p@ss word;rm -rf /"})

        assert "echo 'DB_PASSWORD=p@ss word;rm -rf /' >>" in script

    def test_encode(self) -> None:
        """Test base64 encoding decodes back to the script."""
        script = render_user_data({"A": "1"})

        assert base64.b64decode(encode_user_data(script)).decode("utf-8") == script

"""Tests for the offline planning CLI."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console

from vpc_topology.cli import main
from vpc_topology.config import TopologyConfig


@pytest.fixture(autouse=True)
def wide_console() -> Iterator[None]:
    """Keep rich from wrapping table cells in captured output."""
    with patch("vpc_topology.cli.console", Console(width=240)):
        yield


class TestAllocateCommand:
    """Tests for `vpc-topology allocate`."""

    def test_prints_allocations(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test the table lists each zone with its blocks."""
        code = main(
            [
                "allocate",
                "--vpc-cidr", "10.0.0.0/16",
                "--prefix", "24",
                "--zones", "us-east-1a,us-east-1b",
                "--occupied", "10.0.0.0/24",
            ]
        )

        out = capsys.readouterr().out
        assert code == 0
        assert "us-east-1a" in out
        assert "10.0.1.0/24" in out
        assert "10.0.4.0/24" in out
        assert "10.0.0.0/24" not in out

    def test_count_limits_zones(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test --count bounds the zones used."""
        code = main(
            [
                "allocate",
                "--vpc-cidr", "10.0.0.0/16",
                "--prefix", "24",
                "--zones", "us-east-1a,us-east-1b,us-east-1c",
                "--count", "1",
            ]
        )

        out = capsys.readouterr().out
        assert code == 0
        assert "us-east-1b" not in out

    def test_zero_count_exits_1(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test --count 0 is rejected instead of meaning every zone."""
        code = main(
            [
                "allocate",
                "--vpc-cidr", "10.0.0.0/16",
                "--prefix", "24",
                "--zones", "us-east-1a,us-east-1b",
                "--count", "0",
            ]
        )

        assert code == 1
        assert "INVALID_ZONE_COUNT" in capsys.readouterr().out

    def test_invalid_prefix_exits_1(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test typed errors exit with status 1 and their code."""
        code = main(
            [
                "allocate",
                "--vpc-cidr", "10.0.0.0/16",
                "--prefix", "8",
                "--zones", "us-east-1a",
            ]
        )

        assert code == 1
        assert "INVALID_PREFIX" in capsys.readouterr().out


class TestPlanCommand:
    """Tests for `vpc-topology plan`."""

    def test_prints_plan(
        self,
        sample_config: TopologyConfig,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test the plan table includes the network and shared tier."""
        path = tmp_path / "topology.json"
        path.write_text(sample_config.model_dump_json())

        code = main(["plan", "--config", str(path), "--zones", "us-east-1a,us-east-1b"])

        out = capsys.readouterr().out
        assert code == 0
        assert "webapp-vpc" in out
        assert "LoadBalancer" in out
        assert "Database" in out

    def test_missing_config_exits_1(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test a missing config file is reported, not raised."""
        code = main(["plan", "--config", str(tmp_path / "missing.json"), "--zones", "a"])

        assert code == 1
        assert "CONFIGURATION" in capsys.readouterr().out


def test_no_command(capsys: pytest.CaptureFixture[str]) -> None:
    """Test running without a subcommand prints help."""
    assert main([]) == 0
    assert "allocate" in capsys.readouterr().out

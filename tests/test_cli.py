"""Tests for the root treeq CLI."""

import pytest
from click.testing import CliRunner

from treeq import __version__
from treeq.cli import cli


def test_cli_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("canon", "diff", "assert", "merge"):
        assert command in result.output


def test_cli_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_no_args(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, [])
    assert result.exit_code == 0
    assert "Usage" in result.output


@pytest.mark.parametrize("flag", ["--json", "-q", "-v", "--log-json"])
def test_global_flag_accepted(cli_runner: CliRunner, flag: str) -> None:
    assert cli_runner.invoke(cli, [flag, "--version"]).exit_code == 0


def test_unknown_command_exits_3(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["frobnicate"])
    assert result.exit_code == 3
    assert "No such command" in result.output


def test_unknown_option_exits_3(cli_runner: CliRunner) -> None:
    assert cli_runner.invoke(cli, ["--nope"]).exit_code == 3


def test_missing_config_exits_3(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["-c", "gone.toml", "canon", "x.json"])
    assert result.exit_code == 3
    assert "Config file not found" in result.output


def test_invalid_config_value_exits_3(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["canon", "x.json"], env={"TREEQ_ENGINE__MAX_DEPTH": "0"})
    assert result.exit_code == 3

"""Tests for the canon command."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from click.testing import CliRunner

from treeq.cli import cli

if TYPE_CHECKING:
    from tests.conftest import WriteFile


class TestCanonCommand:
    def test_human_output(self, cli_runner: CliRunner, write_file: WriteFile) -> None:
        path = write_file("in.json", {"b": 1, "a": 2})
        result = cli_runner.invoke(cli, ["canon", str(path)])
        assert result.exit_code == 0
        assert result.stdout.startswith("OK")
        assert result.stdout.rstrip().endswith('"b": 1\n}')

    def test_quiet_is_pipeable(self, cli_runner: CliRunner, write_file: WriteFile) -> None:
        path = write_file("in.json", {"b": 1, "a": 2})
        result = cli_runner.invoke(cli, ["-q", "canon", str(path)])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"a": 2, "b": 1}
        assert result.stdout.index('"a"') < result.stdout.index('"b"')

    def test_json_envelope(self, cli_runner: CliRunner, write_file: WriteFile) -> None:
        path = write_file("in.yaml", "z: 1\na: [2, 1]\n")
        result = cli_runner.invoke(cli, ["--json", "canon", str(path), "--output-format", "json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["ok"] is True
        assert payload["op"] == "canon"
        assert payload["data"]["value"] == {"a": [2, 1], "z": 1}

    def test_stdin(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["-q", "canon", "--format", "jsonl", "-"], input='{"b":1,"a":2}\n[1]\n'
        )
        assert result.exit_code == 0
        assert result.stdout == '{"a":2,"b":1}\n[1]\n'

    def test_stdin_without_format(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["canon", "-"], input="{}")
        assert result.exit_code == 3
        assert "pass --format" in result.stderr

    def test_no_sort_keys(self, cli_runner: CliRunner, write_file: WriteFile) -> None:
        path = write_file("in.json", {"b": 1, "a": 2})
        result = cli_runner.invoke(cli, ["-q", "canon", str(path), "--no-sort-keys"])
        assert result.stdout.index('"b"') < result.stdout.index('"a"')

    def test_normalize_time(self, cli_runner: CliRunner, write_file: WriteFile) -> None:
        path = write_file("in.jsonl", '{"at":"2026-02-23T20:15:30+09:00"}\n')
        result = cli_runner.invoke(cli, ["-q", "canon", str(path), "--normalize-time"])
        assert result.exit_code == 0
        assert result.stdout == '{"at":"2026-02-23T11:15:30Z"}\n'

    def test_invalid_input_exits_3(self, cli_runner: CliRunner, write_file: WriteFile) -> None:
        path = write_file("bad.json", "{")
        result = cli_runner.invoke(cli, ["canon", str(path)])
        assert result.exit_code == 3
        assert result.stdout == ""
        assert "ERROR" in result.stderr

    def test_short_csv_row_exits_3(self, cli_runner: CliRunner, write_file: WriteFile) -> None:
        path = write_file("short.csv", "a,b\n1\n")
        result = cli_runner.invoke(cli, ["canon", str(path)])
        assert result.exit_code == 3
        assert "expected 2 cells" in result.stderr
        assert "Traceback" not in result.output

    def test_engine_max_depth_from_env(
        self, cli_runner: CliRunner, write_file: WriteFile
    ) -> None:
        path = write_file("deep.json", {"a": {"b": {"c": 1}}})
        env = {"TREEQ_ENGINE__MAX_DEPTH": "2"}
        result = cli_runner.invoke(cli, ["canon", str(path)], env=env)
        assert result.exit_code == 3
        assert "deeper than the limit of 2" in result.stderr
        assert cli_runner.invoke(cli, ["canon", str(path)]).exit_code == 0

    def test_bad_format_choice_exits_3(self, cli_runner: CliRunner, write_file: WriteFile) -> None:
        path = write_file("in.json", {})
        result = cli_runner.invoke(cli, ["canon", str(path), "--format", "toml"])
        assert result.exit_code == 3

    def test_verbose_includes_stages(
        self, cli_runner: CliRunner, write_file: WriteFile
    ) -> None:
        path = write_file("in.json", [{"a": 1}])
        result = cli_runner.invoke(cli, ["--json", "-v", "canon", str(path)])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        report = payload["meta"]["stages"]
        assert report["op"] == "canon"
        assert [s["name"] for s in report["stages"]] == ["read", "canon", "render"]
        assert report["stages"][0]["counts"] == {"records": 1}

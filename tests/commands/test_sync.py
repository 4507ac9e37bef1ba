"""Tests for the sync and mr commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from revctl.cli import cli


class TestSyncCommand:
    def test_round_trip(
        self, cli_runner: CliRunner, remote_pair: tuple[Path, Path, Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _, first, second = remote_pair
        for root in (first, second):
            (root / "revctl.toml").write_text('[range]\ndefault_base = "HEAD~1"\n')

        monkeypatch.chdir(first)
        assert cli_runner.invoke(cli, ["approve", "src/*", "--level", "2"]).exit_code == 0
        result = cli_runner.invoke(cli, ["--json", "sync"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["data"]["namespaces"]["approvals"]["pushed"] is True

        monkeypatch.chdir(second)
        assert cli_runner.invoke(cli, ["status"]).exit_code == 1
        result = cli_runner.invoke(cli, ["sync", "--no-push"])
        assert result.exit_code == 0
        assert "fast-forward" in result.stdout
        assert cli_runner.invoke(cli, ["status"]).exit_code == 0

    @pytest.mark.usefixtures("_isolated_repo")
    def test_missing_remote(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "sync", "--timeout", "30"])
        assert result.exit_code == 1
        assert json.loads(result.stderr)["error"]["code"] == "GIT_ERROR"

    @pytest.mark.usefixtures("_isolated_repo")
    def test_timeout_must_be_positive(self, cli_runner: CliRunner) -> None:
        assert cli_runner.invoke(cli, ["sync", "--timeout", "0"]).exit_code == 2


@pytest.mark.usefixtures("_isolated_repo")
class TestMergeRequestCommands:
    def test_fetch_unconfigured(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "mr", "fetch"])
        assert result.exit_code == 1
        assert json.loads(result.stderr)["error"]["code"] == "NOT_CONFIGURED"

    def test_list_empty(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "mr", "list"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["data"]["count"] == 0

    def test_status_unknown(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "mr", "status", "12"])
        assert result.exit_code == 1
        assert json.loads(result.stderr)["error"]["code"] == "NOT_FOUND"

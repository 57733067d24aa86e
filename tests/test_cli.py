"""Tests for the zstate CLI."""
import json

import pytest
from typer.testing import CliRunner

import zstate.cli
import zstate.core.config
from zstate.cli import app
from zstate.core.config import AgentConfig

cli_runner = CliRunner()

CONFIG = """
filesystems:
  tank/data:
    property:
      compression: lz4
"""


@pytest.fixture
def state_file(tmp_path):
    return tmp_path / "state.json"


@pytest.fixture(autouse=True)
def host(runner, state_file, monkeypatch):
    """Route every CLI command to the fake runner and a temporary state file."""
    monkeypatch.setattr(zstate.core.config, "_config", AgentConfig(state_file=str(state_file)))
    monkeypatch.setattr(zstate.cli, "make_runner", lambda config: runner)
    return runner


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "zstate.yml"
    path.write_text(CONFIG)
    return str(path)


class TestHelp:
    def test_main_help(self):
        result = cli_runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("apply", "read", "lookup", "destroy", "layout"):
            assert command in result.output


class TestApply:
    def test_creates_and_records(self, runner, config_file, state_file):
        runner.on_missing_dataset("tank/data", times=1)
        runner.add_filesystem("tank/data", guid="42", properties={"compression": "lz4"})

        result = cli_runner.invoke(app, ["apply", "-c", config_file, "--yes"])

        assert result.exit_code == 0, result.output
        assert runner.issued("zfs create") == ["zfs create -o compression=lz4 -o mountpoint=none tank/data"]
        record = json.loads(state_file.read_text())["resources"]["filesystem.tank/data"]
        assert record["id"] == "42"
        assert record["property"] == [{"name": "compression", "value": "lz4"}]

    def test_second_apply_updates(self, runner, config_file):
        runner.on_missing_dataset("tank/data", times=1)
        runner.on("zfs list -H -o name,guid", "tank/data\t42\n")
        runner.add_filesystem("tank/data", guid="42", properties={"compression": "lz4"})

        cli_runner.invoke(app, ["apply", "-c", config_file, "--yes"])
        result = cli_runner.invoke(app, ["apply", "-c", config_file, "--yes"])

        assert result.exit_code == 0, result.output
        assert len(runner.issued("zfs create")) == 1
        assert runner.issued("zfs set") == []
        assert "update" in result.output

    def test_dry_run_issues_nothing(self, runner, config_file):
        result = cli_runner.invoke(app, ["apply", "-c", config_file, "--dry-run"])

        assert result.exit_code == 0
        assert "create" in result.output
        assert runner.commands == []

    def test_failure_exits_nonzero(self, runner, config_file, state_file):
        runner.on("zfs create", stderr="cannot create 'tank/data': permission denied\n")
        runner.on_missing_dataset("tank/data")

        result = cli_runner.invoke(app, ["apply", "-c", config_file, "--yes"])

        assert result.exit_code == 1
        assert "failed" in result.output
        assert not state_file.exists()

    def test_failed_chown_still_records_the_filesystem(self, runner, tmp_path, state_file):
        path = tmp_path / "owned.yml"
        path.write_text("filesystems:\n  tank/data:\n    mountpoint: /data\n    owner: nobodyx\n")
        runner.on_missing_dataset("tank/data", times=1)
        runner.add_filesystem("tank/data", guid="42", mountpoint="/data")
        runner.on("chown", stderr="chown: invalid user: 'nobodyx'\n")
        runner.on("stat", "root,root,0,0\n")

        result = cli_runner.invoke(app, ["apply", "-c", str(path), "--yes"])

        assert result.exit_code == 1
        record = json.loads(state_file.read_text())["resources"]["filesystem.tank/data"]
        assert record["id"] == "42"

    def test_invalid_config(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("volumes:\n  tank/vol: {}\n")

        result = cli_runner.invoke(app, ["apply", "-c", str(path), "--yes"])

        assert result.exit_code == 1
        assert "volsize" in result.output


class TestInspect:
    def test_read_untracked_uses_lookup(self, runner):
        runner.add_filesystem("tank/data", guid="42")

        result = cli_runner.invoke(app, ["read", "filesystem", "tank/data", "--json"])

        assert result.exit_code == 0, result.output
        assert '"id": "42"' in result.output

    def test_lookup_by_guid(self, runner):
        runner.on("zfs list -H -o name,guid", "tank\t1\ntank/vol\t77\n")
        runner.add_volume("tank/vol", guid="77")

        result = cli_runner.invoke(app, ["lookup", "volume", "77", "--json"])

        assert result.exit_code == 0, result.output
        assert '"name": "tank/vol"' in result.output

    def test_layout(self, runner):
        runner.on("zpool list -HPv tank",
                  "tank\t1.81T\n\t/dev/sda\t-\n\tmirror-0\t-\n\t/dev/sdb\t-\n\t/dev/sdc\t-\n")

        result = cli_runner.invoke(app, ["layout", "tank"])

        assert result.exit_code == 0, result.output
        assert "mirror-0" in result.output
        assert "/dev/sdc" in result.output

    def test_unknown_kind(self):
        result = cli_runner.invoke(app, ["read", "snapshot", "tank@x"])

        assert result.exit_code != 0

    def test_missing_resource(self, runner):
        runner.on_missing_dataset("tank/nope")

        result = cli_runner.invoke(app, ["read", "filesystem", "tank/nope"])

        assert result.exit_code == 1
        assert "dataset does not exist" in result.output


def test_destroy_forgets_record(runner, config_file, state_file):
    runner.on_missing_dataset("tank/data", times=1)
    runner.on("zfs list -H -o name,guid", "tank/data\t42\n")
    runner.add_filesystem("tank/data", guid="42")
    cli_runner.invoke(app, ["apply", "-c", config_file, "--yes"])

    result = cli_runner.invoke(app, ["destroy", "filesystem", "tank/data", "--yes"])

    assert result.exit_code == 0, result.output
    assert runner.issued("zfs destroy") == ["zfs destroy -r tank/data"]
    assert json.loads(state_file.read_text())["resources"] == {}

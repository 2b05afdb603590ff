"""Tests for the command-line interface."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from factoryflow.cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Thread-pool solves starting at two stations."""
    path = tmp_path / "factoryflow.json"
    path.write_text(json.dumps({"balancer": {"use_processes": False, "min_stations": 2}}))
    return path


@pytest.fixture
def configs_file(tmp_path: Path) -> Path:
    path = tmp_path / "configs.json"
    path.write_text(json.dumps({
        "success": True,
        "configData": {"2": {"1": [1, 2, 3], "2": [4, 5]}},
    }))
    return path


def _invoke(runner, config_file, *args):
    return runner.invoke(cli, ["--config", str(config_file), *[str(a) for a in args]])


class TestBalanceCommand:
    """Tests for `factoryflow balance`."""

    def test_writes_response(self, runner, config_file, request_file, tmp_path):
        output = tmp_path / "response.json"
        result = _invoke(runner, config_file, "balance", request_file, "-o", output)

        assert result.exit_code == 0, result.output
        response = json.loads(output.read_text())
        assert response["success"] is True
        assert sorted(sum(response["configData"]["2"].values(), [])) == [1, 2, 3, 4, 5]

    def test_selected_station_counts(self, runner, config_file, request_file, tmp_path):
        output = tmp_path / "response.json"
        result = _invoke(runner, config_file, "balance", request_file, "-m", 3, "-o", output)

        assert result.exit_code == 0, result.output
        assert list(json.loads(output.read_text())["configData"]) == ["3"]

    def test_corrupt_request(self, runner, config_file, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        result = _invoke(runner, config_file, "balance", path)
        assert result.exit_code == 1

    def test_missing_request(self, runner, config_file, tmp_path):
        result = _invoke(runner, config_file, "balance", tmp_path / "missing.json")
        assert result.exit_code == 2


class TestCapacityCommand:
    """Tests for `factoryflow capacity`."""

    def test_json_report(self, runner, config_file, request_file, configs_file):
        result = _invoke(
            runner, config_file, "capacity", request_file,
            "--configs", configs_file, "-m", 2, "-d", 40, "--json",
        )

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["throughputUnitsPerDay"] == 40
        assert report["meetsDemand"] is True
        assert report["productSpacing"] == pytest.approx(90.0)
        assert [ws["id"] for ws in report["workstations"]] == [1, 2]

    def test_balances_on_the_fly(self, runner, config_file, request_file):
        result = _invoke(runner, config_file, "capacity", request_file, "-m", 2, "-d", 40)

        assert result.exit_code == 0, result.output
        assert "demand_bound" in result.output

    def test_bad_hours(self, runner, config_file, request_file, configs_file):
        result = _invoke(
            runner, config_file, "capacity", request_file,
            "--configs", configs_file, "-m", 2, "-d", 40, "-H", 30,
        )
        assert result.exit_code == 1


class TestOtherCommands:
    """Tests for sequence, schedule, validate and info."""

    def test_sequence(self, runner, config_file, request_file):
        result = _invoke(runner, config_file, "sequence", request_file, "-d", 3)

        assert result.exit_code == 0, result.output
        assert "Build order" in result.output
        assert "Solo Solo Solo" in result.output

    def test_schedule_csv(self, runner, config_file, request_file, configs_file, tmp_path):
        output = tmp_path / "schedule.csv"
        result = _invoke(
            runner, config_file, "schedule", request_file,
            "--configs", configs_file, "-m", 2, "-d", 20, "-o", output,
        )

        assert result.exit_code == 0, result.output
        lines = output.read_text().splitlines()
        assert lines[0] == "Sequence,Model,Enter Time,Exit Time"
        assert len(lines) == 21
        assert lines[1].startswith("1,Solo,00:00:00,")

    def test_validate_ok(self, runner, config_file, request_file, configs_file):
        result = _invoke(runner, config_file, "validate", request_file, "--configs", configs_file)

        assert result.exit_code == 0, result.output
        assert "2 stations: valid" in result.output

    def test_validate_bad_assignment(self, runner, config_file, request_file, tmp_path):
        path = tmp_path / "bad_configs.json"
        path.write_text(json.dumps({
            "success": True,
            "configData": {"2": {"1": [4, 5], "2": [1, 2, 3]}},
        }))
        result = _invoke(runner, config_file, "validate", request_file, "--configs", path)

        assert result.exit_code == 1
        assert "placed before its predecessors" in result.output

    def test_info(self, runner):
        result = runner.invoke(cli, ["info"])
        assert result.exit_code == 0
        assert "FactoryFlow" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

"""Tests for schedule export."""

import io
from pathlib import Path

import pytest

from factoryflow.engine.schedule import ScheduleResult, ScheduleSimulator, TravelTimeModel
from factoryflow.io.schedule_export import (
    format_minutes_to_clock,
    schedule_rows,
    write_schedule_csv,
)
from factoryflow.models.line import LineConfig, StationAssignment


@pytest.fixture
def schedule(mixed_model):
    config = LineConfig(
        station_count=3,
        assignment=StationAssignment(stations={1: (1, 2, 3), 2: (4, 5), 3: (6,)}),
        cycle_time=9.0,
    )
    travel = TravelTimeModel(line_length=0.0, conveyor_speed=1.0, total_line_work=22.0)
    return ScheduleSimulator().simulate(config, [2, 1, 2], 60.0, travel, mixed_model)


class TestFormatMinutesToClock:
    """Tests for clock formatting."""

    @pytest.mark.parametrize(
        "minutes, expected",
        [
            (0.0, "00:00:00"),
            (75.5, "01:15:30"),
            (59.999, "01:00:00"),
            (1500.0, "25:00:00"),
            (0.25, "00:00:15"),
        ],
    )
    def test_format(self, minutes, expected):
        assert format_minutes_to_clock(minutes) == expected

    @pytest.mark.parametrize("minutes", [-1.0, float("inf"), float("nan")])
    def test_not_available(self, minutes):
        assert format_minutes_to_clock(minutes) == "N/A"


class TestScheduleRows:
    """Tests for the per-unit projection."""

    def test_rows_in_enter_order(self, schedule, mixed_model):
        rows = schedule_rows(schedule, mixed_model)

        assert [r.sequence for r in rows] == [1, 2, 3]
        assert [r.model_name for r in rows] == ["Beta", "Alpha", "Beta"]
        assert [r.enter_time for r in rows] == [0.0, 60.0, 120.0]

    def test_exit_after_last_task(self, schedule, mixed_model):
        rows = schedule_rows(schedule, mixed_model)
        # Beta: 3 + 4 + 5 at station 1, 2 at station 2, 3 at station 3
        assert rows[0].exit_time == pytest.approx(17.0)

    def test_names_without_task_model(self, schedule):
        rows = schedule_rows(schedule)
        assert rows[0].model_name == "Model 2"

    def test_empty_schedule(self):
        assert schedule_rows(ScheduleResult()) == []


class TestWriteScheduleCsv:
    """Tests for CSV output."""

    def test_write_stream(self, schedule, mixed_model):
        buffer = io.StringIO()
        count = write_schedule_csv(schedule, buffer, mixed_model)
        lines = buffer.getvalue().splitlines()

        assert count == 3
        assert lines[0] == "Sequence,Model,Enter Time,Exit Time"
        assert lines[1] == "1,Beta,00:00:00,00:17:00"
        assert lines[2].startswith("2,Alpha,01:00:00,")
        assert len(lines) == 4

    def test_write_file(self, tmp_path: Path, schedule, mixed_model):
        path = tmp_path / "build_sequence.csv"
        write_schedule_csv(schedule, path, mixed_model)

        content = path.read_text(encoding="utf-8")
        assert content.startswith("Sequence,Model,Enter Time,Exit Time\n")
        assert content.count("\n") == 4

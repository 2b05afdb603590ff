"""Tests for the AssemblyLine context."""

import pytest

from conftest import make_chain
from factoryflow.engine.balancer import BalancerError
from factoryflow.engine.line import AssemblyLine
from factoryflow.engine.throughput import ThroughputRegime
from factoryflow.models.line import StationAssignment
from factoryflow.models.production import OperatingPoint


@pytest.fixture
def line(chain_model, thread_config):
    line = AssemblyLine(chain_model, config=thread_config)
    line.balance([2, 3])
    return line


class TestAssemblyLine:
    """Tests for configuration caching."""

    def test_line_length_from_models(self, chain_model, thread_config):
        """2 x 3 ft per unit, 12 / 1 units long."""
        assert AssemblyLine(chain_model, config=thread_config).line_length == 72.0

    def test_line_length_override(self, chain_model, thread_config):
        assert AssemblyLine(chain_model, config=thread_config, line_length=100.0).line_length == 100.0

    def test_balance_caches_configs(self, line):
        assert line.station_counts == [2, 3]
        assert line.get_config(2).cycle_time == pytest.approx(6.0)

    def test_configs_is_a_copy(self, line):
        line.configs.clear()
        assert line.station_counts == [2, 3]

    def test_missing_config(self, line):
        with pytest.raises(BalancerError, match="4 stations"):
            line.get_config(4)

    def test_with_task_model_drops_configs(self, line):
        changed = line.with_task_model(make_chain([1.0, 1.0, 1.0]))

        assert changed.station_counts == []
        assert changed.config is line.config
        assert changed.line_length == 18.0
        # Original untouched
        assert line.station_counts == [2, 3]

    def test_set_assignment_invalid(self, line):
        """Hand-edited assignments are kept even when invalid."""
        bad = StationAssignment(stations={1: (4, 5), 2: (1, 2, 3)})
        validation = line.set_assignment(2, bad)

        assert not validation.valid
        assert validation.invalid_tasks == {4}
        assert line.get_config(2).assignment == bad
        assert line.get_config(2).cycle_time == 6.0
        assert not line.validate(2).valid

    def test_set_assignment_recomputes_cycle_time(self, line):
        validation = line.set_assignment(2, StationAssignment(stations={1: (1, 2), 2: (3, 4, 5)}))
        assert validation.valid
        assert line.get_config(2).cycle_time == 7.0


class TestAssemblyLineQueries:
    """Tests for capacity, sequencing and simulation through the context."""

    def test_metrics(self, line):
        assert line.metrics(2).bottleneck_time == pytest.approx(6.0)

    def test_capacity(self, line):
        op = OperatingPoint(daily_demand=40, op_hours_per_day=8, employee_count=2)
        result = line.capacity(2, op)

        assert result.regime == ThroughputRegime.DEMAND_BOUND
        assert result.units_produced == 40
        assert result.product_spacing == pytest.approx(90.0)

    def test_required_hours_and_max_demand(self, line):
        demand = line.max_demand(2, 8.0)
        assert demand > 0
        assert line.required_hours(2, demand) <= 8.0 + 1e-9

    def test_capacity_thresholds(self, line):
        thresholds = line.capacity_thresholds()
        assert [t.station_count for t in thresholds] == [2, 3]
        assert thresholds[0].max_demand == 240

    def test_sequence(self, line):
        assert line.sequence(3) == [1, 1, 1]

    def test_simulate(self, line):
        op = OperatingPoint(daily_demand=20, op_hours_per_day=8, employee_count=2)
        throughput = line.capacity(2, op)
        schedule = line.simulate(2, op)

        assert len(schedule.units) == 20
        assert schedule.realized_cycle_time == pytest.approx(throughput.effective_cycle_time)

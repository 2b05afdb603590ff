"""
Assembly line context for FactoryFlow.

Holds everything a caller needs to answer questions about one line: the
task model, the balanced configurations per station count and the physical
line length. Orchestrates the component engines for a caller-chosen
operating point:

1. Balance the line for the offerable station counts
2. Pick a station count and compute its station loads
3. Compute capacity at an operating point
4. Sequence the day's demand and simulate the schedule

The context is the only holder of "current configuration" state. Changing
the task model yields a new context without the cached configurations.
"""

import logging
from typing import Iterable, Optional

from factoryflow.config.schema import FactoryflowConfig, get_default_config
from factoryflow.engine.balancer import BalanceResult, BalancerError, LineBalancer
from factoryflow.engine.schedule import ScheduleResult, ScheduleSimulator
from factoryflow.engine.sequencer import MixedModelSequencer
from factoryflow.engine.throughput import (
    CapacityThreshold,
    StationMetrics,
    ThroughputEngine,
    ThroughputResult,
)
from factoryflow.engine.validation import AssignmentValidation, validate_assignment
from factoryflow.models.line import LineConfig, StationAssignment
from factoryflow.models.production import OperatingPoint
from factoryflow.models.tasks import TaskModel

logger = logging.getLogger(__name__)


class AssemblyLine:
    """One line: task model, balanced configurations and geometry.

    Usage:
        line = AssemblyLine(task_model)
        line.balance()

        op = OperatingPoint(daily_demand=400, op_hours_per_day=8, employee_count=5)
        result = line.capacity(5, op)
        schedule = line.simulate(5, op)
    """

    def __init__(
        self,
        task_model: TaskModel,
        config: Optional[FactoryflowConfig] = None,
        configs: Optional[dict[int, LineConfig]] = None,
        line_length: Optional[float] = None,
    ):
        """Initialize the line.

        Args:
            task_model: Tasks and product models built on the line
            config: Engine configuration (uses defaults if None)
            configs: Already balanced configurations keyed by station count
            line_length: Conveyor length (derived from the models if None)
        """
        self.config = config or get_default_config()
        self._task_model = task_model
        self._configs: dict[int, LineConfig] = dict(configs or {})

        self.balancer = LineBalancer(config=self.config)
        self.throughput_engine = ThroughputEngine(config=self.config)
        self.sequencer = MixedModelSequencer(config=self.config)
        self.simulator = ScheduleSimulator(config=self.config)

        if line_length is None:
            line_length = self.throughput_engine.line_length(task_model)
        self._line_length = line_length

    @property
    def task_model(self) -> TaskModel:
        return self._task_model

    @property
    def line_length(self) -> float:
        return self._line_length

    @property
    def configs(self) -> dict[int, LineConfig]:
        """Balanced configurations keyed by station count (a copy)."""
        return dict(self._configs)

    @property
    def station_counts(self) -> list[int]:
        return sorted(self._configs)

    def with_task_model(self, task_model: TaskModel) -> "AssemblyLine":
        """New line for a changed task model; cached configurations are dropped."""
        return AssemblyLine(task_model, config=self.config)

    # -------------------------------------------------------------------------
    # Configurations
    # -------------------------------------------------------------------------

    def balance(
        self,
        station_counts: Optional[Iterable[int]] = None,
        timeout: Optional[float] = None,
    ) -> BalanceResult:
        """Balance the line and cache every configuration found.

        Args:
            station_counts: Counts to solve (default: all offerable counts)
            timeout: Seconds to wait for the whole run

        Returns:
            The BalanceResult of this run
        """
        result = self.balancer.solve(self._task_model, station_counts, timeout=timeout)
        self._configs.update(result.configs)
        logger.info(
            "Balanced %d station counts (%d infeasible, %d failed)",
            len(result.configs),
            len(result.infeasible),
            len(result.errors),
        )
        return result

    def get_config(self, station_count: int) -> LineConfig:
        """Configuration for a station count.

        Raises:
            BalancerError: If the line has not been balanced for it
        """
        config = self._configs.get(station_count)
        if config is None:
            raise BalancerError(f"No balanced configuration for {station_count} stations")
        return config

    def set_assignment(
        self,
        station_count: int,
        assignment: StationAssignment,
    ) -> AssignmentValidation:
        """Replace a configuration with a hand-edited assignment.

        The assignment is stored even when invalid so metrics can still be
        computed on it; the cycle time is recomputed from its station loads.

        Returns:
            Validation of the new assignment
        """
        validation = validate_assignment(self._task_model, assignment)
        metrics = self.throughput_engine.station_metrics(assignment, self._task_model)
        self._configs[station_count] = LineConfig(
            station_count=station_count,
            assignment=assignment,
            cycle_time=metrics.bottleneck_time,
        )
        if not validation.valid:
            logger.warning(
                "Assignment for %d stations has %d problems",
                station_count,
                len(validation.errors),
            )
        return validation

    def validate(self, station_count: int) -> AssignmentValidation:
        return validate_assignment(self._task_model, self.get_config(station_count).assignment)

    # -------------------------------------------------------------------------
    # Capacity and scheduling
    # -------------------------------------------------------------------------

    def metrics(self, station_count: int) -> StationMetrics:
        """Station loads of a configuration."""
        return self.throughput_engine.station_metrics(
            self.get_config(station_count).assignment, self._task_model
        )

    def capacity(self, station_count: int, op: OperatingPoint) -> ThroughputResult:
        """Realizable output of a configuration at an operating point."""
        return self.throughput_engine.capacity(op, self.metrics(station_count), self._line_length)

    def required_hours(self, station_count: int, demand: int) -> float:
        return self.throughput_engine.required_hours(
            demand, self.metrics(station_count), self._line_length
        )

    def max_demand(self, station_count: int, hours: float) -> int:
        return self.throughput_engine.max_demand(
            hours, self.metrics(station_count), self._line_length
        )

    def capacity_thresholds(self) -> list[CapacityThreshold]:
        return self.throughput_engine.capacity_thresholds(self._configs, self._task_model)

    def sequence(self, daily_demand: int) -> list[int]:
        """Levelled build order of model ids for a day."""
        return self.sequencer.sequence(self._task_model.models, daily_demand)

    def simulate(
        self,
        station_count: int,
        op: OperatingPoint,
        final_task_id: Optional[int] = None,
    ) -> ScheduleResult:
        """Simulate the day at an operating point.

        Units are launched at the effective cycle time of the capacity
        result, so the realized cycle time can be compared with it.
        """
        throughput = self.capacity(station_count, op)
        return self.simulator.simulate_day(
            self._task_model,
            self.get_config(station_count),
            throughput,
            self._line_length,
            final_task_id=final_task_id,
        )

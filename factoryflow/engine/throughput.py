"""
Throughput and capacity engine for FactoryFlow.

Deterministic "factory physics" for a paced conveyor line. Given a station
assignment and an operating point it computes the bottleneck, the conveyor
speed, work-in-process and the number of units that can really be built in
a finite operating day.

Capacity formula:
    Product Spacing        = Fastest Station Time * Spacing Factor
    Traversal Intervals    = Line Length / Product Spacing   (= WIP)
    Bottleneck Traversal   = Traversal Intervals * Bottleneck Time
    Launch Window          = Horizon - Bottleneck Traversal
    Physical Max Units     = floor(Launch Window / Bottleneck Time) + 1

    Capacity-bound (demand > physical max):
        Effective Cycle Time = Bottleneck Time
        Units Produced       = Physical Max Units
    Demand-bound:
        Effective Cycle Time = Horizon / (Demand - 1 + Traversal Intervals)
        Units Produced       = Demand

    Conveyor Speed = Product Spacing / Effective Cycle Time
"""

import math
import statistics
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from factoryflow.config.schema import FactoryflowConfig, get_default_config
from factoryflow.models.line import LineConfig, StationAssignment
from factoryflow.models.production import OperatingPoint
from factoryflow.models.tasks import TaskModel

# Tolerance for floor() on launch windows that land on an exact multiple
_EPSILON = 1e-9


class ThroughputRegime(str, Enum):
    """What limits the day's output."""

    CAPACITY_BOUND = "capacity_bound"  # demand exceeds what the line can build
    DEMAND_BOUND = "demand_bound"      # line is slowed to spread demand over the day
    NO_DATA = "no_data"                # degenerate line, nothing computed


@dataclass
class WorkstationMetrics:
    """Per-station load and idle statistics."""

    station_id: int
    cycle_time: float
    station_length: float
    efficiency: float = 0.0
    idle_per_cycle: float = 0.0
    daily_idle_time: float = 0.0


@dataclass
class StationMetrics:
    """Station loads for an assignment."""

    stations: list[WorkstationMetrics]
    bottleneck_time: float
    fastest_time: float  # math.inf when no station has work

    @property
    def is_empty(self) -> bool:
        return self.bottleneck_time <= 0


@dataclass
class ThroughputResult:
    """Realizable output of the line at one operating point."""

    regime: ThroughputRegime
    daily_demand: int
    wip: float
    throughput_units_per_hour: float
    conveyor_speed: float
    product_spacing: float
    effective_cycle_time: float
    units_produced: int
    physical_max_units: int
    bottleneck_time: float
    bottleneck_throughput_time: float
    workstations: list[WorkstationMetrics] = field(default_factory=list)
    average_efficiency: float = 0.0
    total_idle_time: float = 0.0
    balance_delay: float = 0.0
    idle_time_cv: float = 0.0

    @property
    def meets_demand(self) -> bool:
        return self.units_produced >= self.daily_demand

    @property
    def throughput_units_per_day(self) -> int:
        return self.units_produced

    @property
    def line_throughput_time(self) -> float:
        """Minutes for one unit to traverse the line at the effective pace."""
        return self.wip * self.effective_cycle_time

    def to_report(self) -> dict[str, Any]:
        """Capacity query output consumed by reporting modules."""
        return {
            "wip": self.wip,
            "throughputUnitsPerHour": self.throughput_units_per_hour,
            "conveyorSpeed": self.conveyor_speed,
            "productSpacing": self.product_spacing,
            "effectiveCycleTime": self.effective_cycle_time,
            "workstations": [
                {
                    "id": ws.station_id,
                    "cycleTime": ws.cycle_time,
                    "stationLength": ws.station_length,
                    "efficiency": ws.efficiency,
                    "dailyIdleTime": ws.daily_idle_time,
                }
                for ws in self.workstations
            ],
            "averageEfficiency": self.average_efficiency,
            "totalIdleTime": self.total_idle_time,
            "balanceDelay": self.balance_delay,
            "idleTimeCv": self.idle_time_cv,
            "throughputUnitsPerDay": self.units_produced,
            "meetsDemand": self.meets_demand,
        }


@dataclass
class CapacityThreshold:
    """Largest daily demand a configuration supports in a full day."""

    station_count: int
    bottleneck_time: float
    max_demand: int


class ThroughputEngine:
    """Computes station loads and line capacity.

    Pure and stateless apart from its configuration; safe to call
    repeatedly and from several threads.
    """

    def __init__(self, config: Optional[FactoryflowConfig] = None):
        """Initialize throughput engine.

        Args:
            config: Engine configuration (uses defaults if None)
        """
        self.config = config or get_default_config()

    @property
    def spacing_factor(self) -> float:
        return self.config.geometry.product_spacing_factor

    # -------------------------------------------------------------------------
    # Station loads
    # -------------------------------------------------------------------------

    def station_metrics(
        self,
        assignment: StationAssignment,
        task_model: TaskModel,
    ) -> StationMetrics:
        """Cycle time of every station, plus bottleneck and fastest times.

        Unknown task ids are skipped.
        """
        times = task_model.effective_times()
        stations = []
        bottleneck = 0.0
        fastest = math.inf

        for station_id in assignment.station_ids:
            cycle_time = 0.0
            base_work = 0.0
            for task_id in assignment.tasks_at(station_id):
                task = task_model.get_task(task_id)
                if task is None:
                    continue
                cycle_time += times[task_id]
                base_work += task.base_time

            stations.append(WorkstationMetrics(
                station_id=station_id,
                cycle_time=cycle_time,
                station_length=base_work * self.spacing_factor,
            ))
            bottleneck = max(bottleneck, cycle_time)
            if 0 < cycle_time < fastest:
                fastest = cycle_time

        return StationMetrics(stations=stations, bottleneck_time=bottleneck, fastest_time=fastest)

    def product_spacing(self, metrics: StationMetrics) -> float:
        """Conveyor distance between launched units (0 for an empty line)."""
        if math.isinf(metrics.fastest_time):
            return 0.0
        return metrics.fastest_time * self.spacing_factor

    # -------------------------------------------------------------------------
    # Capacity
    # -------------------------------------------------------------------------

    def capacity(
        self,
        op: OperatingPoint,
        metrics: StationMetrics,
        line_length: float,
    ) -> ThroughputResult:
        """Realizable output at an operating point.

        Args:
            op: Demand, operating hours and employee count
            metrics: Station loads of the configuration in use
            line_length: Physical conveyor length

        Returns:
            ThroughputResult; a zero-valued NO_DATA result for degenerate
            lines (no work, zero spacing or zero line length)
        """
        bottleneck = metrics.bottleneck_time
        spacing = self.product_spacing(metrics)
        horizon = op.horizon_minutes

        if spacing <= 0 or bottleneck <= 0 or line_length < 0:
            return self._zero_result(op, metrics)

        intervals = line_length / spacing
        bottleneck_traversal = intervals * bottleneck
        physical_max = self._physical_max_units(horizon, bottleneck, bottleneck_traversal)

        if op.daily_demand > physical_max:
            regime = ThroughputRegime.CAPACITY_BOUND
            effective_cycle_time = bottleneck
            units = physical_max
        else:
            regime = ThroughputRegime.DEMAND_BOUND
            units = op.daily_demand
            if op.daily_demand <= 1:
                effective_cycle_time = bottleneck
            else:
                effective_cycle_time = horizon / (op.daily_demand - 1 + intervals)

        if effective_cycle_time <= 0:
            return self._zero_result(op, metrics)

        conveyor_speed = spacing / effective_cycle_time
        traversal = intervals * effective_cycle_time

        if units <= 0:
            production_minutes = 0.0
        elif units == 1:
            production_minutes = traversal
        else:
            production_minutes = effective_cycle_time * (units - 1) + traversal

        per_hour = (units / production_minutes) * 60 if production_minutes > 0 else 0.0

        result = ThroughputResult(
            regime=regime,
            daily_demand=op.daily_demand,
            wip=intervals,
            throughput_units_per_hour=per_hour,
            conveyor_speed=conveyor_speed,
            product_spacing=spacing,
            effective_cycle_time=effective_cycle_time,
            units_produced=units,
            physical_max_units=physical_max,
            bottleneck_time=bottleneck,
            bottleneck_throughput_time=bottleneck_traversal,
        )
        self._apply_station_statistics(result, op, metrics)
        return result

    def _physical_max_units(self, horizon: float, bottleneck: float, traversal: float) -> int:
        launch_window = horizon - traversal
        if launch_window > 0:
            return math.floor(launch_window / bottleneck + _EPSILON) + 1
        if horizon >= traversal:
            return 1
        return 0

    def _apply_station_statistics(
        self,
        result: ThroughputResult,
        op: OperatingPoint,
        metrics: StationMetrics,
    ) -> None:
        """Fill per-station idle/efficiency and the line balance statistics."""
        bottleneck = metrics.bottleneck_time
        stations = []
        for ws in metrics.stations:
            idle = bottleneck - ws.cycle_time
            stations.append(WorkstationMetrics(
                station_id=ws.station_id,
                cycle_time=ws.cycle_time,
                station_length=ws.station_length,
                efficiency=(ws.cycle_time / bottleneck) * 100 if bottleneck > 0 else 0.0,
                idle_per_cycle=idle,
                daily_idle_time=idle * result.units_produced,
            ))
        result.workstations = stations

        available = op.employee_count * op.horizon_minutes
        productive = result.units_produced * sum(ws.cycle_time for ws in stations)
        result.total_idle_time = max(0.0, available - productive)
        result.average_efficiency = (productive / available) * 100 if available > 0 else 0.0

        if stations:
            result.balance_delay = 100 - statistics.fmean(ws.efficiency for ws in stations)
            idle_times = [ws.idle_per_cycle for ws in stations]
            idle_mean = statistics.fmean(idle_times)
            if idle_mean > 0:
                result.idle_time_cv = (statistics.pstdev(idle_times) / idle_mean) * 100

    def _zero_result(self, op: OperatingPoint, metrics: StationMetrics) -> ThroughputResult:
        return ThroughputResult(
            regime=ThroughputRegime.NO_DATA,
            daily_demand=op.daily_demand,
            wip=0.0,
            throughput_units_per_hour=0.0,
            conveyor_speed=0.0,
            product_spacing=0.0,
            effective_cycle_time=0.0,
            units_produced=0,
            physical_max_units=0,
            bottleneck_time=metrics.bottleneck_time,
            bottleneck_throughput_time=0.0,
            workstations=[
                WorkstationMetrics(
                    station_id=ws.station_id,
                    cycle_time=ws.cycle_time,
                    station_length=ws.station_length,
                )
                for ws in metrics.stations
            ],
        )

    # -------------------------------------------------------------------------
    # Operating point helpers
    # -------------------------------------------------------------------------

    def required_hours(
        self,
        demand: int,
        metrics: StationMetrics,
        line_length: float,
    ) -> float:
        """Operating hours needed to build `demand` units at bottleneck pace.

        Degenerate lines report the longest operating day.
        """
        bottleneck = metrics.bottleneck_time
        spacing = self.product_spacing(metrics)
        if bottleneck <= 0 or spacing <= 0:
            return self.config.capacity.max_operating_hours

        traversal = (line_length / spacing) * bottleneck
        launches = (demand - 1) * bottleneck if demand > 1 else 0.0
        return (launches + traversal) / 60

    def max_demand(
        self,
        hours: float,
        metrics: StationMetrics,
        line_length: float,
    ) -> int:
        """Most units that fit in `hours`, planned in whole hour steps.

        The horizon is floored to the configured granularity (quarter hour
        by default) before the launch window is computed.
        """
        bottleneck = metrics.bottleneck_time
        spacing = self.product_spacing(metrics)
        if bottleneck <= 0 or spacing <= 0:
            return 0

        traversal = (line_length / spacing) * bottleneck
        step = self.config.capacity.hours_granularity
        horizon = math.floor(hours / step + _EPSILON) * step * 60
        if horizon < traversal - _EPSILON:
            return 0

        return math.floor((horizon - traversal) / bottleneck + _EPSILON) + 1

    def capacity_thresholds(
        self,
        configs: Mapping[int, LineConfig],
        task_model: TaskModel,
    ) -> list[CapacityThreshold]:
        """Maximum daily demand per station count over the longest day.

        Configurations without work are skipped.
        """
        max_minutes = self.config.capacity.max_operating_hours * 60
        thresholds = []
        for station_count in sorted(configs):
            metrics = self.station_metrics(configs[station_count].assignment, task_model)
            if metrics.bottleneck_time <= 0:
                continue
            thresholds.append(CapacityThreshold(
                station_count=station_count,
                bottleneck_time=metrics.bottleneck_time,
                max_demand=math.floor(max_minutes / metrics.bottleneck_time + _EPSILON),
            ))
        return thresholds

    # -------------------------------------------------------------------------
    # Line geometry
    # -------------------------------------------------------------------------

    def line_length(self, task_model: TaskModel) -> float:
        """Physical conveyor length for a task model.

        Space per unit is twice the largest "shortest dimension" among the
        models; the line holds total_work / min_task_time such spaces.
        Falls back to the configured default when the models carry no
        dimensions or the result is not positive.
        """
        geometry = self.config.geometry
        if not task_model.models or not task_model.tasks:
            return geometry.default_line_length

        dims = [m.shortest_dimension for m in task_model.models]
        known = [d for d in dims if d is not None]
        if not known:
            return geometry.default_line_length

        space_per_unit = geometry.unit_space_multiplier * max(known)
        min_time = task_model.min_task_time
        time_ratio = task_model.total_work / min_time if min_time > 0 else 0.0

        length = math.ceil(space_per_unit * time_ratio - _EPSILON)
        return float(length) if length > 0 else geometry.default_line_length

"""
Discrete-event schedule simulator for FactoryFlow.

Replays a day's launch sequence through a balanced line and records when
every task of every unit starts and ends.

Simulation rules:
- Unit k reaches the first station at k * launch_interval.
- Stations are visited in id order; each one is a single operator who
  works units in arrival order: start = max(arrival, operator free).
- Only the tasks that apply to the unit's model are worked, each for its
  base time (a concrete unit has no mix-weighted time).
- A unit leaves a station once its work is done and it has travelled the
  station's share of the conveyor:
      exit = max(end of work, arrival + travel time)
      travel time = station base work / line base work * line traversal time
- The exit time is the arrival time at the next station.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

from factoryflow.config.schema import FactoryflowConfig, get_default_config
from factoryflow.engine.sequencer import MixedModelSequencer
from factoryflow.engine.throughput import ThroughputResult
from factoryflow.engine.validation import validate_assignment
from factoryflow.models.line import LineConfig, StationAssignment
from factoryflow.models.production import ProductionUnit
from factoryflow.models.tasks import TaskModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduledTask:
    """One task worked on one unit."""

    task_id: int
    station_id: int
    model_id: int
    unit_id: str
    start_time: float
    end_time: float

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class UnitSpan:
    """When a unit's first task started and its last task ended."""

    unit_id: str
    model_id: int
    sequence_index: int
    enter_time: float
    exit_time: float


@dataclass
class TravelTimeModel:
    """Conveyor travel time per station.

    Each station owns a share of the conveyor proportional to its base
    work, so a unit needs that share of the full traversal time to pass it.
    """

    line_length: float
    conveyor_speed: float
    total_line_work: float

    @property
    def total_physical_throughput_time(self) -> float:
        """Minutes to ride the whole conveyor (0 when it does not move)."""
        if self.conveyor_speed <= 0:
            return 0.0
        return self.line_length / self.conveyor_speed

    def station_travel_time(self, station_base_work: float) -> float:
        """Minutes to pass a station with the given base work."""
        if self.total_line_work <= 0:
            return 0.0
        return (station_base_work / self.total_line_work) * self.total_physical_throughput_time

    @classmethod
    def from_throughput(
        cls,
        throughput: ThroughputResult,
        line_length: float,
        task_model: TaskModel,
    ) -> "TravelTimeModel":
        """Travel model for the conveyor speed of a capacity result."""
        return cls(
            line_length=line_length,
            conveyor_speed=throughput.conveyor_speed,
            total_line_work=task_model.total_base_time,
        )


@dataclass
class ScheduleResult:
    """Output of a schedule simulation."""

    tasks: list[ScheduledTask] = field(default_factory=list)
    units: list[ProductionUnit] = field(default_factory=list)
    launch_interval: float = 0.0
    final_task_id: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.tasks

    def tasks_for_unit(self, unit_id: str) -> list[ScheduledTask]:
        return [t for t in self.tasks if t.unit_id == unit_id]

    def completion_times(self, task_id: Optional[int] = None) -> list[float]:
        """Sorted end times of a task over all units that had it.

        Args:
            task_id: Task to look at (default: the final task, or each
                unit's last task end when no final task is set)
        """
        target = self.final_task_id if task_id is None else task_id
        if target is None:
            return sorted(s.exit_time for s in self.unit_spans())
        return sorted(t.end_time for t in self.tasks if t.task_id == target)

    @property
    def realized_cycle_time(self) -> Optional[float]:
        """Mean interval between consecutive completions of the final task.

        None with fewer than two completions.
        """
        times = self.completion_times()
        if len(times) < 2:
            return None
        return (times[-1] - times[0]) / (len(times) - 1)

    @property
    def makespan(self) -> float:
        """End of the last task (0 for an empty schedule)."""
        return max((t.end_time for t in self.tasks), default=0.0)

    def unit_spans(self) -> list[UnitSpan]:
        """Enter/exit time per unit, ordered by enter time."""
        index = {u.unit_id: u for u in self.units}
        spans: dict[str, list[float]] = {}
        models: dict[str, int] = {}
        for t in self.tasks:
            span = spans.get(t.unit_id)
            if span is None:
                spans[t.unit_id] = [t.start_time, t.end_time]
                models[t.unit_id] = t.model_id
            else:
                span[0] = min(span[0], t.start_time)
                span[1] = max(span[1], t.end_time)

        result = [
            UnitSpan(
                unit_id=unit_id,
                model_id=models[unit_id],
                sequence_index=index[unit_id].sequence_index if unit_id in index else -1,
                enter_time=start,
                exit_time=end,
            )
            for unit_id, (start, end) in spans.items()
        ]
        result.sort(key=lambda s: (s.enter_time, s.sequence_index))
        return result


def units_from_sequence(sequence: Sequence[Union[int, ProductionUnit]]) -> list[ProductionUnit]:
    """Normalize a model-id sequence (or unit list) to ProductionUnits."""
    units = []
    for index, item in enumerate(sequence):
        if isinstance(item, ProductionUnit):
            units.append(item)
        else:
            units.append(ProductionUnit(
                unit_id=f"{item}-{index}",
                model_id=int(item),
                sequence_index=index,
            ))
    return units


def _common_final_task(
    station_ids: list[int],
    assignment: StationAssignment,
    task_model: TaskModel,
    model_ids: set[int],
) -> Optional[int]:
    """Last task in line order that every launched model goes through."""
    for station_id in reversed(station_ids):
        for task_id in reversed(assignment.tasks_at(station_id)):
            task = task_model.get_task(task_id)
            if task is not None and model_ids <= task.used_by:
                return task_id
    return None


class ScheduleSimulator:
    """Replays a launch sequence through a balanced line."""

    def __init__(self, config: Optional[FactoryflowConfig] = None):
        self.config = config or get_default_config()

    def simulate(
        self,
        line_config: LineConfig,
        sequence: Sequence[Union[int, ProductionUnit]],
        launch_interval: float,
        travel_model: TravelTimeModel,
        task_model: TaskModel,
        final_task_id: Optional[int] = None,
    ) -> ScheduleResult:
        """Simulate one day of production.

        Args:
            line_config: Balanced line to run
            sequence: Launch order (model ids or ProductionUnits)
            launch_interval: Minutes between launches
            travel_model: Conveyor travel times
            task_model: Task times and model applicability
            final_task_id: Task whose completions define the realized
                cycle time (default: the last task in line order worked on
                every model in the sequence; unit exits when there is none)

        Returns:
            ScheduleResult with one ScheduledTask per unit and applicable task
        """
        units = units_from_sequence(sequence)
        assignment = line_config.assignment
        station_ids = [sid for sid in assignment.station_ids if assignment.tasks_at(sid)]

        if final_task_id is None:
            final_task_id = _common_final_task(
                station_ids, assignment, task_model, {u.model_id for u in units}
            )

        arrivals = [(k * launch_interval, unit) for k, unit in enumerate(units)]
        scheduled: list[ScheduledTask] = []

        for station_id in station_ids:
            task_ids = assignment.tasks_at(station_id)
            station_tasks = [task_model.get_task(tid) for tid in task_ids]
            station_tasks = [t for t in station_tasks if t is not None]
            base_work = sum(t.base_time for t in station_tasks)
            travel_time = travel_model.station_travel_time(base_work)

            arrivals.sort(key=lambda a: a[0])
            worker_free = 0.0
            exits = []

            for arrival, unit in arrivals:
                current = max(arrival, worker_free)
                for task in station_tasks:
                    if not task.applies_to(unit.model_id):
                        continue
                    end = current + task.base_time
                    scheduled.append(ScheduledTask(
                        task_id=task.task_id,
                        station_id=station_id,
                        model_id=unit.model_id,
                        unit_id=unit.unit_id,
                        start_time=current,
                        end_time=end,
                    ))
                    current = end

                worker_free = current
                exits.append((max(current, arrival + travel_time), unit))

            arrivals = exits

        logger.debug(
            "Simulated %d units over %d stations: %d task records",
            len(units),
            len(station_ids),
            len(scheduled),
        )
        return ScheduleResult(
            tasks=scheduled,
            units=units,
            launch_interval=launch_interval,
            final_task_id=final_task_id,
        )

    def simulate_day(
        self,
        task_model: TaskModel,
        line_config: LineConfig,
        throughput: ThroughputResult,
        line_length: float,
        final_task_id: Optional[int] = None,
    ) -> ScheduleResult:
        """Sequence the day's demand and simulate it at the analytic pace.

        The launch interval is the effective cycle time of the capacity
        result. The sequence covers `units_produced`, not the requested
        daily demand, so a capacity-bound day launches only the units the
        line can finish in the horizon. Returns an empty schedule when the
        conveyor does not move or the assignment breaks precedence.
        """
        if throughput.conveyor_speed <= 0:
            return ScheduleResult()

        validation = validate_assignment(task_model, line_config.assignment)
        if validation.invalid_tasks:
            logger.warning(
                "Not simulating: tasks %s break precedence",
                sorted(validation.invalid_tasks),
            )
            return ScheduleResult()

        sequencer = MixedModelSequencer(config=self.config)
        units = sequencer.production_units(task_model.models, throughput.units_produced)
        travel_model = TravelTimeModel.from_throughput(throughput, line_length, task_model)
        return self.simulate(
            line_config,
            units,
            throughput.effective_cycle_time,
            travel_model,
            task_model,
            final_task_id=final_task_id,
        )

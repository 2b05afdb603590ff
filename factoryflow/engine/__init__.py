"""
FactoryFlow engine.

This module contains the core computation logic:
- Line balancing (SALBP-2 MILP per station count)
- Throughput and capacity of a paced conveyor line
- Mixed-model sequencing
- Discrete-event schedule simulation
- Assignment validation
- The AssemblyLine context tying them together
"""

from factoryflow.engine.balancer import (
    BalanceJob,
    BalanceResult,
    BalancerError,
    LineBalancer,
    SolveRequest,
    build_problem,
    solve_station_count,
    station_count_range,
)
from factoryflow.engine.schedule import (
    ScheduledTask,
    ScheduleResult,
    ScheduleSimulator,
    TravelTimeModel,
    UnitSpan,
    units_from_sequence,
)
from factoryflow.engine.sequencer import MixedModelSequencer
from factoryflow.engine.throughput import (
    CapacityThreshold,
    StationMetrics,
    ThroughputEngine,
    ThroughputRegime,
    ThroughputResult,
    WorkstationMetrics,
)
from factoryflow.engine.validation import (
    AssignmentValidation,
    ValidationError,
    precedence_violations,
    validate_assignment,
)

__all__ = [
    # Balancer
    "BalanceJob",
    "BalanceResult",
    "BalancerError",
    "LineBalancer",
    "SolveRequest",
    "build_problem",
    "solve_station_count",
    "station_count_range",
    # Throughput
    "CapacityThreshold",
    "StationMetrics",
    "ThroughputEngine",
    "ThroughputRegime",
    "ThroughputResult",
    "WorkstationMetrics",
    # Sequencer
    "MixedModelSequencer",
    # Schedule
    "ScheduledTask",
    "ScheduleResult",
    "ScheduleSimulator",
    "TravelTimeModel",
    "UnitSpan",
    "units_from_sequence",
    # Validation
    "AssignmentValidation",
    "ValidationError",
    "precedence_violations",
    "validate_assignment",
    # Line
    "AssemblyLine",
]

from factoryflow.engine.line import AssemblyLine

"""
Pytest configuration and fixtures for FactoryFlow tests.
"""

import itertools
import json
from pathlib import Path

import pytest

from factoryflow.config.schema import FactoryflowConfig
from factoryflow.models.line import LineConfig, StationAssignment
from factoryflow.models.tasks import ProductModel, Task, TaskModel

CHAIN_TIMES = [2.0, 3.0, 1.0, 4.0, 2.0]


def make_chain(times: list[float], models: tuple[ProductModel, ...] | None = None) -> TaskModel:
    """Tasks 1..n in a single precedence chain, used by every model."""
    if models is None:
        models = (ProductModel(model_id=1, name="Solo", ratio=1.0, length=3.0, width=3.0, height=6.0),)
    model_ids = frozenset(m.model_id for m in models)
    tasks = tuple(
        Task(
            task_id=i,
            base_time=t,
            predecessors=frozenset({i - 1}) if i > 1 else frozenset(),
            used_by=model_ids,
        )
        for i, t in enumerate(times, start=1)
    )
    return TaskModel(tasks=tasks, models=models)


def brute_force_cycle_time(task_model: TaskModel, station_count: int) -> float:
    """Optimal SALBP-2 cycle time by enumerating every assignment."""
    times = task_model.effective_times()
    task_ids = task_model.task_ids
    best = float("inf")
    for labels in itertools.product(range(1, station_count + 1), repeat=len(task_ids)):
        station = dict(zip(task_ids, labels))
        if any(station[p] > station[t] for p, t in task_model.edges()):
            continue
        loads = [0.0] * (station_count + 1)
        for tid, j in station.items():
            loads[j] += times[tid]
        best = min(best, max(loads))
    return best


@pytest.fixture
def thread_config() -> FactoryflowConfig:
    """Config that solves in a thread pool (no worker processes)."""
    return FactoryflowConfig.from_dict({"balancer": {"use_processes": False, "max_workers": 2}})


@pytest.fixture
def chain_model() -> TaskModel:
    """Five-task chain [2, 3, 1, 4, 2], one model with the whole mix."""
    return make_chain(CHAIN_TIMES)


@pytest.fixture
def chain_line_config() -> LineConfig:
    """Optimal two-station balance of the chain: loads 6 and 6."""
    return LineConfig(
        station_count=2,
        assignment=StationAssignment(stations={1: (1, 2, 3), 2: (4, 5)}),
        cycle_time=6.0,
    )


@pytest.fixture
def mixed_model() -> TaskModel:
    """Small two-model line with a branching precedence graph.

        1 -> 2 -> 4 -> 6
        1 -> 3 -> 5 -> 6

    Model 1 (60%) skips task 3; model 2 (40%) skips task 4.
    """
    models = (
        ProductModel(model_id=1, name="Alpha", ratio=0.6, length=2.0, width=2.0, height=4.0),
        ProductModel(model_id=2, name="Beta", ratio=0.4, length=2.5, width=3.0, height=4.0),
    )
    both = frozenset({1, 2})
    tasks = (
        Task(task_id=1, base_time=3.0, used_by=both),
        Task(task_id=2, base_time=4.0, predecessors=frozenset({1}), used_by=both),
        Task(task_id=3, base_time=5.0, predecessors=frozenset({1}), used_by=frozenset({2})),
        Task(task_id=4, base_time=5.0, predecessors=frozenset({2}), used_by=frozenset({1})),
        Task(task_id=5, base_time=2.0, predecessors=frozenset({3}), used_by=both),
        Task(task_id=6, base_time=3.0, predecessors=frozenset({4, 5}), used_by=both),
    )
    return TaskModel(tasks=tasks, models=models)


@pytest.fixture
def chain_payload() -> dict:
    """Balancer request for the five-task chain."""
    return {
        "type": "SOLVE_SALBP",
        "elements": [
            {
                "id": i,
                "baseTime": t,
                "predecessors": [i - 1] if i > 1 else [],
                "usage": [1],
                "description": f"Task {i}",
            }
            for i, t in enumerate(CHAIN_TIMES, start=1)
        ],
        "models": [
            {"id": 1, "ratio": 1.0, "name": "Solo", "length": 3, "width": 3, "height": 6, "weight": 250},
        ],
    }


@pytest.fixture
def request_file(tmp_path: Path, chain_payload: dict) -> Path:
    """Chain request written to disk."""
    path = tmp_path / "request.json"
    path.write_text(json.dumps(chain_payload), encoding="utf-8")
    return path

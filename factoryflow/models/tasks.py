"""
Task and precedence models for FactoryFlow.

A line is described by its work elements (tasks) and the product models
built on it. Each task has a base time per physical unit, a set of
predecessor tasks, and the set of models it applies to.

Effective time:
    The balancer and the capacity engine work in mix-weighted time. A task
    used by models covering 35% of the mix costs 0.35 x base_time per
    launched unit on average:

        effective_time = base_time * sum(ratio of models using the task)

    A task no model uses falls back to its base time.
"""

import heapq
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator


class Task(BaseModel):
    """A single atomic work element."""

    model_config = ConfigDict(frozen=True)

    task_id: int = Field(ge=0, description="Unique task identifier")
    base_time: float = Field(ge=0.0, description="Minutes per physical unit")
    predecessors: frozenset[int] = Field(
        default_factory=frozenset,
        description="Task ids that must be done first",
    )
    used_by: frozenset[int] = Field(
        default_factory=frozenset,
        description="Model ids this task applies to",
    )
    description: Optional[str] = Field(default=None, description="Free text label")

    def applies_to(self, model_id: int) -> bool:
        """Check whether this task is performed on units of a model."""
        return model_id in self.used_by


class ProductModel(BaseModel):
    """A product variant built on the line.

    Dimensions (feet) are only used to size the physical line length;
    the balancer never reads them.
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_id: int = Field(ge=0, description="Unique model identifier")
    name: str = Field(default="", description="Display name")
    ratio: float = Field(ge=0.0, le=1.0, description="Fraction of the daily mix")
    length: Optional[float] = Field(default=None, ge=0.0)
    width: Optional[float] = Field(default=None, ge=0.0)
    height: Optional[float] = Field(default=None, ge=0.0)
    weight: Optional[float] = Field(default=None, ge=0.0)

    @property
    def display_name(self) -> str:
        return self.name or f"Model {self.model_id}"

    @property
    def shortest_dimension(self) -> Optional[float]:
        """Smallest of length/width/height (None if any is missing)."""
        dims = (self.length, self.width, self.height)
        if any(d is None for d in dims):
            return None
        return min(dims)  # type: ignore[type-var]


class TaskModel(BaseModel):
    """The static description of a line: tasks, precedence and product mix.

    Immutable once built. Construction validates that task and model ids
    are unique, that every predecessor names a known task, and that the
    precedence graph has no cycles.
    """

    model_config = ConfigDict(frozen=True)

    tasks: tuple[Task, ...] = Field(description="Work elements in input order")
    models: tuple[ProductModel, ...] = Field(
        default_factory=tuple,
        description="Product models in mix order",
    )

    _task_index: dict[int, Task] = PrivateAttr(default_factory=dict)
    _model_index: dict[int, ProductModel] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def _check_graph(self) -> "TaskModel":
        task_ids = [t.task_id for t in self.tasks]
        if len(set(task_ids)) != len(task_ids):
            raise ValueError("Duplicate task ids in task model")

        model_ids = [m.model_id for m in self.models]
        if len(set(model_ids)) != len(model_ids):
            raise ValueError("Duplicate model ids in task model")

        known = set(task_ids)
        for task in self.tasks:
            unknown = task.predecessors - known
            if unknown:
                raise ValueError(
                    f"Task {task.task_id} has unknown predecessors: {sorted(unknown)}"
                )
            if task.task_id in task.predecessors:
                raise ValueError(f"Task {task.task_id} lists itself as a predecessor")

        if len(_kahn_order(self.tasks)) != len(self.tasks):
            raise ValueError("Precedence graph contains a cycle")

        return self

    def model_post_init(self, __context: object) -> None:
        self._task_index = {t.task_id: t for t in self.tasks}
        self._model_index = {m.model_id: m for m in self.models}

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_task(self, task_id: int) -> Optional[Task]:
        """Get a task by id."""
        return self._task_index.get(task_id)

    def get_model(self, model_id: int) -> Optional[ProductModel]:
        """Get a product model by id."""
        return self._model_index.get(model_id)

    @property
    def task_ids(self) -> list[int]:
        return [t.task_id for t in self.tasks]

    @property
    def model_ids(self) -> list[int]:
        return [m.model_id for m in self.models]

    def task_applies_to(self, task_id: int, model_id: int) -> bool:
        """Check whether a task is performed on a given model."""
        task = self.get_task(task_id)
        return task is not None and task.applies_to(model_id)

    # -------------------------------------------------------------------------
    # Time content
    # -------------------------------------------------------------------------

    def effective_time(self, task_id: int) -> float:
        """Mix-weighted time of a task (see module docstring)."""
        task = self._task_index[task_id]
        total_ratio = sum(
            m.ratio for m in self.models if m.model_id in task.used_by
        )
        if total_ratio > 0:
            return task.base_time * total_ratio
        return task.base_time

    def effective_times(self) -> dict[int, float]:
        """Effective time for every task, keyed by task id."""
        return {t.task_id: self.effective_time(t.task_id) for t in self.tasks}

    @property
    def total_work(self) -> float:
        """Total effective work content of the line."""
        return sum(self.effective_times().values())

    @property
    def max_task_time(self) -> float:
        """Longest single effective task time (0 for an empty model)."""
        return max(self.effective_times().values(), default=0.0)

    @property
    def min_task_time(self) -> float:
        """Shortest positive effective task time (0 if none is positive)."""
        positive = [v for v in self.effective_times().values() if v > 0]
        return min(positive, default=0.0)

    @property
    def total_base_time(self) -> float:
        """Sum of base times (work of one unit that needs every task)."""
        return sum(t.base_time for t in self.tasks)

    @property
    def ratio_total(self) -> float:
        return sum(m.ratio for m in self.models)

    # -------------------------------------------------------------------------
    # Precedence graph
    # -------------------------------------------------------------------------

    def edges(self) -> list[tuple[int, int]]:
        """All precedence edges as (predecessor, successor) pairs."""
        return [
            (pred, task.task_id)
            for task in self.tasks
            for pred in sorted(task.predecessors)
        ]

    def successors(self, task_id: int) -> set[int]:
        """Direct successors of a task."""
        return {t.task_id for t in self.tasks if task_id in t.predecessors}

    def all_predecessors(self) -> dict[int, set[int]]:
        """Transitive predecessor closure for every task."""
        closure: dict[int, set[int]] = {}
        for task_id in self.topological_order():
            task = self._task_index[task_id]
            preds = set(task.predecessors)
            for pred in task.predecessors:
                preds |= closure[pred]
            closure[task_id] = preds
        return closure

    def topological_order(self, task_ids: Optional[Iterable[int]] = None) -> list[int]:
        """Order tasks so predecessors come first.

        Ties are broken by input order, so an already valid order is kept.

        Args:
            task_ids: Restrict the ordering to these tasks (edges to tasks
                outside the subset are ignored). Defaults to all tasks.
        """
        if task_ids is None:
            return _kahn_order(self.tasks)
        subset = set(task_ids)
        return _kahn_order([t for t in self.tasks if t.task_id in subset])

    def sinks(self) -> list[int]:
        """Tasks with no successors, in input order."""
        has_successor = {pred for task in self.tasks for pred in task.predecessors}
        return [t.task_id for t in self.tasks if t.task_id not in has_successor]


def _kahn_order(tasks: Iterable[Task]) -> list[int]:
    """Topological sort over the given tasks, stable in their input order.

    Returns fewer ids than tasks when the graph has a cycle.
    """
    tasks = list(tasks)
    position = {t.task_id: i for i, t in enumerate(tasks)}
    remaining = {
        t.task_id: len(t.predecessors & position.keys()) for t in tasks
    }
    successors: dict[int, list[int]] = {t.task_id: [] for t in tasks}
    for t in tasks:
        for pred in t.predecessors:
            if pred in successors:
                successors[pred].append(t.task_id)

    ready = [(position[tid], tid) for tid, count in remaining.items() if count == 0]
    heapq.heapify(ready)

    order: list[int] = []
    while ready:
        _, task_id = heapq.heappop(ready)
        order.append(task_id)
        for succ in successors[task_id]:
            remaining[succ] -= 1
            if remaining[succ] == 0:
                heapq.heappush(ready, (position[succ], succ))
    return order

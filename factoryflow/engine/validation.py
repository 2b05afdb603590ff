"""
Assignment validation for FactoryFlow.

Validates station assignments (balancer output or hand-edited) against the
task model. Problems are reported as a validation state, never raised, so
callers can keep computing metrics on whatever is well-formed.
"""

from dataclasses import dataclass, field
from typing import Optional

from factoryflow.models.line import StationAssignment
from factoryflow.models.tasks import TaskModel


@dataclass
class ValidationError:
    """A single validation error."""

    field: str
    message: str
    value: Optional[str] = None
    suggestion: Optional[str] = None

    def __str__(self) -> str:
        msg = f"{self.field}: {self.message}"
        if self.value:
            msg += f" (got: {self.value})"
        if self.suggestion:
            msg += f" - {self.suggestion}"
        return msg


@dataclass
class AssignmentValidation:
    """Result of validating a station assignment."""

    valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationError] = field(default_factory=list)
    invalid_tasks: set[int] = field(default_factory=set)

    @classmethod
    def success(cls) -> "AssignmentValidation":
        """Create a successful validation result."""
        return cls(valid=True)

    @classmethod
    def failure(cls, errors: list[ValidationError]) -> "AssignmentValidation":
        """Create a failed validation result."""
        return cls(valid=False, errors=errors)

    def add_error(self, error: ValidationError) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(error)
        self.valid = False

    def add_warning(self, warning: ValidationError) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(warning)

    def merge(self, other: "AssignmentValidation") -> None:
        """Merge another result into this one."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.invalid_tasks |= other.invalid_tasks
        if not other.valid:
            self.valid = False


def validate_assignment(
    task_model: TaskModel,
    assignment: StationAssignment,
    strict: bool = False,
) -> AssignmentValidation:
    """Validate an assignment against the task model.

    Args:
        task_model: Tasks and precedence the assignment must respect
        assignment: Station assignment to check
        strict: If True, treat warnings as errors

    Returns:
        AssignmentValidation with errors, warnings and the set of task ids
        that break precedence
    """
    result = AssignmentValidation(valid=True)

    result.merge(_validate_coverage(task_model, assignment))
    result.merge(_validate_precedence(task_model, assignment))
    result.merge(_validate_stations(assignment))

    if strict:
        for warning in result.warnings:
            result.add_error(warning)
        result.warnings = []

    return result


def precedence_violations(
    task_model: TaskModel,
    assignment: StationAssignment,
) -> set[tuple[int, int]]:
    """Precedence edges (p, t) with station(p) > station(t).

    Edges touching an unassigned task are skipped.
    """
    stations = assignment.station_map()
    violations = set()
    for pred, succ in task_model.edges():
        if pred in stations and succ in stations and stations[pred] > stations[succ]:
            violations.add((pred, succ))
    return violations


def _validate_coverage(
    task_model: TaskModel, assignment: StationAssignment
) -> AssignmentValidation:
    """Every task exactly once, nothing unknown."""
    result = AssignmentValidation(valid=True)

    known = set(task_model.task_ids)
    assigned = assignment.task_ids
    seen: set[int] = set()
    duplicates: set[int] = set()
    for tid in assigned:
        if tid in seen:
            duplicates.add(tid)
        seen.add(tid)

    unknown = seen - known
    if unknown:
        result.add_error(ValidationError(
            field="tasks",
            message="Assignment references unknown tasks",
            value=", ".join(str(t) for t in sorted(unknown)),
        ))

    if duplicates:
        result.add_error(ValidationError(
            field="tasks",
            message="Tasks assigned to more than one position",
            value=", ".join(str(t) for t in sorted(duplicates)),
            suggestion="Each task must appear in exactly one station",
        ))

    missing = known - seen
    if missing:
        result.add_error(ValidationError(
            field="tasks",
            message="Tasks not assigned to any station",
            value=", ".join(str(t) for t in sorted(missing)),
        ))

    return result


def _validate_precedence(
    task_model: TaskModel, assignment: StationAssignment
) -> AssignmentValidation:
    """Walk the line in order; a task is invalid if a predecessor comes later."""
    result = AssignmentValidation(valid=True)

    done: set[int] = set()
    for station_id in assignment.station_ids:
        for task_id in assignment.tasks_at(station_id):
            task = task_model.get_task(task_id)
            if task is not None:
                pending = task.predecessors - done
                if pending:
                    result.invalid_tasks.add(task_id)
                    result.add_error(ValidationError(
                        field=f"station {station_id}",
                        message=f"Task {task_id} is placed before its predecessors",
                        value=", ".join(str(p) for p in sorted(pending)),
                        suggestion="Move the task after its predecessors",
                    ))
            done.add(task_id)

    return result


def _validate_stations(assignment: StationAssignment) -> AssignmentValidation:
    """Station numbering and empty stations (warnings only)."""
    result = AssignmentValidation(valid=True)

    station_ids = assignment.station_ids
    expected = list(range(1, len(station_ids) + 1))
    if station_ids != expected:
        result.add_warning(ValidationError(
            field="stations",
            message="Station ids are not numbered 1..m",
            value=", ".join(str(s) for s in station_ids),
        ))

    for station_id in station_ids:
        if not assignment.tasks_at(station_id):
            result.add_warning(ValidationError(
                field=f"station {station_id}",
                message="Station has no tasks",
            ))

    return result

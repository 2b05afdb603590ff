"""Tests for assignment validation."""

from factoryflow.engine.validation import (
    AssignmentValidation,
    ValidationError,
    precedence_violations,
    validate_assignment,
)
from factoryflow.models.line import StationAssignment


class TestAssignmentValidation:
    """Tests for AssignmentValidation class."""

    def test_success_result(self):
        result = AssignmentValidation.success()
        assert result.valid is True
        assert result.errors == []
        assert result.warnings == []

    def test_failure_result(self):
        result = AssignmentValidation.failure([ValidationError(field="tasks", message="bad")])
        assert result.valid is False
        assert len(result.errors) == 1

    def test_add_warning_keeps_valid(self):
        result = AssignmentValidation(valid=True)
        result.add_warning(ValidationError(field="stations", message="Station has no tasks"))
        assert result.valid is True
        assert len(result.warnings) == 1

    def test_merge(self):
        result = AssignmentValidation(valid=True)
        other = AssignmentValidation(valid=False, invalid_tasks={3})
        result.merge(other)
        assert result.valid is False
        assert result.invalid_tasks == {3}

    def test_error_str(self):
        error = ValidationError(field="station 2", message="Out of order", value="1", suggestion="Move it")
        assert str(error) == "station 2: Out of order (got: 1) - Move it"


class TestValidateAssignment:
    """Tests for validate_assignment."""

    def test_valid_assignment(self, mixed_model):
        assignment = StationAssignment(stations={1: (1, 2, 3), 2: (4, 5), 3: (6,)})
        result = validate_assignment(mixed_model, assignment)
        assert result.valid
        assert result.errors == []
        assert result.invalid_tasks == set()

    def test_missing_task(self, mixed_model):
        assignment = StationAssignment(stations={1: (1, 2, 3), 2: (4, 5)})
        result = validate_assignment(mixed_model, assignment)
        assert not result.valid
        assert any("not assigned" in e.message for e in result.errors)
        # Task 6 itself is not misplaced
        assert 6 not in result.invalid_tasks

    def test_unknown_task(self, mixed_model):
        assignment = StationAssignment(stations={1: (1, 2, 3), 2: (4, 5, 6, 42)})
        result = validate_assignment(mixed_model, assignment)
        assert not result.valid
        assert any(e.value == "42" for e in result.errors)

    def test_duplicate_task(self, mixed_model):
        assignment = StationAssignment(stations={1: (1, 2, 3), 2: (3, 4, 5, 6)})
        result = validate_assignment(mixed_model, assignment)
        assert not result.valid
        assert any("more than one" in e.message for e in result.errors)

    def test_precedence_across_stations(self, mixed_model):
        """A task placed in an earlier station than its predecessor is invalid."""
        assignment = StationAssignment(stations={1: (1, 4), 2: (2, 3, 5), 3: (6,)})
        result = validate_assignment(mixed_model, assignment)
        assert not result.valid
        assert result.invalid_tasks == {4}

    def test_precedence_within_station(self, mixed_model):
        """Order inside a station counts too."""
        assignment = StationAssignment(stations={1: (2, 1, 3), 2: (4, 5), 3: (6,)})
        result = validate_assignment(mixed_model, assignment)
        assert not result.valid
        assert result.invalid_tasks == {2}

    def test_empty_station_warning(self, mixed_model):
        assignment = StationAssignment(stations={1: (1, 2, 3), 2: (), 3: (4, 5, 6)})
        result = validate_assignment(mixed_model, assignment)
        assert result.valid
        assert any("no tasks" in w.message for w in result.warnings)

    def test_station_numbering_warning(self, mixed_model):
        assignment = StationAssignment(stations={1: (1, 2, 3), 3: (4, 5, 6)})
        result = validate_assignment(mixed_model, assignment)
        assert result.valid
        assert any("numbered" in w.message for w in result.warnings)

    def test_strict_mode(self, mixed_model):
        """Warnings become errors in strict mode."""
        assignment = StationAssignment(stations={1: (1, 2, 3), 2: (), 3: (4, 5, 6)})
        result = validate_assignment(mixed_model, assignment, strict=True)
        assert not result.valid
        assert result.warnings == []


class TestPrecedenceViolations:
    """Tests for the pairwise station(p) <= station(t) check."""

    def test_no_violations(self, mixed_model):
        assignment = StationAssignment(stations={1: (1, 2, 3), 2: (4, 5), 3: (6,)})
        assert precedence_violations(mixed_model, assignment) == set()

    def test_violation_edges(self, mixed_model):
        assignment = StationAssignment(stations={1: (1, 4), 2: (2, 3, 5), 3: (6,)})
        assert precedence_violations(mixed_model, assignment) == {(2, 4)}

    def test_same_station_is_not_a_violation(self, mixed_model):
        """The pairwise rule only compares stations."""
        assignment = StationAssignment(stations={1: (2, 1, 3), 2: (4, 5), 3: (6,)})
        assert precedence_violations(mixed_model, assignment) == set()

    def test_unassigned_tasks_skipped(self, mixed_model):
        assignment = StationAssignment(stations={1: (1,)})
        assert precedence_violations(mixed_model, assignment) == set()

"""Validation module for verifying plan correctness.

This module is the single source of truth for the hard constraints of a
secondary-task plan and for the spacing rules of a closing schedule. The
engine runs the audit subset after every generation; callers can run the
full validation before persisting a plan.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Sequence

from rosterplan.domain.calendar import date_key, is_weekend_day, weekend_friday
from rosterplan.domain.models import (
    Assignment,
    ClosingScheduleResult,
    PlanResult,
    SecondaryTask,
    clamp_interval,
)
from rosterplan.domain.snapshot import PlanningSnapshot


class ValidationErrorType(Enum):
    """Types of validation errors."""

    UNKNOWN_WORKER = "unknown_worker"
    UNKNOWN_TASK = "unknown_task"
    NOT_QUALIFIED = "not_qualified"
    PRIMARY_CONFLICT = "primary_conflict"
    BLOCKED_PREFERENCE = "blocked_preference"
    DOUBLE_BOOKED = "double_booked"
    CELL_OVERFILLED = "cell_overfilled"
    FORCED_CLOSER_ASSIGNED = "forced_closer_assigned"
    TRIAD_SPLIT = "triad_split"
    OPTIMAL_ON_MANDATORY = "optimal_on_mandatory"
    OPTIMAL_OUTSIDE_WEEKS = "optimal_outside_weeks"
    SPACING_VIOLATION = "spacing_violation"
    NEVER_CLOSES_HAS_OPTIMAL = "never_closes_has_optimal"


@dataclass
class ValidationError:
    """A single validation error."""

    error_type: ValidationErrorType
    message: str
    worker_id: Optional[str] = None
    day: Optional[date] = None
    task_id: Optional[str] = None
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.error_type.value}]"]
        if self.worker_id:
            parts.append(f"Worker {self.worker_id}:")
        parts.append(self.message)
        if self.day is not None:
            parts.append(f"({date_key(self.day)})")
        return " ".join(parts)


@dataclass
class ValidationResult:
    """Result of validating a plan or a closing schedule."""

    is_valid: bool = True
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, error: ValidationError) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(warning)

    def errors_of(self, error_type: ValidationErrorType) -> list[ValidationError]:
        return [e for e in self.errors if e.error_type == error_type]


class PlanValidator:
    """Validates secondary-task plans against the hard constraints.

    Example:
        >>> validator = PlanValidator()
        >>> result = validator.validate(plan, snapshot, tasks)
        >>> if not result.is_valid:
        ...     for error in result.errors:
        ...         print(error)
    """

    def validate(
        self,
        plan: PlanResult,
        snapshot: PlanningSnapshot,
        tasks: Sequence[SecondaryTask],
    ) -> ValidationResult:
        """Validate a complete plan.

        Args:
            plan: The plan to validate.
            snapshot: Snapshot the plan was generated from.
            tasks: Task definitions of the grid.

        Returns:
            ValidationResult with is_valid flag and any errors.
        """
        result = ValidationResult()
        tasks_by_id = {task.id: task for task in tasks}

        for a in plan.assignments:
            if a.worker_id not in snapshot.workers:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.UNKNOWN_WORKER,
                        message=f"Unknown worker ID: {a.worker_id}",
                        worker_id=a.worker_id,
                        day=a.date,
                        task_id=a.task_id,
                    )
                )
                continue

            task = tasks_by_id.get(a.task_id)
            if task is None:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.UNKNOWN_TASK,
                        message=f"Unknown task ID: {a.task_id}",
                        worker_id=a.worker_id,
                        day=a.date,
                        task_id=a.task_id,
                    )
                )
            elif not snapshot.workers[a.worker_id].profile.is_qualified_for(task):
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.NOT_QUALIFIED,
                        message=f"Not qualified for task {a.task_id}",
                        worker_id=a.worker_id,
                        day=a.date,
                        task_id=a.task_id,
                    )
                )

            self._validate_forced_closer(a, snapshot, result)

        self._audit_into(plan.assignments, snapshot, result)
        self._validate_bookings(plan.assignments, result)
        self._validate_triads(plan.assignments, tasks_by_id, result)
        return result

    def audit(
        self,
        assignments: Sequence[Assignment],
        snapshot: PlanningSnapshot,
    ) -> ValidationResult:
        """Check produced assignments for primary conflicts and blocked preferences."""
        result = ValidationResult()
        self._audit_into(assignments, snapshot, result)
        return result

    def _audit_into(
        self,
        assignments: Sequence[Assignment],
        snapshot: PlanningSnapshot,
        result: ValidationResult,
    ) -> None:
        for a in assignments:
            worker = snapshot.workers.get(a.worker_id)
            if worker is None:
                continue
            if worker.has_primary_on(a.date):
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.PRIMARY_CONFLICT,
                        message="Assigned on a primary duty day",
                        worker_id=a.worker_id,
                        day=a.date,
                        task_id=a.task_id,
                    )
                )
            blocked, _ = worker.preference_on(a.date, a.task_id)
            if blocked:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.BLOCKED_PREFERENCE,
                        message=f"Assigned to {a.task_id} despite a blocked preference",
                        worker_id=a.worker_id,
                        day=a.date,
                        task_id=a.task_id,
                    )
                )

    def _validate_forced_closer(
        self,
        a: Assignment,
        snapshot: PlanningSnapshot,
        result: ValidationResult,
    ) -> None:
        friday = weekend_friday(a.date)
        if friday is None:
            return
        if snapshot.workers[a.worker_id].is_forced_closer(friday):
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.FORCED_CLOSER_ASSIGNED,
                    message=f"Forced closer of {date_key(friday)} assigned to {a.task_id}",
                    worker_id=a.worker_id,
                    day=a.date,
                    task_id=a.task_id,
                )
            )

    def _validate_bookings(
        self,
        assignments: Sequence[Assignment],
        result: ValidationResult,
    ) -> None:
        by_worker_day: dict[tuple[str, date], list[str]] = {}
        by_cell: dict[tuple[date, str], list[str]] = {}
        for a in assignments:
            by_worker_day.setdefault((a.worker_id, a.date), []).append(a.task_id)
            by_cell.setdefault((a.date, a.task_id), []).append(a.worker_id)

        for (worker_id, day), task_ids in by_worker_day.items():
            if len(task_ids) > 1:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.DOUBLE_BOOKED,
                        message=f"Holds {len(task_ids)} tasks on one day: {', '.join(task_ids)}",
                        worker_id=worker_id,
                        day=day,
                    )
                )

        for (day, task_id), worker_ids in by_cell.items():
            if len(worker_ids) > 1:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.CELL_OVERFILLED,
                        message=f"Task {task_id} assigned to {len(worker_ids)} workers",
                        day=day,
                        task_id=task_id,
                        details={"workers": worker_ids},
                    )
                )

    def _validate_triads(
        self,
        assignments: Sequence[Assignment],
        tasks_by_id: dict[str, SecondaryTask],
        result: ValidationResult,
    ) -> None:
        holders: dict[tuple[date, str], set[str]] = {}
        for a in assignments:
            task = tasks_by_id.get(a.task_id)
            if task is None or not task.assign_weekends or not is_weekend_day(a.date):
                continue
            holders.setdefault((weekend_friday(a.date), a.task_id), set()).add(a.worker_id)

        for (friday, task_id), worker_ids in sorted(holders.items()):
            if len(worker_ids) > 1:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.TRIAD_SPLIT,
                        message=(
                            f"Weekend {date_key(friday)} task {task_id} split between "
                            f"{', '.join(sorted(worker_ids))}"
                        ),
                        day=friday,
                        task_id=task_id,
                    )
                )


class ClosingScheduleValidator:
    """Validates a worker's closing schedule against the spacing rules."""

    def validate(
        self,
        result: ClosingScheduleResult,
        weeks: Sequence[date],
        closing_interval: int,
    ) -> ValidationResult:
        """Validate optimal closing dates.

        Args:
            result: Calculator result to check.
            weeks: Friday of every schedule week, in order.
            closing_interval: Worker's configured interval.

        Returns:
            ValidationResult with is_valid flag and any errors.
        """
        validation = ValidationResult()
        worker_id = result.worker_id

        if closing_interval == 0:
            for d in result.optimal_dates:
                validation.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.NEVER_CLOSES_HAS_OPTIMAL,
                        message="Worker never closes but has an optimal closing date",
                        worker_id=worker_id,
                        day=d,
                    )
                )
            return validation

        week_numbers = {friday: i + 1 for i, friday in enumerate(weeks)}
        mandatory = set(result.required_dates)
        used: dict[int, bool] = {}

        for d in result.required_dates:
            if d in week_numbers:
                used[week_numbers[d]] = False

        for d in result.optimal_dates:
            if d in mandatory:
                validation.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.OPTIMAL_ON_MANDATORY,
                        message="Optimal closing date overlaps a mandatory one",
                        worker_id=worker_id,
                        day=d,
                    )
                )
            if d not in week_numbers:
                validation.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.OPTIMAL_OUTSIDE_WEEKS,
                        message="Optimal closing date is not a schedule Friday",
                        worker_id=worker_id,
                        day=d,
                    )
                )
                continue
            used[week_numbers[d]] = True

        min_gap = clamp_interval(closing_interval) - 1
        ordered = sorted(used.items())
        for (a, a_optimal), (b, b_optimal) in zip(ordered, ordered[1:]):
            # Two mandatory weeks may sit closer than the gap; they are fixed input
            if not (a_optimal or b_optimal):
                continue
            if b - a < min_gap:
                validation.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.SPACING_VIOLATION,
                        message=f"Weeks {a} and {b} are closer than {min_gap} weeks",
                        worker_id=worker_id,
                        day=weeks[b - 1],
                        details={"weeks": (a, b), "min_gap": min_gap},
                    )
                )

        if not result.optimal_dates and not result.required_dates:
            validation.add_warning(f"Worker {worker_id} has no closing dates")
        return validation

"""Domain models for the roster scheduling core.

This module contains the value types shared by the closing-date optimizer,
the change detector and the secondary-task engine: worker profiles, task
definitions, preferences, assignments, weekend closer decisions and plan
results.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Mapping, Optional

from rosterplan.domain.calendar import date_key

MIN_CLOSING_INTERVAL = 2
MAX_CLOSING_INTERVAL = 12


def clamp_interval(closing_interval: float) -> int:
    """Floor a closing interval and clamp it to the supported range."""
    return max(MIN_CLOSING_INTERVAL, min(MAX_CLOSING_INTERVAL, int(closing_interval // 1)))


class PreferenceStatus(Enum):
    """Worker preference status for a day (and optionally a task)."""

    PREFERRED = "preferred"  # Soft: raises the candidate score
    BLOCKED = "blocked"  # Hard: candidate is eliminated


class CloserReason(Enum):
    """Why a worker was picked to close a weekend."""

    ON_OPTIMAL = "on_optimal"  # Friday is one of the worker's optimal dates
    MISSED_OPTIMAL = "missed_optimal"  # A previous optimal date passed without a close
    DUE = "due"  # Closing interval has elapsed
    FAIRNESS = "fairness"  # Picked to fill the quota


@dataclass
class WorkerProfile:
    """Scheduling-relevant profile of a worker.

    Attributes:
        first_name: Given name.
        last_name: Family name.
        closing_interval: Weeks between closes (0 = never closes).
        qualifications: Ids of the secondary tasks the worker may perform.
    """

    first_name: str
    last_name: str = ""
    closing_interval: int = 0
    qualifications: set[str] = field(default_factory=set)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def closes(self) -> bool:
        """Whether the worker takes part in the weekend closing rotation."""
        return self.closing_interval > 0

    def is_qualified_for(self, task: "SecondaryTask") -> bool:
        """Check the qualification hard constraint for a task."""
        if not task.requires_qualification:
            return True
        return task.id in self.qualifications


@dataclass(frozen=True)
class SecondaryTask:
    """A secondary task column of the weekly grid.

    Attributes:
        id: Task id (matches worker qualification ids).
        name: Display name.
        requires_qualification: Only qualified workers may take the task.
        auto_assign: The engine may fill the task automatically.
        assign_weekends: The task is staffed on weekends as a Thu-Fri-Sat triad.
    """

    id: str
    name: str
    requires_qualification: bool = False
    auto_assign: bool = True
    assign_weekends: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SecondaryTask":
        """Build a task from its JSON form (camelCase or snake_case keys)."""
        assign_weekends = data.get("assignWeekends", data.get("assign_weekends", False))
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            requires_qualification=bool(
                data.get("requiresQualification", data.get("requires_qualification", False))
            ),
            auto_assign=bool(data.get("autoAssign", data.get("auto_assign", True))),
            assign_weekends=bool(assign_weekends),
        )


@dataclass(frozen=True)
class PreferenceEntry:
    """A worker's stated preference for a day.

    Attributes:
        date: The day the preference applies to.
        task_id: Task the preference targets, or None for the whole day.
        status: Preferred or blocked. None carries no scheduling meaning.
    """

    date: date
    task_id: Optional[str] = None
    status: Optional[PreferenceStatus] = None

    def applies_to(self, task_id: str) -> bool:
        return self.task_id is None or self.task_id == task_id

    def blocks(self, task_id: str) -> bool:
        return self.status == PreferenceStatus.BLOCKED and self.applies_to(task_id)

    def prefers(self, task_id: str) -> bool:
        return self.status == PreferenceStatus.PREFERRED and self.applies_to(task_id)


@dataclass(frozen=True)
class Assignment:
    """The atomic scheduling output: one worker on one task for one day."""

    date: date
    task_id: str
    worker_id: str

    def to_dict(self) -> dict:
        return {"date": date_key(self.date), "taskId": self.task_id, "workerId": self.worker_id}


@dataclass(frozen=True)
class WeekendCloserDecision:
    """A worker picked to close a weekend, with the reason for the pick."""

    worker_id: str
    reason: CloserReason

    def to_dict(self) -> dict:
        return {"workerId": self.worker_id, "reason": self.reason.value}


@dataclass
class FridayClosers:
    """Closers planned for one weekend.

    Attributes:
        forced: Workers closing because of a mandatory (primary) closing date.
        assigned: Workers picked by the engine, in ranked order.
        required_count: Number of weekend tasks that need a closer.
    """

    forced: list[str] = field(default_factory=list)
    assigned: list[WeekendCloserDecision] = field(default_factory=list)
    required_count: int = 0

    @property
    def shortfall(self) -> int:
        """Closers still missing after forced and assigned closers."""
        return max(0, self.required_count - len(self.forced) - len(self.assigned))

    @property
    def assigned_ids(self) -> list[str]:
        return [decision.worker_id for decision in self.assigned]

    def to_dict(self) -> dict:
        return {
            "forced": list(self.forced),
            "assigned": [decision.to_dict() for decision in self.assigned],
            "requiredCount": self.required_count,
        }


@dataclass
class PlanResult:
    """Complete output of a secondary-task planning run.

    Attributes:
        closers_by_friday: Closer plan keyed by the Friday's DD/MM/YYYY key.
        assignments: All produced assignments in generation order.
        warnings: Non-fatal business-rule shortfalls and audit findings.
        logs: Informational trace of the run.
    """

    closers_by_friday: dict[str, FridayClosers] = field(default_factory=dict)
    assignments: list[Assignment] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    logs: list[str] = field(default_factory=list)

    def assignments_for_worker(self, worker_id: str) -> list[Assignment]:
        return [a for a in self.assignments if a.worker_id == worker_id]

    def assignments_on(self, day: date) -> list[Assignment]:
        return [a for a in self.assignments if a.date == day]

    def worker_for(self, day: date, task_id: str) -> Optional[str]:
        """Worker holding a task on a day, if the cell is filled."""
        for a in self.assignments:
            if a.date == day and a.task_id == task_id:
                return a.worker_id
        return None

    def counts_by_worker(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for a in self.assignments:
            counts[a.worker_id] = counts.get(a.worker_id, 0) + 1
        return counts

    def to_dict(self) -> dict:
        return {
            "closersByFriday": {
                key: closers.to_dict() for key, closers in self.closers_by_friday.items()
            },
            "assignments": [a.to_dict() for a in self.assignments],
            "warnings": list(self.warnings),
            "logs": list(self.logs),
        }


@dataclass
class GenerateOptions:
    """Options for the secondary-task engine.

    Attributes:
        weekly_cap_sequence: Progressive per-worker weekly caps, tried in order.
        scarcity_threshold: Tasks with at most this many qualified workers
            get a scarcity bonus.
        skip_manual_only_tasks: Never auto-fill tasks with auto_assign=False.
    """

    weekly_cap_sequence: list[int] = field(default_factory=lambda: [0, 1, 2, 3])
    scarcity_threshold: int = 3
    skip_manual_only_tasks: bool = True

    def __post_init__(self):
        if not self.weekly_cap_sequence:
            raise ValueError("weekly_cap_sequence must contain at least one cap")
        if any(cap < 0 for cap in self.weekly_cap_sequence):
            raise ValueError("weekly caps must be non-negative")
        if self.scarcity_threshold < 0:
            raise ValueError("scarcity_threshold must be non-negative")

    @property
    def max_cap(self) -> int:
        """The last (most permissive) cap of the sequence."""
        return self.weekly_cap_sequence[-1]


@dataclass
class ClosingScheduleConfig:
    """Configuration for the closing-date optimizer.

    Attributes:
        gap_slack_weeks: Reserved. Not used by the algorithm.
        allow_single_relief_min1: Enable the relief pass for 2n-1 gaps.
        relief_max_per_schedule: Maximum relief picks per worker schedule.
    """

    gap_slack_weeks: int = 0
    allow_single_relief_min1: bool = True
    relief_max_per_schedule: int = 1

    def __post_init__(self):
        if self.relief_max_per_schedule < 0:
            raise ValueError("relief_max_per_schedule must be non-negative")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ClosingScheduleConfig":
        """Build a config from stored department settings.

        Missing keys fall back to the defaults. Both camelCase and snake_case
        keys are accepted.
        """
        defaults = cls()
        if not data:
            return defaults

        def pick(camel: str, snake: str, default):
            if camel in data and data[camel] is not None:
                return data[camel]
            if snake in data and data[snake] is not None:
                return data[snake]
            return default

        return cls(
            gap_slack_weeks=int(pick("gapSlackWeeks", "gap_slack_weeks", defaults.gap_slack_weeks)),
            allow_single_relief_min1=bool(
                pick(
                    "allowSingleReliefMin1",
                    "allow_single_relief_min1",
                    defaults.allow_single_relief_min1,
                )
            ),
            relief_max_per_schedule=int(
                pick(
                    "reliefMaxPerSchedule",
                    "relief_max_per_schedule",
                    defaults.relief_max_per_schedule,
                )
            ),
        )


@dataclass
class WorkerClosingInput:
    """Input of a single worker's closing-date calculation.

    Attributes:
        worker_id: Worker id.
        worker_name: Display name used in log lines.
        closing_interval: Weeks between closes (0 = never closes).
        mandatory_closing_dates: Fridays forced by primary weekend duties.
    """

    worker_id: str
    worker_name: str
    closing_interval: int
    mandatory_closing_dates: list[date] = field(default_factory=list)


@dataclass
class ClosingScheduleResult:
    """Result of a worker's closing-date calculation.

    Attributes:
        worker_id: Worker id.
        required_dates: Mandatory closing dates (echoed from the input).
        optimal_dates: Computed closing dates, never overlapping mandatory weeks.
        calculation_log: Step-by-step trace of the calculation.
        user_alerts: Messages meant for the person running the schedule.
    """

    worker_id: str
    required_dates: list[date] = field(default_factory=list)
    optimal_dates: list[date] = field(default_factory=list)
    calculation_log: list[str] = field(default_factory=list)
    user_alerts: list[str] = field(default_factory=list)

    @property
    def all_dates(self) -> list[date]:
        """Mandatory and optimal dates together, sorted."""
        return sorted(set(self.required_dates) | set(self.optimal_dates))

    def to_dict(self) -> dict:
        return {
            "workerId": self.worker_id,
            "requiredDates": [date_key(d) for d in self.required_dates],
            "optimalDates": [date_key(d) for d in self.optimal_dates],
            "calculationLog": list(self.calculation_log),
            "userAlerts": list(self.user_alerts),
        }


@dataclass(frozen=True)
class PrimaryAssignment:
    """A primary-duty cell of the primary schedule.

    Attributes:
        worker_id: Worker holding the duty.
        task_id: Primary task id.
        start_date: First day of the duty.
        end_date: Last day of the duty (inclusive).
        week_number: Schedule week the cell belongs to.
        task_name: Display name of the task.
    """

    worker_id: str
    task_id: str
    start_date: date
    end_date: date
    week_number: int
    task_name: str = ""

    @property
    def cell_key(self) -> str:
        return make_cell_key(self.worker_id, self.week_number)

    def overlaps(self, first: date, last: date) -> bool:
        """Check if the duty overlaps the inclusive range [first, last]."""
        return self.start_date <= last and self.end_date >= first


def make_cell_key(worker_id: str, week_number: int) -> str:
    """Key of a primary-schedule cell: ``{worker_id}_{week_number}``."""
    return f"{worker_id}_{week_number}"


def parse_cell_key(cell_key: str) -> tuple[str, int]:
    """Split a cell key into (worker_id, week_number).

    Raises:
        ValueError: If the key has no numeric week suffix.
    """
    worker_id, sep, week = cell_key.rpartition("_")
    if not sep or not worker_id:
        raise ValueError(f"Invalid cell key: {cell_key!r}")
    return worker_id, int(week)


def is_valid_cell_key(cell_key: str) -> bool:
    try:
        _, week_number = parse_cell_key(cell_key)
    except ValueError:
        return False
    return week_number > 0

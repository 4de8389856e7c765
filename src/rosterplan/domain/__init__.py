"""Domain models and business rules for roster planning."""

from rosterplan.domain.calendar import (
    SemesterWeek,
    calculate_weeks,
    date_key,
    parse_date_key,
    semester_fridays,
    to_date,
    week_key,
    weekend_triad,
)
from rosterplan.domain.models import (
    Assignment,
    ClosingScheduleConfig,
    ClosingScheduleResult,
    CloserReason,
    FridayClosers,
    GenerateOptions,
    PlanResult,
    PreferenceEntry,
    PreferenceStatus,
    PrimaryAssignment,
    SecondaryTask,
    WeekendCloserDecision,
    WorkerClosingInput,
    WorkerProfile,
    is_valid_cell_key,
    make_cell_key,
    parse_cell_key,
)
from rosterplan.domain.policies import (
    CandidateScoringPolicy,
    DefaultScoringPolicy,
    ScoreBreakdown,
)
from rosterplan.domain.snapshot import (
    SNAPSHOT_TTL,
    DateSpan,
    PlanningSnapshot,
    SnapshotError,
    SnapshotFormatError,
    SnapshotMissingError,
    StaleSnapshotError,
    WorkerPayload,
    WorkerStats,
    parse_tasks,
)

__all__ = [
    # Calendar
    "SemesterWeek",
    "calculate_weeks",
    "date_key",
    "parse_date_key",
    "semester_fridays",
    "to_date",
    "week_key",
    "weekend_triad",
    # Models
    "Assignment",
    "ClosingScheduleConfig",
    "ClosingScheduleResult",
    "CloserReason",
    "FridayClosers",
    "GenerateOptions",
    "PlanResult",
    "PreferenceEntry",
    "PreferenceStatus",
    "PrimaryAssignment",
    "SecondaryTask",
    "WeekendCloserDecision",
    "WorkerClosingInput",
    "WorkerProfile",
    "is_valid_cell_key",
    "make_cell_key",
    "parse_cell_key",
    # Policies
    "CandidateScoringPolicy",
    "DefaultScoringPolicy",
    "ScoreBreakdown",
    # Snapshot
    "SNAPSHOT_TTL",
    "DateSpan",
    "PlanningSnapshot",
    "SnapshotError",
    "SnapshotFormatError",
    "SnapshotMissingError",
    "StaleSnapshotError",
    "WorkerPayload",
    "WorkerStats",
    "parse_tasks",
]

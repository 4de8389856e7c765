"""Planning snapshot consumed by the secondary-task engine.

A snapshot is a read-only, time-boxed bundle assembled by the caller from its
datastore. It carries everything the engine needs about each worker: profile,
primary-duty busy days, closing history, mandatory and optimal closing dates
and preferences inside the planning window. The engine refuses snapshots
older than ``SNAPSHOT_TTL``.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from rosterplan.domain.calendar import (
    DateLike,
    date_key,
    parse_timestamp,
    to_date,
    weekend_triad,
)
from rosterplan.domain.models import (
    PreferenceEntry,
    PreferenceStatus,
    SecondaryTask,
    WorkerProfile,
)

SNAPSHOT_TTL = timedelta(minutes=5)


def as_utc(moment: datetime) -> datetime:
    """Return ``moment`` as an aware UTC datetime; naive values are taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class SnapshotError(Exception):
    """Base class for planning snapshot failures."""


class SnapshotMissingError(SnapshotError):
    """Raised when no planning snapshot was supplied."""


class StaleSnapshotError(SnapshotError):
    """Raised when the planning snapshot is older than its TTL."""

    def __init__(self, generated_at: datetime, now: datetime):
        self.generated_at = generated_at
        self.now = now
        self.age = as_utc(now) - as_utc(generated_at)
        super().__init__(
            f"Planning snapshot is stale: generated at {generated_at.isoformat()}, "
            f"age {int(self.age.total_seconds())}s exceeds {int(SNAPSHOT_TTL.total_seconds())}s"
        )


class SnapshotFormatError(SnapshotError, ValueError):
    """Raised when snapshot or task JSON cannot be decoded."""


@dataclass(frozen=True)
class DateSpan:
    """An inclusive date range."""

    start: date
    end: date

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end

    def to_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass
class WorkerStats:
    """Department-wide usage statistics used for tie-breaking."""

    total_secondary: int = 0
    closing_accuracy_pct: float = 0.0


@dataclass
class WorkerPayload:
    """Everything the engine knows about one worker.

    Attributes:
        profile: Closing interval, qualifications and name.
        primary_busy_days: Days on which the worker holds a primary duty.
        last_closing_friday: Most recent closing Friday from the ledger.
        mandatory_closing_dates: Fridays forced by primary duties.
        optimal_closing_dates: Fridays picked by the closing optimizer.
        preferences: Preferences inside the planning window.
    """

    profile: WorkerProfile
    primary_busy_days: set[date] = field(default_factory=set)
    last_closing_friday: Optional[date] = None
    mandatory_closing_dates: list[date] = field(default_factory=list)
    optimal_closing_dates: list[date] = field(default_factory=list)
    preferences: list[PreferenceEntry] = field(default_factory=list)

    def has_primary_on(self, day: date) -> bool:
        return day in self.primary_busy_days

    def is_forced_closer(self, friday: date) -> bool:
        return friday in self.mandatory_closing_dates

    def spans_weekend(self, friday: date) -> bool:
        """Check if a primary duty covers the weekend anchored at ``friday``."""
        if self.is_forced_closer(friday):
            return True
        return any(day in self.primary_busy_days for day in weekend_triad(friday))

    def preference_on(self, day: date, task_id: str) -> tuple[bool, bool]:
        """Return (blocked, preferred) for a task on a day."""
        blocked = False
        preferred = False
        for pref in self.preferences:
            if pref.date != day:
                continue
            if pref.blocks(task_id):
                blocked = True
            elif pref.prefers(task_id):
                preferred = True
        return blocked, preferred


@dataclass
class PlanningSnapshot:
    """Read-only planning input assembled by the caller.

    Attributes:
        generated_at: Timestamp the snapshot was built (timezone-aware or naive).
        department_id: Owning department.
        selected_range: Range the plan is generated for.
        window: Wider window the history (fridays, preferences) covers.
        fridays: Window-wide ordered Fridays.
        workers: Worker payloads keyed by worker id.
        stats: Optional usage statistics keyed by worker id.
    """

    generated_at: datetime
    department_id: str
    selected_range: DateSpan
    window: DateSpan
    fridays: list[date] = field(default_factory=list)
    workers: dict[str, WorkerPayload] = field(default_factory=dict)
    stats: dict[str, WorkerStats] = field(default_factory=dict)

    @property
    def worker_ids(self) -> list[str]:
        """Worker ids in sorted order."""
        return sorted(self.workers)

    def stats_for(self, worker_id: str) -> WorkerStats:
        return self.stats.get(worker_id) or WorkerStats()

    def age(self, now: Optional[datetime] = None) -> timedelta:
        if now is None:
            now = datetime.now(timezone.utc)
        return as_utc(now) - as_utc(self.generated_at)

    def is_fresh(self, now: Optional[datetime] = None) -> bool:
        return self.age(now) <= SNAPSHOT_TTL

    def ensure_fresh(self, now: Optional[datetime] = None) -> None:
        """Raise StaleSnapshotError when the snapshot is past its TTL."""
        if now is None:
            now = datetime.now(timezone.utc)
        if not self.is_fresh(now):
            raise StaleSnapshotError(self.generated_at, now)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlanningSnapshot":
        """Decode the snapshot JSON shape.

        Raises:
            SnapshotFormatError: If a required field is missing or malformed.
        """
        try:
            generated_at = parse_timestamp(str(data["generatedAt"]))
            selected_range = _span_from_dict(data["selectedRange"])
            window = _span_from_dict(data.get("window") or data["selectedRange"])
            fridays = [to_date(d) for d in data.get("fridays", [])]

            stats = {}
            per_worker = (data.get("stats") or {}).get("perWorker") or {}
            for worker_id, raw in per_worker.items():
                stats[str(worker_id)] = WorkerStats(
                    total_secondary=int(raw.get("totalSecondary") or 0),
                    closing_accuracy_pct=float(raw.get("closingAccuracyPct") or 0),
                )

            workers = {
                str(worker_id): _worker_from_dict(raw)
                for worker_id, raw in (data.get("workers") or {}).items()
            }
        except SnapshotFormatError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SnapshotFormatError(f"Malformed planning snapshot: {e!r}") from e

        return cls(
            generated_at=generated_at,
            department_id=str(data.get("departmentId", "")),
            selected_range=selected_range,
            window=window,
            fridays=fridays,
            workers=workers,
            stats=stats,
        )

    def to_dict(self) -> dict:
        """Encode to the snapshot JSON shape."""
        return {
            "generatedAt": as_utc(self.generated_at).isoformat(),
            "departmentId": self.department_id,
            "selectedRange": self.selected_range.to_dict(),
            "window": self.window.to_dict(),
            "fridays": [date_key(d) for d in self.fridays],
            "stats": {
                "perWorker": {
                    worker_id: {
                        "totalSecondary": s.total_secondary,
                        "closingAccuracyPct": s.closing_accuracy_pct,
                    }
                    for worker_id, s in sorted(self.stats.items())
                }
            },
            "workers": {
                worker_id: _worker_to_dict(payload)
                for worker_id, payload in sorted(self.workers.items())
            },
        }


def parse_preference_status(value: Optional[str]) -> Optional[PreferenceStatus]:
    if value is None or value == "":
        return None
    try:
        return PreferenceStatus(value)
    except ValueError:
        raise SnapshotFormatError(f"Unknown preference status: {value!r}") from None


def _span_from_dict(data: Mapping[str, Any]) -> DateSpan:
    start = to_date(data["start"])
    end = to_date(data["end"])
    if start > end:
        raise SnapshotFormatError(f"Range start {start} is after end {end}")
    return DateSpan(start, end)


def _dates(values: Optional[list[DateLike]]) -> list[date]:
    return sorted({to_date(v) for v in values or []})


def _worker_from_dict(data: Mapping[str, Any]) -> WorkerPayload:
    raw_profile = data.get("profile") or {}
    profile = WorkerProfile(
        first_name=str(raw_profile.get("firstName", "")),
        last_name=str(raw_profile.get("lastName", "")),
        closing_interval=int(raw_profile.get("closingInterval") or 0),
        qualifications={str(q) for q in raw_profile.get("qualifications") or []},
    )

    last_closing = data.get("lastClosingFridayDDMM")
    preferences = [
        PreferenceEntry(
            date=to_date(p["date"]),
            task_id=p.get("taskId"),
            status=parse_preference_status(p.get("status")),
        )
        for p in data.get("preferencesInWindow") or []
    ]

    return WorkerPayload(
        profile=profile,
        primary_busy_days=set(_dates(data.get("primaryBusyDaysDDMM"))),
        last_closing_friday=to_date(last_closing) if last_closing else None,
        mandatory_closing_dates=_dates(data.get("mandatoryClosingDates")),
        optimal_closing_dates=_dates(data.get("optimalClosingDates")),
        preferences=preferences,
    )


def _worker_to_dict(payload: WorkerPayload) -> dict:
    profile = payload.profile
    return {
        "profile": {
            "firstName": profile.first_name,
            "lastName": profile.last_name,
            "closingInterval": profile.closing_interval,
            "qualifications": sorted(profile.qualifications),
        },
        "primaryBusyDaysDDMM": [date_key(d) for d in sorted(payload.primary_busy_days)],
        "lastClosingFridayDDMM": (
            date_key(payload.last_closing_friday) if payload.last_closing_friday else None
        ),
        "mandatoryClosingDates": [date_key(d) for d in payload.mandatory_closing_dates],
        "optimalClosingDates": [date_key(d) for d in payload.optimal_closing_dates],
        "preferencesInWindow": [
            {
                "date": date_key(p.date),
                "taskId": p.task_id,
                "status": p.status.value if p.status else None,
            }
            for p in payload.preferences
        ],
    }


def parse_tasks(data: Any) -> list[SecondaryTask]:
    """Decode task JSON: a list of tasks or an object with a ``tasks`` list.

    Raises:
        SnapshotFormatError: If a task is missing its id or is not an object.
    """
    if isinstance(data, Mapping):
        data = data.get("tasks")
    if not isinstance(data, list):
        raise SnapshotFormatError("Task definitions must be a list")
    try:
        return [SecondaryTask.from_dict(item) for item in data]
    except (KeyError, TypeError, AttributeError) as e:
        raise SnapshotFormatError(f"Malformed task definition: {e!r}") from e

"""Secondary-task assignment engine.

This module provides the SecondaryScheduleEngine that fills the secondary
task grid for a date range in three phases:
- Phase A picks weekend closers per Friday (forced closers come from primary duties)
- Phase B assigns each weekend task as a Thu-Fri-Sat triad to one worker
- Phase C fills weekday cells and leftover weekend cells under progressive weekly caps

All run state lives in a PlanAccumulator built fresh for every call, so the
engine itself holds no state between runs.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from rosterplan.domain.calendar import (
    DateLike,
    date_key,
    date_range,
    is_friday,
    is_weekend_day,
    to_date,
    week_key,
    weekend_friday,
    weekend_triad,
    weeks_between,
)
from rosterplan.domain.models import (
    Assignment,
    CloserReason,
    FridayClosers,
    GenerateOptions,
    PlanResult,
    SecondaryTask,
    WeekendCloserDecision,
)
from rosterplan.domain.policies import CandidateScoringPolicy, DefaultScoringPolicy
from rosterplan.domain.snapshot import PlanningSnapshot, SnapshotMissingError, WorkerPayload
from rosterplan.validation.validator import PlanValidator, ValidationErrorType

logger = logging.getLogger(__name__)

NEVER_CLOSED_WEEKS = 9999


@dataclass
class PlanAccumulator:
    """Mutable state of a single planning run.

    Attributes:
        total_counts: Assignments per worker in this run.
        weekly_counts: Assignments per (worker, week key) in this run.
        assigned_on_day: Workers holding a secondary task on each day.
        filled_cells: Tasks already filled on each day.
        assigned_closers: Closers picked in this run, per Friday.
        closers_by_friday: Closer plan per Friday key.
        assignments: Produced assignments in order.
        warnings: Non-fatal problems found during the run.
        logs: Informational trace.
    """

    total_counts: dict[str, int] = field(default_factory=dict)
    weekly_counts: dict[tuple[str, str], int] = field(default_factory=dict)
    assigned_on_day: dict[date, set[str]] = field(default_factory=dict)
    filled_cells: dict[date, set[str]] = field(default_factory=dict)
    assigned_closers: dict[date, list[str]] = field(default_factory=dict)
    closers_by_friday: dict[str, FridayClosers] = field(default_factory=dict)
    assignments: list[Assignment] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    logs: list[str] = field(default_factory=list)

    def weekly_count(self, worker_id: str, day: date) -> int:
        return self.weekly_counts.get((worker_id, week_key(day)), 0)

    def total_count(self, worker_id: str) -> int:
        return self.total_counts.get(worker_id, 0)

    def is_assigned_on(self, worker_id: str, day: date) -> bool:
        return worker_id in self.assigned_on_day.get(day, ())

    def is_filled(self, day: date, task_id: str) -> bool:
        return task_id in self.filled_cells.get(day, ())

    def closed_on(self, worker_id: str, friday: date) -> bool:
        return worker_id in self.assigned_closers.get(friday, ())

    def record(self, day: date, task_id: str, worker_id: str) -> None:
        """Record an assignment and update every counter."""
        self.assignments.append(Assignment(day, task_id, worker_id))
        self.assigned_on_day.setdefault(day, set()).add(worker_id)
        self.filled_cells.setdefault(day, set()).add(task_id)
        self.total_counts[worker_id] = self.total_counts.get(worker_id, 0) + 1
        key = (worker_id, week_key(day))
        self.weekly_counts[key] = self.weekly_counts.get(key, 0) + 1

    def to_result(self) -> PlanResult:
        return PlanResult(
            closers_by_friday=self.closers_by_friday,
            assignments=self.assignments,
            warnings=self.warnings,
            logs=self.logs,
        )


@dataclass
class CloserCandidate:
    """Ranking signals of a weekend closer candidate."""

    worker_id: str
    on_optimal: bool
    missed: bool
    weeks_until_due: int
    closing_accuracy_pct: float = 0.0
    total_secondary: int = 0

    @property
    def reason(self) -> CloserReason:
        if self.on_optimal:
            return CloserReason.ON_OPTIMAL
        if self.missed:
            return CloserReason.MISSED_OPTIMAL
        if self.weeks_until_due == 0:
            return CloserReason.DUE
        return CloserReason.FAIRNESS

    def sort_key(self) -> tuple:
        return (
            not self.missed,
            self.weeks_until_due,
            self.closing_accuracy_pct,
            self.total_secondary,
            self.worker_id,
        )


@dataclass
class _RunContext:
    """Read-only inputs shared by the phases of one run."""

    snapshot: PlanningSnapshot
    start: date
    end: date
    days: list[date]
    tasks: list[SecondaryTask]
    ordered_tasks: list[SecondaryTask]
    qualified_counts: dict[str, int]
    options: GenerateOptions
    scoring: CandidateScoringPolicy

    def in_range(self, day: date) -> bool:
        return self.start <= day <= self.end

    def worker(self, worker_id: str) -> WorkerPayload:
        return self.snapshot.workers[worker_id]


class SecondaryScheduleEngine:
    """Generates secondary-task plans from a planning snapshot.

    Hard constraints (qualification, blocked preferences, primary duty
    conflicts, one task per worker per day) eliminate candidates before the
    scoring policy is consulted. Every tie-break ends on the worker id, so
    identical inputs always give identical plans.
    """

    def __init__(
        self,
        options: Optional[GenerateOptions] = None,
        scoring_policy: Optional[CandidateScoringPolicy] = None,
    ):
        self.options = options or GenerateOptions()
        self.scoring_policy = scoring_policy
        self.validator = PlanValidator()

    def generate(
        self,
        snapshot: Optional[PlanningSnapshot],
        start: DateLike,
        end: DateLike,
        tasks: Sequence[SecondaryTask],
        options: Optional[GenerateOptions] = None,
        now: Optional[datetime] = None,
    ) -> PlanResult:
        """Generate a secondary-task plan for a date range.

        Args:
            snapshot: Planning snapshot assembled by the caller.
            start: First day of the range.
            end: Last day of the range (inclusive).
            tasks: Task columns of the grid.
            options: Overrides the engine options for this run.
            now: Reference time for the snapshot freshness check.

        Returns:
            PlanResult with closers, assignments, warnings and logs.

        Raises:
            SnapshotMissingError: If no snapshot is given.
            StaleSnapshotError: If the snapshot is older than its TTL.
        """
        if snapshot is None:
            raise SnapshotMissingError("Planning snapshot not found")
        snapshot.ensure_fresh(now)

        ctx = self._build_context(snapshot, to_date(start), to_date(end), tasks, options)
        acc = PlanAccumulator()
        logger.info(
            "Generating secondary plan %s to %s: %d workers, %d tasks",
            date_key(ctx.start),
            date_key(ctx.end),
            len(snapshot.workers),
            len(ctx.tasks),
        )

        fridays = [d for d in ctx.days if is_friday(d)]
        for friday in fridays:
            self._select_closers(ctx, acc, friday)
        for friday in fridays:
            self._assign_weekend_triads(ctx, acc, friday)
        for day in ctx.days:
            self._fill_day(ctx, acc, day)

        self._diagnose(ctx, acc)
        acc.logs.append(f"Generated {len(acc.assignments)} secondary assignments.")
        logger.info(
            "Generated %d secondary assignments with %d warnings",
            len(acc.assignments),
            len(acc.warnings),
        )
        return acc.to_result()

    def _build_context(
        self,
        snapshot: PlanningSnapshot,
        start: date,
        end: date,
        tasks: Sequence[SecondaryTask],
        options: Optional[GenerateOptions],
    ) -> _RunContext:
        options = options or self.options
        scoring = self.scoring_policy or DefaultScoringPolicy(
            scarcity_threshold=options.scarcity_threshold
        )

        qualified_counts = {task.id: 0 for task in tasks}
        for worker_id in snapshot.worker_ids:
            profile = snapshot.workers[worker_id].profile
            for task in tasks:
                if profile.is_qualified_for(task):
                    qualified_counts[task.id] += 1

        candidates = [t for t in tasks if t.auto_assign or not options.skip_manual_only_tasks]
        ordered = sorted(candidates, key=lambda t: qualified_counts[t.id])

        return _RunContext(
            snapshot=snapshot,
            start=start,
            end=end,
            days=date_range(start, end),
            tasks=list(tasks),
            ordered_tasks=ordered,
            qualified_counts=qualified_counts,
            options=options,
            scoring=scoring,
        )

    # Phase A

    def _select_closers(self, ctx: _RunContext, acc: PlanAccumulator, friday: date) -> None:
        snapshot = ctx.snapshot
        forced = [
            worker_id
            for worker_id in snapshot.worker_ids
            if snapshot.workers[worker_id].is_forced_closer(friday)
        ]
        required = sum(1 for t in ctx.tasks if t.assign_weekends and t.auto_assign)

        candidates = []
        for worker_id in snapshot.worker_ids:
            if worker_id in forced:
                continue
            candidate = self._closer_candidate(ctx, acc, worker_id, friday)
            if candidate is not None:
                candidates.append(candidate)

        on_optimal = sorted((c for c in candidates if c.on_optimal), key=CloserCandidate.sort_key)
        rest = sorted((c for c in candidates if not c.on_optimal), key=CloserCandidate.sort_key)

        need = max(0, required - len(forced))
        chosen = [
            WeekendCloserDecision(c.worker_id, c.reason) for c in (on_optimal + rest)[:need]
        ]
        acc.assigned_closers[friday] = [d.worker_id for d in chosen]
        acc.closers_by_friday[date_key(friday)] = FridayClosers(
            forced=forced, assigned=chosen, required_count=required
        )

        logger.debug(
            "Friday %s: forced=%s required=%d candidates=%s chosen=%s",
            date_key(friday),
            forced,
            required,
            [(c.worker_id, c.on_optimal, c.missed, c.weeks_until_due) for c in candidates],
            [(d.worker_id, d.reason.value) for d in chosen],
        )

    def _closer_candidate(
        self,
        ctx: _RunContext,
        acc: PlanAccumulator,
        worker_id: str,
        friday: date,
    ) -> Optional[CloserCandidate]:
        worker = ctx.worker(worker_id)
        interval = worker.profile.closing_interval
        if interval <= 0:
            return None
        if worker.spans_weekend(friday):
            return None

        previous = friday - timedelta(days=7)
        if acc.closed_on(worker_id, previous) or worker.is_forced_closer(previous):
            return None

        weeks_since = self._weeks_since_last_close(ctx, acc, worker_id, friday)
        stats = ctx.snapshot.stats_for(worker_id)
        return CloserCandidate(
            worker_id=worker_id,
            on_optimal=friday in worker.optimal_closing_dates,
            missed=self._missed_optimal(worker, friday, weeks_since),
            weeks_until_due=max(0, interval - weeks_since),
            closing_accuracy_pct=stats.closing_accuracy_pct,
            total_secondary=stats.total_secondary,
        )

    def _weeks_since_last_close(
        self,
        ctx: _RunContext,
        acc: PlanAccumulator,
        worker_id: str,
        friday: date,
    ) -> int:
        """Weeks since the worker last closed before ``friday``.

        Looks at closers picked in this run first, then the closing ledger,
        then the latest mandatory date.
        """
        worker = ctx.worker(worker_id)
        last = None
        for f in sorted(ctx.snapshot.fridays, reverse=True):
            if f >= friday:
                continue
            if acc.closed_on(worker_id, f):
                last = f
                break

        if last is None and worker.last_closing_friday and worker.last_closing_friday < friday:
            last = worker.last_closing_friday

        if last is None:
            earlier = [d for d in worker.mandatory_closing_dates if d < friday]
            if earlier:
                last = max(earlier)

        if last is None:
            return NEVER_CLOSED_WEEKS
        return weeks_between(friday, last)

    def _missed_optimal(self, worker: WorkerPayload, friday: date, weeks_since: int) -> bool:
        earlier = [d for d in worker.optimal_closing_dates if d < friday]
        if not earlier:
            return False
        return weeks_since > weeks_between(friday, max(earlier))

    # Phase B

    def _assign_weekend_triads(self, ctx: _RunContext, acc: PlanAccumulator, friday: date) -> None:
        weekend_tasks = [t for t in ctx.ordered_tasks if t.assign_weekends]
        if not weekend_tasks:
            return

        triad = [d for d in weekend_triad(friday) if ctx.in_range(d)]
        closers = acc.closers_by_friday.get(date_key(friday))
        forced = set(closers.forced) if closers else set()
        queue = list(closers.assigned_ids) if closers else []

        for task in weekend_tasks:
            worker_id = None
            source = "closers"
            for candidate in queue:
                if self._can_take_triad(
                    ctx, acc, candidate, task, friday, triad, forced, ctx.options.max_cap
                ):
                    worker_id = candidate
                    break

            if worker_id is not None:
                queue.remove(worker_id)
            else:
                source = "fallback"
                worker_id = self._fallback_triad_candidate(ctx, acc, task, friday, triad, forced)

            if worker_id is None:
                acc.warnings.append(f"Weekend {date_key(friday)}: no candidate for task {task.id}")
                continue

            worker = ctx.worker(worker_id)
            for day in triad:
                if worker.has_primary_on(day):
                    acc.warnings.append(
                        f"Primary overlap blocked on {date_key(day)} for worker {worker_id}"
                    )
                    continue
                acc.record(day, task.id, worker_id)

            logger.debug(
                "Weekend %s task %s -> %s (%s)", date_key(friday), task.id, worker_id, source
            )

    def _can_take_triad(
        self,
        ctx: _RunContext,
        acc: PlanAccumulator,
        worker_id: str,
        task: SecondaryTask,
        friday: date,
        triad: list[date],
        forced: set[str],
        cap: int,
    ) -> bool:
        worker = ctx.snapshot.workers.get(worker_id)
        if worker is None:
            return False
        if worker.profile.closing_interval <= 0:
            return False
        if not worker.profile.is_qualified_for(task):
            return False
        if worker.spans_weekend(friday) or worker_id in forced:
            return False
        if any(acc.is_assigned_on(worker_id, day) for day in triad):
            return False
        if acc.weekly_count(worker_id, friday) > cap:
            return False
        return not any(worker.preference_on(day, task.id)[0] for day in triad)

    def _fallback_triad_candidate(
        self,
        ctx: _RunContext,
        acc: PlanAccumulator,
        task: SecondaryTask,
        friday: date,
        triad: list[date],
        forced: set[str],
    ) -> Optional[str]:
        for cap in ctx.options.weekly_cap_sequence:
            scored = []
            for worker_id in ctx.snapshot.worker_ids:
                if not self._can_take_triad(ctx, acc, worker_id, task, friday, triad, forced, cap):
                    continue
                worker = ctx.worker(worker_id)
                preferred = any(worker.preference_on(day, task.id)[1] for day in triad)
                score = ctx.scoring.score(
                    preferred=preferred,
                    qualified_count=ctx.qualified_counts[task.id],
                    cap=cap,
                    weekly_count=acc.weekly_count(worker_id, friday),
                    total_count=acc.total_count(worker_id),
                )
                scored.append((-score.total, worker_id))
            if scored:
                return min(scored)[1]
        return None

    # Phase C

    def _fill_day(self, ctx: _RunContext, acc: PlanAccumulator, day: date) -> None:
        weekend = is_weekend_day(day)
        friday = weekend_friday(day)
        closers = acc.closers_by_friday.get(date_key(friday)) if friday else None
        forced = set(closers.forced) if closers else set()

        # Weekend tasks live only on Thu-Sat, the others only on Sun-Wed
        cells = [t for t in ctx.ordered_tasks if t.assign_weekends == weekend]
        for cap in ctx.options.weekly_cap_sequence:
            for task in cells:
                if acc.is_filled(day, task.id):
                    continue
                worker_id = self._best_cell_candidate(ctx, acc, day, task, cap, friday, forced)
                if worker_id is None:
                    logger.debug("%s task %s: no candidate at cap %d", date_key(day), task.id, cap)
                    continue
                acc.record(day, task.id, worker_id)
                logger.debug(
                    "%s task %s -> %s (cap %d)", date_key(day), task.id, worker_id, cap
                )

        for task in cells:
            if not acc.is_filled(day, task.id):
                acc.warnings.append(f"{date_key(day)}: no candidate for task {task.id}")

    def _best_cell_candidate(
        self,
        ctx: _RunContext,
        acc: PlanAccumulator,
        day: date,
        task: SecondaryTask,
        cap: int,
        friday: Optional[date],
        forced: set[str],
    ) -> Optional[str]:
        best = None
        for worker_id in ctx.snapshot.worker_ids:
            worker = ctx.worker(worker_id)
            if not worker.profile.is_qualified_for(task):
                continue
            if worker.has_primary_on(day):
                continue
            if acc.is_assigned_on(worker_id, day):
                continue
            if friday is not None and (worker_id in forced or worker.spans_weekend(friday)):
                continue
            weekly = acc.weekly_count(worker_id, day)
            if weekly > cap:
                continue
            blocked, preferred = worker.preference_on(day, task.id)
            if blocked:
                continue

            score = ctx.scoring.score(
                preferred=preferred,
                qualified_count=ctx.qualified_counts[task.id],
                cap=cap,
                weekly_count=weekly,
                total_count=acc.total_count(worker_id),
            )
            rank = (-score.total, ctx.snapshot.stats_for(worker_id).total_secondary, worker_id)
            if best is None or rank < best:
                best = rank
        return best[2] if best else None

    # Diagnostics

    def _diagnose(self, ctx: _RunContext, acc: PlanAccumulator) -> None:
        for key, closers in acc.closers_by_friday.items():
            if closers.shortfall > 0:
                acc.warnings.append(
                    f"Friday {key}: shortfall {closers.shortfall} "
                    f"(forced={len(closers.forced)}, assigned={len(closers.assigned)})"
                )

        audit = self.validator.audit(acc.assignments, ctx.snapshot)
        for error in audit.errors:
            if error.error_type == ValidationErrorType.PRIMARY_CONFLICT:
                acc.warnings.append(
                    f"Primary overlap on {date_key(error.day)} for worker {error.worker_id}"
                )
            elif error.error_type == ValidationErrorType.BLOCKED_PREFERENCE:
                acc.warnings.append(
                    f"Blocked preference used on {date_key(error.day)} for worker {error.worker_id}"
                )
            else:
                acc.warnings.append(error.message)

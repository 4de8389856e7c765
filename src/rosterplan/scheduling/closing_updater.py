"""Recompute optimal closing dates after a primary schedule edit.

Only workers whose primary duties changed are recomputed. Persisting the
new dates is left to the caller.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional, Sequence

from rosterplan.domain.calendar import SemesterWeek
from rosterplan.domain.models import (
    ClosingScheduleConfig,
    ClosingScheduleResult,
    PrimaryAssignment,
    WorkerClosingInput,
    WorkerProfile,
)
from rosterplan.scheduling.change_detector import detect_changed_workers
from rosterplan.scheduling.closing_calculator import ClosingScheduleCalculator
from rosterplan.scheduling.mandatory_dates import extract_mandatory_closing_dates

logger = logging.getLogger(__name__)


@dataclass
class ClosingUpdateResult:
    """Outcome of a closing-date update.

    Attributes:
        changed_worker_ids: Workers whose primary duties changed.
        results: Calculator result per recomputed worker.
        skipped_worker_ids: Changed workers without a known profile.
    """

    changed_worker_ids: set[str] = field(default_factory=set)
    results: dict[str, ClosingScheduleResult] = field(default_factory=dict)
    skipped_worker_ids: list[str] = field(default_factory=list)

    @property
    def updated_worker_ids(self) -> list[str]:
        return sorted(self.results)

    def optimal_dates_by_worker(self) -> dict[str, list[date]]:
        return {worker_id: r.optimal_dates for worker_id, r in sorted(self.results.items())}


class ClosingScheduleUpdater:
    """Runs the closing calculator for workers affected by an edit."""

    def __init__(self, config: Optional[ClosingScheduleConfig] = None):
        self.calculator = ClosingScheduleCalculator(config)

    def update(
        self,
        before: Mapping[str, PrimaryAssignment],
        after: Mapping[str, PrimaryAssignment],
        weeks: Sequence[SemesterWeek],
        workers: Mapping[str, WorkerProfile],
        mandatory_by_worker: Optional[Mapping[str, list[date]]] = None,
    ) -> ClosingUpdateResult:
        """Recompute optimal closing dates for changed workers.

        Args:
            before: Primary assignments before the edit, keyed by cell key.
            after: Primary assignments after the edit, keyed by cell key.
            weeks: Schedule weeks.
            workers: Worker profiles keyed by worker id.
            mandatory_by_worker: Fresh mandatory dates per worker. Derived
                from ``after`` when not given.

        Returns:
            ClosingUpdateResult with one calculator result per updated worker.
        """
        result = ClosingUpdateResult()
        result.changed_worker_ids = detect_changed_workers(before, after)
        logger.info(
            "Detected %d workers with changes: %s",
            len(result.changed_worker_ids),
            sorted(result.changed_worker_ids),
        )
        if not result.changed_worker_ids:
            return result

        if mandatory_by_worker is None:
            mandatory_by_worker = extract_mandatory_closing_dates(
                after, weeks, result.changed_worker_ids
            )

        fridays = [week.friday for week in weeks]

        for worker_id in sorted(result.changed_worker_ids):
            profile = workers.get(worker_id)
            if profile is None:
                logger.warning("Worker %s not found, skipping", worker_id)
                result.skipped_worker_ids.append(worker_id)
                continue

            worker_input = WorkerClosingInput(
                worker_id=worker_id,
                worker_name=profile.full_name,
                closing_interval=profile.closing_interval,
                mandatory_closing_dates=list(mandatory_by_worker.get(worker_id, [])),
            )
            closing = self.calculator.calculate_worker_schedule(worker_input, fridays)
            for alert in closing.user_alerts:
                logger.warning("Alert for %s: %s", profile.full_name, alert)
            logger.debug(
                "%s: %d mandatory + %d optimal dates",
                profile.full_name,
                len(closing.required_dates),
                len(closing.optimal_dates),
            )
            result.results[worker_id] = closing

        logger.info(
            "Updated %d/%d workers",
            len(result.results),
            len(result.changed_worker_ids),
        )
        return result

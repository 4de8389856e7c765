"""Derive mandatory closing dates from the primary schedule.

A primary duty that overlaps Thursday to Saturday of its week forces the
worker to close that weekend. The weekend's Friday is the closing date.
"""

from datetime import date
from typing import Iterable, Mapping, Optional, Sequence

from rosterplan.domain.calendar import SemesterWeek, weekend_triad
from rosterplan.domain.models import PrimaryAssignment


def assignment_spans_weekend(assignment: PrimaryAssignment, week: SemesterWeek) -> bool:
    """Check if a primary duty overlaps the Thu-Sat weekend of its week."""
    thursday, _, saturday = week.weekend
    return assignment.overlaps(thursday, saturday)


def extract_mandatory_closing_dates(
    assignments: Mapping[str, PrimaryAssignment],
    weeks: Sequence[SemesterWeek],
    worker_ids: Optional[Iterable[str]] = None,
) -> dict[str, list[date]]:
    """Extract the mandatory closing Fridays of each worker.

    Args:
        assignments: Primary assignments keyed by cell key.
        weeks: Schedule weeks.
        worker_ids: Restrict the result to these workers.

    Returns:
        Worker id to sorted, deduplicated Fridays. Workers without any
        mandatory close are omitted.
    """
    weeks_by_number = {week.week_number: week for week in weeks}
    wanted = set(worker_ids) if worker_ids is not None else None

    closing: dict[str, set[date]] = {}
    for assignment in assignments.values():
        if wanted is not None and assignment.worker_id not in wanted:
            continue
        week = weeks_by_number.get(assignment.week_number)
        if week is None:
            continue
        if assignment_spans_weekend(assignment, week):
            closing.setdefault(assignment.worker_id, set()).add(week.friday)

    return {worker_id: sorted(dates) for worker_id, dates in closing.items() if dates}


def primary_busy_days(mandatory_dates: Iterable[date]) -> set[date]:
    """Thursday, Friday and Saturday of every mandatory closing Friday."""
    days: set[date] = set()
    for friday in mandatory_dates:
        days.update(weekend_triad(friday))
    return days

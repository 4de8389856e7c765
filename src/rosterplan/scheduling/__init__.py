"""Scheduling engines for closing dates and secondary tasks."""

from rosterplan.scheduling.change_detector import (
    all_worker_ids,
    detect_changed_workers,
    index_by_cell,
)
from rosterplan.scheduling.closing_calculator import ClosingScheduleCalculator
from rosterplan.scheduling.closing_updater import ClosingScheduleUpdater, ClosingUpdateResult
from rosterplan.scheduling.mandatory_dates import (
    extract_mandatory_closing_dates,
    primary_busy_days,
)
from rosterplan.scheduling.secondary_engine import PlanAccumulator, SecondaryScheduleEngine

__all__ = [
    # Closing dates
    "ClosingScheduleCalculator",
    "ClosingScheduleUpdater",
    "ClosingUpdateResult",
    "extract_mandatory_closing_dates",
    "primary_busy_days",
    # Change detection
    "all_worker_ids",
    "detect_changed_workers",
    "index_by_cell",
    # Secondary tasks
    "PlanAccumulator",
    "SecondaryScheduleEngine",
]

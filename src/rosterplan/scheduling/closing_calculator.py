"""Closing-date optimizer.

Each worker closes the weekend every ``closing_interval`` weeks. Some weekends
are forced on the worker by primary duties (mandatory dates). The calculator
fills the remaining weeks greedily so consecutive closes stay at least
``interval - 1`` weeks apart and never collide with a mandatory week.

All arithmetic is done on 1-based week numbers relative to the ordered list
of Fridays passed in; dates are only mapped back at the end.
"""

import logging
from datetime import date
from typing import Optional, Sequence

from rosterplan.domain.calendar import date_key, to_date
from rosterplan.domain.models import (
    MAX_CLOSING_INTERVAL,
    MIN_CLOSING_INTERVAL,
    ClosingScheduleConfig,
    ClosingScheduleResult,
    WorkerClosingInput,
    clamp_interval,
)

logger = logging.getLogger(__name__)


def _format_weeks(weeks: Sequence[int]) -> str:
    return ", ".join(str(w) for w in weeks)


class ClosingScheduleCalculator:
    """Computes optimal closing Fridays for one worker at a time.

    The calculator never raises. Degenerate input (no weeks, a worker who
    never closes, an interval longer than the schedule) produces an empty
    optimal list and an explanation in the calculation log.
    """

    def __init__(self, config: Optional[ClosingScheduleConfig] = None):
        self.config = config or ClosingScheduleConfig()

    def calculate_worker_schedule(
        self,
        worker: WorkerClosingInput,
        weeks: Sequence[date],
    ) -> ClosingScheduleResult:
        """Calculate required and optimal closing dates for a worker.

        Args:
            worker: Worker interval and mandatory dates.
            weeks: Friday of every schedule week, in chronological order.

        Returns:
            ClosingScheduleResult with the dates and a calculation log.
        """
        result = ClosingScheduleResult(worker_id=worker.worker_id)
        log = result.calculation_log

        if not weeks:
            log.append("No semester weeks provided")
            return result

        result.required_dates = list(worker.mandatory_closing_dates)

        if worker.closing_interval == 0:
            log.append(f"Worker {worker.worker_name} has interval 0 (never closes), skipping")
            return result

        interval = clamp_interval(worker.closing_interval)
        if interval != worker.closing_interval:
            log.append(
                f"Adjusted interval from {worker.closing_interval} to {interval} "
                f"(range: {MIN_CLOSING_INTERVAL}-{MAX_CLOSING_INTERVAL})"
            )

        min_gap = interval - 1
        log.append(f"Worker: {worker.worker_name}")
        log.append(f"Interval: {interval} weeks, min gap: {min_gap} weeks between closes")

        required_weeks = self.dates_to_week_numbers(worker.mandatory_closing_dates, weeks, log)
        if required_weeks:
            log.append(
                f"Mandatory closing dates: {len(worker.mandatory_closing_dates)} dates provided"
            )
            log.append(f"Matched to weeks: {_format_weeks(required_weeks)}")
        else:
            log.append("Mandatory closing weeks: none")

        total_weeks = len(weeks)
        if interval > total_weeks:
            log.append(
                f"Interval ({interval}) > schedule length ({total_weeks}), "
                "no optimal dates possible"
            )
            result.user_alerts.append(
                f"Worker {worker.worker_name}: closing interval is longer than the schedule"
            )
            return result

        optimal_weeks = self.select_optimal_weeks_min_gap(
            total_weeks, required_weeks, interval, log
        )
        optimal_weeks = self.apply_relief(
            optimal_weeks, required_weeks, interval, total_weeks, log
        )

        required_set = set(required_weeks)
        result.optimal_dates = [weeks[w - 1] for w in optimal_weeks if w not in required_set]

        mandatory_count = len(worker.mandatory_closing_dates)
        log.append(
            f"Result: {mandatory_count} mandatory + {len(result.optimal_dates)} optimal = "
            f"{mandatory_count + len(result.optimal_dates)} total closes"
        )
        logger.debug(
            "Closing schedule for %s: optimal weeks %s", worker.worker_id, optimal_weeks
        )
        return result

    def select_optimal_weeks_min_gap(
        self,
        total_weeks: int,
        required_weeks: Sequence[int],
        interval: int,
        log: Optional[list[str]] = None,
    ) -> list[int]:
        """Greedy min-gap fill around the mandatory weeks.

        Fills the region before the first mandatory week, every region
        between consecutive mandatory weeks and the region after the last
        one, always stepping by ``interval``.

        Args:
            total_weeks: Number of weeks in the schedule.
            required_weeks: 1-based mandatory week numbers.
            interval: Clamped closing interval.
            log: Optional calculation log to append to.

        Returns:
            Sorted, deduplicated list of picked week numbers.
        """
        if log is None:
            log = []
        picks: list[int] = []
        req = sorted(required_weeks)

        if not req:
            picks = list(range(1, total_weeks + 1, interval))
            log.append(f"No mandatory weeks, picked {len(picks)} weeks: [{_format_weeks(picks)}]")
            return picks

        first = req[0]
        latest_before_first = first - interval
        if latest_before_first >= 1:
            before = list(range(1, latest_before_first + 1, interval))
            picks.extend(before)
            log.append(f"Start gap (to {first}): picked [{_format_weeks(before)}]")
        else:
            log.append(f"Start gap (to {first}): none (latest allowed = {latest_before_first})")

        for a, b in zip(req, req[1:]):
            start_week = a + interval
            end_week = b - interval
            if start_week <= end_week:
                between = list(range(start_week, end_week + 1, interval))
                picks.extend(between)
                log.append(f"Gap {a} to {b}: picked [{_format_weeks(between)}]")
            else:
                log.append(f"Gap {a} to {b}: none (start {start_week} > end {end_week})")

        last = req[-1]
        after = list(range(last + interval, total_weeks + 1, interval))
        picks.extend(after)
        log.append(f"End gap ({last} onwards): picked [{_format_weeks(after) or 'none'}]")

        return sorted(set(picks))

    def apply_relief(
        self,
        optimal_weeks: list[int],
        required_weeks: Sequence[int],
        interval: int,
        total_weeks: int,
        log: Optional[list[str]] = None,
    ) -> list[int]:
        """Try to place a relief close inside gaps of exactly 2n-1 weeks.

        A relief week ``a + interval`` is accepted only if both resulting
        sub-gaps are at least ``interval`` weeks. For a 2n-1 gap the second
        sub-gap is always n-1, so the proposal is logged and skipped.

        Returns:
            The optimal weeks, with any accepted relief weeks merged in.
        """
        if log is None:
            log = []
        config = self.config
        if (
            not config.allow_single_relief_min1
            or interval <= 2
            or config.relief_max_per_schedule <= 0
        ):
            return optimal_weeks

        combined = sorted(set(required_weeks) | set(optimal_weeks))
        used = set(combined)
        relief_weeks: list[int] = []

        for a, b in zip(combined, combined[1:]):
            if len(relief_weeks) >= config.relief_max_per_schedule:
                break
            gap = b - a
            if gap != 2 * interval - 1:
                continue

            relief_week = a + interval
            if not 1 <= relief_week <= total_weeks or relief_week in used:
                continue

            gap_before = relief_week - a
            gap_after = b - relief_week
            if gap_before >= interval and gap_after >= interval:
                relief_weeks.append(relief_week)
                log.append(
                    f"Relief: inserted week {relief_week} between {a} and {b} "
                    f"(gap={gap}, creating gaps {gap_before} and {gap_after})"
                )
            else:
                log.append(
                    f"Relief skipped for {a} to {b}: would violate spacing "
                    f"(gaps would be {gap_before} and {gap_after}, need >= {interval})"
                )

        if relief_weeks:
            return sorted(set(optimal_weeks) | set(relief_weeks))
        return optimal_weeks

    def dates_to_week_numbers(
        self,
        dates: Sequence[date],
        weeks: Sequence[date],
        log: Optional[list[str]] = None,
    ) -> list[int]:
        """Map dates to 1-based week numbers by calendar-day match.

        Dates that match no week Friday are dropped with a warning.
        """
        index = {}
        for i, friday in enumerate(weeks):
            friday = to_date(friday)
            index.setdefault(friday, i + 1)

        week_numbers = []
        for d in dates:
            d = to_date(d)
            week_number = index.get(d)
            if week_number is None:
                message = f"Mandatory date {date_key(d)} doesn't match any week Friday"
                logger.warning(message)
                if log is not None:
                    log.append(message)
                continue
            week_numbers.append(week_number)
        return sorted(week_numbers)

"""Tests for closing-date recomputation after primary edits."""

from datetime import date

import pytest

from rosterplan.domain.calendar import calculate_weeks
from rosterplan.domain.models import PrimaryAssignment, WorkerProfile
from rosterplan.scheduling.change_detector import index_by_cell
from rosterplan.scheduling.closing_updater import ClosingScheduleUpdater


@pytest.fixture
def weeks():
    # Fridays 10/01, 17/01 and 24/01
    return calculate_weeks(date(2025, 1, 5), date(2025, 1, 25))


@pytest.fixture
def workers():
    return {
        "w1": WorkerProfile("Alice", "Cohen", closing_interval=2),
        "w2": WorkerProfile("Ben", "Levi", closing_interval=3),
    }


@pytest.fixture
def updater():
    return ClosingScheduleUpdater()


class TestClosingScheduleUpdater:
    """Tests for ClosingScheduleUpdater.update."""

    def test_recomputes_changed_workers(self, updater, weeks, workers):
        after = index_by_cell([
            # Wednesday to Thursday reaches into the weekend
            PrimaryAssignment("w1", "guard", date(2025, 1, 15), date(2025, 1, 16), 2),
            PrimaryAssignment("w2", "guard", date(2025, 1, 13), date(2025, 1, 14), 2),
        ])
        result = updater.update({}, after, weeks, workers)

        assert result.changed_worker_ids == {"w1", "w2"}
        assert result.updated_worker_ids == ["w1", "w2"]
        assert result.results["w1"].required_dates == [date(2025, 1, 17)]
        assert result.results["w1"].optimal_dates == []
        assert result.results["w2"].required_dates == []
        assert result.optimal_dates_by_worker()["w2"] == [date(2025, 1, 10)]

    def test_unknown_worker_is_skipped(self, updater, weeks, workers):
        after = index_by_cell(
            [PrimaryAssignment("ghost", "guard", date(2025, 1, 6), date(2025, 1, 7), 1)]
        )
        result = updater.update({}, after, weeks, workers)

        assert result.skipped_worker_ids == ["ghost"]
        assert result.results == {}

    def test_no_changes(self, updater, weeks, workers):
        assignments = index_by_cell(
            [PrimaryAssignment("w1", "guard", date(2025, 1, 6), date(2025, 1, 7), 1)]
        )
        result = updater.update(assignments, dict(assignments), weeks, workers)

        assert result.changed_worker_ids == set()
        assert result.results == {}

    def test_explicit_mandatory_dates_win(self, updater, weeks, workers):
        after = index_by_cell(
            [PrimaryAssignment("w2", "guard", date(2025, 1, 6), date(2025, 1, 7), 1)]
        )
        result = updater.update(
            {}, after, weeks, workers, mandatory_by_worker={"w2": [date(2025, 1, 24)]}
        )

        assert result.results["w2"].required_dates == [date(2025, 1, 24)]
        assert result.results["w2"].optimal_dates == []

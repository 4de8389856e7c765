"""Tests for deriving mandatory closing dates from primary duties."""

from datetime import date

import pytest

from rosterplan.domain.calendar import calculate_weeks
from rosterplan.domain.models import PrimaryAssignment
from rosterplan.scheduling.change_detector import index_by_cell
from rosterplan.scheduling.mandatory_dates import (
    assignment_spans_weekend,
    extract_mandatory_closing_dates,
    primary_busy_days,
)


@pytest.fixture
def weeks():
    # Fridays 10/01, 17/01 and 24/01
    return calculate_weeks(date(2025, 1, 5), date(2025, 1, 25))


class TestExtractMandatoryClosingDates:
    """Tests for extract_mandatory_closing_dates."""

    def test_duty_into_thursday(self, weeks):
        assignments = index_by_cell(
            [PrimaryAssignment("w1", "guard", date(2025, 1, 15), date(2025, 1, 16), 2)]
        )
        assert extract_mandatory_closing_dates(assignments, weeks) == {
            "w1": [date(2025, 1, 17)]
        }

    def test_single_friday_duty(self, weeks):
        assignments = index_by_cell(
            [PrimaryAssignment("w2", "guard", date(2025, 1, 24), date(2025, 1, 24), 3)]
        )
        assert extract_mandatory_closing_dates(assignments, weeks) == {
            "w2": [date(2025, 1, 24)]
        }

    def test_weekday_duty_is_not_mandatory(self, weeks):
        assignments = index_by_cell(
            [PrimaryAssignment("w1", "guard", date(2025, 1, 5), date(2025, 1, 8), 1)]
        )
        assert extract_mandatory_closing_dates(assignments, weeks) == {}

    def test_unknown_week_is_ignored(self, weeks):
        assignments = index_by_cell(
            [PrimaryAssignment("w1", "guard", date(2025, 1, 30), date(2025, 1, 31), 4)]
        )
        assert extract_mandatory_closing_dates(assignments, weeks) == {}

    def test_restricted_to_workers(self, weeks):
        assignments = index_by_cell([
            PrimaryAssignment("w1", "guard", date(2025, 1, 9), date(2025, 1, 9), 1),
            PrimaryAssignment("w2", "guard", date(2025, 1, 10), date(2025, 1, 11), 1),
        ])
        result = extract_mandatory_closing_dates(assignments, weeks, worker_ids=["w2"])
        assert result == {"w2": [date(2025, 1, 10)]}

    def test_spans_weekend(self, weeks):
        saturday_only = PrimaryAssignment("w1", "guard", date(2025, 1, 11), date(2025, 1, 12), 1)
        assert assignment_spans_weekend(saturday_only, weeks[0])


def test_primary_busy_days():
    assert primary_busy_days([date(2025, 1, 17)]) == {
        date(2025, 1, 16),
        date(2025, 1, 17),
        date(2025, 1, 18),
    }

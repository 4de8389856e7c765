"""Tests for planning snapshot decoding and freshness."""

from datetime import date, datetime, timedelta, timezone

import pytest

from rosterplan.domain.models import PreferenceEntry, PreferenceStatus, WorkerProfile
from rosterplan.domain.snapshot import (
    PlanningSnapshot,
    SnapshotFormatError,
    StaleSnapshotError,
    WorkerPayload,
    parse_tasks,
)

NOW = datetime(2025, 1, 1, 12, tzinfo=timezone.utc)


@pytest.fixture
def snapshot_data():
    return {
        "generatedAt": "2025-01-01T12:00:00Z",
        "departmentId": "dept-1",
        "selectedRange": {"start": "2025-01-05", "end": "2025-01-11"},
        "window": {"start": "2024-12-01", "end": "2025-01-31"},
        "fridays": ["10/01/2025", "17/01/2025"],
        "stats": {"perWorker": {"a": {"totalSecondary": 4, "closingAccuracyPct": 75.5}}},
        "workers": {
            "a": {
                "profile": {
                    "firstName": "Alice",
                    "lastName": "Cohen",
                    "closingInterval": 3,
                    "qualifications": ["gate"],
                },
                "primaryBusyDaysDDMM": ["09/01/2025", "10/01/2025", "11/01/2025"],
                "lastClosingFridayDDMM": "27/12/2024",
                "mandatoryClosingDates": ["10/01/2025"],
                "optimalClosingDates": ["2025-01-31", "2025-01-17"],
                "preferencesInWindow": [
                    {"date": "06/01/2025", "taskId": None, "status": "blocked"},
                    {"date": "07/01/2025", "taskId": "gate", "status": "preferred"},
                ],
            },
            "b": {"profile": {"firstName": "Ben"}},
        },
    }


class TestFromDict:
    """Tests for PlanningSnapshot.from_dict."""

    def test_decodes_workers(self, snapshot_data):
        snapshot = PlanningSnapshot.from_dict(snapshot_data)

        assert snapshot.generated_at == NOW
        assert snapshot.worker_ids == ["a", "b"]
        assert snapshot.fridays == [date(2025, 1, 10), date(2025, 1, 17)]

        a = snapshot.workers["a"]
        assert a.profile.full_name == "Alice Cohen"
        assert a.profile.qualifications == {"gate"}
        assert a.last_closing_friday == date(2024, 12, 27)
        assert a.optimal_closing_dates == [date(2025, 1, 17), date(2025, 1, 31)]
        assert a.preferences[0].status == PreferenceStatus.BLOCKED
        assert a.preferences[0].task_id is None

    def test_missing_fields_default(self, snapshot_data):
        b = PlanningSnapshot.from_dict(snapshot_data).workers["b"]

        assert b.profile.closing_interval == 0
        assert b.last_closing_friday is None
        assert b.primary_busy_days == set()

    def test_stats(self, snapshot_data):
        snapshot = PlanningSnapshot.from_dict(snapshot_data)

        assert snapshot.stats_for("a").total_secondary == 4
        assert snapshot.stats_for("b").total_secondary == 0

    def test_missing_generated_at(self, snapshot_data):
        del snapshot_data["generatedAt"]
        with pytest.raises(SnapshotFormatError):
            PlanningSnapshot.from_dict(snapshot_data)

    def test_format_error_is_value_error(self, snapshot_data):
        snapshot_data["workers"]["a"]["preferencesInWindow"][0]["status"] = "maybe"
        with pytest.raises(ValueError):
            PlanningSnapshot.from_dict(snapshot_data)

    def test_reversed_range(self, snapshot_data):
        snapshot_data["selectedRange"] = {"start": "2025-01-11", "end": "2025-01-05"}
        with pytest.raises(SnapshotFormatError):
            PlanningSnapshot.from_dict(snapshot_data)

    def test_to_dict_decodes_back(self, snapshot_data):
        snapshot = PlanningSnapshot.from_dict(snapshot_data)
        again = PlanningSnapshot.from_dict(snapshot.to_dict())

        assert again.workers["a"] == snapshot.workers["a"]
        assert again.window == snapshot.window


class TestFreshness:
    """Tests for the five-minute TTL."""

    def test_fresh_within_ttl(self, snapshot_data):
        snapshot = PlanningSnapshot.from_dict(snapshot_data)
        snapshot.ensure_fresh(NOW + timedelta(minutes=5))
        assert snapshot.is_fresh(NOW + timedelta(minutes=4))

    def test_stale_after_ttl(self, snapshot_data):
        snapshot = PlanningSnapshot.from_dict(snapshot_data)
        with pytest.raises(StaleSnapshotError) as exc_info:
            snapshot.ensure_fresh(NOW + timedelta(minutes=6))
        assert exc_info.value.age == timedelta(minutes=6)

    def test_naive_now_against_aware_snapshot(self, snapshot_data):
        """A naive clock reading is taken as UTC."""
        snapshot = PlanningSnapshot.from_dict(snapshot_data)
        assert snapshot.is_fresh(datetime(2025, 1, 1, 12, 4))
        with pytest.raises(StaleSnapshotError) as exc_info:
            snapshot.ensure_fresh(datetime(2025, 1, 1, 12, 6))
        assert exc_info.value.age == timedelta(minutes=6)

    def test_naive_snapshot_against_aware_now(self, snapshot_data):
        snapshot = PlanningSnapshot.from_dict(snapshot_data)
        snapshot.generated_at = snapshot.generated_at.replace(tzinfo=None)

        assert snapshot.age(NOW + timedelta(minutes=2)) == timedelta(minutes=2)
        assert not snapshot.is_fresh(NOW + timedelta(minutes=10))
        assert snapshot.to_dict()["generatedAt"] == "2025-01-01T12:00:00+00:00"

    def test_other_timezone_now(self, snapshot_data):
        snapshot = PlanningSnapshot.from_dict(snapshot_data)
        local = timezone(timedelta(hours=2))
        assert snapshot.age(datetime(2025, 1, 1, 14, 3, tzinfo=local)) == timedelta(minutes=3)


class TestWorkerPayload:
    """Tests for per-worker predicates."""

    def make_payload(self, preferences):
        return WorkerPayload(
            profile=WorkerProfile("Alice", closing_interval=3),
            primary_busy_days={date(2025, 1, 9)},
            mandatory_closing_dates=[date(2025, 1, 17)],
            preferences=preferences,
        )

    def test_whole_day_block_applies_to_every_task(self):
        payload = self.make_payload(
            [PreferenceEntry(date(2025, 1, 6), None, PreferenceStatus.BLOCKED)]
        )
        assert payload.preference_on(date(2025, 1, 6), "kitchen") == (True, False)
        assert payload.preference_on(date(2025, 1, 7), "kitchen") == (False, False)

    def test_task_specific_preferences(self):
        payload = self.make_payload([
            PreferenceEntry(date(2025, 1, 6), "gate", PreferenceStatus.BLOCKED),
            PreferenceEntry(date(2025, 1, 6), "kitchen", PreferenceStatus.PREFERRED),
            PreferenceEntry(date(2025, 1, 7), "kitchen", None),
        ])
        assert payload.preference_on(date(2025, 1, 6), "gate") == (True, False)
        assert payload.preference_on(date(2025, 1, 6), "kitchen") == (False, True)
        assert payload.preference_on(date(2025, 1, 7), "kitchen") == (False, False)

    def test_spans_weekend(self):
        payload = self.make_payload([])
        assert payload.spans_weekend(date(2025, 1, 10))
        assert payload.spans_weekend(date(2025, 1, 17))
        assert not payload.spans_weekend(date(2025, 1, 24))


class TestParseTasks:
    """Tests for task JSON decoding."""

    def test_list_and_object_forms(self):
        raw = [{"id": "k", "name": "Kitchen", "assignWeekends": True}]
        assert parse_tasks(raw) == parse_tasks({"tasks": raw})
        task = parse_tasks(raw)[0]
        assert task.assign_weekends is True
        assert task.auto_assign is True
        assert task.requires_qualification is False

    def test_missing_id(self):
        with pytest.raises(SnapshotFormatError):
            parse_tasks([{"name": "Kitchen"}])

    def test_not_a_list(self):
        with pytest.raises(SnapshotFormatError):
            parse_tasks({"tasks": "kitchen"})

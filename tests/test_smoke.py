"""Smoke tests for the end-to-end planning flow and the command line."""

import json
from datetime import date, datetime, timezone

import pytest

from rosterplan.cli import create_sample_snapshot, create_sample_tasks, main
from rosterplan.output.debug_generator import PlanDebugGenerator
from rosterplan.output.pdf_generator import PlanPDFGenerator
from rosterplan.scheduling.secondary_engine import SecondaryScheduleEngine
from rosterplan.validation.validator import PlanValidator, ValidationErrorType

NOW = datetime(2025, 1, 1, 12, tzinfo=timezone.utc)
START = date(2025, 1, 5)


def task_to_dict(task):
    return {
        "id": task.id,
        "name": task.name,
        "requiresQualification": task.requires_qualification,
        "autoAssign": task.auto_assign,
        "assignWeekends": task.assign_weekends,
    }


class TestSmoke:
    """End-to-end smoke tests for the planning system."""

    @pytest.fixture
    def snapshot(self):
        """Create a sample snapshot over three weeks."""
        return create_sample_snapshot(12, 3, start=START, now=NOW)

    @pytest.fixture
    def tasks(self):
        return create_sample_tasks()

    @pytest.fixture
    def plan(self, snapshot, tasks):
        span = snapshot.selected_range
        return SecondaryScheduleEngine().generate(snapshot, span.start, span.end, tasks, now=NOW)

    def test_smoke_closers_for_every_friday(self, plan, snapshot):
        """Every Friday of the range gets a closer entry."""
        assert sorted(plan.closers_by_friday) == ["10/01/2025", "17/01/2025", "24/01/2025"]

    def test_smoke_no_audit_findings(self, plan):
        """The engine never breaks primary duties or blocked preferences."""
        assert not any(w.startswith("Primary overlap") for w in plan.warnings)
        assert not any(w.startswith("Blocked preference") for w in plan.warnings)

    def test_smoke_hard_constraints_hold(self, plan, snapshot, tasks):
        result = PlanValidator().validate(plan, snapshot, tasks)
        hard = {
            ValidationErrorType.NOT_QUALIFIED,
            ValidationErrorType.PRIMARY_CONFLICT,
            ValidationErrorType.BLOCKED_PREFERENCE,
            ValidationErrorType.DOUBLE_BOOKED,
            ValidationErrorType.CELL_OVERFILLED,
            ValidationErrorType.FORCED_CLOSER_ASSIGNED,
        }
        assert [e for e in result.errors if e.error_type in hard] == []

    def test_smoke_manual_task_untouched(self, plan):
        assert not any(a.task_id == "archive" for a in plan.assignments)

    def test_smoke_plan_json(self, plan):
        data = json.loads(json.dumps(plan.to_dict()))
        assert len(data["assignments"]) == len(plan.assignments)
        assert data["logs"][-1].startswith("Generated")

    def test_smoke_debug_report(self, plan, snapshot, tasks, tmp_path):
        content = PlanDebugGenerator().generate_to_string(plan, snapshot, tasks)
        assert "WEEKEND CLOSERS" in content
        assert "ASSIGNMENT GRID" in content

        path = tmp_path / "plan.txt"
        PlanDebugGenerator().generate(plan, snapshot, tasks, path)
        assert path.read_text() == content

    def test_smoke_pdf(self, plan, snapshot, tasks):
        buffer = PlanPDFGenerator().generate_to_buffer(plan, snapshot, tasks)
        assert buffer.getvalue().startswith(b"%PDF")


class TestCommandLine:
    """Tests for the rosterplan command."""

    @pytest.fixture
    def inputs(self, tmp_path):
        """Write sample snapshot and task JSON files."""
        snapshot = create_sample_snapshot(8, 2, start=START, now=NOW)
        snapshot_path = tmp_path / "snapshot.json"
        tasks_path = tmp_path / "tasks.json"
        snapshot_path.write_text(json.dumps(snapshot.to_dict()))
        tasks_path.write_text(json.dumps({"tasks": [task_to_dict(t) for t in create_sample_tasks()]}))
        return snapshot_path, tasks_path

    def test_demo(self, tmp_path):
        pdf_path = tmp_path / "plan.pdf"
        debug_path = tmp_path / "plan.txt"
        code = main(
            ["demo", "--workers", "8", "--weeks", "2", "-o", str(pdf_path), "--debug-output", str(debug_path)]
        )

        assert code == 0
        assert pdf_path.read_bytes().startswith(b"%PDF")
        assert "WEEKEND CLOSERS" in debug_path.read_text()

    def test_demo_csv(self, tmp_path):
        csv_path = tmp_path / "primary.csv"
        code = main(["demo", "--workers", "5", "--weeks", "2", "--csv-output", str(csv_path)])

        assert code == 0
        lines = csv_path.read_text(encoding="utf-8-sig").splitlines()
        assert lines[0] == "id,name,1,2"
        assert lines[-1] == "w05,Eve Biton,,Primary duty"

    def test_closing(self, capsys):
        code = main(
            ["closing", "--interval", "3", "--start", "2025-01-05", "--end", "2025-03-15",
             "--mandatory", "07/02/2025"]
        )
        out = capsys.readouterr().out

        assert code == 0
        assert "Optimal" in out
        assert "07/02/2025" in out

    def test_plan_ignoring_ttl(self, inputs, tmp_path):
        snapshot_path, tasks_path = inputs
        output = tmp_path / "plan.json"
        code = main([
            "plan", "-s", str(snapshot_path), "-t", str(tasks_path),
            "--start", "2025-01-05", "--end", "2025-01-18",
            "--ignore-ttl", "-o", str(output),
        ])

        assert code == 0
        data = json.loads(output.read_text())
        assert data["assignments"]
        assert set(data["closersByFriday"]) == {"10/01/2025", "17/01/2025"}

    def test_plan_stale_snapshot(self, inputs, capsys):
        snapshot_path, tasks_path = inputs
        code = main([
            "plan", "-s", str(snapshot_path), "-t", str(tasks_path),
            "--start", "2025-01-05", "--end", "2025-01-18",
        ])

        assert code == 1
        assert "stale" in capsys.readouterr().err

    def test_plan_invalid_json(self, inputs, tmp_path):
        _, tasks_path = inputs
        broken = tmp_path / "broken.json"
        broken.write_text("{not json")
        code = main([
            "plan", "-s", str(broken), "-t", str(tasks_path),
            "--start", "2025-01-05", "--end", "2025-01-18",
        ])
        assert code == 1

    def test_plan_missing_file(self, inputs, tmp_path):
        _, tasks_path = inputs
        code = main([
            "plan", "-s", str(tmp_path / "missing.json"), "-t", str(tasks_path),
            "--start", "2025-01-05", "--end", "2025-01-18",
        ])
        assert code == 1

    def test_no_command(self):
        assert main([]) == 1

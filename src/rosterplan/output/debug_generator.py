"""Debug text output for plan analysis.

This module creates a text report of a secondary-task plan:
- Closers per weekend with the reason each was picked
- Day by task assignment grid
- Per-worker assignment counts, warnings and the engine log
"""

from pathlib import Path
from typing import Optional, Sequence, Union

from rosterplan.domain.calendar import date_key, date_range
from rosterplan.domain.models import PlanResult, SecondaryTask
from rosterplan.domain.snapshot import PlanningSnapshot

WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


class PlanDebugGenerator:
    """Generates debug text output for a secondary-task plan."""

    def generate(
        self,
        plan: PlanResult,
        snapshot: PlanningSnapshot,
        tasks: Sequence[SecondaryTask],
        output_path: Union[str, Path],
    ) -> str:
        """Generate the report and save it to a file.

        Args:
            plan: Plan produced by the engine.
            snapshot: Snapshot the plan was generated from.
            tasks: Task columns of the grid.
            output_path: Path to save the text file.

        Returns:
            The generated text content.
        """
        content = self._generate_content(plan, snapshot, tasks)
        Path(output_path).write_text(content)
        return content

    def generate_to_string(
        self,
        plan: PlanResult,
        snapshot: PlanningSnapshot,
        tasks: Sequence[SecondaryTask],
    ) -> str:
        return self._generate_content(plan, snapshot, tasks)

    def _generate_content(
        self,
        plan: PlanResult,
        snapshot: PlanningSnapshot,
        tasks: Sequence[SecondaryTask],
    ) -> str:
        lines = []
        span = snapshot.selected_range

        lines.append("=" * 80)
        lines.append(
            f"SECONDARY PLAN DEBUG OUTPUT - {date_key(span.start)} to {date_key(span.end)}"
        )
        lines.append("=" * 80)
        lines.append("")
        lines.append(f"Department: {snapshot.department_id}")
        lines.append(f"Workers: {len(snapshot.workers)}")
        lines.append(f"Tasks: {len(tasks)}")
        lines.append(f"Assignments: {len(plan.assignments)}")
        lines.append("")

        lines.extend(self._closers_section(plan, snapshot))
        lines.extend(self._grid_section(plan, snapshot, tasks))
        lines.extend(self._counts_section(plan, snapshot))

        lines.append("-" * 80)
        lines.append(f"WARNINGS ({len(plan.warnings)})")
        lines.append("-" * 80)
        for warning in plan.warnings:
            lines.append(f"  ! {warning}")
        if not plan.warnings:
            lines.append("  none")
        lines.append("")

        lines.append("-" * 80)
        lines.append("ENGINE LOG")
        lines.append("-" * 80)
        for entry in plan.logs:
            lines.append(f"  {entry}")
        lines.append("")

        return "\n".join(lines)

    def _closers_section(self, plan: PlanResult, snapshot: PlanningSnapshot) -> list[str]:
        lines = ["-" * 80, "WEEKEND CLOSERS", "-" * 80]
        lines.append(f"{'Friday':<12} {'Req':>3}  {'Forced':<24} {'Assigned'}")
        for key, closers in plan.closers_by_friday.items():
            forced = ", ".join(self._name(snapshot, w) for w in closers.forced) or "-"
            assigned = ", ".join(
                f"{self._name(snapshot, d.worker_id)} ({d.reason.value})" for d in closers.assigned
            ) or "-"
            marker = "  SHORT" if closers.shortfall else ""
            lines.append(
                f"{key:<12} {closers.required_count:>3}  {forced[:24]:<24} {assigned}{marker}"
            )
        lines.append("")
        return lines

    def _grid_section(
        self,
        plan: PlanResult,
        snapshot: PlanningSnapshot,
        tasks: Sequence[SecondaryTask],
    ) -> list[str]:
        lines = ["-" * 80, "ASSIGNMENT GRID", "-" * 80]
        cells = {(a.date, a.task_id): a.worker_id for a in plan.assignments}

        header = f"{'Day':<16}" + "".join(f"{task.name[:14]:<16}" for task in tasks)
        lines.append(header)
        for day in date_range(snapshot.selected_range.start, snapshot.selected_range.end):
            row = f"{WEEKDAY_NAMES[day.weekday()]} {date_key(day):<12}"
            for task in tasks:
                worker_id = cells.get((day, task.id))
                label = self._name(snapshot, worker_id) if worker_id else "."
                row += f"{label[:14]:<16}"
            lines.append(row.rstrip())
        lines.append("")
        return lines

    def _counts_section(self, plan: PlanResult, snapshot: PlanningSnapshot) -> list[str]:
        lines = ["-" * 80, "ASSIGNMENTS PER WORKER", "-" * 80]
        counts = plan.counts_by_worker()
        for worker_id in snapshot.worker_ids:
            count = counts.get(worker_id, 0)
            bar = "#" * count
            lines.append(f"{self._name(snapshot, worker_id)[:20]:<20} {bar} ({count})")
        lines.append("")
        return lines

    def _name(self, snapshot: PlanningSnapshot, worker_id: Optional[str]) -> str:
        payload = snapshot.workers.get(worker_id) if worker_id else None
        if payload is None:
            return worker_id or ""
        return payload.profile.full_name or worker_id

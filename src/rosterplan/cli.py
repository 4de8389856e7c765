"""Command-line interface for the rosterplan scheduling core."""

import argparse
import json
import logging
import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from rosterplan.domain.calendar import (
    calculate_weeks,
    date_key,
    semester_fridays,
    to_date,
    week_start_sunday,
)
from rosterplan.domain.models import (
    ClosingScheduleConfig,
    PlanResult,
    PreferenceEntry,
    PreferenceStatus,
    PrimaryAssignment,
    SecondaryTask,
    WorkerClosingInput,
    WorkerProfile,
)
from rosterplan.domain.snapshot import (
    DateSpan,
    PlanningSnapshot,
    SnapshotError,
    WorkerPayload,
    WorkerStats,
    parse_tasks,
)
from rosterplan.logging_config import setup_logging
from rosterplan.output.csv_exporter import PrimaryScheduleCSVExporter
from rosterplan.output.debug_generator import PlanDebugGenerator
from rosterplan.output.pdf_generator import PlanPDFGenerator
from rosterplan.scheduling.closing_calculator import ClosingScheduleCalculator
from rosterplan.scheduling.mandatory_dates import primary_busy_days
from rosterplan.scheduling.secondary_engine import SecondaryScheduleEngine
from rosterplan.validation.validator import PlanValidator

logger = logging.getLogger(__name__)


def create_sample_tasks() -> list[SecondaryTask]:
    """Create the sample task columns used by the demo."""
    return [
        SecondaryTask("kitchen", "Kitchen"),
        SecondaryTask("gate", "Gate duty", requires_qualification=True),
        SecondaryTask("patrol", "Weekend patrol", assign_weekends=True),
        SecondaryTask("office", "Weekend office", requires_qualification=True, assign_weekends=True),
        SecondaryTask("archive", "Archive", auto_assign=False),
    ]


def create_sample_snapshot(
    count: int = 12,
    weeks: int = 4,
    start: Optional[date] = None,
    now: Optional[datetime] = None,
) -> PlanningSnapshot:
    """Create a sample planning snapshot for testing.

    Args:
        count: Number of workers to create.
        weeks: Number of weeks in the planning range.
        start: First day of the range. Defaults to the Sunday of this week.
        now: Snapshot timestamp. Defaults to the current UTC time.
    """
    if start is None:
        start = week_start_sunday(date.today())
    if now is None:
        now = datetime.now(timezone.utc)
    end = start + timedelta(days=7 * weeks - 1)
    fridays = semester_fridays(start, end)

    names = [
        ("Alice", "Cohen"), ("Ben", "Levi"), ("Carol", "Mizrahi"), ("David", "Peretz"),
        ("Eve", "Biton"), ("Frank", "Dahan"), ("Grace", "Avraham"), ("Henry", "Friedman"),
        ("Ivy", "Azulay"), ("Jack", "Katz"), ("Kate", "Malka"), ("Leo", "Segal"),
    ]
    intervals = [2, 3, 4, 0, 3, 2, 4, 3]
    calculator = ClosingScheduleCalculator(ClosingScheduleConfig())

    workers = {}
    stats = {}
    for i in range(count):
        first, last = names[i % len(names)]
        if i >= len(names):
            first = f"{first}{i // len(names) + 1}"
        worker_id = f"w{i + 1:02d}"

        qualifications = set()
        if i % 3 == 0:
            qualifications.add("gate")
        if i % 4 == 1:
            qualifications.add("office")
        profile = WorkerProfile(first, last, intervals[i % len(intervals)], qualifications)

        # Every fifth worker holds a primary duty over the second weekend
        mandatory = [fridays[1]] if i % 5 == 4 and len(fridays) > 1 else []
        closing = calculator.calculate_worker_schedule(
            WorkerClosingInput(worker_id, profile.full_name, profile.closing_interval, mandatory),
            fridays,
        )

        preferences = []
        if i % 6 == 2:
            preferences.append(
                PreferenceEntry(start + timedelta(days=1), None, PreferenceStatus.BLOCKED)
            )
        if i % 6 == 3:
            preferences.append(
                PreferenceEntry(start + timedelta(days=2), "kitchen", PreferenceStatus.PREFERRED)
            )

        workers[worker_id] = WorkerPayload(
            profile=profile,
            primary_busy_days=primary_busy_days(mandatory),
            mandatory_closing_dates=mandatory,
            optimal_closing_dates=closing.optimal_dates,
            preferences=preferences,
        )
        stats[worker_id] = WorkerStats(total_secondary=i % 4, closing_accuracy_pct=50.0 + i)

    return PlanningSnapshot(
        generated_at=now,
        department_id="demo",
        selected_range=DateSpan(start, end),
        window=DateSpan(start, end),
        fridays=fridays,
        workers=workers,
        stats=stats,
    )


def create_sample_primary_schedule(snapshot: PlanningSnapshot) -> dict[str, PrimaryAssignment]:
    """Primary duties behind the sample snapshot's mandatory closing dates.

    Each mandatory Friday becomes a Thursday to Saturday duty in the matching
    schedule week, keyed by cell key.
    """
    span = snapshot.selected_range
    weeks_by_friday = {week.friday: week for week in calculate_weeks(span.start, span.end)}

    schedule = {}
    for worker_id in snapshot.worker_ids:
        for friday in snapshot.workers[worker_id].mandatory_closing_dates:
            week = weeks_by_friday.get(friday)
            if week is None:
                continue
            thursday, _, saturday = week.weekend
            assignment = PrimaryAssignment(
                worker_id, "primary", thursday, saturday, week.week_number, "Primary duty"
            )
            schedule[assignment.cell_key] = assignment
    return schedule


def print_plan_summary(plan: PlanResult) -> None:
    print(f"\n  Assignments: {len(plan.assignments)}")
    print("\nWeekend Closers:")
    for key, closers in plan.closers_by_friday.items():
        assigned = ", ".join(f"{d.worker_id} ({d.reason.value})" for d in closers.assigned)
        print(
            f"  {key}: required={closers.required_count}, "
            f"forced=[{', '.join(closers.forced)}], assigned=[{assigned}]"
        )

    if plan.warnings:
        print(f"\nWarnings ({len(plan.warnings)}):")
        for warning in plan.warnings[:10]:
            print(f"    - {warning}")
        if len(plan.warnings) > 10:
            print(f"    ... and {len(plan.warnings) - 10} more warnings")


def run_demo(
    worker_count: int = 12,
    weeks: int = 4,
    output_path: Optional[str] = None,
    debug_output: Optional[str] = None,
    csv_output: Optional[str] = None,
) -> PlanResult:
    """Run a demo plan generation."""
    print(f"Generating demo plan for {worker_count} workers over {weeks} weeks...")

    snapshot = create_sample_snapshot(worker_count, weeks)
    tasks = create_sample_tasks()
    span = snapshot.selected_range

    engine = SecondaryScheduleEngine()
    plan = engine.generate(snapshot, span.start, span.end, tasks)

    print(f"\nPlan generated for {date_key(span.start)} to {date_key(span.end)}")
    print_plan_summary(plan)

    result = PlanValidator().validate(plan, snapshot, tasks)
    if result.is_valid:
        print("\n  Validation: PASSED")
    else:
        print(f"\n  Validation: FAILED ({len(result.errors)} errors)")
        for error in result.errors[:5]:
            print(f"    - {error}")
        if len(result.errors) > 5:
            print(f"    ... and {len(result.errors) - 5} more errors")

    if output_path:
        print(f"\nGenerating PDF: {output_path}")
        PlanPDFGenerator().generate(plan, snapshot, tasks, output_path)
        print("  PDF created successfully!")

    if debug_output:
        PlanDebugGenerator().generate(plan, snapshot, tasks, debug_output)
        print(f"  Debug report written to {debug_output}")

    if csv_output:
        span = snapshot.selected_range
        workers = [
            (worker_id, snapshot.workers[worker_id].profile.full_name)
            for worker_id in snapshot.worker_ids
        ]
        PrimaryScheduleCSVExporter().generate(
            calculate_weeks(span.start, span.end),
            workers,
            create_sample_primary_schedule(snapshot),
            csv_output,
        )
        print(f"  Primary schedule CSV written to {csv_output}")

    return plan


def run_closing(
    interval: int,
    start: date,
    end: date,
    mandatory: Optional[list[date]] = None,
) -> None:
    """Print the closing schedule of a single worker."""
    fridays = semester_fridays(start, end)
    worker = WorkerClosingInput(
        worker_id="worker",
        worker_name="worker",
        closing_interval=interval,
        mandatory_closing_dates=sorted(mandatory or []),
    )
    result = ClosingScheduleCalculator().calculate_worker_schedule(worker, fridays)

    print(f"Schedule: {len(fridays)} weeks ({date_key(start)} to {date_key(end)})")
    print(f"  Mandatory: {', '.join(date_key(d) for d in result.required_dates) or 'none'}")
    print(f"  Optimal:   {', '.join(date_key(d) for d in result.optimal_dates) or 'none'}")
    print("\nCalculation log:")
    for entry in result.calculation_log:
        print(f"    {entry}")
    for alert in result.user_alerts:
        print(f"  ALERT: {alert}")


def run_plan(
    snapshot_path: str,
    tasks_path: str,
    start: date,
    end: date,
    json_output: Optional[str] = None,
    ignore_ttl: bool = False,
) -> PlanResult:
    """Run the engine on JSON inputs."""
    try:
        snapshot_data = json.loads(Path(snapshot_path).read_text())
        tasks_data = json.loads(Path(tasks_path).read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON input: {e}") from e

    snapshot = PlanningSnapshot.from_dict(snapshot_data)
    tasks = parse_tasks(tasks_data)
    now = snapshot.generated_at if ignore_ttl else None

    plan = SecondaryScheduleEngine().generate(snapshot, start, end, tasks, now=now)
    content = json.dumps(plan.to_dict(), indent=2, ensure_ascii=False)
    if json_output:
        Path(json_output).write_text(content)
        print(f"Plan written to {json_output}")
        print_plan_summary(plan)
    else:
        print(content)
    return plan


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="rosterplan - closing dates and secondary task planning",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo                                  Run demo with 12 workers over 4 weeks
  %(prog)s demo --workers 20 --output plan.pdf   Generate PDF output
  %(prog)s demo --csv-output primary.csv         Export the sample primary schedule

  %(prog)s closing --interval 3 --start 2025-09-07 --end 2025-11-15
  %(prog)s closing --interval 4 --start 2025-09-07 --end 2025-11-15 --mandatory 03/10/2025

  %(prog)s plan --snapshot snapshot.json --tasks tasks.json --start 2025-09-07 --end 2025-09-20
        """,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    demo_parser = subparsers.add_parser("demo", help="Run demo plan generation")
    demo_parser.add_argument(
        "--workers", "-w",
        type=int,
        default=12,
        help="Number of workers to generate (default: 12)",
    )
    demo_parser.add_argument(
        "--weeks",
        type=int,
        default=4,
        help="Number of weeks to plan (default: 4)",
    )
    demo_parser.add_argument(
        "--output", "-o",
        type=str,
        help="Output PDF file path",
    )
    demo_parser.add_argument(
        "--debug-output",
        type=str,
        help="Output debug text file path",
    )
    demo_parser.add_argument(
        "--csv-output",
        type=str,
        help="Output primary schedule CSV path",
    )

    closing_parser = subparsers.add_parser(
        "closing",
        help="Calculate the closing dates of one worker",
    )
    closing_parser.add_argument("--interval", "-i", type=int, required=True)
    closing_parser.add_argument("--start", type=to_date, required=True)
    closing_parser.add_argument("--end", type=to_date, required=True)
    closing_parser.add_argument(
        "--mandatory", "-m",
        type=to_date,
        nargs="*",
        default=[],
        help="Mandatory closing Fridays (DD/MM/YYYY or YYYY-MM-DD)",
    )

    plan_parser = subparsers.add_parser("plan", help="Generate a plan from JSON inputs")
    plan_parser.add_argument("--snapshot", "-s", type=str, required=True)
    plan_parser.add_argument("--tasks", "-t", type=str, required=True)
    plan_parser.add_argument("--start", type=to_date, required=True)
    plan_parser.add_argument("--end", type=to_date, required=True)
    plan_parser.add_argument("--json-output", "-o", type=str, help="Output plan JSON path")
    plan_parser.add_argument(
        "--ignore-ttl",
        action="store_true",
        help="Accept snapshots older than five minutes",
    )

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        if args.command == "demo":
            run_demo(args.workers, args.weeks, args.output, args.debug_output, args.csv_output)
            return 0
        elif args.command == "closing":
            run_closing(args.interval, args.start, args.end, args.mandatory)
            return 0
        elif args.command == "plan":
            run_plan(
                args.snapshot,
                args.tasks,
                args.start,
                args.end,
                args.json_output,
                args.ignore_ttl,
            )
            return 0
        else:
            parser.print_help()
            return 1
    except (SnapshotError, ValueError, OSError) as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""CSV export of primary schedules.

The layout matches the spreadsheet the departments already keep:
- Row 1: ``id``, ``name`` and the week numbers
- Row 2: two blank cells and the DD/MM - DD/MM range of every week
- One row per worker with the task name held in each week

Admins follow the workers after a blank separator row. Files are written with
a UTF-8 byte order mark so Excel picks the right encoding.
"""

import csv
import io
import logging
from datetime import date
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from rosterplan.domain.calendar import SemesterWeek, date_key
from rosterplan.domain.models import PrimaryAssignment, make_cell_key

logger = logging.getLogger(__name__)

# (worker_id, display name)
WorkerRow = tuple[str, str]


class PrimaryScheduleCSVExporter:
    """Exports a primary schedule grid to CSV."""

    encoding = "utf-8-sig"

    def generate(
        self,
        weeks: Sequence[SemesterWeek],
        workers: Sequence[WorkerRow],
        assignments: Mapping[str, PrimaryAssignment],
        output_path: Union[str, Path],
        admins: Sequence[WorkerRow] = (),
        metadata: Optional[Sequence[tuple[str, str]]] = None,
    ) -> str:
        """Generate the CSV and save it to a file.

        Args:
            weeks: Schedule columns, in order.
            workers: Worker rows, in display order.
            assignments: Primary assignments keyed by cell key.
            output_path: Path to save the CSV file.
            admins: Admin rows appended after a blank separator row.
            metadata: Optional ``(label, value)`` rows written above the grid.

        Returns:
            The generated CSV content, without the byte order mark.
        """
        content = self.generate_to_string(weeks, workers, assignments, admins, metadata)
        with open(output_path, "w", newline="", encoding=self.encoding) as f:
            f.write(content)
        logger.info("Wrote primary schedule CSV to %s", output_path)
        return content

    def generate_to_string(
        self,
        weeks: Sequence[SemesterWeek],
        workers: Sequence[WorkerRow],
        assignments: Mapping[str, PrimaryAssignment],
        admins: Sequence[WorkerRow] = (),
        metadata: Optional[Sequence[tuple[str, str]]] = None,
    ) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")

        if metadata:
            for label, value in metadata:
                writer.writerow([label, value])
            writer.writerow([])

        writer.writerow(["id", "name", *(str(week.week_number) for week in weeks)])
        writer.writerow(["", "", *(week.date_range_label for week in weeks)])

        for worker_id, name in workers:
            writer.writerow(self._worker_row(worker_id, name, weeks, assignments))

        if admins:
            writer.writerow([""] * (len(weeks) + 2))
            for worker_id, name in admins:
                writer.writerow(self._worker_row(worker_id, name, weeks, assignments))

        return buffer.getvalue().rstrip("\n")

    @staticmethod
    def filename_for(start: date, end: date) -> str:
        """File name of a schedule export, e.g. ``primary_schedule_07-09-2025_15-11-2025.csv``."""
        first = date_key(start).replace("/", "-")
        last = date_key(end).replace("/", "-")
        return f"primary_schedule_{first}_{last}.csv"

    def _worker_row(
        self,
        worker_id: str,
        name: str,
        weeks: Sequence[SemesterWeek],
        assignments: Mapping[str, PrimaryAssignment],
    ) -> list[str]:
        row = [worker_id, name]
        for week in weeks:
            assignment = assignments.get(make_cell_key(worker_id, week.week_number))
            row.append(assignment.task_name if assignment else "")
        return row

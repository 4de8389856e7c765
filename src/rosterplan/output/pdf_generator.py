"""PDF generation for plan output.

This module creates printable PDF rosters showing:
- The day by task grid with the assigned worker in every cell
- Weekend rows highlighted, unfilled cells marked
- A summary page with weekend closers and warnings
"""

from io import BytesIO
from pathlib import Path
from typing import Sequence, Union

from rosterplan.domain.calendar import date_key, date_range, is_weekend_day
from rosterplan.domain.models import PlanResult, SecondaryTask
from rosterplan.domain.snapshot import PlanningSnapshot

# Color definitions (RGB tuples, 0-1 scale)
COLORS = {
    "header": (0.85, 0.88, 0.95),  # Light blue
    "weekend": (0.98, 0.93, 0.8),  # Light orange
    "empty": (0.95, 0.8, 0.8),  # Light red
    "grid": (0.7, 0.7, 0.7),  # Gray
}

WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


class PlanPDFGenerator:
    """Generates printable PDF rosters for a secondary-task plan.

    Example:
        >>> generator = PlanPDFGenerator()
        >>> generator.generate(plan, snapshot, tasks, "roster.pdf")
    """

    def __init__(
        self,
        page_width: float = 792,  # Letter landscape width (11")
        page_height: float = 612,  # Letter landscape height (8.5")
        margin: float = 36,  # 0.5 inch margins
    ):
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin

    def generate(
        self,
        plan: PlanResult,
        snapshot: PlanningSnapshot,
        tasks: Sequence[SecondaryTask],
        output_path: Union[str, Path],
        include_summary: bool = True,
    ) -> None:
        """Generate the PDF roster and save to file.

        Args:
            plan: Plan produced by the engine.
            snapshot: Snapshot the plan was generated from.
            tasks: Task columns of the grid.
            output_path: Path to save the PDF.
            include_summary: Whether to include the summary page.
        """
        try:
            from reportlab.lib.pagesizes import landscape, letter
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )

        c = canvas.Canvas(str(output_path), pagesize=landscape(letter))
        self._draw(c, plan, snapshot, tasks, include_summary)
        c.save()

    def generate_to_buffer(
        self,
        plan: PlanResult,
        snapshot: PlanningSnapshot,
        tasks: Sequence[SecondaryTask],
        include_summary: bool = True,
    ) -> BytesIO:
        """Generate the PDF roster and return it as a bytes buffer."""
        try:
            from reportlab.lib.pagesizes import landscape, letter
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )

        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=landscape(letter))
        self._draw(c, plan, snapshot, tasks, include_summary)
        c.save()
        buffer.seek(0)
        return buffer

    def _draw(
        self,
        c,
        plan: PlanResult,
        snapshot: PlanningSnapshot,
        tasks: Sequence[SecondaryTask],
        include_summary: bool,
    ) -> None:
        self._draw_grid_pages(c, plan, snapshot, tasks)
        if include_summary:
            self._draw_summary_page(c, plan, snapshot)

    def _draw_grid_pages(
        self,
        c,
        plan: PlanResult,
        snapshot: PlanningSnapshot,
        tasks: Sequence[SecondaryTask],
    ) -> None:
        """Draw the day by task grid, paginated by rows."""
        days = date_range(snapshot.selected_range.start, snapshot.selected_range.end)
        cells = {(a.date, a.task_id): a.worker_id for a in plan.assignments}

        row_height = 18
        header_height = 60
        footer_height = 30
        usable_height = self.page_height - 2 * self.margin - header_height - footer_height
        rows_per_page = max(1, int(usable_height / row_height) - 1)

        day_column = 90
        task_columns = max(1, len(tasks))
        column_width = (self.page_width - 2 * self.margin - day_column) / task_columns
        total_pages = max(1, (len(days) + rows_per_page - 1) // rows_per_page)

        for page_index in range(total_pages):
            page_days = days[page_index * rows_per_page : (page_index + 1) * rows_per_page]
            self._draw_header(c, snapshot, len(plan.assignments))

            y = self.page_height - self.margin - header_height
            self._draw_column_headers(c, tasks, y, row_height, day_column, column_width)

            c.setFont("Helvetica", 8)
            for day in page_days:
                y -= row_height
                if is_weekend_day(day):
                    c.setFillColorRGB(*COLORS["weekend"])
                    c.rect(
                        self.margin,
                        y,
                        self.page_width - 2 * self.margin,
                        row_height,
                        fill=1,
                        stroke=0,
                    )
                c.setFillColorRGB(0, 0, 0)
                c.drawString(
                    self.margin + 3, y + 5, f"{WEEKDAY_NAMES[day.weekday()]} {date_key(day)}"
                )

                for i, task in enumerate(tasks):
                    x = self.margin + day_column + i * column_width
                    worker_id = cells.get((day, task.id))
                    if worker_id is None:
                        if task.auto_assign and task.assign_weekends == is_weekend_day(day):
                            c.setFillColorRGB(*COLORS["empty"])
                            c.rect(x + 1, y + 1, column_width - 2, row_height - 2, fill=1, stroke=0)
                        continue
                    c.setFillColorRGB(0, 0, 0)
                    label = self._name(snapshot, worker_id)
                    c.drawString(x + 3, y + 5, self._fit(c, label, column_width - 6, 8))

                c.setStrokeColorRGB(*COLORS["grid"])
                c.line(self.margin, y, self.page_width - self.margin, y)

            c.setFont("Helvetica", 9)
            c.setFillColorRGB(0, 0, 0)
            c.drawCentredString(
                self.page_width / 2,
                self.margin - 10,
                f"Page {page_index + 1} of {total_pages}",
            )
            c.showPage()

    def _draw_header(self, c, snapshot: PlanningSnapshot, assignment_count: int) -> None:
        span = snapshot.selected_range
        c.setFont("Helvetica-Bold", 16)
        c.setFillColorRGB(0, 0, 0)
        c.drawString(
            self.margin,
            self.page_height - self.margin - 20,
            f"Secondary Tasks - {date_key(span.start)} to {date_key(span.end)}",
        )
        c.setFont("Helvetica", 10)
        c.drawString(
            self.margin,
            self.page_height - self.margin - 35,
            f"Workers: {len(snapshot.workers)}    Assignments: {assignment_count}",
        )

    def _draw_column_headers(
        self,
        c,
        tasks: Sequence[SecondaryTask],
        y: float,
        row_height: float,
        day_column: float,
        column_width: float,
    ) -> None:
        c.setFillColorRGB(*COLORS["header"])
        c.rect(self.margin, y - row_height, self.page_width - 2 * self.margin, row_height, fill=1, stroke=0)
        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica-Bold", 8)
        c.drawString(self.margin + 3, y - row_height + 5, "Day")
        for i, task in enumerate(tasks):
            x = self.margin + day_column + i * column_width
            name = task.name + (" (wknd)" if task.assign_weekends else "")
            c.drawString(x + 3, y - row_height + 5, self._fit(c, name, column_width - 6, 8, "Helvetica-Bold"))

    def _draw_summary_page(self, c, plan: PlanResult, snapshot: PlanningSnapshot) -> None:
        """Draw summary page with weekend closers and warnings."""
        c.setFont("Helvetica-Bold", 16)
        c.setFillColorRGB(0, 0, 0)
        c.drawString(self.margin, self.page_height - self.margin - 20, "Plan Summary")

        y = self.page_height - self.margin - 55
        c.setFont("Helvetica-Bold", 12)
        c.drawString(self.margin, y, "Weekend Closers")
        y -= 18

        c.setFont("Helvetica", 9)
        for key, closers in plan.closers_by_friday.items():
            forced = ", ".join(self._name(snapshot, w) for w in closers.forced) or "-"
            assigned = ", ".join(
                f"{self._name(snapshot, d.worker_id)} ({d.reason.value})" for d in closers.assigned
            ) or "-"
            line = f"{key}: required {closers.required_count}, forced {forced}, assigned {assigned}"
            c.drawString(self.margin + 20, y, self._fit(c, line, self.page_width - 2 * self.margin - 20, 9))
            y -= 13
            if y < self.margin + 40:
                c.showPage()
                c.setFont("Helvetica", 9)
                y = self.page_height - self.margin - 20

        y -= 15
        c.setFont("Helvetica-Bold", 12)
        c.drawString(self.margin, y, f"Warnings ({len(plan.warnings)})")
        y -= 18

        c.setFont("Helvetica", 9)
        for warning in plan.warnings:
            c.drawString(self.margin + 20, y, self._fit(c, warning, self.page_width - 2 * self.margin - 20, 9))
            y -= 13
            if y < self.margin + 20:
                c.showPage()
                c.setFont("Helvetica", 9)
                y = self.page_height - self.margin - 20

        c.showPage()

    def _fit(self, c, text: str, width: float, size: float, font: str = "Helvetica") -> str:
        """Truncate text so it fits the given width."""
        if c.stringWidth(text, font, size) <= width:
            return text
        while text and c.stringWidth(text + "...", font, size) > width:
            text = text[:-1]
        return text + "..."

    def _name(self, snapshot: PlanningSnapshot, worker_id: str) -> str:
        payload = snapshot.workers.get(worker_id)
        if payload is None:
            return worker_id
        return payload.profile.full_name or worker_id

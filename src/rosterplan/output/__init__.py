"""Output generation for plans (PDF, debug text) and primary schedules (CSV)."""

from rosterplan.output.csv_exporter import PrimaryScheduleCSVExporter
from rosterplan.output.debug_generator import PlanDebugGenerator
from rosterplan.output.pdf_generator import PlanPDFGenerator

__all__ = [
    "PlanDebugGenerator",
    "PlanPDFGenerator",
    "PrimaryScheduleCSVExporter",
]

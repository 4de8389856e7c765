"""Validation module for verifying plan and closing schedule correctness."""

from rosterplan.validation.validator import (
    ClosingScheduleValidator,
    PlanValidator,
    ValidationError,
    ValidationErrorType,
    ValidationResult,
)

__all__ = [
    "ClosingScheduleValidator",
    "PlanValidator",
    "ValidationError",
    "ValidationErrorType",
    "ValidationResult",
]

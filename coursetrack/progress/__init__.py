"""Enrollments and student progress tracking.

Provides:
- Enrollment with at-most-one row per (student, course)
- Per-content progress with derived completion
- Course progress aggregation
"""

from .models import (
    COMPLETION_THRESHOLD,
    PROGRESS_TABLES_CQL,
    Enrollment,
    ProgressRecord,
    ProgressState,
)


__all__ = [
    "COMPLETION_THRESHOLD",
    "PROGRESS_TABLES_CQL",
    "Enrollment",
    "ProgressRecord",
    "ProgressState",
]

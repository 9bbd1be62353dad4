"""
Core module containing the rules, the object model and base classes.
"""

from .entities import *
from .interfaces import *
from .exceptions import *
from .enums import *
from .access import authorize, MAINTENANCE_DENIAL
from .schedule import ScheduleSlot, parse_schedule, is_unscheduled, conflicts, schedules_conflict
from .grading import (
    ClassStatistics, NOT_GRADED, total_score, is_complete, letter_grade,
    record_letter_grade, is_passing, gpa_points, cgpa, validate_scores,
    class_statistics,
)

__all__ = [
    # Entities
    "AbstractEntity",
    "Course",
    "Section",
    "Enrollment",
    "AssessmentRecord",
    "AccessDecision",
    "OperationResult",

    # Interfaces
    "RecordStore",

    # Enums
    "Role",
    "SectionStatus",
    "EnrollmentStatus",
    "FailureKind",
    "DatabaseType",

    # Exceptions
    "RegistrarException",
    "ValidationError",
    "AuthorizationError",
    "ConcurrencyError",
    "PersistenceError",
    "ConfigurationError",

    # Access gate
    "authorize",
    "MAINTENANCE_DENIAL",

    # Schedules
    "ScheduleSlot",
    "parse_schedule",
    "is_unscheduled",
    "conflicts",
    "schedules_conflict",

    # Grading
    "ClassStatistics",
    "NOT_GRADED",
    "total_score",
    "is_complete",
    "letter_grade",
    "record_letter_grade",
    "is_passing",
    "gpa_points",
    "cgpa",
    "validate_scores",
    "class_statistics",
]

"""
Enumerations and constants for the Registrar engine.
"""

from enum import Enum


class Role(Enum):
    """Roles a caller can act under."""
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


class SectionStatus(Enum):
    """Registration status of a section."""
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class EnrollmentStatus(Enum):
    """Lifecycle status of an enrollment."""
    ACTIVE = "ACTIVE"
    DROPPED = "DROPPED"
    COMPLETED = "COMPLETED"


class FailureKind(Enum):
    """Category of an expected business-rule failure."""
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    POLICY_DENIAL = "policy_denial"
    VALIDATION = "validation"
    CONTENTION = "contention"


class DatabaseType(Enum):
    """Supported storage backends."""
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"

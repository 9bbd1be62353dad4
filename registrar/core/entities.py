"""
Core entities for the Registrar engine.

Entities are snapshots of rows owned by the storage collaborator. The rules
engine reads them and asks the store to change them; it never mutates counters
in process.
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .enums import EnrollmentStatus, FailureKind, SectionStatus
from .exceptions import ValidationError


QUIZ_MAX = 20.0
MIDTERM_MAX = 30.0
FINAL_MAX = 50.0
TOTAL_MAX = QUIZ_MAX + MIDTERM_MAX + FINAL_MAX


def as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class AbstractEntity(ABC):
    """Base abstract entity with a storage-assigned ID and timestamps."""

    def __init__(self, entity_id: Optional[int] = None,
                 created_at: Optional[datetime] = None,
                 updated_at: Optional[datetime] = None):
        self._id = entity_id
        self._created_at = created_at or datetime.now(timezone.utc)
        self._updated_at = updated_at or self._created_at

    @property
    def id(self) -> Optional[int]:
        """Get the entity ID."""
        return self._id

    @property
    def created_at(self) -> datetime:
        """Get creation timestamp."""
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        """Get last update timestamp."""
        return self._updated_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert entity to dictionary."""
        return {
            'id': self._id,
            'created_at': self._created_at.isoformat(),
            'updated_at': self._updated_at.isoformat(),
        }

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self._id})"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self._id})"


class Course(AbstractEntity):
    """Course entity representing an academic course."""

    def __init__(self, code: str, title: str, credits: int, **kwargs):
        super().__init__(**kwargs)
        if not code or not code.strip():
            raise ValidationError("Course code is required")
        if credits <= 0 or credits > 10:
            raise ValidationError("Credits must be between 1 and 10")
        self._code = code.strip()
        self._title = title
        self._credits = credits

    @property
    def code(self) -> str:
        return self._code

    @property
    def title(self) -> str:
        return self._title

    @property
    def credits(self) -> int:
        return self._credits

    def to_dict(self) -> Dict[str, Any]:
        """Convert course to dictionary."""
        base_dict = super().to_dict()
        base_dict.update({
            'code': self._code,
            'title': self._title,
            'credits': self._credits,
        })
        return base_dict


class Section(AbstractEntity):
    """Section entity: one scheduled offering of a course."""

    def __init__(self, course_id: int, section_name: str, schedule_text: str,
                 capacity: int, semester: str, year: int,
                 enrolled_count: int = 0,
                 status: SectionStatus = SectionStatus.OPEN,
                 drop_deadline: Optional[datetime] = None,
                 instructor_id: Optional[int] = None,
                 course_code: str = "", course_title: str = "", credits: int = 0,
                 **kwargs):
        super().__init__(**kwargs)
        if capacity < 0:
            raise ValidationError("Capacity cannot be negative")
        if enrolled_count < 0 or enrolled_count > capacity:
            raise ValidationError(
                f"Enrolled count {enrolled_count} outside 0..{capacity}")
        self._course_id = course_id
        self._section_name = section_name
        self._schedule_text = schedule_text or ""
        self._capacity = capacity
        self._enrolled_count = enrolled_count
        self._status = status
        self._drop_deadline = as_utc(drop_deadline) if drop_deadline else None
        self._instructor_id = instructor_id
        self._semester = semester
        self._year = year
        self._course_code = course_code
        self._course_title = course_title
        self._credits = credits

    @property
    def course_id(self) -> int:
        return self._course_id

    @property
    def section_name(self) -> str:
        return self._section_name

    @property
    def schedule_text(self) -> str:
        return self._schedule_text

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def enrolled_count(self) -> int:
        return self._enrolled_count

    @property
    def status(self) -> SectionStatus:
        return self._status

    @property
    def drop_deadline(self) -> Optional[datetime]:
        return self._drop_deadline

    @property
    def instructor_id(self) -> Optional[int]:
        return self._instructor_id

    @property
    def semester(self) -> str:
        return self._semester

    @property
    def year(self) -> int:
        return self._year

    @property
    def course_code(self) -> str:
        return self._course_code

    @property
    def course_title(self) -> str:
        return self._course_title

    @property
    def credits(self) -> int:
        return self._credits

    @property
    def is_open(self) -> bool:
        return self._status == SectionStatus.OPEN

    @property
    def has_seats(self) -> bool:
        return self._enrolled_count < self._capacity

    @property
    def available_seats(self) -> int:
        return max(0, self._capacity - self._enrolled_count)

    def can_drop(self, now: datetime) -> bool:
        """A section without a deadline can always be dropped."""
        if self._drop_deadline is None:
            return True
        return not as_utc(now) > self._drop_deadline

    def to_dict(self) -> Dict[str, Any]:
        """Convert section to dictionary."""
        base_dict = super().to_dict()
        base_dict.update({
            'course_id': self._course_id,
            'course_code': self._course_code,
            'course_title': self._course_title,
            'credits': self._credits,
            'section_name': self._section_name,
            'schedule_text': self._schedule_text,
            'capacity': self._capacity,
            'enrolled_count': self._enrolled_count,
            'available_seats': self.available_seats,
            'status': self._status.value,
            'drop_deadline': self._drop_deadline.isoformat() if self._drop_deadline else None,
            'instructor_id': self._instructor_id,
            'semester': self._semester,
            'year': self._year,
        })
        return base_dict


class Enrollment(AbstractEntity):
    """A student's relationship to one section."""

    def __init__(self, student_id: int, section_id: int,
                 status: EnrollmentStatus = EnrollmentStatus.ACTIVE,
                 enrolled_at: Optional[datetime] = None,
                 dropped_at: Optional[datetime] = None,
                 final_grade: Optional[str] = None,
                 course_code: str = "", course_title: str = "", credits: int = 0,
                 schedule_text: str = "", **kwargs):
        super().__init__(**kwargs)
        self._student_id = student_id
        self._section_id = section_id
        self._status = status
        self._enrolled_at = enrolled_at
        self._dropped_at = dropped_at
        self._final_grade = final_grade or None
        self._course_code = course_code
        self._course_title = course_title
        self._credits = credits
        self._schedule_text = schedule_text

    @property
    def student_id(self) -> int:
        return self._student_id

    @property
    def section_id(self) -> int:
        return self._section_id

    @property
    def status(self) -> EnrollmentStatus:
        return self._status

    @property
    def enrolled_at(self) -> Optional[datetime]:
        return self._enrolled_at

    @property
    def dropped_at(self) -> Optional[datetime]:
        return self._dropped_at

    @property
    def final_grade(self) -> Optional[str]:
        return self._final_grade

    @property
    def course_code(self) -> str:
        return self._course_code

    @property
    def course_title(self) -> str:
        return self._course_title

    @property
    def credits(self) -> int:
        return self._credits

    @property
    def schedule_text(self) -> str:
        return self._schedule_text

    @property
    def is_active(self) -> bool:
        return self._status == EnrollmentStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        """Convert enrollment to dictionary."""
        base_dict = super().to_dict()
        base_dict.update({
            'student_id': self._student_id,
            'section_id': self._section_id,
            'status': self._status.value,
            'enrolled_at': self._enrolled_at.isoformat() if self._enrolled_at else None,
            'dropped_at': self._dropped_at.isoformat() if self._dropped_at else None,
            'final_grade': self._final_grade,
            'course_code': self._course_code,
            'course_title': self._course_title,
            'credits': self._credits,
            'schedule_text': self._schedule_text,
        })
        return base_dict


@dataclass(frozen=True)
class AssessmentRecord:
    """Raw component scores of one student in one section.

    ``None`` means the component has not been entered yet; it is not a zero.
    """
    student_id: int
    section_id: int
    quiz: Optional[float] = None
    midterm: Optional[float] = None
    final: Optional[float] = None


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an access-gate check."""
    allowed: bool
    reason: Optional[str] = None


@dataclass
class OperationResult:
    """Explicit success/failure value returned by every service operation."""
    success: bool
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    failure: Optional[FailureKind] = None

    @classmethod
    def ok(cls, message: str, **data: Any) -> 'OperationResult':
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, failure: FailureKind, message: str) -> 'OperationResult':
        return cls(success=False, message=message, failure=failure)

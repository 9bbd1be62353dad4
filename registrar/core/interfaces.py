"""
Core interfaces and abstract base classes for the Registrar engine.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import List, Optional

from .entities import AssessmentRecord, Course, Enrollment, Section
from .enums import SectionStatus


class RecordStore(ABC):
    """Data-access collaborator used by the rules engine.

    Implementations own persistence. Counter updates must be atomic at the
    storage layer: ``increment_section_count`` only succeeds while a seat is
    free, so two writers can never both take the last one.
    """

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Group the writes made inside the block into one transaction."""
        pass

    # Sections and courses

    @abstractmethod
    def find_section(self, section_id: int) -> Optional[Section]:
        """Find a section by ID."""
        pass

    @abstractmethod
    def add_course(self, course: Course) -> int:
        """Persist a new course and return its ID."""
        pass

    @abstractmethod
    def find_course(self, course_id: int) -> Optional[Course]:
        """Find a course by ID."""
        pass

    @abstractmethod
    def find_course_by_code(self, code: str) -> Optional[Course]:
        """Find a course by its code."""
        pass

    @abstractmethod
    def find_courses(self) -> List[Course]:
        """The whole catalogue, ordered by course code."""
        pass

    @abstractmethod
    def update_course(self, course_id: int, title: str, credits: int) -> bool:
        """Change a course's title and credits. Returns False if it does not exist."""
        pass

    @abstractmethod
    def add_section(self, section: Section) -> int:
        """Persist a new section and return its ID."""
        pass

    @abstractmethod
    def find_sections(self, semester: Optional[str] = None,
                      year: Optional[int] = None) -> List[Section]:
        """Sections ordered by course code and section name, optionally filtered by term."""
        pass

    @abstractmethod
    def set_section_status(self, section_id: int, status: SectionStatus) -> bool:
        """Open or close a section. Returns False if it does not exist."""
        pass

    @abstractmethod
    def assign_instructor(self, section_id: int, instructor_id: int) -> bool:
        """Make an instructor the owner of a section. Returns False if it does not exist."""
        pass

    @abstractmethod
    def increment_section_count(self, section_id: int) -> bool:
        """Take one seat. Returns False if the section is already full."""
        pass

    @abstractmethod
    def decrement_section_count(self, section_id: int) -> bool:
        """Release one seat. Returns False if the count is already zero."""
        pass

    # Enrollments

    @abstractmethod
    def find_enrollment(self, student_id: int, section_id: int) -> Optional[Enrollment]:
        """Find the enrollment for a (student, section) pair, whatever its status."""
        pass

    @abstractmethod
    def find_enrollments(self, student_id: int) -> List[Enrollment]:
        """All enrollments of a student in listing order."""
        pass

    @abstractmethod
    def find_active_enrollments(self, student_id: int) -> List[Enrollment]:
        """ACTIVE enrollments of a student in listing order."""
        pass

    @abstractmethod
    def find_section_enrollments(self, section_id: int) -> List[Enrollment]:
        """All enrollments of a section."""
        pass

    @abstractmethod
    def create_enrollment(self, student_id: int, section_id: int) -> int:
        """Create an ACTIVE enrollment and return its ID."""
        pass

    @abstractmethod
    def reactivate_enrollment(self, enrollment_id: int) -> None:
        """Return a DROPPED enrollment to ACTIVE, clearing drop time and grade."""
        pass

    @abstractmethod
    def mark_dropped(self, enrollment_id: int, dropped_at: datetime) -> bool:
        """Mark an ACTIVE enrollment DROPPED. Returns False if it was not ACTIVE."""
        pass

    @abstractmethod
    def set_final_grade(self, enrollment_id: int, letter: str) -> bool:
        """Record the final letter and mark the enrollment COMPLETED.

        Returns False, changing nothing, if the enrollment is DROPPED.
        """
        pass

    # Assessments

    @abstractmethod
    def get_assessment_record(self, student_id: int, section_id: int) -> Optional[AssessmentRecord]:
        """Find the assessment record for a (student, section) pair."""
        pass

    @abstractmethod
    def find_section_assessments(self, section_id: int) -> List[AssessmentRecord]:
        """All assessment records of a section."""
        pass

    @abstractmethod
    def upsert_assessment_record(self, record: AssessmentRecord) -> AssessmentRecord:
        """Insert or merge a record; ``None`` components keep their stored value."""
        pass

    # Settings

    @abstractmethod
    def is_maintenance_mode_active(self) -> bool:
        """Read the global maintenance flag."""
        pass

    @abstractmethod
    def set_maintenance_mode(self, enabled: bool) -> None:
        """Write the global maintenance flag."""
        pass

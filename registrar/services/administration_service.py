"""
Administration service: course and section management and maintenance mode.

Administrators are never blocked by maintenance mode.
"""

import logging
from datetime import datetime
from typing import List, Optional

from ..core.entities import Course, OperationResult, Section
from ..core.enums import FailureKind, Role, SectionStatus
from ..core.exceptions import ValidationError
from ..core.interfaces import RecordStore
from .access_control_service import AccessControlService


logger = logging.getLogger(__name__)

ADMIN_ONLY = "Access denied: Administrator privileges required"

MIN_SECTION_CAPACITY = 1
MAX_SECTION_CAPACITY = 1000


class AdministrationService:
    """Service for administrator-only catalogue and system operations."""

    def __init__(self, store: RecordStore, access_control: AccessControlService):
        self._store = store
        self._access_control = access_control

    @staticmethod
    def _require_admin(actor_role: Role) -> Optional[OperationResult]:
        if actor_role is not Role.ADMIN:
            return OperationResult.fail(FailureKind.ACCESS_DENIED, ADMIN_ONLY)
        return None

    def create_course(self, actor_role: Role, code: str, title: str, credits: int) -> OperationResult:
        """Add a course to the catalogue."""
        denied = self._require_admin(actor_role)
        if denied:
            return denied

        try:
            course = Course(code=code, title=title, credits=credits)
        except ValidationError as e:
            return OperationResult.fail(FailureKind.VALIDATION, e.message)

        if self._store.find_course_by_code(course.code) is not None:
            return OperationResult.fail(FailureKind.POLICY_DENIAL, "Course code already exists")

        course_id = self._store.add_course(course)
        logger.info("Course %s created with id %s", course.code, course_id)
        return OperationResult.ok(f"Course created successfully: {course.code}", course_id=course_id)

    def update_course(self, actor_role: Role, course_id: int, title: str, credits: int) -> OperationResult:
        """Change a course's title and credits; the code stays fixed."""
        denied = self._require_admin(actor_role)
        if denied:
            return denied

        existing = self._store.find_course(course_id)
        if existing is None:
            return OperationResult.fail(FailureKind.NOT_FOUND, "Course not found")

        try:
            course = Course(code=existing.code, title=title, credits=credits)
        except ValidationError as e:
            return OperationResult.fail(FailureKind.VALIDATION, e.message)

        self._store.update_course(course_id, course.title, course.credits)
        logger.info("Course %s updated", course.code)
        return OperationResult.ok("Course updated successfully", course_id=course_id)

    def courses(self) -> List[Course]:
        """The catalogue, ordered by course code."""
        return self._store.find_courses()

    def create_section(self, actor_role: Role, course_id: int, section_name: str,
                       schedule_text: str, capacity: int, semester: str, year: int,
                       instructor_id: Optional[int] = None,
                       drop_deadline: Optional[datetime] = None) -> OperationResult:
        """Open a new section of an existing course."""
        denied = self._require_admin(actor_role)
        if denied:
            return denied

        if capacity < MIN_SECTION_CAPACITY or capacity > MAX_SECTION_CAPACITY:
            return OperationResult.fail(
                FailureKind.VALIDATION,
                f"Capacity must be between {MIN_SECTION_CAPACITY} and {MAX_SECTION_CAPACITY}")

        if self._store.find_course(course_id) is None:
            return OperationResult.fail(FailureKind.NOT_FOUND, "Course not found")

        section = Section(course_id=course_id, section_name=section_name,
                          schedule_text=schedule_text, capacity=capacity,
                          semester=semester, year=year, instructor_id=instructor_id,
                          drop_deadline=drop_deadline)
        section_id = self._store.add_section(section)

        message = "Section created successfully"
        if section.drop_deadline is not None:
            message += f" with drop deadline: {section.drop_deadline.isoformat()}"
        logger.info("Section %s of course %s created with id %s",
                    section_name, course_id, section_id)
        return OperationResult.ok(message, section_id=section_id)

    def set_section_status(self, actor_role: Role, section_id: int,
                           status: SectionStatus) -> OperationResult:
        """Open or close a section for registration."""
        denied = self._require_admin(actor_role)
        if denied:
            return denied

        if not self._store.set_section_status(section_id, status):
            return OperationResult.fail(FailureKind.NOT_FOUND, "Section not found")

        logger.info("Section %s is now %s", section_id, status.value)
        return OperationResult.ok(f"Section status set to {status.value}", status=status.value)

    def assign_instructor(self, actor_role: Role, section_id: int,
                          instructor_id: int) -> OperationResult:
        """Hand a section to an instructor, who may then grade it."""
        denied = self._require_admin(actor_role)
        if denied:
            return denied

        if not self._store.assign_instructor(section_id, instructor_id):
            return OperationResult.fail(FailureKind.NOT_FOUND, "Section not found")

        logger.info("Instructor %s assigned to section %s", instructor_id, section_id)
        return OperationResult.ok("Instructor assigned successfully", instructor_id=instructor_id)

    def sections(self, semester: Optional[str] = None,
                 year: Optional[int] = None) -> List[Section]:
        """Sections on offer, optionally for one term."""
        return self._store.find_sections(semester, year)

    def toggle_maintenance_mode(self, actor_role: Role, enable: bool) -> OperationResult:
        """Switch maintenance mode on or off."""
        denied = self._require_admin(actor_role)
        if denied:
            return denied

        self._access_control.maintenance.set(enable, actor_role)
        status = "enabled" if enable else "disabled"
        return OperationResult.ok(f"Maintenance mode {status}", maintenance_mode=enable)

    def maintenance_status(self) -> bool:
        """Current maintenance flag, re-read from the store."""
        return self._access_control.maintenance.refresh()

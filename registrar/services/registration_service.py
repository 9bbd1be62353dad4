"""
Registration service: register for and drop sections under the seat,
status, clash and deadline rules.
"""

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional

from ..core.entities import Enrollment, OperationResult, Section
from ..core.enums import EnrollmentStatus, FailureKind, Role
from ..core.exceptions import ConcurrencyError
from ..core.interfaces import RecordStore
from ..core.schedule import is_unscheduled, schedules_conflict
from .access_control_service import AccessControlService
from .concurrency_manager import ConcurrencyManager


logger = logging.getLogger(__name__)

BUSY_MESSAGE = "System is busy. Please try again."


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RegistrationService:
    """Service for student registrations.

    Every write takes the student lock and then the section lock, in that
    order, so concurrent requests for the same student or the same section
    are serialized. The seat counter is additionally guarded by the store's
    conditional increment.
    """

    def __init__(self, store: RecordStore, access_control: AccessControlService,
                 concurrency_manager: ConcurrencyManager,
                 clock: Callable[[], datetime] = utc_now):
        self._store = store
        self._access_control = access_control
        self._concurrency_manager = concurrency_manager
        self._clock = clock

    @contextmanager
    def _registration_locks(self, student_id: int, section_id: int) -> Iterator[None]:
        holder_id = str(uuid.uuid4())
        with self._concurrency_manager.lock(f"student_{student_id}", holder_id):
            with self._concurrency_manager.lock(f"section_{section_id}", holder_id):
                yield

    def register(self, student_id: int, section_id: int) -> OperationResult:
        """Register a student for a section."""
        decision = self._access_control.validate_operation(Role.STUDENT, True)
        if not decision.allowed:
            return OperationResult.fail(FailureKind.ACCESS_DENIED, decision.reason)

        try:
            with self._registration_locks(student_id, section_id):
                return self._register_locked(student_id, section_id)
        except ConcurrencyError as e:
            logger.warning("Registration of student %s in section %s hit lock contention: %s",
                           student_id, section_id, e.message)
            return OperationResult.fail(FailureKind.CONTENTION, BUSY_MESSAGE)

    def _register_locked(self, student_id: int, section_id: int) -> OperationResult:
        section = self._store.find_section(section_id)
        if section is None:
            return OperationResult.fail(FailureKind.NOT_FOUND, "Section not found")

        existing = self._store.find_enrollment(student_id, section_id)
        if existing is not None:
            if existing.status == EnrollmentStatus.ACTIVE:
                return OperationResult.fail(FailureKind.POLICY_DENIAL,
                                            "You are already registered for this section")
            if existing.status == EnrollmentStatus.COMPLETED:
                return OperationResult.fail(FailureKind.POLICY_DENIAL,
                                            "You have already completed this section")

        if not section.is_open:
            return OperationResult.fail(FailureKind.POLICY_DENIAL,
                                        "Section is closed. Registration not available.")

        if not section.has_seats:
            return self._full(section)

        clash = self._find_clash(student_id, section)
        if clash is not None:
            return OperationResult.fail(
                FailureKind.POLICY_DENIAL,
                f"Time clash detected! You already have {clash.course_code} at "
                f"{clash.schedule_text}. Cannot register for course {section.course_code}")

        with self._store.atomic():
            if not self._store.increment_section_count(section_id):
                logger.warning("Student %s lost the race for the last seat in section %s",
                               student_id, section_id)
                return self._full(section)
            if existing is not None:
                self._store.reactivate_enrollment(existing.id)
                enrollment_id = existing.id
            else:
                enrollment_id = self._store.create_enrollment(student_id, section_id)

        logger.info("Student %s registered for section %s (%s)",
                    student_id, section_id, section.course_code)
        return OperationResult.ok(
            f"Successfully registered for {section.course_code} - {section.course_title}",
            enrollment_id=enrollment_id)

    @staticmethod
    def _full(section: Section) -> OperationResult:
        return OperationResult.fail(FailureKind.POLICY_DENIAL,
                                    f"Section is full (Capacity: {section.capacity})")

    def _find_clash(self, student_id: int, section: Section) -> Optional[Enrollment]:
        """First active enrollment whose meeting time clashes with ``section``."""
        if is_unscheduled(section.schedule_text):
            return None
        for enrollment in self._store.find_active_enrollments(student_id):
            if schedules_conflict(section.schedule_text, enrollment.schedule_text):
                return enrollment
        return None

    def drop(self, student_id: int, section_id: int) -> OperationResult:
        """Drop an active enrollment before the section's deadline."""
        decision = self._access_control.validate_operation(Role.STUDENT, True)
        if not decision.allowed:
            return OperationResult.fail(FailureKind.ACCESS_DENIED, decision.reason)

        try:
            with self._registration_locks(student_id, section_id):
                return self._drop_locked(student_id, section_id)
        except ConcurrencyError as e:
            logger.warning("Drop of section %s by student %s hit lock contention: %s",
                           section_id, student_id, e.message)
            return OperationResult.fail(FailureKind.CONTENTION, BUSY_MESSAGE)

    def _drop_locked(self, student_id: int, section_id: int) -> OperationResult:
        enrollment = self._store.find_enrollment(student_id, section_id)
        if enrollment is None or not enrollment.is_active:
            return OperationResult.fail(FailureKind.NOT_FOUND,
                                        "You are not enrolled in this section")

        now = self._clock()
        section = self._store.find_section(section_id)
        if section is not None and not section.can_drop(now):
            return OperationResult.fail(
                FailureKind.POLICY_DENIAL,
                "Cannot drop this section. Drop deadline has passed "
                f"({section.drop_deadline.isoformat()})")

        with self._store.atomic():
            if not self._store.mark_dropped(enrollment.id, now):
                return OperationResult.fail(FailureKind.NOT_FOUND,
                                            "You are not enrolled in this section")
            self._store.decrement_section_count(section_id)

        logger.info("Student %s dropped section %s (%s)",
                    student_id, section_id, enrollment.course_code)
        return OperationResult.ok(f"Successfully dropped {enrollment.course_code}",
                                  enrollment_id=enrollment.id)

    # Reads

    def timetable(self, student_id: int) -> List[Enrollment]:
        """Active enrollments, in listing order."""
        return self._store.find_active_enrollments(student_id)

    def enrollments(self, student_id: int) -> List[Enrollment]:
        """Every enrollment of the student, whatever its status."""
        return self._store.find_enrollments(student_id)

    def transcript(self, student_id: int) -> List[Enrollment]:
        """Completed enrollments that carry a final grade."""
        return [enrollment for enrollment in self._store.find_enrollments(student_id)
                if enrollment.status == EnrollmentStatus.COMPLETED and enrollment.final_grade]

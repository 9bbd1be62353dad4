"""
Grading service: score entry, grade finalization and class statistics.
"""

import logging
from typing import Dict, Optional

from ..core.entities import AssessmentRecord, OperationResult, Section
from ..core.enums import EnrollmentStatus, FailureKind, Role
from ..core.grading import (
    cgpa, class_statistics, is_complete, record_letter_grade, total_score, validate_scores
)
from ..core.interfaces import RecordStore
from .access_control_service import AccessControlService


logger = logging.getLogger(__name__)

NOT_YOUR_SECTION = "Access denied: This is not your section"


class GradingService:
    """Service for instructors (and administrators) managing section grades."""

    def __init__(self, store: RecordStore, access_control: AccessControlService):
        self._store = store
        self._access_control = access_control

    def _owned_section(self, actor_role: Role, actor_id: int,
                       section_id: int, is_write: bool):
        """Resolve the section and check the actor may grade it.

        Returns ``(section, None)`` on success or ``(None, failure)``.
        """
        decision = self._access_control.validate_operation(actor_role, is_write)
        if not decision.allowed:
            return None, OperationResult.fail(FailureKind.ACCESS_DENIED, decision.reason)

        section = self._store.find_section(section_id)
        if section is None:
            return None, OperationResult.fail(FailureKind.NOT_FOUND, "Section not found")

        if actor_role is Role.ADMIN:
            return section, None
        if actor_role is Role.INSTRUCTOR and section.instructor_id == actor_id:
            return section, None
        return None, OperationResult.fail(FailureKind.ACCESS_DENIED, NOT_YOUR_SECTION)

    def _is_graded_enrollment(self, student_id: int, section_id: int) -> bool:
        enrollment = self._store.find_enrollment(student_id, section_id)
        return enrollment is not None and enrollment.status != EnrollmentStatus.DROPPED

    def enter_scores(self, actor_role: Role, actor_id: int, student_id: int, section_id: int,
                     quiz: Optional[float] = None, midterm: Optional[float] = None,
                     final: Optional[float] = None) -> OperationResult:
        """Enter or update component scores. Omitted components keep their value."""
        section, failure = self._owned_section(actor_role, actor_id, section_id, True)
        if failure:
            return failure

        error = validate_scores(quiz, midterm, final)
        if error:
            return OperationResult.fail(FailureKind.VALIDATION, error)

        if not self._is_graded_enrollment(student_id, section.id):
            return OperationResult.fail(FailureKind.NOT_FOUND,
                                        "Student is not enrolled in this section")

        record = self._store.upsert_assessment_record(
            AssessmentRecord(student_id=student_id, section_id=section.id,
                             quiz=quiz, midterm=midterm, final=final))
        return OperationResult.ok(
            "Grades saved successfully",
            quiz=record.quiz,
            midterm=record.midterm,
            final=record.final,
            total=total_score(record),
            letter_grade=record_letter_grade(record),
        )

    def finalize_grade(self, actor_role: Role, actor_id: int,
                       student_id: int, section_id: int) -> OperationResult:
        """Compute the letter grade from a complete record and store it."""
        section, failure = self._owned_section(actor_role, actor_id, section_id, True)
        if failure:
            return failure
        return self._finalize(student_id, section)

    def _finalize(self, student_id: int, section: Section) -> OperationResult:
        record = self._store.get_assessment_record(student_id, section.id)
        if record is None:
            return OperationResult.fail(FailureKind.VALIDATION, "No grades entered yet")
        if not is_complete(record):
            return OperationResult.fail(
                FailureKind.VALIDATION,
                "All grade components (quiz, midterm, final) must be entered")

        enrollment = self._store.find_enrollment(student_id, section.id)
        if enrollment is None or enrollment.status == EnrollmentStatus.DROPPED:
            return OperationResult.fail(FailureKind.NOT_FOUND,
                                        "Student is not enrolled in this section")

        letter = record_letter_grade(record)
        percentage = total_score(record)
        if not self._store.set_final_grade(enrollment.id, letter):
            logger.warning("Student %s dropped section %s before the grade was recorded",
                           student_id, section.id)
            return OperationResult.fail(FailureKind.NOT_FOUND,
                                        "Student is not enrolled in this section")

        logger.info("Final grade %s recorded for student %s in section %s",
                    letter, student_id, section.id)
        return OperationResult.ok(f"Final grade computed: {letter} ({percentage:.2f}%)",
                                  letter_grade=letter, percentage=percentage)

    def finalize_section(self, actor_role: Role, actor_id: int, section_id: int) -> OperationResult:
        """Finalize every non-dropped enrollment of a section.

        Individual failures do not stop the run; each student's outcome is
        reported under ``results``.
        """
        section, failure = self._owned_section(actor_role, actor_id, section_id, True)
        if failure:
            return failure

        results: Dict[int, str] = {}
        for enrollment in self._store.find_section_enrollments(section.id):
            if enrollment.status == EnrollmentStatus.DROPPED:
                continue
            results[enrollment.student_id] = self._finalize(enrollment.student_id, section).message

        return OperationResult.ok("Final grades computed for all students", results=results)

    def section_roster(self, actor_role: Role, actor_id: int, section_id: int) -> OperationResult:
        """ACTIVE enrollments of the section, in listing order."""
        section, failure = self._owned_section(actor_role, actor_id, section_id, False)
        if failure:
            return failure

        roster = [enrollment.to_dict()
                  for enrollment in self._store.find_section_enrollments(section.id)
                  if enrollment.is_active]
        return OperationResult.ok("Roster retrieved", roster=roster)

    def section_grades(self, actor_role: Role, actor_id: int, section_id: int) -> OperationResult:
        """Every enrollment of the section with its scores and final letter.

        Dropped students are listed too, so an instructor sees the full
        grade sheet; ``status`` tells them apart.
        """
        section, failure = self._owned_section(actor_role, actor_id, section_id, False)
        if failure:
            return failure

        records = {record.student_id: record
                   for record in self._store.find_section_assessments(section.id)}
        grades = []
        for enrollment in self._store.find_section_enrollments(section.id):
            record = records.get(enrollment.student_id)
            grades.append({
                'enrollment_id': enrollment.id,
                'student_id': enrollment.student_id,
                'status': enrollment.status.value,
                'quiz': record.quiz if record else None,
                'midterm': record.midterm if record else None,
                'final': record.final if record else None,
                'total': total_score(record) if record else None,
                'letter_grade': record_letter_grade(record),
                'final_grade': enrollment.final_grade,
            })
        return OperationResult.ok("Grades retrieved", grades=grades)

    def section_statistics(self, actor_role: Role, actor_id: int, section_id: int) -> OperationResult:
        """Class statistics over the section's non-dropped enrollments."""
        section, failure = self._owned_section(actor_role, actor_id, section_id, False)
        if failure:
            return failure

        enrollments = [enrollment for enrollment in self._store.find_section_enrollments(section.id)
                       if enrollment.status != EnrollmentStatus.DROPPED]
        stats = class_statistics(enrollments, self._store.find_section_assessments(section.id))
        return OperationResult.ok("Statistics computed", **stats.to_dict())

    def student_cgpa(self, student_id: int) -> float:
        """Credit-weighted CGPA over the student's graded, non-dropped enrollments."""
        return cgpa((enrollment.final_grade, enrollment.credits)
                    for enrollment in self._store.find_enrollments(student_id)
                    if enrollment.status != EnrollmentStatus.DROPPED)

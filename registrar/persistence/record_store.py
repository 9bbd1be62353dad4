"""
SQL-backed implementation of the record store used by the rules engine.
"""

import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from ..core.entities import AssessmentRecord, Course, Enrollment, Section
from ..core.enums import EnrollmentStatus, SectionStatus
from ..core.interfaces import RecordStore
from .database import DatabaseManager


_ENROLLMENT_SELECT = """
    SELECT e.*, c.code AS course_code, c.title AS course_title, c.credits,
           s.schedule_text
    FROM enrollments e
    JOIN sections s ON e.section_id = s.id
    JOIN courses c ON s.course_id = c.id
"""

_SECTION_SELECT = """
    SELECT s.*, c.code AS course_code, c.title AS course_title, c.credits
    FROM sections s
    JOIN courses c ON s.course_id = c.id
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _to_score(value: Any) -> Optional[float]:
    return None if value is None else float(value)


class SqlRecordStore(RecordStore):
    """Record store over a :class:`DatabaseManager`.

    Calls made inside :meth:`atomic` share one connection per thread and
    commit together; calls outside it run in their own short transaction.
    """

    def __init__(self, database: DatabaseManager):
        self._database = database
        self._local = threading.local()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Group the writes made inside the block into one transaction."""
        if getattr(self._local, "conn", None) is not None:
            yield
            return
        with self._database.transaction() as conn:
            self._local.conn = conn
            try:
                yield
            finally:
                self._local.conn = None

    def _conn(self) -> Optional[Any]:
        return getattr(self._local, "conn", None)

    def _query(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        return self._database.execute_query(query, params, conn=self._conn())

    def _update(self, query: str, params: tuple = ()) -> int:
        return self._database.execute_update(query, params, conn=self._conn())

    def _insert(self, query: str, params: tuple = ()) -> int:
        return self._database.execute_insert(query, params, conn=self._conn())

    # Row mapping

    @staticmethod
    def _course_from_row(row: Dict[str, Any]) -> Course:
        return Course(
            code=row["code"],
            title=row["title"],
            credits=row["credits"],
            entity_id=row["id"],
            created_at=_to_datetime(row["created_at"]),
            updated_at=_to_datetime(row["updated_at"]),
        )

    @staticmethod
    def _section_from_row(row: Dict[str, Any]) -> Section:
        return Section(
            course_id=row["course_id"],
            section_name=row["section_name"],
            schedule_text=row["schedule_text"],
            capacity=row["capacity"],
            semester=row["semester"],
            year=row["year"],
            enrolled_count=row["enrolled_count"],
            status=SectionStatus(row["status"]),
            drop_deadline=_to_datetime(row["drop_deadline"]),
            instructor_id=row["instructor_id"],
            course_code=row["course_code"],
            course_title=row["course_title"],
            credits=row["credits"],
            entity_id=row["id"],
            created_at=_to_datetime(row["created_at"]),
            updated_at=_to_datetime(row["updated_at"]),
        )

    @staticmethod
    def _enrollment_from_row(row: Dict[str, Any]) -> Enrollment:
        return Enrollment(
            student_id=row["student_id"],
            section_id=row["section_id"],
            status=EnrollmentStatus(row["status"]),
            enrolled_at=_to_datetime(row["enrolled_at"]),
            dropped_at=_to_datetime(row["dropped_at"]),
            final_grade=row["final_grade"],
            course_code=row["course_code"],
            course_title=row["course_title"],
            credits=row["credits"],
            schedule_text=row["schedule_text"],
            entity_id=row["id"],
            created_at=_to_datetime(row["created_at"]),
            updated_at=_to_datetime(row["updated_at"]),
        )

    @staticmethod
    def _assessment_from_row(row: Dict[str, Any]) -> AssessmentRecord:
        return AssessmentRecord(
            student_id=row["student_id"],
            section_id=row["section_id"],
            quiz=_to_score(row["quiz"]),
            midterm=_to_score(row["midterm"]),
            final=_to_score(row["final"]),
        )

    # Courses and sections

    def add_course(self, course: Course) -> int:
        """Persist a new course and return its ID."""
        return self._insert(
            "INSERT INTO courses (code, title, credits, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (course.code, course.title, course.credits,
             course.created_at.isoformat(), course.updated_at.isoformat()),
        )

    def find_course(self, course_id: int) -> Optional[Course]:
        """Find a course by ID."""
        rows = self._query("SELECT * FROM courses WHERE id = ?", (course_id,))
        return self._course_from_row(rows[0]) if rows else None

    def find_course_by_code(self, code: str) -> Optional[Course]:
        """Find a course by its code."""
        rows = self._query("SELECT * FROM courses WHERE code = ?", (code,))
        return self._course_from_row(rows[0]) if rows else None

    def find_courses(self) -> List[Course]:
        """The whole catalogue, ordered by course code."""
        rows = self._query("SELECT * FROM courses ORDER BY code")
        return [self._course_from_row(row) for row in rows]

    def update_course(self, course_id: int, title: str, credits: int) -> bool:
        """Change a course's title and credits."""
        affected = self._update(
            "UPDATE courses SET title = ?, credits = ?, updated_at = ? WHERE id = ?",
            (title, credits, _now(), course_id),
        )
        return affected > 0

    def add_section(self, section: Section) -> int:
        """Persist a new section and return its ID."""
        deadline = section.drop_deadline.isoformat() if section.drop_deadline else None
        return self._insert(
            "INSERT INTO sections (course_id, instructor_id, section_name, schedule_text, "
            "capacity, enrolled_count, status, semester, year, drop_deadline, "
            "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (section.course_id, section.instructor_id, section.section_name,
             section.schedule_text, section.capacity, section.enrolled_count,
             section.status.value, section.semester, section.year, deadline,
             section.created_at.isoformat(), section.updated_at.isoformat()),
        )

    def find_section(self, section_id: int) -> Optional[Section]:
        """Find a section by ID."""
        rows = self._query(_SECTION_SELECT + " WHERE s.id = ?", (section_id,))
        return self._section_from_row(rows[0]) if rows else None

    def find_sections(self, semester: Optional[str] = None,
                      year: Optional[int] = None) -> List[Section]:
        """Sections ordered by course code and section name, optionally filtered by term."""
        clauses, params = [], []
        if semester is not None:
            clauses.append("s.semester = ?")
            params.append(semester)
        if year is not None:
            clauses.append("s.year = ?")
            params.append(year)
        where = " WHERE " + " AND ".join(clauses) if clauses else ""
        rows = self._query(_SECTION_SELECT + where + " ORDER BY c.code, s.section_name",
                           tuple(params))
        return [self._section_from_row(row) for row in rows]

    def set_section_status(self, section_id: int, status: SectionStatus) -> bool:
        """Open or close a section."""
        affected = self._update(
            "UPDATE sections SET status = ?, updated_at = ? WHERE id = ?",
            (status.value, _now(), section_id),
        )
        return affected > 0

    def assign_instructor(self, section_id: int, instructor_id: int) -> bool:
        """Make an instructor the owner of a section."""
        affected = self._update(
            "UPDATE sections SET instructor_id = ?, updated_at = ? WHERE id = ?",
            (instructor_id, _now(), section_id),
        )
        return affected > 0

    def increment_section_count(self, section_id: int) -> bool:
        """Take one seat; the WHERE clause makes check and increment one step."""
        affected = self._update(
            "UPDATE sections SET enrolled_count = enrolled_count + 1, updated_at = ? "
            "WHERE id = ? AND enrolled_count < capacity",
            (_now(), section_id),
        )
        return affected > 0

    def decrement_section_count(self, section_id: int) -> bool:
        """Release one seat."""
        affected = self._update(
            "UPDATE sections SET enrolled_count = enrolled_count - 1, updated_at = ? "
            "WHERE id = ? AND enrolled_count > 0",
            (_now(), section_id),
        )
        return affected > 0

    # Enrollments

    def find_enrollment(self, student_id: int, section_id: int) -> Optional[Enrollment]:
        """Find the enrollment for a (student, section) pair, whatever its status."""
        rows = self._query(
            _ENROLLMENT_SELECT + " WHERE e.student_id = ? AND e.section_id = ?",
            (student_id, section_id),
        )
        return self._enrollment_from_row(rows[0]) if rows else None

    def find_enrollments(self, student_id: int) -> List[Enrollment]:
        """All enrollments of a student in listing order."""
        rows = self._query(
            _ENROLLMENT_SELECT + " WHERE e.student_id = ? ORDER BY e.id",
            (student_id,),
        )
        return [self._enrollment_from_row(row) for row in rows]

    def find_active_enrollments(self, student_id: int) -> List[Enrollment]:
        """ACTIVE enrollments of a student in listing order."""
        rows = self._query(
            _ENROLLMENT_SELECT + " WHERE e.student_id = ? AND e.status = ? ORDER BY e.id",
            (student_id, EnrollmentStatus.ACTIVE.value),
        )
        return [self._enrollment_from_row(row) for row in rows]

    def find_section_enrollments(self, section_id: int) -> List[Enrollment]:
        """All enrollments of a section."""
        rows = self._query(
            _ENROLLMENT_SELECT + " WHERE e.section_id = ? ORDER BY e.id",
            (section_id,),
        )
        return [self._enrollment_from_row(row) for row in rows]

    def create_enrollment(self, student_id: int, section_id: int) -> int:
        """Create an ACTIVE enrollment and return its ID."""
        now = _now()
        return self._insert(
            "INSERT INTO enrollments (student_id, section_id, status, enrolled_at, "
            "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?)",
            (student_id, section_id, EnrollmentStatus.ACTIVE.value, now, now, now),
        )

    def reactivate_enrollment(self, enrollment_id: int) -> None:
        """Return a DROPPED enrollment to ACTIVE, clearing drop time and grade."""
        now = _now()
        self._update(
            "UPDATE enrollments SET status = ?, enrolled_at = ?, dropped_at = NULL, "
            "final_grade = NULL, updated_at = ? WHERE id = ?",
            (EnrollmentStatus.ACTIVE.value, now, now, enrollment_id),
        )

    def mark_dropped(self, enrollment_id: int, dropped_at: datetime) -> bool:
        """Mark an ACTIVE enrollment DROPPED. Returns False if it was not ACTIVE."""
        affected = self._update(
            "UPDATE enrollments SET status = ?, dropped_at = ?, updated_at = ? "
            "WHERE id = ? AND status = ?",
            (EnrollmentStatus.DROPPED.value, dropped_at.isoformat(), _now(), enrollment_id,
             EnrollmentStatus.ACTIVE.value),
        )
        return affected > 0

    def set_final_grade(self, enrollment_id: int, letter: str) -> bool:
        """Record the final letter and mark the enrollment COMPLETED.

        DROPPED enrollments are left untouched and False is returned.
        """
        affected = self._update(
            "UPDATE enrollments SET final_grade = ?, status = ?, updated_at = ? "
            "WHERE id = ? AND status IN (?, ?)",
            (letter, EnrollmentStatus.COMPLETED.value, _now(), enrollment_id,
             EnrollmentStatus.ACTIVE.value, EnrollmentStatus.COMPLETED.value),
        )
        return affected > 0

    # Assessments

    def get_assessment_record(self, student_id: int, section_id: int) -> Optional[AssessmentRecord]:
        """Find the assessment record for a (student, section) pair."""
        rows = self._query(
            "SELECT * FROM assessments WHERE student_id = ? AND section_id = ?",
            (student_id, section_id),
        )
        return self._assessment_from_row(rows[0]) if rows else None

    def find_section_assessments(self, section_id: int) -> List[AssessmentRecord]:
        """All assessment records of a section."""
        rows = self._query(
            "SELECT * FROM assessments WHERE section_id = ? ORDER BY id", (section_id,)
        )
        return [self._assessment_from_row(row) for row in rows]

    def upsert_assessment_record(self, record: AssessmentRecord) -> AssessmentRecord:
        """Insert or merge a record; ``None`` components keep their stored value."""
        with self.atomic():
            self._update(
                "INSERT INTO assessments (student_id, section_id, quiz, midterm, final, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT (student_id, section_id) DO UPDATE SET "
                "quiz = COALESCE(excluded.quiz, assessments.quiz), "
                "midterm = COALESCE(excluded.midterm, assessments.midterm), "
                "final = COALESCE(excluded.final, assessments.final), "
                "updated_at = excluded.updated_at",
                (record.student_id, record.section_id, record.quiz, record.midterm,
                 record.final, _now()),
            )
            return self.get_assessment_record(record.student_id, record.section_id)

    # Settings

    def _get_setting(self, key: str) -> Optional[str]:
        rows = self._query("SELECT setting_value FROM settings WHERE setting_key = ?", (key,))
        return rows[0]["setting_value"] if rows else None

    def _set_setting(self, key: str, value: str) -> None:
        self._update(
            "INSERT INTO settings (setting_key, setting_value) VALUES (?, ?) "
            "ON CONFLICT (setting_key) DO UPDATE SET setting_value = excluded.setting_value",
            (key, value),
        )

    def is_maintenance_mode_active(self) -> bool:
        """Read the global maintenance flag."""
        value = self._get_setting("maintenance_mode")
        return value is not None and value.lower() == "true"

    def set_maintenance_mode(self, enabled: bool) -> None:
        """Write the global maintenance flag."""
        self._set_setting("maintenance_mode", "true" if enabled else "false")

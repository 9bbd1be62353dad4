import itertools
from datetime import datetime, timezone

import pytest

from registrar.core.entities import Course, Section
from registrar.core.enums import SectionStatus
from registrar.persistence import SQLiteDatabase, SqlRecordStore
from registrar.services import (
    AccessControlService, AdministrationService, ConcurrencyManager,
    GradingService, MaintenanceModeCache, RegistrationService
)


FIXED_NOW = datetime(2025, 9, 15, 12, 0, tzinfo=timezone.utc)
INSTRUCTOR_ID = 100
OTHER_INSTRUCTOR_ID = 200


@pytest.fixture
def database(tmp_path):
    return SQLiteDatabase(str(tmp_path / "registrar.db"))


@pytest.fixture
def store(database):
    return SqlRecordStore(database)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def access_control(store):
    return AccessControlService(MaintenanceModeCache(store))


@pytest.fixture
def concurrency_manager():
    return ConcurrencyManager(default_timeout=5.0)


@pytest.fixture
def registration_service(store, access_control, concurrency_manager, clock):
    return RegistrationService(store, access_control, concurrency_manager, clock=clock)


@pytest.fixture
def grading_service(store, access_control):
    return GradingService(store, access_control)


@pytest.fixture
def administration_service(store, access_control):
    return AdministrationService(store, access_control)


@pytest.fixture
def make_course(store):
    counter = itertools.count(101)

    def _make(code=None, title="Course", credits=4):
        code = code or f"CS{next(counter)}"
        return store.add_course(Course(code=code, title=title, credits=credits))

    return _make


@pytest.fixture
def make_section(store, make_course):
    """Create a course and one section of it; returns the section ID."""

    def _make(schedule="Mon/Wed 10:00-11:00", capacity=30, code=None, credits=4,
              status=SectionStatus.OPEN, drop_deadline=None, instructor_id=INSTRUCTOR_ID):
        course_id = make_course(code=code, title=f"{code or 'Course'} title", credits=credits)
        return store.add_section(Section(
            course_id=course_id, section_name="A", schedule_text=schedule,
            capacity=capacity, semester="Fall", year=2025, status=status,
            drop_deadline=drop_deadline, instructor_id=instructor_id))

    return _make

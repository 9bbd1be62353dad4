import threading
from datetime import timedelta

from registrar.core.access import MAINTENANCE_DENIAL
from registrar.core.enums import EnrollmentStatus, FailureKind, Role, SectionStatus
from registrar.services import ConcurrencyManager, RegistrationService

from .conftest import FIXED_NOW, INSTRUCTOR_ID


def test_register_success(registration_service, store, make_section):
    section_id = make_section(code="CS101")

    result = registration_service.register(1, section_id)

    assert result.success
    assert result.message == "Successfully registered for CS101 - CS101 title"
    enrollment = store.find_enrollment(1, section_id)
    assert result.data["enrollment_id"] == enrollment.id
    assert enrollment.status == EnrollmentStatus.ACTIVE
    assert store.find_section(section_id).enrolled_count == 1


def test_register_unknown_section(registration_service):
    result = registration_service.register(1, 424242)

    assert not result.success
    assert result.failure == FailureKind.NOT_FOUND
    assert result.message == "Section not found"


def test_register_twice(registration_service, store, make_section):
    section_id = make_section()
    registration_service.register(1, section_id)

    result = registration_service.register(1, section_id)

    assert result.failure == FailureKind.POLICY_DENIAL
    assert result.message == "You are already registered for this section"
    assert store.find_section(section_id).enrolled_count == 1


def test_register_closed_section(registration_service, make_section):
    section_id = make_section(status=SectionStatus.CLOSED)

    result = registration_service.register(1, section_id)

    assert result.failure == FailureKind.POLICY_DENIAL
    assert result.message == "Section is closed. Registration not available."


def test_register_full_section(registration_service, store, make_section):
    section_id = make_section(capacity=1)
    assert registration_service.register(1, section_id).success

    result = registration_service.register(2, section_id)

    assert result.failure == FailureKind.POLICY_DENIAL
    assert result.message == "Section is full (Capacity: 1)"
    assert store.find_section(section_id).enrolled_count == 1
    assert store.find_enrollment(2, section_id) is None


def test_time_clash_names_existing_course(registration_service, store, make_section):
    first = make_section(code="CS101", schedule="Mon/Wed 10:00-11:00")
    second = make_section(code="CS102", schedule="Wed/Fri 10:30-11:30")
    registration_service.register(1, first)

    result = registration_service.register(1, second)

    assert result.failure == FailureKind.POLICY_DENIAL
    assert result.message == ("Time clash detected! You already have CS101 at "
                              "Mon/Wed 10:00-11:00. Cannot register for course CS102")
    assert store.find_section(second).enrolled_count == 0


def test_back_to_back_sections_do_not_clash(registration_service, make_section):
    first = make_section(schedule="Mon 11:00-12:00")
    second = make_section(schedule="Mon 12:00-13:00")

    assert registration_service.register(1, first).success
    assert registration_service.register(1, second).success


def test_unscheduled_sections_skip_clash_check(registration_service, make_section):
    first = make_section(schedule="Mon/Wed 10:00-11:00")
    tba = make_section(schedule="TBA")
    garbled = make_section(schedule="whenever")

    assert registration_service.register(1, first).success
    assert registration_service.register(1, tba).success
    assert registration_service.register(1, garbled).success


def test_dropped_enrollment_does_not_clash(registration_service, make_section):
    first = make_section(schedule="Mon 10:00-11:00")
    second = make_section(schedule="Mon 10:30-11:30")
    registration_service.register(1, first)
    registration_service.drop(1, first)

    assert registration_service.register(1, second).success


def test_maintenance_blocks_registration(registration_service, access_control, store, make_section):
    section_id = make_section()
    access_control.maintenance.set(True, Role.ADMIN)

    result = registration_service.register(1, section_id)

    assert result.failure == FailureKind.ACCESS_DENIED
    assert result.message == MAINTENANCE_DENIAL
    assert store.find_section(section_id).enrolled_count == 0


def test_drop_and_reregister_reuses_enrollment(registration_service, store, make_section):
    section_id = make_section(code="EE210")
    first = registration_service.register(1, section_id)

    dropped = registration_service.drop(1, section_id)
    assert dropped.success
    assert dropped.message == "Successfully dropped EE210"
    assert store.find_section(section_id).enrolled_count == 0
    assert store.find_enrollment(1, section_id).dropped_at == FIXED_NOW

    again = registration_service.register(1, section_id)
    assert again.success
    assert again.data["enrollment_id"] == first.data["enrollment_id"]
    enrollment = store.find_enrollment(1, section_id)
    assert enrollment.status == EnrollmentStatus.ACTIVE
    assert enrollment.dropped_at is None
    assert store.find_section(section_id).enrolled_count == 1


def test_drop_without_enrollment(registration_service, make_section):
    result = registration_service.drop(1, make_section())

    assert result.failure == FailureKind.NOT_FOUND
    assert result.message == "You are not enrolled in this section"


def test_drop_twice(registration_service, make_section):
    section_id = make_section()
    registration_service.register(1, section_id)
    registration_service.drop(1, section_id)

    assert registration_service.drop(1, section_id).failure == FailureKind.NOT_FOUND


def test_drop_after_deadline(registration_service, store, make_section):
    section_id = make_section(drop_deadline=FIXED_NOW - timedelta(days=1))
    registration_service.register(1, section_id)

    result = registration_service.drop(1, section_id)

    assert result.failure == FailureKind.POLICY_DENIAL
    assert result.message == ("Cannot drop this section. Drop deadline has passed "
                              "(2025-09-14T12:00:00+00:00)")
    assert store.find_section(section_id).enrolled_count == 1


def test_drop_exactly_at_deadline(registration_service, make_section):
    section_id = make_section(drop_deadline=FIXED_NOW)
    registration_service.register(1, section_id)

    assert registration_service.drop(1, section_id).success


def test_naive_deadline_is_utc(registration_service, make_section):
    naive = (FIXED_NOW + timedelta(hours=1)).replace(tzinfo=None)
    section_id = make_section(drop_deadline=naive)
    registration_service.register(1, section_id)

    assert registration_service.drop(1, section_id).success


def test_completed_section_cannot_be_retaken(registration_service, store, make_section):
    section_id = make_section()
    registration_service.register(1, section_id)
    store.set_final_grade(store.find_enrollment(1, section_id).id, "A")

    result = registration_service.register(1, section_id)

    assert result.failure == FailureKind.POLICY_DENIAL
    assert result.message == "You have already completed this section"


def test_lock_contention_is_reported(store, access_control, make_section):
    manager = ConcurrencyManager(default_timeout=0.05)
    service = RegistrationService(store, access_control, manager)
    section_id = make_section()

    with manager.lock(f"section_{section_id}", "someone-else"):
        result = service.register(1, section_id)

    assert result.failure == FailureKind.CONTENTION
    assert store.find_section(section_id).enrolled_count == 0


def test_last_seat_race_has_one_winner(registration_service, store, make_section):
    section_id = make_section(capacity=1)
    barrier = threading.Barrier(2)
    results = {}

    def register(student_id):
        barrier.wait()
        results[student_id] = registration_service.register(student_id, section_id)

    threads = [threading.Thread(target=register, args=(student_id,)) for student_id in (1, 2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    winners = [r for r in results.values() if r.success]
    losers = [r for r in results.values() if not r.success]
    assert len(winners) == 1
    assert len(losers) == 1
    assert losers[0].message == "Section is full (Capacity: 1)"
    assert store.find_section(section_id).enrolled_count == 1


def test_reads(registration_service, store, make_section):
    first = make_section(code="AA101", schedule="Mon 08:00-09:00")
    second = make_section(code="BB101", schedule="Tue 08:00-09:00")
    third = make_section(code="CC101", schedule="Wed 08:00-09:00")
    for section_id in (first, second, third):
        registration_service.register(1, section_id)
    registration_service.drop(1, second)
    store.set_final_grade(store.find_enrollment(1, third).id, "B")

    assert [e.course_code for e in registration_service.timetable(1)] == ["AA101"]
    assert [e.course_code for e in registration_service.enrollments(1)] == ["AA101", "BB101", "CC101"]
    assert [e.course_code for e in registration_service.transcript(1)] == ["CC101"]
    assert registration_service.timetable(INSTRUCTOR_ID) == []


def test_maintenance_blocks_drop(registration_service, access_control, store, make_section):
    section_id = make_section()
    registration_service.register(1, section_id)
    access_control.maintenance.set(True, Role.ADMIN)

    result = registration_service.drop(1, section_id)

    assert result.failure == FailureKind.ACCESS_DENIED
    assert result.message == MAINTENANCE_DENIAL
    assert store.find_enrollment(1, section_id).status == EnrollmentStatus.ACTIVE
    assert store.find_section(section_id).enrolled_count == 1


def test_first_clash_in_listing_order_is_reported(registration_service, make_section):
    monday = make_section(code="CS111", schedule="Mon 10:00-11:00")
    wednesday = make_section(code="CS222", schedule="Wed 10:00-11:00")
    target = make_section(code="CS333", schedule="Mon/Wed 10:30-11:30")
    registration_service.register(1, wednesday)
    registration_service.register(1, monday)

    result = registration_service.register(1, target)

    assert result.message == ("Time clash detected! You already have CS222 at "
                              "Wed 10:00-11:00. Cannot register for course CS333")


def test_closed_is_reported_before_full(registration_service, store, make_section):
    section_id = make_section(capacity=1)
    registration_service.register(1, section_id)
    store.set_section_status(section_id, SectionStatus.CLOSED)

    result = registration_service.register(2, section_id)

    assert result.message == "Section is closed. Registration not available."


def test_already_registered_is_reported_before_closed(registration_service, store, make_section):
    section_id = make_section()
    registration_service.register(1, section_id)
    store.set_section_status(section_id, SectionStatus.CLOSED)

    result = registration_service.register(1, section_id)

    assert result.message == "You are already registered for this section"


def test_full_is_reported_before_clash(registration_service, make_section):
    existing = make_section(schedule="Mon 10:00-11:00")
    full = make_section(schedule="Mon 10:00-11:00", capacity=1)
    registration_service.register(2, full)
    registration_service.register(1, existing)

    result = registration_service.register(1, full)

    assert result.message == "Section is full (Capacity: 1)"


def test_reactivation_clears_stale_grade(registration_service, store, database, make_section):
    section_id = make_section()
    registration_service.register(1, section_id)
    registration_service.drop(1, section_id)
    enrollment_id = store.find_enrollment(1, section_id).id
    database.execute_update("UPDATE enrollments SET final_grade = 'B' WHERE id = ?", (enrollment_id,))

    assert registration_service.register(1, section_id).success

    enrollment = store.find_enrollment(1, section_id)
    assert enrollment.id == enrollment_id
    assert enrollment.status == EnrollmentStatus.ACTIVE
    assert enrollment.final_grade is None


def test_finalization_during_drop_keeps_grade(registration_service, store, make_section, monkeypatch):
    section_id = make_section()
    registration_service.register(1, section_id)
    find_enrollment = store.find_enrollment

    def find_then_finalize(student_id, section_id):
        enrollment = find_enrollment(student_id, section_id)
        assert store.set_final_grade(enrollment.id, "B")
        return enrollment

    monkeypatch.setattr(store, "find_enrollment", find_then_finalize)

    result = registration_service.drop(1, section_id)

    monkeypatch.undo()
    assert result.failure == FailureKind.NOT_FOUND
    assert result.message == "You are not enrolled in this section"
    enrollment = store.find_enrollment(1, section_id)
    assert enrollment.status == EnrollmentStatus.COMPLETED
    assert enrollment.final_grade == "B"
    assert store.find_section(section_id).enrolled_count == 1

import pytest

from registrar.core.entities import AssessmentRecord, Enrollment
from registrar.core.enums import EnrollmentStatus
from registrar.core.grading import (
    NOT_GRADED, cgpa, class_statistics, gpa_points, is_complete, is_passing,
    letter_grade, record_letter_grade, total_score, validate_scores
)


def record(quiz=None, midterm=None, final=None, student_id=1):
    return AssessmentRecord(student_id=student_id, section_id=1,
                            quiz=quiz, midterm=midterm, final=final)


@pytest.mark.parametrize("total, letter", [
    (100.0, "A+"),
    (90.0, "A+"),
    (89.999, "A"),
    (85.0, "A"),
    (80.0, "A-"),
    (75.0, "B+"),
    (70.0, "B"),
    (65.0, "B-"),
    (60.0, "C+"),
    (55.0, "C"),
    (50.0, "C-"),
    (49.99, "D"),
    (45.0, "D"),
    (44.99, "F"),
    (0.0, "F"),
])
def test_letter_grade_thresholds(total, letter):
    assert letter_grade(total) == letter


def test_total_score_ignores_missing_components():
    assert total_score(record(quiz=15, final=40)) == 55
    assert total_score(record()) == 0


def test_is_complete_requires_all_components():
    assert is_complete(record(18, 25, 45))
    assert not is_complete(record(18, 25, None))
    assert not is_complete(record(None, 25, 45))
    assert not is_complete(record(18, None, 45))
    assert not is_complete(None)


def test_zero_is_a_present_score():
    assert is_complete(record(0, 0, 0))
    assert record_letter_grade(record(0, 0, 0)) == "F"


def test_record_letter_grade_needs_complete_record():
    assert record_letter_grade(record(20, 30, None)) == NOT_GRADED
    assert record_letter_grade(None) == NOT_GRADED
    assert record_letter_grade(record(18, 25, 45)) == "A"


def test_is_passing():
    assert is_passing(record(10, 15, 25))
    assert not is_passing(record(10, 15, 24))
    assert not is_passing(record(20, 30, None))


def test_gpa_points():
    assert gpa_points("A+") == 10.0
    assert gpa_points("B-") == 6.5
    assert gpa_points("F") == 0.0
    assert gpa_points("Z") == 0.0
    assert gpa_points(None) == 0.0


def test_cgpa_is_credit_weighted():
    assert cgpa([("A", 4), ("B", 2)]) == pytest.approx(50 / 6)


def test_cgpa_skips_ungraded_entries():
    assert cgpa([("A", 4), (None, 3), ("", 2)]) == pytest.approx(9.0)
    assert cgpa([]) == 0.0
    assert cgpa([(None, 4)]) == 0.0


def test_validate_scores():
    assert validate_scores(20, 30, 50) is None
    assert validate_scores(None, None, None) is None
    assert validate_scores(21, None, None) == "Quiz score must be between 0 and 20"
    assert validate_scores(None, -1, None) == "Midterm score must be between 0 and 30"
    assert validate_scores(None, None, 50.5) == "Final score must be between 0 and 50"


@pytest.mark.parametrize("score", [float("nan"), float("inf"), float("-inf")])
def test_validate_scores_rejects_non_finite(score):
    assert validate_scores(score, None, None) == "Quiz score must be between 0 and 20"
    assert validate_scores(None, None, score) == "Final score must be between 0 and 50"


def test_class_statistics_uses_complete_records_and_final_letters():
    enrollments = [
        Enrollment(student_id=1, section_id=1, status=EnrollmentStatus.COMPLETED, final_grade="A"),
        Enrollment(student_id=2, section_id=1, status=EnrollmentStatus.COMPLETED, final_grade="C"),
        Enrollment(student_id=3, section_id=1),
    ]
    records = [
        record(18, 25, 45, student_id=1),
        record(10, 15, 30, student_id=2),
        record(10, None, None, student_id=3),
    ]

    stats = class_statistics(enrollments, records)

    assert stats.total_students == 3
    assert stats.graded_count == 2
    assert stats.average_score == pytest.approx(71.5)
    assert stats.min_score == 55
    assert stats.max_score == 88
    assert stats.distribution["A"] == 1
    assert stats.distribution["C"] == 1
    assert stats.distribution[NOT_GRADED] == 1
    assert stats.distribution["B"] == 0


def test_class_statistics_distribution_follows_recorded_letter():
    # recorded letter wins even if the scores were changed afterwards
    enrollments = [Enrollment(student_id=1, section_id=1, final_grade="B")]
    stats = class_statistics(enrollments, [record(20, 30, 50, student_id=1)])

    assert stats.distribution["B"] == 1
    assert stats.distribution["A+"] == 0


def test_class_statistics_empty_section():
    stats = class_statistics([], [])

    assert stats.total_students == 0
    assert stats.graded_count == 0
    assert stats.average_score == 0.0
    assert stats.min_score == 0.0
    assert stats.max_score == 0.0
    assert stats.to_dict()["distribution"][NOT_GRADED] == 0

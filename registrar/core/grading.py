"""
Grade computation: component totals, letter grades, GPA points and CGPA.

All functions here are pure. They read assessment records and enrollments and
never write anything back.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from .entities import (
    AssessmentRecord, Enrollment, QUIZ_MAX, MIDTERM_MAX, FINAL_MAX
)


NOT_GRADED = "N/A"
PASSING_SCORE = 50.0

# Inclusive lower bounds, checked in descending order.
LETTER_THRESHOLDS: Tuple[Tuple[float, str], ...] = (
    (90.0, "A+"),
    (85.0, "A"),
    (80.0, "A-"),
    (75.0, "B+"),
    (70.0, "B"),
    (65.0, "B-"),
    (60.0, "C+"),
    (55.0, "C"),
    (50.0, "C-"),
    (45.0, "D"),
)
FAILING_LETTER = "F"

# 10-point scale
GPA_POINTS: Dict[str, float] = {
    "A+": 10.0,
    "A": 9.0,
    "A-": 8.5,
    "B+": 8.0,
    "B": 7.0,
    "B-": 6.5,
    "C+": 6.0,
    "C": 5.5,
    "C-": 5.0,
    "D": 4.0,
    "F": 0.0,
}

LETTERS: Tuple[str, ...] = tuple(letter for _, letter in LETTER_THRESHOLDS) + (FAILING_LETTER,)


@dataclass
class ClassStatistics:
    """Aggregate view of one section's scores and final grades."""
    total_students: int = 0
    graded_count: int = 0
    average_score: float = 0.0
    min_score: float = 0.0
    max_score: float = 0.0
    distribution: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            'total_students': self.total_students,
            'graded_count': self.graded_count,
            'average_score': self.average_score,
            'min_score': self.min_score,
            'max_score': self.max_score,
            'distribution': dict(self.distribution),
        }


def total_score(record: AssessmentRecord) -> float:
    """Sum of the components entered so far."""
    return sum(score for score in (record.quiz, record.midterm, record.final)
               if score is not None)


def is_complete(record: Optional[AssessmentRecord]) -> bool:
    """True iff quiz, midterm and final have all been entered."""
    if record is None:
        return False
    return record.quiz is not None and record.midterm is not None and record.final is not None


def letter_grade(total_percentage: float) -> str:
    """Map a total percentage to a letter. No rounding: 89.999 is an ``A``."""
    for threshold, letter in LETTER_THRESHOLDS:
        if total_percentage >= threshold:
            return letter
    return FAILING_LETTER


def record_letter_grade(record: Optional[AssessmentRecord]) -> str:
    """Letter grade of a record, or ``NOT_GRADED`` while components are missing."""
    if not is_complete(record):
        return NOT_GRADED
    return letter_grade(total_score(record))


def is_passing(record: Optional[AssessmentRecord]) -> bool:
    return is_complete(record) and total_score(record) >= PASSING_SCORE


def gpa_points(letter: Optional[str]) -> float:
    """Grade points on the 10-point scale; unknown letters earn nothing."""
    if letter is None:
        return 0.0
    return GPA_POINTS.get(letter, 0.0)


def cgpa(graded_credits: Iterable[Tuple[Optional[str], int]]) -> float:
    """Credit-weighted mean of grade points.

    ``graded_credits`` yields ``(letter, credits)`` pairs. Pairs without a
    letter are left out of both sums.
    """
    total_points = 0.0
    total_credits = 0
    for letter, credits in graded_credits:
        if not letter:
            continue
        total_points += gpa_points(letter) * credits
        total_credits += credits
    return total_points / total_credits if total_credits > 0 else 0.0


def validate_scores(quiz: Optional[float], midterm: Optional[float],
                    final: Optional[float]) -> Optional[str]:
    """Return an error message for the first out-of-range component, else ``None``."""
    for name, score, maximum in (("Quiz", quiz, QUIZ_MAX),
                                 ("Midterm", midterm, MIDTERM_MAX),
                                 ("Final", final, FINAL_MAX)):
        if score is not None and not (math.isfinite(score) and 0 <= score <= maximum):
            return f"{name} score must be between 0 and {maximum:g}"
    return None


def class_statistics(enrollments: Iterable[Enrollment],
                     records: Iterable[AssessmentRecord]) -> ClassStatistics:
    """Summarise a class.

    Average, min and max cover complete records only. The distribution counts
    every enrollment by its recorded final letter, with missing letters under
    ``NOT_GRADED``.
    """
    records_by_student = {record.student_id: record for record in records}
    distribution = {letter: 0 for letter in LETTERS}
    distribution[NOT_GRADED] = 0

    scores = []
    total_students = 0
    for enrollment in enrollments:
        total_students += 1
        record = records_by_student.get(enrollment.student_id)
        if is_complete(record):
            scores.append(total_score(record))

        letter = enrollment.final_grade or NOT_GRADED
        distribution[letter] = distribution.get(letter, 0) + 1

    stats = ClassStatistics(total_students=total_students,
                            graded_count=len(scores),
                            distribution=distribution)
    if scores:
        stats.average_score = sum(scores) / len(scores)
        stats.min_score = min(scores)
        stats.max_score = max(scores)
    return stats

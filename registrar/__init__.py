"""
Registrar: Registration & Grading Rules Engine

The rules core of a university academic-records platform. It decides whether a
student may enroll in or drop a course section, and converts raw assessment
scores into letter grades, class statistics and a cumulative GPA.
"""

__version__ = "1.0.0"
__author__ = "Registrar Development Team"
__description__ = "Registration & Grading Rules Engine"

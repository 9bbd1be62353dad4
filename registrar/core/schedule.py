"""
Weekly schedule parsing and clash detection.

Schedules are stored as compact text such as ``"Mon/Wed/Fri 10:00-11:30"``.
They are parsed into a :class:`ScheduleSlot` each time a comparison is needed.
Malformed text never raises: it parses to ``None`` and is treated as carrying
no conflict information.
"""

import re
from dataclasses import dataclass
from typing import FrozenSet, Optional


DAY_ORDER = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

_DAY_NAMES = {
    "mon": "Mon", "monday": "Mon",
    "tue": "Tue", "tuesday": "Tue",
    "wed": "Wed", "wednesday": "Wed",
    "thu": "Thu", "thursday": "Thu",
    "fri": "Fri", "friday": "Fri",
    "sat": "Sat", "saturday": "Sat",
    "sun": "Sun", "sunday": "Sun",
}

_TIME_PATTERN = re.compile(r"([0-9]{1,2}):([0-9]{2})")
_NON_LETTERS = re.compile(r"[^a-zA-Z]")

UNSCHEDULED_MARKER = "TBA"


@dataclass(frozen=True)
class ScheduleSlot:
    """Weekly meeting pattern: a set of days and one time range in minutes."""
    days: FrozenSet[str]
    start_minute: int
    end_minute: int

    def __post_init__(self):
        if not self.days:
            raise ValueError("A schedule slot needs at least one day")
        if not 0 <= self.start_minute < self.end_minute <= 1439:
            raise ValueError(
                f"Invalid time range {self.start_minute}-{self.end_minute}")

    def overlaps_with(self, other: 'ScheduleSlot') -> bool:
        """Check if this slot clashes with another."""
        return conflicts(self, other)

    def __str__(self) -> str:
        days = "/".join(day for day in DAY_ORDER if day in self.days)
        return f"{days} {_format_minute(self.start_minute)}-{_format_minute(self.end_minute)}"


def _format_minute(minute: int) -> str:
    return f"{minute // 60:02d}:{minute % 60:02d}"


def is_unscheduled(text: Optional[str]) -> bool:
    """Empty text and ``TBA`` mark a section without a timetable."""
    if text is None:
        return True
    stripped = text.strip()
    return not stripped or stripped.upper() == UNSCHEDULED_MARKER


def normalize_day(token: str) -> Optional[str]:
    """Map a weekday token to its 3-letter code, or ``None`` if it is not a day."""
    return _DAY_NAMES.get(_NON_LETTERS.sub("", token).lower())


def parse_time(text: str) -> Optional[int]:
    """Convert ``H:MM``/``HH:MM`` to minutes since midnight."""
    match = _TIME_PATTERN.fullmatch(text.strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def parse_schedule(text: Optional[str]) -> Optional[ScheduleSlot]:
    """Parse ``"<days> <start>-<end>"``; returns ``None`` when unparseable.

    The last whitespace-separated token is the time range. Everything before
    it is re-joined and split on ``/`` into day tokens, so a day list with
    stray spaces (``"Mon/ Wed 10:00-11:00"``) still parses. Unknown day tokens
    are dropped.
    """
    if text is None:
        return None

    parts = text.strip().split()
    if len(parts) < 2:
        return None

    days = set()
    for token in " ".join(parts[:-1]).split("/"):
        day = normalize_day(token.strip())
        if day:
            days.add(day)
    if not days:
        return None

    time_parts = parts[-1].split("-")
    if len(time_parts) != 2:
        return None

    start = parse_time(time_parts[0])
    end = parse_time(time_parts[1])
    # degenerate and inverted ranges are rejected
    if start is None or end is None or start >= end:
        return None

    return ScheduleSlot(days=frozenset(days), start_minute=start, end_minute=end)


def conflicts(slot_a: Optional[ScheduleSlot], slot_b: Optional[ScheduleSlot]) -> bool:
    """Two slots clash when they share a day and their times overlap.

    Ranges are half-open, and ranges that only touch (``11:00-12:00`` and
    ``12:00-13:00``) do not clash. Unparseable input never clashes.
    """
    if slot_a is None or slot_b is None:
        return False

    if not slot_a.days & slot_b.days:
        return False

    s1, e1 = slot_a.start_minute, slot_a.end_minute
    s2, e2 = slot_b.start_minute, slot_b.end_minute
    overlaps = s1 < e2 and s2 < e1
    touching = e1 == s2 or e2 == s1
    return overlaps and not touching


def schedules_conflict(text_a: Optional[str], text_b: Optional[str]) -> bool:
    """Compare two schedule strings; unscheduled sections never clash."""
    if is_unscheduled(text_a) or is_unscheduled(text_b):
        return False
    return conflicts(parse_schedule(text_a), parse_schedule(text_b))

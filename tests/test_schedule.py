import pytest

from registrar.core.schedule import (
    ScheduleSlot, conflicts, is_unscheduled, normalize_day, parse_schedule,
    parse_time, schedules_conflict
)


def test_parse_compact_schedule():
    slot = parse_schedule("Mon/Wed/Fri 10:00-11:30")

    assert slot.days == frozenset({"Mon", "Wed", "Fri"})
    assert slot.start_minute == 600
    assert slot.end_minute == 690


def test_parse_accepts_full_day_names_and_stray_spaces():
    assert str(parse_schedule("monday/WEDNESDAY 9:00-10:15")) == "Mon/Wed 09:00-10:15"
    assert str(parse_schedule("Mon/ Wed 10:00-11:00")) == "Mon/Wed 10:00-11:00"


def test_unknown_day_tokens_are_dropped():
    assert str(parse_schedule("Mon/Xyz 10:00-11:00")) == "Mon 10:00-11:00"


@pytest.mark.parametrize("text", [
    None,
    "",
    "   ",
    "TBA",
    "Mon",
    "Mon 10:00",
    "Mon 10-11",
    "Mon 10:00-11:00-12:00",
    "Xyz 10:00-11:00",
    "Mon 11:00-10:00",
    "Mon 10:00-10:00",
    "Mon 24:00-25:00",
    "Mon 10:75-11:00",
    "Mon ١٠:٠٠-١١:٠٠",
])
def test_unparseable_text_gives_none(text):
    assert parse_schedule(text) is None


@pytest.mark.parametrize("text", [
    "Mon/Wed/Fri 10:00-11:30",
    "Tue/Thu 8:05-9:20",
    "sat 23:00-23:59",
])
def test_canonical_form_is_stable(text):
    slot = parse_schedule(text)
    assert parse_schedule(str(slot)) == slot
    assert str(parse_schedule(str(slot))) == str(slot)


def test_days_render_in_week_order():
    assert str(parse_schedule("Fri/Mon/Wed 14:00-15:00")) == "Mon/Wed/Fri 14:00-15:00"


def test_slot_rejects_invalid_ranges():
    with pytest.raises(ValueError):
        ScheduleSlot(days=frozenset(), start_minute=0, end_minute=60)
    with pytest.raises(ValueError):
        ScheduleSlot(days=frozenset({"Mon"}), start_minute=60, end_minute=60)
    with pytest.raises(ValueError):
        ScheduleSlot(days=frozenset({"Mon"}), start_minute=60, end_minute=1440)


def test_parse_time():
    assert parse_time("7:05") == 425
    assert parse_time("23:59") == 1439
    assert parse_time("24:00") is None
    assert parse_time("7.05") is None
    assert parse_time("٧:٠٥") is None


def test_normalize_day():
    assert normalize_day("Thursday") == "Thu"
    assert normalize_day("sun,") == "Sun"
    assert normalize_day("Funday") is None


def test_slot_conflicts_with_itself():
    slot = parse_schedule("Tue/Thu 13:00-14:30")
    assert conflicts(slot, slot)
    assert slot.overlaps_with(slot)


def test_touching_ranges_do_not_conflict():
    first = parse_schedule("Mon 11:00-12:00")
    second = parse_schedule("Mon 12:00-13:00")
    assert not conflicts(first, second)
    assert not conflicts(second, first)


def test_overlap_on_shared_day_conflicts():
    assert conflicts(parse_schedule("Mon/Wed 10:00-11:00"),
                     parse_schedule("Wed/Fri 10:30-11:30"))


def test_no_shared_day_does_not_conflict():
    assert not conflicts(parse_schedule("Mon/Wed 10:00-11:00"),
                         parse_schedule("Tue/Thu 10:00-11:00"))


def test_containment_conflicts():
    assert conflicts(parse_schedule("Fri 09:00-12:00"), parse_schedule("Fri 10:00-10:30"))


def test_missing_slot_never_conflicts():
    slot = parse_schedule("Mon 10:00-11:00")
    assert not conflicts(slot, None)
    assert not conflicts(None, slot)
    assert not conflicts(None, None)


def test_unscheduled_markers():
    assert is_unscheduled(None)
    assert is_unscheduled("")
    assert is_unscheduled(" tba ")
    assert not is_unscheduled("Mon 10:00-11:00")


def test_schedules_conflict_on_text():
    assert schedules_conflict("Mon/Wed 10:00-11:00", "Wed 10:30-11:30")
    assert not schedules_conflict("TBA", "Wed 10:30-11:30")
    assert not schedules_conflict("garbage", "Wed 10:30-11:30")

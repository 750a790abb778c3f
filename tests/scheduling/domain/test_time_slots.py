from scheduling.rule.evaluator import available_time_slots
from scheduling.rule.rule import SchedulingRule, day_name


def test_slots_cover_window_excluding_end():
    rule = SchedulingRule(day_of_week=5, is_active=True, start_time="09:00", end_time="11:00")
    assert available_time_slots(rule) == ["09:00", "09:30", "10:00", "10:30"]


def test_custom_slot_length():
    rule = SchedulingRule(day_of_week=5, is_active=True, start_time="10:00", end_time="12:00")
    assert available_time_slots(rule, slot_minutes=60) == ["10:00", "11:00"]


def test_no_rule_has_no_slots():
    assert available_time_slots(None) == []


def test_inactive_rule_has_no_slots():
    rule = SchedulingRule(day_of_week=5, is_active=False, start_time="09:00", end_time="11:00")
    assert available_time_slots(rule) == []


def test_rule_without_window_has_no_slots():
    rule = SchedulingRule(day_of_week=5, is_active=True)
    assert available_time_slots(rule) == []


def test_day_names():
    assert day_name(0) == "Sunday"
    assert day_name(3) == "Wednesday"
    assert SchedulingRule(day_of_week=6).day_name == "Saturday"

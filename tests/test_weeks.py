"""
Calendar week labels and current week-slot lookup
"""
from datetime import date, datetime, timedelta

from careboard.services.schedule import (
    current_week_index,
    slot_date,
    today_year_week,
    week_code_for_slot,
    year_week,
)


def test_year_week_first_week_of_year():
    """Test a Monday that starts week 1"""
    label = year_week(date(2024, 1, 1))
    assert label.year == 2024
    assert label.week == 1
    assert label.code == "2401"
    assert label.is_known


def test_year_week_early_january_belongs_to_previous_year():
    """Test Jan 1st falling in the last week of the previous year"""
    label = year_week(date(2021, 1, 1))
    assert (label.year, label.week) == (2020, 53)
    assert label.code == "2053"


def test_year_week_late_december_belongs_to_next_year():
    """Test Dec 30th falling in week 1 of the next year"""
    label = year_week(date(2024, 12, 30))
    assert (label.year, label.week) == (2025, 1)
    assert label.code == "2501"


def test_year_week_matches_iso_calendar():
    """Test labels agree with ISO-8601 weeks over several years"""
    day = date(2019, 12, 1)
    while day < date(2027, 2, 1):
        iso = day.isocalendar()
        label = year_week(day)
        assert (label.year, label.week) == (iso[0], iso[1]), day
        day += timedelta(days=3)


def test_year_week_same_for_monday_through_sunday():
    """Test every day of a Monday-start week shares one code"""
    monday = date(2024, 3, 4)
    codes = {year_week(monday + timedelta(days=offset)).code for offset in range(7)}
    assert codes == {"2410"}
    assert year_week(monday + timedelta(days=7)).code == "2411"


def test_year_week_accepts_strings_and_datetimes():
    """Test ISO strings and datetimes are read like dates"""
    assert year_week("2024-01-01").code == "2401"
    assert year_week("2024-01-01T09:30:00").code == "2401"
    assert year_week(datetime(2024, 1, 1, 18, 0)).code == "2401"


def test_year_week_unparseable_echoes_input():
    """Test unreadable input keeps the raw value as its code"""
    label = year_week("not-a-date")
    assert label.code == "not-a-date"
    assert label.year is None
    assert label.week is None
    assert not label.is_known
    assert year_week(None).code == ""


def test_today_year_week_uses_given_day():
    """Test today's label can be pinned for reproducible views"""
    assert today_year_week(date(2024, 10, 16)).code == "2442"


def test_slot_date_adds_whole_weeks():
    """Test week-slot i starts 7*i days after the start date"""
    assert slot_date(date(2024, 1, 1), 0) == date(2024, 1, 1)
    assert slot_date(date(2024, 1, 1), 3) == date(2024, 1, 22)
    assert slot_date(None, 3) is None


def test_week_code_for_slot():
    """Test slot codes follow the start date"""
    assert week_code_for_slot(date(2024, 1, 1), 0) == "2401"
    assert week_code_for_slot(date(2024, 1, 1), 3) == "2404"
    assert week_code_for_slot(date(2024, 12, 23), 1) == "2501"


def test_week_code_for_slot_without_start_date():
    """Test an unset start date gives empty codes"""
    assert week_code_for_slot(None, 3) == ""
    assert week_code_for_slot("", 0) == ""


def test_current_week_index_within_horizon():
    """Test the slot covering today's week is found"""
    assert current_week_index(date(2024, 1, 1), today=date(2024, 1, 1)) == 0
    assert current_week_index(date(2024, 1, 1), today=date(2024, 1, 24)) == 3
    assert current_week_index("2024-01-01", today=date(2024, 1, 28)) == 3


def test_current_week_index_mid_week_start():
    """Test a Thursday start still maps Monday of the next week to slot 1"""
    assert current_week_index(date(2024, 1, 4), today=date(2024, 1, 7)) == 0
    assert current_week_index(date(2024, 1, 4), today=date(2024, 1, 8)) == 1


def test_current_week_index_outside_horizon():
    """Test -1 before the start date, after the last slot and without a start date"""
    assert current_week_index(date(2024, 1, 1), today=date(2023, 12, 20)) == -1
    assert current_week_index(date(2024, 1, 1), today=date(2025, 6, 1)) == -1
    assert current_week_index(None, today=date(2024, 1, 1)) == -1
    assert current_week_index("garbage", today=date(2024, 1, 1)) == -1


def test_current_week_index_slot_code_matches_today():
    """Test the found slot always carries today's week code"""
    start = date(2024, 11, 20)
    for offset in range(0, 300, 5):
        today = start + timedelta(days=offset)
        index = current_week_index(start, today=today)
        if index >= 0:
            assert week_code_for_slot(start, index) == year_week(today).code
        else:
            assert offset >= 250

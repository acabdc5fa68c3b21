"""
Calendar-week labels for week-slots

Week-slot i of a patient starts on treatment_start_date + 7*i days. Slots are
labelled with the ISO-8601 style week of that date as a compact YYWW code.
"""
import math
from datetime import date, timedelta
from functools import lru_cache
from typing import Any, Optional

from careboard.core.config import WEEK_SLOTS
from careboard.database.schemas import YearWeek
from careboard.services.utils import parse_date, resolve_today


def year_week(value: Any) -> YearWeek:
    """
    Label a date with its (year, week, YYWW code)

    The date is moved to the Thursday of its Monday-start week; the week number
    counts weeks from January 1st of that Thursday's year. Unreadable input
    keeps the raw value as its code.
    """
    day = parse_date(value)
    if day is None:
        return YearWeek(code="" if value is None else str(value))

    thursday = day + timedelta(days=4 - day.isoweekday())
    days_since_year_start = (thursday - date(thursday.year, 1, 1)).days
    week = math.ceil((days_since_year_start + 1) / 7)
    return YearWeek(
        year=thursday.year,
        week=week,
        code=f"{thursday.year % 100:02d}{week:02d}",
    )


def today_year_week(today: Optional[date] = None) -> YearWeek:
    return year_week(resolve_today(today))


def slot_date(treatment_start_date: Any, week_index: int) -> Optional[date]:
    start = parse_date(treatment_start_date)
    if start is None:
        return None
    return start + timedelta(days=7 * week_index)


def week_code_for_slot(treatment_start_date: Any, week_index: int) -> str:
    """
    Calendar week code of a week-slot, '' when the start date is unset
    """
    if not treatment_start_date:
        return ""
    target = slot_date(treatment_start_date, week_index)
    if target is None:
        return year_week(treatment_start_date).code
    return year_week(target).code


@lru_cache(maxsize=2048)
def _scan_for_week(start: date, today_code: str) -> int:
    for week_index in range(WEEK_SLOTS):
        if week_code_for_slot(start, week_index) == today_code:
            return week_index
    return -1


def current_week_index(treatment_start_date: Any, today: Optional[date] = None) -> int:
    """
    Find the week-slot that covers today's calendar week

    Returns:
        0-based slot index, or -1 when the start date is unset/unreadable or
        no slot in the horizon falls on the current week
    """
    start = parse_date(treatment_start_date)
    if start is None:
        return -1
    return _scan_for_week(start, today_year_week(today).code)

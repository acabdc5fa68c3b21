"""
Period and cadence descriptors

Older records store treatment periods as free text ("3개월 2주에 1회") and the
visit cadence as "1주에 1회". New writes use integers and VisitInterval; the
parsers here are only called at the record-ingestion edge.
"""
import re
from typing import Any, Tuple

from careboard.core.config import DEFAULT_PERIOD_MONTHS
from careboard.database.schemas import VisitInterval

_FIRST_NUMBER = re.compile(r"(\d+)")
_MONTHS = re.compile(r"(\d+)개월")
_WEEKS = re.compile(r"(\d+)주")
_VISITS = re.compile(r"(\d+)회")


def parse_months(value: Any, default: int = DEFAULT_PERIOD_MONTHS) -> int:
    """
    Read a month count from an int or from the first number embedded in a string

    Args:
        value: int months, a descriptor string, or None
        default: returned when no number can be found

    Returns:
        Month count
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        match = _FIRST_NUMBER.search(value)
        if match:
            return int(match.group(1))
    return default


def parse_legacy_period(text: Any) -> Tuple[int, int, int]:
    """Split a "{m}개월 {w}주에 {v}회" descriptor into (months, weeks, visits)"""
    if not text or not isinstance(text, str):
        return 0, 0, 0

    def pick(pattern: re.Pattern) -> int:
        match = pattern.search(text)
        return int(match.group(1)) if match else 0

    return pick(_MONTHS), pick(_WEEKS), pick(_VISITS)


def format_legacy_period(months: int, weeks: int, visits: int) -> str:
    if months == 0 and weeks == 0 and visits == 0:
        return ""
    return f"{months}개월 {weeks}주에 {visits}회"


def parse_visit_interval(value: Any) -> VisitInterval:
    """
    Normalize any stored cadence representation to a VisitInterval

    Accepts a VisitInterval, a {"weeks", "visits"} dict, a (weeks, visits) pair
    or the legacy "{w}주에 {v}회" text. Anything unreadable or inconsistent
    falls back to 1 week / 1 visit.
    """
    if isinstance(value, VisitInterval):
        return value
    weeks = visits = None
    if isinstance(value, dict):
        weeks, visits = value.get("weeks"), value.get("visits")
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        weeks, visits = value
    elif isinstance(value, str):
        week_match = _WEEKS.search(value)
        visit_match = _VISITS.search(value)
        if week_match and visit_match:
            weeks, visits = int(week_match.group(1)), int(visit_match.group(1))
    try:
        return VisitInterval(weeks=weeks, visits=visits)
    except ValueError:
        return VisitInterval()


def format_visit_interval(interval: VisitInterval) -> str:
    return f"{interval.weeks}주에 {interval.visits}회"

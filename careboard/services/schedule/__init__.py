"""
Schedule service module
"""

from careboard.services.schedule.weeks import (
    year_week,
    today_year_week,
    slot_date,
    week_code_for_slot,
    current_week_index,
)
from careboard.services.schedule.cadence import (
    visit_week_count,
    is_due_by_default,
    is_skip_week,
    is_in_range,
    week_state,
    is_due,
    due_week_indices,
    toggle_skip_week,
)
from careboard.services.schedule.grid import (
    is_overdue,
    build_week_slots,
    build_schedule,
)

__all__ = [
    "year_week",
    "today_year_week",
    "slot_date",
    "week_code_for_slot",
    "current_week_index",
    "visit_week_count",
    "is_due_by_default",
    "is_skip_week",
    "is_in_range",
    "week_state",
    "is_due",
    "due_week_indices",
    "toggle_skip_week",
    "is_overdue",
    "build_week_slots",
    "build_schedule",
]

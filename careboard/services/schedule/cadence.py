"""
Cadence and skip-week overrides

A slot is due by default when its position within the cadence cycle is one of
the first `visits` weeks. Listing a slot in skip_weeks inverts that default.
Slots beyond visit_period * 4 are out of range whatever the cadence says.
"""
from typing import Iterable, List

from careboard.core.config import WEEKS_PER_MONTH
from careboard.database.schemas import Patient, VisitInterval, WeekState


def visit_week_count(visit_period: int) -> int:
    return visit_period * WEEKS_PER_MONTH


def is_due_by_default(week_index: int, interval: VisitInterval) -> bool:
    return week_index % interval.weeks < interval.visits


def is_skip_week(week_index: int, interval: VisitInterval, skip_weeks: Iterable[int]) -> bool:
    """
    Effective skip status of a slot after applying manual overrides
    """
    overridden = week_index in set(skip_weeks)
    if is_due_by_default(week_index, interval):
        return overridden
    return not overridden


def is_in_range(week_index: int, visit_period: int) -> bool:
    return 0 <= week_index < visit_week_count(visit_period)


def week_state(patient: Patient, week_index: int) -> WeekState:
    if not is_in_range(week_index, patient.visit_period):
        return WeekState.OUT_OF_RANGE
    if is_skip_week(week_index, patient.visit_interval, patient.skip_weeks):
        return WeekState.SKIP
    return WeekState.DUE


def is_due(patient: Patient, week_index: int) -> bool:
    return week_state(patient, week_index) == WeekState.DUE


def due_week_indices(patient: Patient) -> List[int]:
    return [i for i in range(visit_week_count(patient.visit_period)) if is_due(patient, i)]


def toggle_skip_week(skip_weeks: Iterable[int], week_index: int) -> List[int]:
    """Flip a slot's override; applying it twice restores the original list"""
    weeks = set(skip_weeks)
    weeks.symmetric_difference_update({week_index})
    return sorted(weeks)

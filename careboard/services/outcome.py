"""
Outcome status transitions and graduation-date inference
"""
from datetime import date, timedelta
from typing import Any, Dict, Optional

from careboard.database.schemas import Patient, PatientStatusValue
from careboard.services.utils import resolve_today


def last_visited_index(patient: Patient) -> int:
    """Highest slot marked visited across the whole array, -1 when none"""
    for week_index in range(len(patient.weekly_visits) - 1, -1, -1):
        if patient.weekly_visits[week_index] is True:
            return week_index
    return -1


def infer_graduation_date(patient: Patient, today: Optional[date] = None) -> date:
    """
    Graduation date implied by the attendance history

    The start date of the last visited slot, or today when nothing was ever
    marked visited.
    """
    week_index = last_visited_index(patient)
    if week_index >= 0 and patient.treatment_start_date:
        return patient.treatment_start_date + timedelta(days=7 * week_index)
    return resolve_today(today)


def apply_status_change(
    patient: Patient,
    new_status: PatientStatusValue,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Field updates for a status change

    Moving to graduated fills graduation_date once, only when it is empty.
    """
    updates: Dict[str, Any] = {"status": new_status}
    if new_status == "graduated" and patient.status != "graduated" and not patient.graduation_date:
        updates["graduation_date"] = infer_graduation_date(patient, today)
    return updates

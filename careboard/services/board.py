"""
Board listing: status tabs, room filter, search and ordering
"""
from datetime import date
from typing import Dict, Iterable, List, Optional

from careboard.database.schemas import Patient

STATUS_TABS = ("active", "graduated", "dropout", "other")


def _sort_date(patient: Patient) -> date:
    if patient.treatment_start_date:
        return patient.treatment_start_date
    if patient.first_visit_date:
        return patient.first_visit_date
    return patient.created_at.date()


def matches_query(patient: Patient, query: str) -> bool:
    needle = query.strip().lower()
    if not needle:
        return True
    haystack = (patient.name, patient.chart_number, patient.contact, patient.symptoms)
    return any(needle in (value or "").lower() for value in haystack)


def filter_patients(
    patients: Iterable[Patient],
    status: Optional[str] = None,
    doctor: Optional[str] = None,
    query: Optional[str] = None,
) -> List[Patient]:
    """
    Patients for one board view, newest treatment start first

    Args:
        status: Status tab; None lists every status
        doctor: Treatment room; None lists every room
        query: Case-insensitive substring of name, chart number, contact or symptoms
    """
    selected = [
        patient for patient in patients
        if (status is None or patient.status == status)
        and (doctor is None or patient.doctor == doctor)
        and (query is None or matches_query(patient, query))
    ]
    return sorted(selected, key=_sort_date, reverse=True)


def count_by_status(patients: Iterable[Patient]) -> Dict[str, int]:
    counts = {tab: 0 for tab in STATUS_TABS}
    for patient in patients:
        counts[patient.status] = counts.get(patient.status, 0) + 1
    return counts

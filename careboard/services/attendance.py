"""
Attendance reconciliation and herbal log edits

Each helper takes the current Patient and returns only the field updates to
persist, so callers can hand them straight to the sync session.
"""
from datetime import date
from typing import Any, Dict, List, Optional

from careboard.database.schemas import AttendanceState, HerbalFlag, HerbalRecord, Patient
from careboard.services.utils import resolve_today

_STORED_VALUES = {
    AttendanceState.UNSET: None,
    AttendanceState.VISITED: True,
    AttendanceState.MISSED: False,
}


def attendance_state(value: Optional[bool]) -> AttendanceState:
    if value is None:
        return AttendanceState.UNSET
    return AttendanceState.VISITED if value else AttendanceState.MISSED


def slot_attendance(patient: Patient, week_index: int) -> AttendanceState:
    return attendance_state(patient.weekly_visits[week_index])


def set_attendance(
    patient: Patient,
    week_index: int,
    state: AttendanceState,
    reason: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Set one slot's attendance

    Marking a slot missed always leaves a reason entry for it: the given reason,
    else the one kept from an earlier miss, else ''. Other transitions keep
    reasons untouched; only clear_missed_reason removes them.

    Args:
        patient: Current record
        week_index: 0-based slot (caller guarantees 0 <= index < WEEK_SLOTS)
        state: New attendance state
        reason: Reason text captured with a miss; None keeps any earlier one

    Returns:
        Field updates (weekly_visits, plus missed_reasons when it changed)
    """
    weekly = list(patient.weekly_visits)
    weekly[week_index] = _STORED_VALUES[AttendanceState(state)]
    updates: Dict[str, Any] = {"weekly_visits": weekly}

    if state == AttendanceState.MISSED:
        reasons = dict(patient.missed_reasons)
        if reason is not None:
            reasons[week_index] = reason
        else:
            reasons.setdefault(week_index, "")
        if reasons != patient.missed_reasons:
            updates["missed_reasons"] = reasons

    return updates


def clear_missed_reason(patient: Patient, week_index: int) -> Dict[str, Any]:
    reasons = {k: v for k, v in patient.missed_reasons.items() if k != week_index}
    return {"missed_reasons": reasons}


def active_missed_reasons(patient: Patient) -> Dict[int, str]:
    """Reasons whose slot is currently marked missed"""
    return {
        week_index: reason
        for week_index, reason in sorted(patient.missed_reasons.items())
        if 0 <= week_index < len(patient.weekly_visits) and patient.weekly_visits[week_index] is False
    }


def herbal_month_enabled(patient: Patient, month_index: int) -> bool:
    return patient.herbal_type != "none" and month_index < patient.prescription_period


def _herbal_log(patient: Patient) -> List[HerbalRecord]:
    return [record.model_copy() for record in patient.herbal]


def update_herbal_month(
    patient: Patient,
    month_index: int,
    dispensed_on: Optional[date] = None,
    stamp_today: bool = False,
    today: Optional[date] = None,
    **flags: bool,
) -> Dict[str, Any]:
    """
    Edit one month of the herbal log

    Args:
        dispensed_on: New dispense date
        stamp_today: Use today's date instead (the board's one-click stamp)
        flags: tongue_exam_done / device_fit_done values to set

    Returns:
        {"herbal": [...]} field update
    """
    herbal = _herbal_log(patient)
    changes: Dict[str, Any] = {k: v for k, v in flags.items() if v is not None}
    if stamp_today:
        changes["date"] = resolve_today(today)
    elif dispensed_on is not None:
        changes["date"] = dispensed_on
    herbal[month_index] = herbal[month_index].model_copy(update=changes)
    return {"herbal": herbal}


def toggle_herbal_flag(patient: Patient, month_index: int, flag: HerbalFlag) -> Dict[str, Any]:
    current = getattr(patient.herbal[month_index], flag)
    return update_herbal_month(patient, month_index, **{flag: not current})

"""
Per-slot view of a patient's schedule for the attendance grid
"""
from datetime import date
from typing import List, Optional

from careboard.core.config import WEEK_SLOTS
from careboard.database.schemas import (
    AttendanceState,
    HerbalMonth,
    Patient,
    PatientSchedule,
    WeekSlot,
    WeekState,
)
from careboard.services.attendance import active_missed_reasons, herbal_month_enabled, slot_attendance
from careboard.services.schedule.cadence import visit_week_count, week_state
from careboard.services.schedule.weeks import current_week_index, slot_date, today_year_week, week_code_for_slot


def is_overdue(patient: Patient, week_index: int, today: Optional[date] = None) -> bool:
    """
    A due slot before the current week that still has no attendance entry
    """
    current = current_week_index(patient.treatment_start_date, today)
    return (
        current >= 0
        and week_index < current
        and week_state(patient, week_index) == WeekState.DUE
        and slot_attendance(patient, week_index) == AttendanceState.UNSET
    )


def build_week_slots(patient: Patient, today: Optional[date] = None) -> List[WeekSlot]:
    current = current_week_index(patient.treatment_start_date, today)
    skip_weeks = set(patient.skip_weeks)
    slots = []
    for week_index in range(WEEK_SLOTS):
        state = week_state(patient, week_index)
        attendance = slot_attendance(patient, week_index)
        is_past = current >= 0 and week_index < current
        slots.append(WeekSlot(
            index=week_index,
            code=week_code_for_slot(patient.treatment_start_date, week_index),
            starts_on=slot_date(patient.treatment_start_date, week_index),
            state=state,
            attendance=attendance,
            is_current=week_index == current,
            is_past=is_past,
            is_overdue=is_past and state == WeekState.DUE and attendance == AttendanceState.UNSET,
            is_overridden=week_index in skip_weeks,
            missed_reason=patient.missed_reasons.get(week_index) if attendance == AttendanceState.MISSED else None,
        ))
    return slots


def build_schedule(patient: Patient, today: Optional[date] = None) -> PatientSchedule:
    return PatientSchedule(
        patient_id=patient.id,
        today=today_year_week(today),
        current_week_index=current_week_index(patient.treatment_start_date, today),
        visit_weeks=visit_week_count(patient.visit_period),
        weeks=build_week_slots(patient, today),
        herbal=[
            HerbalMonth(record=record, enabled=herbal_month_enabled(patient, record.month_index))
            for record in patient.herbal
        ],
        active_missed_reasons=active_missed_reasons(patient),
    )

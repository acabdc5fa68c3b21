"""
Attendance states, missed-visit reasons and the herbal log
"""
from datetime import date

from careboard.database.schemas import AttendanceState, Patient, VisitInterval, WeekState
from careboard.services.attendance import (
    active_missed_reasons,
    clear_missed_reason,
    herbal_month_enabled,
    set_attendance,
    slot_attendance,
    toggle_herbal_flag,
    update_herbal_month,
)
from careboard.services.schedule import build_schedule, is_overdue, week_state
from tests.conftest import make_patient


def apply(patient: Patient, updates) -> Patient:
    return Patient.model_validate({**patient.model_dump(), **updates})


def test_set_attendance_states():
    """Test unset, visited and missed map to None, True and False"""
    patient = make_patient()
    patient = apply(patient, set_attendance(patient, 0, AttendanceState.VISITED))
    patient = apply(patient, set_attendance(patient, 1, AttendanceState.MISSED))
    assert patient.weekly_visits[:3] == [True, False, None]
    assert slot_attendance(patient, 0) == AttendanceState.VISITED
    assert slot_attendance(patient, 1) == AttendanceState.MISSED
    assert slot_attendance(patient, 2) == AttendanceState.UNSET

    patient = apply(patient, set_attendance(patient, 0, AttendanceState.UNSET))
    assert patient.weekly_visits[0] is None


def test_missed_without_reason_stores_empty_reason():
    """Test a miss always leaves a reason entry"""
    patient = make_patient()
    updates = set_attendance(patient, 4, AttendanceState.MISSED)
    assert updates["missed_reasons"] == {4: ""}


def test_missed_reason_survives_visited_and_is_restored():
    """Test missed -> visited -> missed brings back the earlier reason"""
    patient = make_patient()
    patient = apply(patient, set_attendance(patient, 2, AttendanceState.MISSED, "감기"))
    assert active_missed_reasons(patient) == {2: "감기"}

    patient = apply(patient, set_attendance(patient, 2, AttendanceState.VISITED))
    assert patient.missed_reasons == {2: "감기"}
    assert active_missed_reasons(patient) == {}

    patient = apply(patient, set_attendance(patient, 2, AttendanceState.MISSED))
    assert patient.missed_reasons == {2: "감기"}
    assert active_missed_reasons(patient) == {2: "감기"}


def test_new_reason_replaces_earlier_one():
    """Test a reason given with a miss overwrites the kept one"""
    patient = make_patient(weekly_visits=[None, False], missed_reasons={1: "출장"})
    updates = set_attendance(patient, 1, AttendanceState.MISSED, "여행")
    assert updates["missed_reasons"] == {1: "여행"}


def test_clear_missed_reason():
    """Test deleting a reason, after which a new miss starts empty"""
    patient = make_patient(weekly_visits=[False], missed_reasons={0: "sick"})
    patient = apply(patient, clear_missed_reason(patient, 0))
    assert patient.missed_reasons == {}
    patient = apply(patient, set_attendance(patient, 0, AttendanceState.MISSED))
    assert patient.missed_reasons == {0: ""}


def test_attendance_is_independent_of_week_state():
    """Test attendance can be recorded on skipped and out-of-range slots"""
    patient = make_patient(visit_period=1, visit_interval=VisitInterval(weeks=2, visits=1))
    assert week_state(patient, 1) == WeekState.SKIP
    assert week_state(patient, 20) == WeekState.OUT_OF_RANGE

    patient = apply(patient, set_attendance(patient, 1, AttendanceState.VISITED))
    patient = apply(patient, set_attendance(patient, 20, AttendanceState.MISSED, "late"))
    assert patient.weekly_visits[1] is True
    assert patient.weekly_visits[20] is False
    assert week_state(patient, 1) == WeekState.SKIP
    assert week_state(patient, 20) == WeekState.OUT_OF_RANGE


def test_overdue_slots():
    """Test overdue means past, due and still unset"""
    patient = make_patient(
        visit_interval=VisitInterval(weeks=2, visits=1),
        weekly_visits=[True, None, None],
    )
    today = date(2024, 1, 24)  # slot 3
    assert not is_overdue(patient, 0, today)  # visited
    assert not is_overdue(patient, 1, today)  # skip week
    assert is_overdue(patient, 2, today)
    assert not is_overdue(patient, 3, today)  # current week


def test_build_schedule_grid():
    """Test the schedule view flags the current, past and overridden slots"""
    patient = make_patient(
        visit_period=2,
        skip_weeks=[1],
        weekly_visits=[True, None, False],
        missed_reasons={2: "weather", 5: "old"},
    )
    schedule = build_schedule(patient, today=date(2024, 1, 24))

    assert schedule.current_week_index == 3
    assert schedule.today.code == "2404"
    assert schedule.visit_weeks == 8
    assert len(schedule.weeks) == 36

    first, second, third, current = schedule.weeks[:4]
    assert first.code == "2401" and first.is_past and not first.is_overdue
    assert second.state == WeekState.SKIP and second.is_overridden
    assert third.attendance == AttendanceState.MISSED and third.missed_reason == "weather"
    assert current.is_current and not current.is_past
    assert schedule.weeks[8].state == WeekState.OUT_OF_RANGE
    assert schedule.active_missed_reasons == {2: "weather"}


def test_herbal_month_enabled():
    """Test months beyond the prescription period or without herbal medicine are disabled"""
    patient = make_patient(prescription_period=2)
    assert [herbal_month_enabled(patient, m) for m in range(6)] == [True, True, False, False, False, False]

    no_herbal = make_patient(herbal_type="none")
    assert not any(herbal_month_enabled(no_herbal, m) for m in range(6))


def test_update_herbal_month_stamp_today():
    """Test the one-click stamp sets today's date and flags"""
    patient = make_patient()
    updates = update_herbal_month(patient, 1, stamp_today=True, today=date(2024, 2, 5), tongue_exam_done=True)
    record = updates["herbal"][1]
    assert record.date == date(2024, 2, 5)
    assert record.tongue_exam_done
    assert not record.device_fit_done
    assert patient.herbal[1].date is None


def test_update_herbal_month_explicit_date():
    """Test an explicit dispense date is written and flags left alone"""
    patient = make_patient()
    updates = update_herbal_month(patient, 0, dispensed_on=date(2024, 1, 3), device_fit_done=None)
    assert updates["herbal"][0].date == date(2024, 1, 3)
    assert updates["herbal"][0].device_fit_done is False


def test_toggle_herbal_flag():
    """Test flags flip on each toggle"""
    patient = make_patient()
    patient = apply(patient, toggle_herbal_flag(patient, 2, "device_fit_done"))
    assert patient.herbal[2].device_fit_done
    patient = apply(patient, toggle_herbal_flag(patient, 2, "device_fit_done"))
    assert not patient.herbal[2].device_fit_done

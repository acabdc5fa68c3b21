"""
Weekly schedule, attendance and herbal log endpoints
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Path, Request
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError

from careboard.api.utils import get_patient_or_404, require_clinic_key
from careboard.core.config import HERBAL_MONTHS, WEEK_SLOTS
from careboard.database.schemas import (
    AttendanceUpdate,
    HerbalFlag,
    HerbalUpdate,
    Patient,
    PatientSchedule,
    YearWeek,
)
from careboard.database.sync import get_session
from careboard.services.attendance import (
    clear_missed_reason,
    set_attendance,
    toggle_herbal_flag,
    update_herbal_month,
)
from careboard.services.schedule import build_schedule, today_year_week, toggle_skip_week

logger = logging.getLogger(__name__)

router = APIRouter()


def _save(patient_id: str, updates: Dict[str, Any]) -> Patient:
    try:
        return get_session().update_fields(patient_id, updates)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=jsonable_encoder(exc.errors()))


@router.get("/calendar/today", response_model=YearWeek)
async def get_today_week(request: Request):
    """
    Today's calendar week label (e.g. 2442 = 2024 week 42)
    """
    require_clinic_key(request)
    return today_year_week()


@router.get("/patients/{patient_id}/schedule", response_model=PatientSchedule)
async def get_patient_schedule(patient_id: str, request: Request):
    """
    Week-slot grid for a patient

    Each slot carries its calendar week code, due/skip/out-of-range state,
    attendance, and whether it is the current, a past or an overdue week.
    """
    require_clinic_key(request)
    patient = get_patient_or_404(get_session(), patient_id)
    return build_schedule(patient)


@router.put("/patients/{patient_id}/weeks/{week_index}/attendance", response_model=Patient)
async def set_week_attendance(
    body: AttendanceUpdate,
    request: Request,
    patient_id: str,
    week_index: int = Path(..., ge=0, lt=WEEK_SLOTS),
):
    """
    Set a slot to unset, visited or missed

    A missed slot always keeps a reason entry (empty when none was given).
    Earlier reasons survive later changes until explicitly deleted.
    """
    require_clinic_key(request)
    patient = get_patient_or_404(get_session(), patient_id)
    updates = set_attendance(patient, week_index, body.state, body.reason)
    return _save(patient_id, updates)


@router.delete("/patients/{patient_id}/weeks/{week_index}/missed-reason", response_model=Patient)
async def delete_missed_reason(request: Request, patient_id: str, week_index: int = Path(..., ge=0, lt=WEEK_SLOTS)):
    require_clinic_key(request)
    patient = get_patient_or_404(get_session(), patient_id)
    return _save(patient_id, clear_missed_reason(patient, week_index))


@router.post("/patients/{patient_id}/weeks/{week_index}/skip", response_model=Patient)
async def toggle_week_skip(request: Request, patient_id: str, week_index: int = Path(..., ge=0, lt=WEEK_SLOTS)):
    """
    Invert the cadence default of a slot (due <-> skipped); calling twice undoes it
    """
    require_clinic_key(request)
    patient = get_patient_or_404(get_session(), patient_id)
    return _save(patient_id, {"skip_weeks": toggle_skip_week(patient.skip_weeks, week_index)})


@router.patch("/patients/{patient_id}/herbal/{month_index}", response_model=Patient)
async def update_herbal(
    body: HerbalUpdate,
    request: Request,
    patient_id: str,
    month_index: int = Path(..., ge=0, lt=HERBAL_MONTHS),
):
    require_clinic_key(request)
    patient = get_patient_or_404(get_session(), patient_id)
    updates = update_herbal_month(
        patient,
        month_index,
        dispensed_on=body.date,
        stamp_today=body.stamp_today,
        tongue_exam_done=body.tongue_exam_done,
        device_fit_done=body.device_fit_done,
    )
    return _save(patient_id, updates)


@router.post("/patients/{patient_id}/herbal/{month_index}/toggle/{flag}", response_model=Patient)
async def toggle_herbal(request: Request, patient_id: str, flag: HerbalFlag, month_index: int = Path(..., ge=0, lt=HERBAL_MONTHS)):
    require_clinic_key(request)
    patient = get_patient_or_404(get_session(), patient_id)
    return _save(patient_id, toggle_herbal_flag(patient, month_index, flag))

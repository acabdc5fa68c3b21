"""
Patient management endpoints
"""
import asyncio
import json
import logging
import uuid
from datetime import date
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from careboard.api.utils import get_patient_or_404, require_clinic_key
from careboard.database.schemas import BoardSummary, ImportResult, Patient, PatientCreate, PatientUpdate
from careboard.database.sync import FeedCallbacks, SyncSession, get_session
from careboard.services.board import count_by_status, filter_patients
from careboard.services.outcome import apply_status_change
from careboard.services.patient_details import canonicalize_record, patient_to_row, row_to_patient

logger = logging.getLogger(__name__)

router = APIRouter()

KEEP_ALIVE_SECONDS = 15


def _validation_error(exc: ValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail=jsonable_encoder(exc.errors()))


def format_event(event: str, payload: Dict[str, Any]) -> bytes:
    data = json.dumps(payload, ensure_ascii=False)
    return f"event: {event}\ndata: {data}\n\n".encode("utf-8")


async def patient_events(session: SyncSession, request: Request) -> AsyncIterator[bytes]:
    """
    Server-sent event frames for every feed change until the client disconnects

    Feed callbacks may run on any thread; they hand events to this loop
    through a queue. The feed subscription is closed when the stream ends.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def push(event: str, payload: Dict[str, Any]):
        loop.call_soon_threadsafe(queue.put_nowait, (event, payload))

    subscription = session.store.subscribe(
        session.owner_key,
        FeedCallbacks(
            on_insert=lambda row: push("insert", patient_to_row(row_to_patient(row))),
            on_update=lambda row: push("update", patient_to_row(row_to_patient(row))),
            on_delete=lambda record_id: push("delete", {"id": record_id}),
        ),
    )
    try:
        yield b": connected\n\n"
        while not await request.is_disconnected():
            try:
                event, payload = await asyncio.wait_for(queue.get(), timeout=KEEP_ALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield b": keep-alive\n\n"
                continue
            yield format_event(event, payload)
    finally:
        subscription.unsubscribe()


def _validate_patient(payload: Dict[str, Any]) -> Patient:
    try:
        return Patient.model_validate(payload)
    except ValidationError as exc:
        raise _validation_error(exc)


@router.get("/patients", response_model=List[Patient])
async def list_patients(
    request: Request,
    status: Optional[str] = None,
    doctor: Optional[str] = None,
    q: Optional[str] = None,
):
    """
    List patients for one board view

    Filters by status tab and treatment room, searches name/chart/contact/symptoms,
    newest treatment start first.
    """
    require_clinic_key(request)
    session = get_session()
    return filter_patients(session.list_patients(), status=status, doctor=doctor, query=q)


@router.get("/patients/summary", response_model=BoardSummary)
async def get_board_summary(request: Request):
    """
    Patient counts per status tab plus the session's sync status
    """
    require_clinic_key(request)
    session = get_session()
    patients = session.list_patients()
    return BoardSummary(
        counts=count_by_status(patients),
        total=len(patients),
        sync_status=session.state,
    )


@router.get("/patients/export")
async def export_patients(request: Request):
    """
    Export every record in its stored JSON form
    """
    require_clinic_key(request)
    session = get_session()
    return [patient_to_row(patient) for patient in session.list_patients()]


@router.post("/patients/import", response_model=ImportResult)
async def import_patients(records: List[Dict[str, Any]], request: Request):
    """
    Import records from an export or an older browser-cache dump

    Legacy encodings (camelCase keys, free-text periods, cadence text) are
    normalized. Records whose id already exists are overwritten.
    """
    require_clinic_key(request)
    session = get_session()

    patients = []
    for record in records:
        payload = canonicalize_record(record)
        if not payload.get("id"):
            payload["id"] = str(uuid.uuid4())
        patients.append(_validate_patient(payload))

    result = session.import_patients(patients)
    logger.info(f"Imported patients: {result['inserted']} inserted, {result['updated']} updated")
    return ImportResult(**result)


@router.get("/patients/events")
async def stream_patient_events(request: Request):
    """
    Server-sent events for inserts, updates and deletes made by any client

    Each event is sent as: event: <insert|update|delete>, data: <json>
    """
    require_clinic_key(request)
    return StreamingResponse(
        patient_events(get_session(), request),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.post("/patients", response_model=Patient)
async def create_patient(patient: PatientCreate, request: Request):
    """
    Register a patient

    Start and first-visit dates default to today; attendance starts empty with
    a 1 week / 1 visit cadence.
    """
    require_clinic_key(request)
    session = get_session()

    today = date.today()
    payload = patient.model_dump(exclude_none=True)
    payload.setdefault("first_visit_date", today)
    payload.setdefault("treatment_start_date", today)
    canonical = _validate_patient({**payload, "id": str(uuid.uuid4())})

    session.add_patient(canonical)
    logger.info(f"Registered patient {canonical.id}")
    return canonical


@router.get("/patients/{patient_id}", response_model=Patient)
async def get_patient(patient_id: str, request: Request):
    require_clinic_key(request)
    return get_patient_or_404(get_session(), patient_id)


@router.patch("/patients/{patient_id}", response_model=Patient)
async def update_patient(patient_id: str, patient_updates: PatientUpdate, request: Request):
    """
    Update fields of a patient

    Only fields present in the request are written. Changing status to
    graduated fills an empty graduation date from the attendance history.
    """
    require_clinic_key(request)
    session = get_session()
    existing = get_patient_or_404(session, patient_id)

    updates = patient_updates.model_dump(exclude_unset=True)
    if updates.get("status") and not updates.get("graduation_date"):
        # An explicit null from a full form must not skip inference or wipe a kept date
        updates.pop("graduation_date", None)
        updates.update(apply_status_change(existing, updates["status"]))
    if not updates:
        return existing

    try:
        return session.update_fields(patient_id, updates)
    except ValidationError as exc:
        raise _validation_error(exc)


@router.delete("/patients/{patient_id}")
async def delete_patient(patient_id: str, request: Request):
    """
    Delete a patient everywhere
    Returns 404 if no patient exists to ensure DELETE never silently fails
    """
    require_clinic_key(request)
    session = get_session()
    get_patient_or_404(session, patient_id)

    session.remove_patient(patient_id)
    return {"message": "Patient deleted successfully"}

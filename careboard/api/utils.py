"""
Utility functions for API endpoints
"""
import secrets

from fastapi import Request, HTTPException

from careboard.core import config
from careboard.database.schemas import Patient
from careboard.database.sync import RecordNotFoundError, SyncSession

CLINIC_KEY_HEADER = "X-Clinic-Key"


def check_clinic_key(candidate: str) -> bool:
    return secrets.compare_digest(candidate.encode("utf-8"), config.CLINIC_PASSWORD.encode("utf-8"))


def require_clinic_key(request: Request) -> str:
    """
    Check the shared clinic secret sent with every board request

    Raises HTTPException with 400 status if the header is missing and 401 if
    it does not match the configured secret
    """
    key = request.headers.get(CLINIC_KEY_HEADER)
    if not key:
        raise HTTPException(
            status_code=400,
            detail=f"Missing {CLINIC_KEY_HEADER} header. This header is required for all board requests."
        )
    if not check_clinic_key(key):
        raise HTTPException(status_code=401, detail="Invalid clinic key")
    return key


def get_patient_or_404(session: SyncSession, patient_id: str) -> Patient:
    try:
        return session.get(patient_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail=f"Patient {patient_id} not found")

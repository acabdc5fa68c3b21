"""
Front-desk login gate
"""
import logging

from fastapi import APIRouter, HTTPException

from careboard.api.utils import check_clinic_key
from careboard.database.schemas import LoginRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/auth/login")
async def login(body: LoginRequest):
    """
    Check the shared clinic password

    Clients keep the password for the session and send it as X-Clinic-Key.
    """
    if not check_clinic_key(body.password):
        logger.warning("Rejected board login attempt")
        raise HTTPException(status_code=401, detail="Incorrect password")
    return {"authenticated": True}

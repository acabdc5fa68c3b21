"""
Patient record normalization at the storage boundary

Rows arrive from three places: the hosted table (snake_case columns), older
browser-cache exports (camelCase keys) and imports. Every legacy encoding is
normalized here so the rest of the code only sees canonical Patient fields.
"""
from typing import Any, Dict, Iterable, List, Optional

from careboard.core.config import (
    DEFAULT_PERIOD_MONTHS,
    HERBAL_MONTHS,
    MAX_PRESCRIPTION_MONTHS,
    MAX_TREATMENT_MONTHS,
    WEEK_SLOTS,
)
from careboard.database.schemas import Patient
from careboard.services.periods import parse_months, parse_visit_interval


CAMEL_CASE_ALIASES = {
    "chartNumber": "chart_number",
    "firstVisitDate": "first_visit_date",
    "treatmentStartDate": "treatment_start_date",
    "treatmentPeriod": "treatment_period",
    "prescriptionPeriod": "prescription_period",
    "visitPeriod": "visit_period",
    "visitInterval": "visit_interval",
    "herbalType": "herbal_type",
    "hasHerbal": "has_herbal",
    "weeklyVisits": "weekly_visits",
    "skipWeeks": "skip_weeks",
    "medicineOnly": "medicine_only",
    "missedReasons": "missed_reasons",
    "graduationDate": "graduation_date",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

LEGACY_STATUS = {
    "completed": "graduated",
    "": "active",
    None: "active",
}

LEGACY_HERBAL_TYPE = {
    "탕약": "decoction",
    "환약": "pill",
}

LEGACY_REVIEW = {
    "": "none",
    None: "none",
}

PERIOD_LIMITS = {
    "treatment_period": MAX_TREATMENT_MONTHS,
    "prescription_period": MAX_PRESCRIPTION_MONTHS,
    "visit_period": MAX_TREATMENT_MONTHS,
}

# Columns that exist only in the hosted table
ROW_ONLY_COLUMNS = {"user_id"}


def _blank_to_none(value: Any) -> Any:
    return None if value == "" else value


def _canonical_herbal(entries: Any) -> Optional[List[Dict[str, Any]]]:
    """
    Map legacy {month, date, seoljin, omnifit} entries to HerbalRecord fields
    """
    if not isinstance(entries, list):
        return None
    records = []
    for position, entry in enumerate(entries[:HERBAL_MONTHS]):
        if not isinstance(entry, dict):
            continue
        if "month_index" in entry:
            month_index = entry["month_index"]
        elif "month" in entry:
            month_index = int(entry["month"]) - 1
        else:
            month_index = position
        records.append({
            "month_index": month_index,
            "date": _blank_to_none(entry.get("date")),
            "tongue_exam_done": bool(entry.get("tongue_exam_done", entry.get("seoljin", False))),
            "device_fit_done": bool(entry.get("device_fit_done", entry.get("omnifit", False))),
        })
    return records


def _canonical_herbal_type(data: Dict[str, Any]) -> str:
    herbal_type = data.get("herbal_type")
    if data.get("has_herbal") is False:
        return "none"
    if herbal_type in ("none", "decoction", "pill"):
        return herbal_type
    return LEGACY_HERBAL_TYPE.get(herbal_type, "decoction")


def canonicalize_record(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize a stored or imported record to canonical keys and encodings

    - camelCase keys -> snake_case
    - free-text periods -> integer months (missing -> 3)
    - "1주에 1회" cadence text -> {"weeks", "visits"}
    - legacy status "completed" -> "graduated"
    - has_herbal / medicine_only flags folded into herbal_type / visit_period
    - numeric ids -> strings
    """
    data = {CAMEL_CASE_ALIASES.get(k, k): v for k, v in dict(payload or {}).items()}
    canonical = {
        k: v for k, v in data.items()
        if k not in ROW_ONLY_COLUMNS and k not in {"has_herbal", "medicine_only"}
    }

    if canonical.get("id") is not None:
        canonical["id"] = str(canonical["id"])

    for field, upper in PERIOD_LIMITS.items():
        months = parse_months(data.get(field), default=DEFAULT_PERIOD_MONTHS)
        canonical[field] = min(max(months, 0), upper)
    if data.get("medicine_only"):
        canonical["visit_period"] = 0

    canonical["visit_interval"] = parse_visit_interval(data.get("visit_interval")).model_dump()
    canonical["status"] = LEGACY_STATUS.get(data.get("status"), data.get("status"))
    canonical["review"] = LEGACY_REVIEW.get(data.get("review"), data.get("review"))
    canonical["herbal_type"] = _canonical_herbal_type(data)

    for field in ("chart_number", "doctor", "contact", "symptoms"):
        if field in canonical and canonical[field] is None:
            canonical[field] = ""

    for field in ("weekly_visits", "skip_weeks", "missed_reasons"):
        if field in canonical and canonical[field] is None:
            del canonical[field]

    weekly = canonical.get("weekly_visits")
    if isinstance(weekly, list) and len(weekly) < WEEK_SLOTS:
        # Short arrays come from the two-state checkbox era, where False meant "not yet"
        canonical["weekly_visits"] = [True if value else None for value in weekly]

    herbal = _canonical_herbal(data.get("herbal"))
    if herbal is None:
        canonical.pop("herbal", None)
    else:
        canonical["herbal"] = herbal

    return canonical


def row_to_patient(row: Dict[str, Any]) -> Patient:
    """Build a Patient from a hosted-table row or cached record"""
    return Patient.model_validate(canonicalize_record(row))


def patient_to_row(patient: Patient, owner_key: Optional[str] = None) -> Dict[str, Any]:
    """JSON-ready row for the hosted table (and the local mirror when owner_key is None)"""
    row = patient.model_dump(mode="json")
    if owner_key is not None:
        row["user_id"] = owner_key
    return row


def fields_to_row(patient: Patient, fields: Iterable[str]) -> Dict[str, Any]:
    """JSON-ready partial row holding only the given fields of an updated record"""
    return patient.model_dump(mode="json", include=set(fields))

"""
Board data models

- One stored entity (Patient) plus the small value types it embeds
- Pydantic provides validation and the fixed-length slot normalization
- Input models accept partial payloads at the API boundary
- View models describe the per-week schedule grid
"""
from enum import Enum
from typing import Optional, Dict, Any, List, Literal
from datetime import datetime, date
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict

from careboard.core.config import (
    DOCTOR_ROOMS,
    DEFAULT_PERIOD_MONTHS,
    HERBAL_MONTHS,
    MAX_PRESCRIPTION_MONTHS,
    MAX_TREATMENT_MONTHS,
    WEEK_SLOTS,
)


PatientStatusValue = Literal["active", "graduated", "dropout", "other"]
HerbalType = Literal["none", "decoction", "pill"]
ReviewType = Literal["none", "written", "video_public", "video_private"]
HerbalFlag = Literal["tongue_exam_done", "device_fit_done"]

# Alias for fields literally named "date"
DateValue = date


class WeekState(str, Enum):
    """Effective state of a week-slot after cadence and overrides"""
    DUE = "due"
    SKIP = "skip"
    OUT_OF_RANGE = "out_of_range"


class AttendanceState(str, Enum):
    """Tri-state attendance, stored as None / True / False"""
    UNSET = "unset"
    VISITED = "visited"
    MISSED = "missed"


class SyncState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    ECHO_SUPPRESSED = "echo_suppressed"
    SYNCED = "synced"
    ERROR = "error"


class YearWeek(BaseModel):
    """
    ISO-8601 style calendar week label

    year/week are None when the input could not be read as a date;
    code then echoes the raw input.
    """
    year: Optional[int] = Field(None, description="Year the week belongs to (year of its Thursday)")
    week: Optional[int] = Field(None, description="Week number 1-53")
    code: str           = Field(...,  description="Compact YYWW code, or the raw input when unparseable")

    @property
    def is_known(self) -> bool:
        return self.code.isdigit() and len(self.code) == 4


class VisitInterval(BaseModel):
    """
    Visit cadence: within every `weeks`-week cycle, `visits` weeks are expected visits
    """
    weeks: int  = Field(1, ge=1, description="Cycle length in weeks")
    visits: int = Field(1, ge=1, description="Expected visits per cycle")

    @model_validator(mode="after")
    def check_visits_fit_cycle(self) -> "VisitInterval":
        if self.visits > self.weeks:
            raise ValueError("visits cannot exceed weeks in a visit interval")
        return self


class HerbalRecord(BaseModel):
    """One month of the herbal prescription log"""
    month_index: int           = Field(...,   ge=0, lt=HERBAL_MONTHS, description="0-based prescription month")
    date: Optional[DateValue]  = Field(None,  description="Date the month's prescription was dispensed")
    tongue_exam_done: bool     = Field(False, description="Tongue examination recorded for this month")
    device_fit_done: bool      = Field(False, description="Body-composition device check recorded for this month")

    @field_validator("date", mode="before")
    @classmethod
    def blank_date_is_none(cls, value: Any) -> Any:
        return value or None


def default_herbal_log() -> List[HerbalRecord]:
    return [HerbalRecord(month_index=i) for i in range(HERBAL_MONTHS)]


def empty_weekly_visits() -> List[Optional[bool]]:
    return [None] * WEEK_SLOTS


class Patient(BaseModel):
    """
    Canonical patient record (local cache and hosted store)
    """
    model_config = ConfigDict(extra="ignore")
    id: str                                  = Field(...,  description="Opaque creation-time unique identifier")
    name: str                                = Field(...,  description="Patient name")
    chart_number: str                        = Field("",   description="Clinic chart number")
    doctor: str                              = Field("",   description="Treatment room / clinician")
    contact: str                             = Field("",   description="Phone or other contact")
    symptoms: str                            = Field("",   description="Presenting symptoms")
    first_visit_date: Optional[date]         = Field(None, description="First consultation date")
    treatment_start_date: Optional[date]     = Field(None, description="Anchor date for all week-slot computations")
    treatment_period: int                    = Field(DEFAULT_PERIOD_MONTHS, ge=0, le=MAX_TREATMENT_MONTHS, description="Case-management horizon in months")
    prescription_period: int                 = Field(DEFAULT_PERIOD_MONTHS, ge=0, le=MAX_PRESCRIPTION_MONTHS, description="Herbal prescription horizon in months (0 = none)")
    visit_period: int                        = Field(DEFAULT_PERIOD_MONTHS, ge=0, le=MAX_TREATMENT_MONTHS, description="In-clinic visit horizon in months (0 = medicine only)")
    visit_interval: VisitInterval            = Field(default_factory=VisitInterval, description="Visit cadence")
    herbal_type: HerbalType                  = Field("decoction", description="Kind of herbal prescription")
    weekly_visits: List[Optional[bool]]      = Field(default_factory=empty_weekly_visits, description="Per week-slot attendance (None unset, True visited, False missed)")
    skip_weeks: List[int]                    = Field(default_factory=list, description="Week-slots whose cadence default is inverted")
    missed_reasons: Dict[int, str]           = Field(default_factory=dict, description="Free-text reasons keyed by week-slot")
    herbal: List[HerbalRecord]               = Field(default_factory=default_herbal_log, description="Monthly herbal log")
    status: PatientStatusValue               = Field("active", description="Outcome status")
    graduation_date: Optional[date]          = Field(None, description="Set on transition to graduated")
    review: ReviewType                       = Field("none", description="Collected review kind")
    created_at: datetime                     = Field(default_factory=datetime.now, description="Registration timestamp")
    updated_at: Optional[datetime]           = Field(None, description="Last modification timestamp")

    @field_validator("first_visit_date", "treatment_start_date", "graduation_date", mode="before")
    @classmethod
    def blank_date_is_none(cls, value: Any) -> Any:
        return value or None

    @field_validator("weekly_visits")
    @classmethod
    def fit_week_slots(cls, value: List[Optional[bool]]) -> List[Optional[bool]]:
        value = list(value[:WEEK_SLOTS])
        return value + [None] * (WEEK_SLOTS - len(value))

    @field_validator("skip_weeks")
    @classmethod
    def normalize_skip_weeks(cls, value: List[int]) -> List[int]:
        return sorted(set(value))

    @field_validator("herbal")
    @classmethod
    def fit_herbal_months(cls, value: List[HerbalRecord]) -> List[HerbalRecord]:
        by_month = {record.month_index: record for record in value}
        return [by_month.get(i, HerbalRecord(month_index=i)) for i in range(HERBAL_MONTHS)]


def _check_doctor(value: Optional[str]) -> Optional[str]:
    if value and value not in DOCTOR_ROOMS:
        raise ValueError(f"doctor must be one of {', '.join(DOCTOR_ROOMS)}")
    return value


class PatientCreate(BaseModel):
    """
    Registration form payload
    """
    name: str                                 = Field(...,  min_length=1, description="Patient name")
    chart_number: Optional[str]               = Field(None, description="Clinic chart number")
    doctor: Optional[str]                     = Field(None, description="Treatment room / clinician")
    contact: Optional[str]                    = Field(None, description="Phone or other contact")
    symptoms: Optional[str]                   = Field(None, description="Presenting symptoms")
    first_visit_date: Optional[date]          = Field(None, description="Defaults to today")
    treatment_start_date: Optional[date]      = Field(None, description="Defaults to today")
    treatment_period: Optional[int]           = Field(None, ge=0, le=MAX_TREATMENT_MONTHS)
    prescription_period: Optional[int]        = Field(None, ge=0, le=MAX_PRESCRIPTION_MONTHS)
    visit_period: Optional[int]               = Field(None, ge=0, le=MAX_TREATMENT_MONTHS)
    visit_interval: Optional[VisitInterval]   = Field(None, description="Defaults to 1 week / 1 visit")
    herbal_type: Optional[HerbalType]         = Field(None)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name is required")
        return value

    @field_validator("doctor")
    @classmethod
    def validate_doctor(cls, value: Optional[str]) -> Optional[str]:
        return _check_doctor(value)


class PatientUpdate(BaseModel):
    """
    Partial update payload (all fields optional, only set fields are applied)
    """
    name: Optional[str]                       = None
    chart_number: Optional[str]               = None
    doctor: Optional[str]                     = None
    contact: Optional[str]                    = None
    symptoms: Optional[str]                   = None
    first_visit_date: Optional[date]          = None
    treatment_start_date: Optional[date]      = None
    treatment_period: Optional[int]           = Field(None, ge=0, le=MAX_TREATMENT_MONTHS)
    prescription_period: Optional[int]        = Field(None, ge=0, le=MAX_PRESCRIPTION_MONTHS)
    visit_period: Optional[int]               = Field(None, ge=0, le=MAX_TREATMENT_MONTHS)
    visit_interval: Optional[VisitInterval]   = None
    herbal_type: Optional[HerbalType]         = None
    status: Optional[PatientStatusValue]      = None
    graduation_date: Optional[date]           = None
    review: Optional[ReviewType]              = None

    @field_validator("doctor")
    @classmethod
    def validate_doctor(cls, value: Optional[str]) -> Optional[str]:
        return _check_doctor(value)


class AttendanceUpdate(BaseModel):
    state: AttendanceState = Field(..., description="unset, visited or missed")
    reason: Optional[str]  = Field(None, description="Missed-visit reason; omitted keeps any earlier reason")


class HerbalUpdate(BaseModel):
    date: Optional[DateValue]        = Field(None, description="Dispense date")
    stamp_today: bool                = Field(False, description="Set the dispense date to today")
    tongue_exam_done: Optional[bool] = None
    device_fit_done: Optional[bool]  = None


class WeekSlot(BaseModel):
    """One cell of the weekly attendance grid"""
    index: int                      = Field(..., description="0-based week-slot")
    code: str                       = Field(..., description="Calendar week code (YYWW) of the slot")
    starts_on: Optional[date]       = Field(None, description="Treatment start date + 7 * index")
    state: WeekState
    attendance: AttendanceState
    is_current: bool                = False
    is_past: bool                   = False
    is_overdue: bool                = Field(False, description="Past, due and still unset")
    is_overridden: bool             = Field(False, description="Listed in skip_weeks")
    missed_reason: Optional[str]    = None


class HerbalMonth(BaseModel):
    record: HerbalRecord
    enabled: bool


class PatientSchedule(BaseModel):
    patient_id: str
    today: YearWeek
    current_week_index: int         = Field(..., description="-1 when no slot covers the current week")
    visit_weeks: int                = Field(..., description="visit_period * 4")
    weeks: List[WeekSlot]
    herbal: List[HerbalMonth]
    active_missed_reasons: Dict[int, str]


class LoginRequest(BaseModel):
    password: str


class BoardSummary(BaseModel):
    counts: Dict[str, int]
    total: int
    sync_status: SyncState


class ImportResult(BaseModel):
    inserted: int
    updated: int

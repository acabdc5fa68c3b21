"""
Database module

Contains the data models (schemas) and local mirror storage operations.
The hosted store and sync session live in careboard.database.sync.
"""

# Export schemas
from careboard.database.schemas import (
    Patient,
    PatientCreate,
    PatientUpdate,
    VisitInterval,
    HerbalRecord,
    YearWeek,
    WeekState,
    AttendanceState,
    SyncState,
)

# Export storage functions for convenience
from careboard.database.storage import (
    read_json,
    write_json,
    save_patients,
    get_patients,
    delete_patients,
    cleanup_stale_cache,
)

from careboard.database import storage

__all__ = [
    # Schemas
    "Patient",
    "PatientCreate",
    "PatientUpdate",
    "VisitInterval",
    "HerbalRecord",
    "YearWeek",
    "WeekState",
    "AttendanceState",
    "SyncState",
    # Storage functions
    "read_json",
    "write_json",
    "save_patients",
    "get_patients",
    "delete_patients",
    "cleanup_stale_cache",
    # Storage module
    "storage",
]

"""
Basic configuration

- CORS origins for development and production
- Shared clinic secret and owner key for the hosted record store
- Domain constants for the treatment horizon
"""
import os

# Default localhost origins for development
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
]

# Deployed board origins, comma separated
ADDITIONAL_CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()]

CORS_ORIGINS = DEFAULT_CORS_ORIGINS + ADDITIONAL_CORS_ORIGINS

# Shared secret checked by the front-desk login gate
CLINIC_PASSWORD = os.getenv("CLINIC_PASSWORD", "change-me")

# All devices in the clinic share one owner key in the hosted store
CLINIC_OWNER_KEY = os.getenv("CLINIC_OWNER_KEY", "bonhyang_clinic_shared")

DATA_DIR = os.getenv("DATA_DIR", "data")
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "60"))

# When local cache and hosted store disagree on record count at startup
PREFER_REMOTE_ON_MISMATCH = os.getenv("PREFER_REMOTE_ON_MISMATCH", "true").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Bump when the cached record layout changes; older cache files are removed on start
CACHE_VERSION = 12

# Treatment horizon
MAX_TREATMENT_MONTHS = 9
MAX_PRESCRIPTION_MONTHS = 6
WEEKS_PER_MONTH = 4
WEEK_SLOTS = MAX_TREATMENT_MONTHS * WEEKS_PER_MONTH
HERBAL_MONTHS = MAX_PRESCRIPTION_MONTHS
DEFAULT_PERIOD_MONTHS = 3

DOCTOR_ROOMS = ("1진료실", "2진료실", "3진료실")

"""
FastAPI app

- CORS configured for the browser board
- Single router for all endpoints
- Basic health check
"""
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file before config is read
project_root = Path(__file__).parent.parent
load_dotenv(dotenv_path=project_root / '.env')

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from careboard.api import router
from careboard.api.middleware import TimingMiddleware
from careboard.core.config import CORS_ORIGINS
from careboard.core.logging import configure_logging

configure_logging()

app = FastAPI(title="Clinic Treatment Board")

# Logs request duration for all requests
app.add_middleware(TimingMiddleware)

# X-Clinic-Key must be allowed for browser clients
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)

app.include_router(router, prefix="/api/v1")


@app.get("/")
async def root():
    """
    Basic health check
    """
    return {"status": "ok"}

"""
GradeBridge — UK/US Academic Grade Conversion
FastAPI backend entry point.
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from routes.convert import router as convert_router
from routes.upload import router as upload_router

# Load environment
load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

WEIGHT_POLICY = os.getenv("WEIGHT_POLICY", "reject").strip().lower()
MAX_WEIGHT = float(os.getenv("MAX_WEIGHT", "60"))
SCHEME_FILE = os.getenv("SCHEME_FILE", "").strip()
# Comma-separated allowed origins, e.g. http://localhost:5173,https://app.example.com
raw_origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
ALLOWED_ORIGINS = [o.strip() for o in raw_origins.split(",") if o.strip()]

app = FastAPI(
    title="GradeBridge API",
    description=(
        "Converts UK and US module marks into year-weighted overall scores, "
        "US 4.0 GPA equivalents and degree classifications."
    ),
    version="1.0.0",
)

# CORS: allow the React dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route modules
app.include_router(convert_router, prefix="/api/convert", tags=["Conversion"])
app.include_router(upload_router, prefix="/api/upload", tags=["Upload"])

logger.info(
    "GradeBridge starting: weight_policy=%s max_weight=%g scheme_file=%s",
    WEIGHT_POLICY, MAX_WEIGHT, SCHEME_FILE or "(built-in)",
)


@app.get("/api/health")
async def health_check():
    return {
        "status": "ok",
        "weight_policy": WEIGHT_POLICY,
    }


@app.get("/api/config")
async def get_config():
    """Return server configuration to the frontend."""
    return {
        "weight_policy": WEIGHT_POLICY,
        "max_weight": MAX_WEIGHT,
        "custom_schemes": bool(SCHEME_FILE),
    }

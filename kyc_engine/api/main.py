"""
FastAPI Application — KYC Document Verification Engine.

Architecture:
  - PostgreSQL (prod) / SQLite (dev) for documents + history ledger
  - Transition Manager owns every status change (optimistic concurrency)
  - Aggregate KYC status recomputed on read from the requirement catalog
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kyc_engine.api.demo_data import load_demo_data
from kyc_engine.api.routes.documents import router as documents_router
from kyc_engine.api.routes.kyc import router as kyc_router
from kyc_engine.api.services import get_services
from kyc_engine.config.settings import get_settings
from kyc_engine.core.errors import ErrorKind, KycError
from kyc_engine.infrastructure.db.database import get_database_url, init_db

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="KYC Verification Engine",
    description="Document lifecycle, reviewer queue, audit history and aggregate KYC status.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

HTTP_STATUS = {
    ErrorKind.VALIDATION_FAILED: 400,
    ErrorKind.INVALID_TYPE: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.CONFLICT: 409,
}


# ── Errors ──
@app.exception_handler(KycError)
async def kyc_error_handler(request: Request, exc: KycError):
    body = exc.to_dict()
    if exc.kind == ErrorKind.CONFLICT:
        body["hint"] = "The document changed concurrently; refresh and retry."
    if exc.kind in (ErrorKind.CONFLICT, ErrorKind.INVALID_TRANSITION):
        logger.warning(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=HTTP_STATUS.get(exc.kind, 400), content=body)


# ── Startup ──
@app.on_event("startup")
async def startup():
    """Initialize DB and optionally load demo documents."""
    settings = get_settings()
    init_db()
    if settings.load_demo_data:
        load_demo_data(get_services())
    logger.info(f"KYC Verification Engine started (purpose={settings.default_purpose})")


# Register routes
app.include_router(documents_router, prefix="/api/v1", tags=["Documents"])
app.include_router(kyc_router, prefix="/api/v1", tags=["KYC"])


# ── Health ──
@app.get("/health")
async def health():
    settings = get_settings()
    db_url = get_database_url()
    return {
        "status": "ok",
        "version": "1.0.0",
        "database": "PostgreSQL" if "postgres" in db_url else "SQLite",
        "default_purpose": settings.default_purpose,
    }

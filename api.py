"""
Field Reconciler — FastAPI Server
=================================

HTTP surface through which the producers and the intake UI reach the engine.

Endpoints:
    POST /sessions                              Open an intake session
    GET  /sessions/{id}                         Snapshot of the record
    POST /sessions/{id}/reset                   Full reset (record + provenance)
    POST /sessions/{id}/extraction              Document-extraction payload
    POST /sessions/{id}/form-fields             Form-field webhook payload
    POST /sessions/{id}/lender-matches          Lender-matching webhook payload
    PUT  /sessions/{id}/fields/{field}          Operator edit
    POST /sessions/{id}/documents               Attach a document filename
    GET  /sessions/{id}/submission              Flat row for the applications store
    GET  /health                                Health check / readiness probe

Producer endpoints accept any body (JSON, JSON string, JSON wrapped in text);
unusable payloads are not errors, they just populate nothing.

Run:
    uvicorn api:app --reload              # Dev (http://localhost:8000)
    uvicorn api:app --host 0.0.0.0        # Production
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from field_reconciler import __version__
from field_reconciler.config import Settings
from field_reconciler.exceptions import ReconciliationError, SessionNotFoundError
from field_reconciler.matches import display_percent
from field_reconciler.models import (
    ApplicationSnapshot,
    FieldOutcome,
    LenderMatch,
    MergeReport,
    ProducerKind,
)
from field_reconciler.pipeline import IntakeEngine, Subscription
from field_reconciler.submission import build_submission_row

load_dotenv()

_settings = Settings.from_env()
logging.basicConfig(level=_settings.log_level)
logger = logging.getLogger(__name__)


# ─── Session Registry ───────────────────────────────────────────────


@dataclass
class _SessionEntry:
    engine: IntakeEngine
    subscriptions: dict[ProducerKind, Subscription]


_sessions: dict[str, _SessionEntry] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Sessions live in memory for the lifetime of the process."""
    yield
    _sessions.clear()


# ─── FastAPI App ─────────────────────────────────────────────────────

app = FastAPI(
    title="Field Reconciler API",
    description=(
        "Tolerant extraction and provenance-aware merging of loan-application "
        "fields from a document-extraction service and a lender-matching webhook."
    ),
    version=__version__,
    lifespan=lifespan,
)

_STATUS_BY_CODE = {
    "SESSION_NOT_FOUND": 404,
    "UNKNOWN_FIELD": 422,
    "INVALID_FIELD_VALUE": 422,
}


@app.exception_handler(ReconciliationError)
async def _reconciliation_error_handler(
    request: Request, exc: ReconciliationError
) -> JSONResponse:
    return JSONResponse(
        status_code=_STATUS_BY_CODE.get(exc.code, 400),
        content={"code": exc.code, "detail": str(exc), "details": exc.details},
    )


# ─── Request / Response Schemas ─────────────────────────────────────


class OpenSessionRequest(BaseModel):
    """Optional review-mode values; these are kept over any automated value."""

    initial: dict[str, Any] = Field(
        default_factory=dict,
        json_schema_extra={"example": {"businessName": "Acme LLC", "industry": "Retail"}},
    )


class SessionResponse(BaseModel):
    session_id: str
    snapshot: ApplicationSnapshot


class MergeResponse(BaseModel):
    """Outcome of one field-bag payload."""

    session_id: str
    source: ProducerKind
    populated_fields: list[str]
    outcomes: list[FieldOutcome]
    snapshot: ApplicationSnapshot


class LenderMatchOut(LenderMatch):
    """API-facing match (adds the display percentage)."""

    display_percent: int


class LenderMatchResponse(BaseModel):
    session_id: str
    match_count: int
    matches: list[LenderMatchOut]


class FieldEditRequest(BaseModel):
    value: str


class DocumentRequest(BaseModel):
    name: str = Field(..., min_length=1)


class HealthResponse(BaseModel):
    status: str
    version: str
    sessions_open: int


# ─── Helpers ─────────────────────────────────────────────────────────


def _get_entry(session_id: str) -> _SessionEntry:
    entry = _sessions.get(session_id)
    if entry is None:
        raise SessionNotFoundError(
            f"No session with id '{session_id}'", details={"session_id": session_id}
        )
    return entry


def _check_origin(request: Request) -> None:
    origin = request.headers.get("origin")
    if not _settings.origin_allowed(origin):
        logger.warning(
            "Refusing producer payload from unallowed origin %s (allowed: %s)",
            origin,
            sorted(_settings.allowed_origins),
        )
        raise HTTPException(status_code=403, detail="Origin not allowed")


def _session_response(session_id: str, entry: _SessionEntry) -> SessionResponse:
    return SessionResponse(session_id=session_id, snapshot=entry.engine.session.snapshot())


async def _ingest_field_bag(
    session_id: str, request: Request, source: ProducerKind
) -> MergeResponse:
    _check_origin(request)
    entry = _get_entry(session_id)

    entry.subscriptions[source].publish(await request.body())
    reports = [r for r in entry.engine.process_pending() if isinstance(r, MergeReport)]
    report = reports[-1] if reports else MergeReport(source=source)

    return MergeResponse(
        session_id=session_id,
        source=source,
        populated_fields=[f.value for f in report.populated_fields],
        outcomes=report.outcomes,
        snapshot=entry.engine.session.snapshot(),
    )


# ─── Endpoints ───────────────────────────────────────────────────────


@app.post(
    "/sessions",
    status_code=201,
    summary="Open an intake session",
    tags=["Sessions"],
    responses={422: {"description": "Initial values name an unknown field or have the wrong shape"}},
)
async def open_session(request: OpenSessionRequest | None = None) -> SessionResponse:
    """Create an empty record, or one pre-filled with review-mode values."""
    initial = request.initial if request else {}
    engine = IntakeEngine(initial)
    entry = _SessionEntry(
        engine=engine,
        subscriptions={kind: engine.subscribe(kind) for kind in ProducerKind},
    )
    session_id = uuid.uuid4().hex
    _sessions[session_id] = entry
    logger.info("Opened session %s", session_id)
    return _session_response(session_id, entry)


@app.get("/sessions/{session_id}", summary="Snapshot of a session", tags=["Sessions"])
async def get_session(session_id: str) -> SessionResponse:
    return _session_response(session_id, _get_entry(session_id))


@app.post(
    "/sessions/{session_id}/reset",
    summary="Discard the record, its provenance and queued payloads",
    tags=["Sessions"],
)
async def reset_session(session_id: str) -> SessionResponse:
    entry = _get_entry(session_id)
    entry.engine.reset()
    return _session_response(session_id, entry)


@app.post(
    "/sessions/{session_id}/extraction",
    summary="Merge a document-extraction payload",
    tags=["Producers"],
    responses={403: {"description": "Origin not allowed"}, 404: {"description": "Unknown session"}},
)
async def ingest_extraction(session_id: str, request: Request) -> MergeResponse:
    """Unwrap, normalize and merge whatever the extraction service sent.

    Values the operator has edited since the last automated write are never
    overwritten; see the `PRESERVED` outcomes in the response.
    """
    return await _ingest_field_bag(session_id, request, ProducerKind.DOCUMENT_EXTRACTION)


@app.post(
    "/sessions/{session_id}/form-fields",
    summary="Merge a form-field webhook payload",
    tags=["Producers"],
    responses={403: {"description": "Origin not allowed"}, 404: {"description": "Unknown session"}},
)
async def ingest_form_fields(session_id: str, request: Request) -> MergeResponse:
    return await _ingest_field_bag(session_id, request, ProducerKind.FORM_WEBHOOK)


@app.post(
    "/sessions/{session_id}/lender-matches",
    summary="Replace the session's lender matches from a webhook payload",
    tags=["Producers"],
    responses={403: {"description": "Origin not allowed"}, 404: {"description": "Unknown session"}},
)
async def ingest_lender_matches(session_id: str, request: Request) -> LenderMatchResponse:
    _check_origin(request)
    entry = _get_entry(session_id)

    entry.subscriptions[ProducerKind.LENDER_MATCHING].publish(await request.body())
    entry.engine.process_pending()

    matches = [
        LenderMatchOut(
            lender_id=m.lender_id,
            match_score=m.match_score,
            display_percent=display_percent(m.match_score),
        )
        for m in entry.engine.session.lender_matches
    ]
    return LenderMatchResponse(session_id=session_id, match_count=len(matches), matches=matches)


@app.put(
    "/sessions/{session_id}/fields/{field}",
    summary="Record an operator edit",
    tags=["Operator"],
    responses={404: {"description": "Unknown session"}, 422: {"description": "Unknown field"}},
)
async def edit_field(session_id: str, field: str, request: FieldEditRequest) -> SessionResponse:
    entry = _get_entry(session_id)
    entry.engine.session.set_field(field, request.value)
    return _session_response(session_id, entry)


@app.post(
    "/sessions/{session_id}/documents",
    summary="Attach a document filename",
    tags=["Operator"],
    responses={404: {"description": "Unknown session"}},
)
async def add_document(session_id: str, request: DocumentRequest) -> SessionResponse:
    entry = _get_entry(session_id)
    entry.engine.session.add_document(request.name)
    return _session_response(session_id, entry)


@app.get(
    "/sessions/{session_id}/submission",
    summary="Flat submission row for the applications store",
    tags=["Sessions"],
)
async def get_submission(session_id: str) -> dict[str, Any]:
    entry = _get_entry(session_id)
    return build_submission_row(entry.engine.session.snapshot())


@app.get("/health", summary="Health check", tags=["System"])
async def health_check() -> HealthResponse:
    """Returns service status and configuration info."""
    return HealthResponse(status="healthy", version=__version__, sessions_open=len(_sessions))

"""FastAPI server for the diary tutor.

Reads and writes data/diary.duckdb via the DiaryStore class, sends diary
entries to the Gemini tutor and returns the parsed analysis as JSON for the
frontend.

Usage:
    cd dashboard
    PYTHONPATH=../src uvicorn api.server:app --reload --port 8000
"""
from __future__ import annotations

import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import Body, FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, Field

# Add src to path so we can import diarylens modules
_diarylens_src = Path(__file__).resolve().parents[2] / "src"
if str(_diarylens_src) not in sys.path:
    sys.path.insert(0, str(_diarylens_src))

from diarylens.analysis_parser import parse_analysis  # noqa: E402
from diarylens.diary_store import (  # noqa: E402
    DiaryEntry,
    DiaryStore,
    group_by_month,
    normalize_date,
)
from diarylens.presentation import render_analysis  # noqa: E402
from diarylens.tutor_client import GeminiTutorClient  # noqa: E402

log = logging.getLogger("diarylens.dashboard")

# ---------------------------------------------------------------------------
# Globals
#
# DuckDB connections are NOT thread-safe. All endpoints touching _store MUST
# remain async def so they run on the event loop thread. Only the Gemini call
# is pushed to a worker thread.
# ---------------------------------------------------------------------------
_store: DiaryStore | None = None
_db_path = Path(
    os.environ.get("DIARYLENS_DB", "")
    or Path(__file__).resolve().parents[2] / "data" / "diary.duckdb"
)

_tutor: GeminiTutorClient | None = None

# One analysis in flight per user
_inflight: set[str] = set()
_inflight_lock = asyncio.Lock()

DEFAULT_USER = "local"


def _get_store() -> DiaryStore:
    """Get the diary store, raising 503 if not available."""
    if _store is None:
        raise HTTPException(status_code=503, detail="Diary store not available.")
    return _store


def _get_tutor() -> GeminiTutorClient:
    """Get (or lazily build) the tutor client, raising 503 without an API key."""
    global _tutor  # noqa: PLW0603
    if _tutor is None:
        try:
            _tutor = GeminiTutorClient()
        except ValueError as e:
            raise HTTPException(status_code=503, detail=str(e)) from e
    return _tutor


def _user(x_user_id: str | None) -> str:
    return (x_user_id or "").strip() or DEFAULT_USER


def _parse_date(raw: str | None) -> str:
    try:
        return normalize_date(raw)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid date: {raw!r}") from e


def _entry_payload(entry: DiaryEntry) -> dict[str, Any]:
    return {
        "entry": entry.to_dict(),
        "analysis": render_analysis(parse_analysis(entry.analysis_result)),
    }


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ARG001
    global _store  # noqa: PLW0603
    try:
        _store = DiaryStore(_db_path, create_if_missing=True)
        log.info("Diary store opened: %s", _db_path)
    except Exception as e:
        log.warning("Could not open diary store %s: %s", _db_path, e)
        _store = None
    yield
    if _store is not None:
        _store.close()
        _store = None
        log.info("Diary store closed")


app = FastAPI(
    title="Diary Tutor API",
    version="0.1.0",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------
class ParseRequest(BaseModel):
    markdown: str = ""


class AnalyzeRequest(BaseModel):
    title: str = ""
    content: str = Field(default="", description="Diary text to correct")


# ---------------------------------------------------------------------------
# Routes: Health
# ---------------------------------------------------------------------------
@app.get("/api/health")
async def health():
    return {
        "status": "ok",
        "store_loaded": _store is not None,
        "analyzer_configured": _tutor is not None
        or bool(os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")),
    }


# ---------------------------------------------------------------------------
# Routes: Parsing
# ---------------------------------------------------------------------------
@app.post("/api/parse")
async def parse_reply(req: ParseRequest = Body(...)):
    return render_analysis(parse_analysis(req.markdown))


# ---------------------------------------------------------------------------
# Routes: Diaries
# ---------------------------------------------------------------------------
@app.get("/api/diaries")
async def list_diaries(
    grouped: bool = Query(False),
    x_user_id: str | None = Header(None),
):
    store = _get_store()
    summaries = store.list_summaries(_user(x_user_id))
    if grouped:
        return {
            "groups": [
                {"month": month, "diaries": [s.to_dict() for s in items]}
                for month, items in group_by_month(summaries).items()
            ]
        }
    return {"diaries": [s.to_dict() for s in summaries]}


@app.get("/api/diaries/{date}")
async def get_diary(date: str, x_user_id: str | None = Header(None)):
    store = _get_store()
    day = _parse_date(date)
    entry = store.get_by_date(_user(x_user_id), day)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"No diary for {day}")
    return _entry_payload(entry)


@app.post("/api/diaries/{date}/analyze")
async def analyze_diary(
    date: str,
    req: AnalyzeRequest = Body(...),
    x_user_id: str | None = Header(None),
):
    store = _get_store()
    day = _parse_date(date)
    user_id = _user(x_user_id)
    if not req.content.strip():
        raise HTTPException(status_code=400, detail="Missing diary content.")
    tutor = _get_tutor()

    async with _inflight_lock:
        if user_id in _inflight:
            raise HTTPException(
                status_code=409, detail="An analysis is already running."
            )
        _inflight.add(user_id)
    try:
        try:
            reply = await asyncio.to_thread(tutor.analyze, req.content)
        except Exception as e:
            raise HTTPException(
                status_code=502, detail=f"Analysis failed: {e}"
            ) from e
        entry = store.save(user_id, day, req.title, req.content, reply)
    finally:
        async with _inflight_lock:
            _inflight.discard(user_id)
    return _entry_payload(entry)


@app.delete("/api/diaries/{entry_id}")
async def delete_diary(entry_id: str, x_user_id: str | None = Header(None)):
    store = _get_store()
    if not store.delete(_user(x_user_id), entry_id):
        raise HTTPException(status_code=404, detail="Diary not found")
    return {"deleted": entry_id}

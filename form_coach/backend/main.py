# backend/main.py
"""
Coaching and session-logging backend for the camera client.

Run:
    uvicorn form_coach.backend.main:app --host 0.0.0.0 --port 8000
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from form_coach import config
from form_coach.backend.llm_agent import analyze_rep_with_llm, fallback_coaching
from form_coach.backend.models import CoachingResponse, RepSummary, SessionRecord, SessionSummary

logger = logging.getLogger("form_coach")
logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s | %(name)s | %(message)s")

app = FastAPI(title="Form Coach Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# In-memory session log, keyed by session id
_sessions: Dict[str, SessionRecord] = {}


@app.get("/")
def health_check():
    return {"status": "ok", "llm": "groq" if config.GROQ_API_KEY else "rules"}


@app.post("/analyze_rep", response_model=CoachingResponse)
def analyze_rep(rep: RepSummary):
    rep_dict = rep.model_dump()
    result = analyze_rep_with_llm(rep_dict)
    if result is not None:
        try:
            return CoachingResponse(**result)
        except (TypeError, ValidationError) as e:
            logger.warning("LLM reply did not match CoachingResponse: %s", e)
    return CoachingResponse(**fallback_coaching(rep_dict))


@app.post("/sessions", response_model=SessionRecord)
def log_session(summary: SessionSummary):
    record = SessionRecord(
        id=uuid.uuid4().hex,
        received_at=datetime.now(timezone.utc),
        **summary.model_dump(),
    )
    _sessions[record.id] = record
    logger.info("Logged %s session %s: %d reps", record.exercise, record.id, record.rep_count)
    return record


@app.get("/sessions", response_model=List[SessionRecord])
def list_sessions():
    return sorted(_sessions.values(), key=lambda r: r.received_at, reverse=True)


@app.get("/sessions/{session_id}", response_model=SessionRecord)
def get_session(session_id: str):
    record = _sessions.get(session_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return record

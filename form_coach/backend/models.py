# backend/models.py
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class RepSummary(BaseModel):
    rep_id: int
    exercise: str                       # e.g. "squat"
    duration_s: float
    primary_angle_min: float            # deepest knee / hip / elbow angle of the rep
    faults: List[str] = Field(default_factory=list)
    overall_form: str = "excellent"
    avg_confidence: float = 0.0


class CoachingResponse(BaseModel):
    exercise: str
    main_issue: Optional[str] = None
    severity: str
    message: str


class SessionSummary(BaseModel):
    exercise: str
    rep_count: int = 0
    hold_seconds: Optional[float] = None
    frames: int = 0
    duration_s: float = 0.0
    form_counts: Dict[str, int] = Field(default_factory=dict)


class SessionRecord(SessionSummary):
    id: str
    received_at: datetime

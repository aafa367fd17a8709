from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.interview_session import SessionStatus


class _CamelOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ------------------------------
# Requests
# ------------------------------
class StartSessionIn(BaseModel):
    interview_id: int
    resume_id: int


class SubmitAnswerIn(BaseModel):
    session_token: str = Field(min_length=1)
    question_index: int = Field(ge=0)
    answer: str


class RecruiterNotesIn(BaseModel):
    notes: str = ""


# ------------------------------
# Session views
# ------------------------------
class SessionOut(_CamelOut):
    id: int
    interview_id: int
    resume_id: int
    status: SessionStatus
    current_question_index: int
    session_token: str
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    locked_until: Optional[datetime] = None


class QuestionOut(_CamelOut):
    """Candidate-facing question; never carries answers, keywords or reference code."""
    index: int
    id: int
    type: str
    difficulty: str
    question_text: str
    time_limit: int
    points: int
    options: Optional[List[str]] = None
    language: Optional[str] = None
    starter_code: Optional[str] = None
    min_words: Optional[int] = None
    max_words: Optional[int] = None


class ActiveSessionOut(_CamelOut):
    session: SessionOut
    questions: List[QuestionOut]
    time_remaining: int = Field(alias="timeRemaining")
    total_elapsed: int = Field(alias="totalElapsed")
    server_time: datetime = Field(alias="serverTime")
    can_resume: bool = Field(alias="canResume")
    was_auto_advanced: bool = Field(alias="wasAutoAdvanced")
    auto_advanced_count: int = Field(0, alias="autoAdvancedCount")
    question_started_at: Optional[datetime] = Field(None, alias="questionStartedAt")


class SubmitAnswerOut(BaseModel):
    completed: bool
    duplicate: bool = False
    time_expired: bool = False


# ------------------------------
# Results
# ------------------------------
class QuestionResult(BaseModel):
    question_index: int
    question_id: int
    question_text: str
    type: str
    difficulty: str
    points: int
    answer_text: str
    auto_submitted: bool
    score: Optional[int] = None
    feedback: Optional[Dict[str, Any]] = None
    time_taken: Optional[int] = None
    grader: Optional[str] = None


class SessionSummary(BaseModel):
    final_score: int
    max_score: int
    percentage: float
    ai_summary: Optional[str] = None
    recommendation: Optional[str] = None
    evaluated_at: datetime
    recruiter_notes: Optional[str] = None


class ResultsOut(BaseModel):
    session_id: int
    status: Literal["in_progress", "completed", "abandoned"]
    summary: Optional[SessionSummary] = None
    per_question_results: List[QuestionResult] = Field(default_factory=list)


# ------------------------------
# Timeline
# ------------------------------
class TimelineEvent(BaseModel):
    timestamp: datetime
    type: str
    question_index: int | None
    payload: Dict[str, Any]


class SessionTimeline(BaseModel):
    session_id: int
    events: List[TimelineEvent]

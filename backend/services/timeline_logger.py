from sqlalchemy.orm import Session
from typing import Optional, Dict, Any, List

from models.interview_timeline import SessionEvent


SESSION_STARTED = "session_started"
ANSWER_SUBMITTED = "answer_submitted"
AUTO_ADVANCED = "auto_advanced"
SESSION_COMPLETED = "session_completed"
SESSION_ABANDONED = "session_abandoned"
ANSWER_EVALUATED = "answer_evaluated"
EVALUATION_RETRY = "evaluation_retry"
EVALUATION_FAILED = "evaluation_failed"
SESSION_EVALUATED = "session_evaluated"


def log_timeline_event(
    db: Session,
    *,
    session_id: int,
    event_type: str,
    payload: Dict[str, Any] | None = None,
    question_index: Optional[int] = None,
):
    """
    Stage a timeline row on the caller's transaction; the caller commits.
    """
    event = SessionEvent(
        session_id=session_id,
        question_index=question_index,
        event_type=event_type,
        payload=payload or {},
    )
    db.add(event)
    return event


def session_timeline(db: Session, session_id: int) -> List[SessionEvent]:
    return (
        db.query(SessionEvent)
        .filter(SessionEvent.session_id == session_id)
        .order_by(SessionEvent.created_at.asc(), SessionEvent.id.asc())
        .all()
    )

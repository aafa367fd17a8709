"""
Session lifecycle: not_started -> in_progress -> completed | abandoned.

All state transitions are conditional UPDATEs on the current state, so a
submission racing an auto-advance sweep (or two workers) can never move the
cursor twice for the same index or complete a session twice.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core import security
from core.config import settings
from core.errors import Conflict, Expired, NotEligible, NotFound
from db.models import Interview
from models.interview_session import InterviewSession, SessionStatus
from services import timeline_logger as tl
from services.catalog import (
    QuestionCatalog,
    ResumeVerifier,
    default_catalog,
    default_verifier,
    interview_closed_reason,
)
from utils.timeutil import as_utc, utcnow

log = logging.getLogger(__name__)


def is_resumable(session: InterviewSession, now: datetime) -> bool:
    if session.status != SessionStatus.in_progress:
        return False
    locked_until = as_utc(session.locked_until)
    return locked_until is None or now <= locked_until


def start_session(
    db: Session,
    *,
    candidate_id: int,
    interview_id: int,
    resume_id: int,
    catalog: QuestionCatalog = default_catalog,
    verifier: ResumeVerifier = default_verifier,
    now: Optional[datetime] = None,
) -> InterviewSession:
    now = now or utcnow()

    existing = _find(db, candidate_id, interview_id)
    if existing is not None:
        return _existing_or_conflict(existing, now)

    if not verifier.is_verified(db, candidate_id, resume_id):
        raise NotEligible("resume is not verified", {"reason": "resume_not_verified"})

    interview = db.get(Interview, interview_id)
    if interview is None:
        raise NotFound("interview not found")
    reason = interview_closed_reason(interview, candidate_id, now)
    if reason:
        raise NotEligible(reason, {"reason": "interview_unavailable"})

    questions = catalog.ordered_questions(db, interview_id)
    if not questions:
        raise NotEligible("interview has no questions", {"reason": "no_questions"})

    total_seconds = sum(q.time_limit for q in questions)
    session = InterviewSession(
        interview_id=interview_id,
        user_id=candidate_id,
        resume_id=resume_id,
        status=SessionStatus.not_started,
        current_question_index=0,
        session_token=security.new_session_token(),
    )
    db.add(session)
    try:
        db.flush()
    except IntegrityError:
        # lost a race against a concurrent start for the same pair
        db.rollback()
        existing = _find(db, candidate_id, interview_id)
        if existing is None:
            raise
        return _existing_or_conflict(existing, now)

    session.status = SessionStatus.in_progress
    session.started_at = now
    session.locked_until = now + timedelta(
        seconds=total_seconds + settings.session_resume_grace_seconds
    )
    tl.log_timeline_event(
        db,
        session_id=session.id,
        event_type=tl.SESSION_STARTED,
        payload={"total_questions": len(questions), "total_seconds": total_seconds},
    )
    db.commit()
    db.refresh(session)
    log.info(
        "session started",
        extra={"session_id": session.id, "interview_id": interview_id, "candidate_id": candidate_id},
    )
    return session


def _existing_or_conflict(existing: InterviewSession, now: datetime) -> InterviewSession:
    if is_resumable(existing, now):
        return existing
    raise Conflict(
        "a session already exists for this interview",
        {"session_id": existing.id, "status": _status(existing)},
    )


def find_active_session(
    db: Session, candidate_id: int, interview_id: Optional[int] = None
) -> Optional[InterviewSession]:
    q = db.query(InterviewSession).filter(
        InterviewSession.user_id == candidate_id,
        InterviewSession.status == SessionStatus.in_progress,
    )
    if interview_id is not None:
        q = q.filter(InterviewSession.interview_id == interview_id)
    return q.order_by(InterviewSession.started_at.desc(), InterviewSession.id.desc()).first()


def ensure_resumable(db: Session, session: InterviewSession, now: datetime) -> None:
    """
    Raise Expired when the inactivity window has lapsed. The session is
    abandoned on the way out so later lookups agree.
    """
    if session.status == SessionStatus.abandoned:
        raise Expired(details={"session_id": session.id})
    if session.status == SessionStatus.in_progress and not is_resumable(session, now):
        abandon_session(db, session, now, reason="inactivity")
        raise Expired(details={"session_id": session.id})


def advance_cursor(db: Session, session_id: int, from_index: int) -> bool:
    """Move the cursor from `from_index` to `from_index + 1`; False if it already moved."""
    updated = (
        db.query(InterviewSession)
        .filter(
            InterviewSession.id == session_id,
            InterviewSession.current_question_index == from_index,
            InterviewSession.status == SessionStatus.in_progress,
        )
        .update(
            {InterviewSession.current_question_index: from_index + 1},
            synchronize_session=False,
        )
    )
    return updated == 1


def complete_session(db: Session, session_id: int, total_questions: int, now: datetime) -> bool:
    """Idempotent: only the first caller flips the status and logs the event."""
    updated = (
        db.query(InterviewSession)
        .filter(
            InterviewSession.id == session_id,
            InterviewSession.status == SessionStatus.in_progress,
            InterviewSession.current_question_index >= total_questions,
        )
        .update(
            {
                InterviewSession.status: SessionStatus.completed,
                InterviewSession.completed_at: now,
                InterviewSession.current_question_index: total_questions,
            },
            synchronize_session=False,
        )
    )
    if updated:
        tl.log_timeline_event(
            db,
            session_id=session_id,
            event_type=tl.SESSION_COMPLETED,
            payload={"total_questions": total_questions},
        )
        log.info("session completed", extra={"session_id": session_id})
    return updated == 1


def abandon_session(db: Session, session: InterviewSession, now: datetime, reason: str = "inactivity") -> bool:
    updated = (
        db.query(InterviewSession)
        .filter(
            InterviewSession.id == session.id,
            InterviewSession.status == SessionStatus.in_progress,
        )
        .update({InterviewSession.status: SessionStatus.abandoned}, synchronize_session=False)
    )
    if updated:
        tl.log_timeline_event(
            db,
            session_id=session.id,
            event_type=tl.SESSION_ABANDONED,
            question_index=session.current_question_index,
            payload={"reason": reason, "at": now.isoformat()},
        )
        log.info("session abandoned", extra={"session_id": session.id, "reason": reason})
    db.commit()
    db.refresh(session)
    return updated == 1


def abandon_expired_sessions(db: Session, now: Optional[datetime] = None) -> List[int]:
    """Inactivity policy hook: abandon in-progress sessions whose lock window lapsed."""
    now = now or utcnow()
    stale = (
        db.query(InterviewSession)
        .filter(
            InterviewSession.status == SessionStatus.in_progress,
            InterviewSession.locked_until.isnot(None),
            InterviewSession.locked_until < now,
        )
        .all()
    )
    abandoned = []
    for s in stale:
        if abandon_session(db, s, now, reason="inactivity"):
            abandoned.append(s.id)
    return abandoned


def _find(db: Session, candidate_id: int, interview_id: int) -> Optional[InterviewSession]:
    return (
        db.query(InterviewSession)
        .filter(
            InterviewSession.user_id == candidate_id,
            InterviewSession.interview_id == interview_id,
        )
        .first()
    )


def _status(s: InterviewSession) -> str:
    return getattr(s.status, "value", s.status)

from sqlalchemy.orm import Session

from core.errors import Forbidden, NotFound
from core.security import RECRUITER
from db.models import Interview
from models.interview_session import InterviewSession, SessionStatus
from schemas.session import (
    QuestionResult,
    ResultsOut,
    SessionSummary,
    SessionTimeline,
    TimelineEvent,
)
from services import timeline_logger as tl
from services.catalog import QuestionCatalog, default_catalog
from utils.timeutil import as_utc


def _load(db: Session, session_id: int) -> InterviewSession:
    session = db.get(InterviewSession, session_id)
    if session is None:
        raise NotFound("session not found")
    return session


def _interview_owner(db: Session, session: InterviewSession) -> int:
    interview = db.get(Interview, session.interview_id)
    return interview.created_by if interview else None


def _check_reader(db: Session, session: InterviewSession, user_id: int, role: str) -> None:
    if role == RECRUITER:
        if _interview_owner(db, session) != user_id:
            raise Forbidden("not the owner of this interview")
    elif session.user_id != user_id:
        raise Forbidden("not your session")


def get_results(
    db: Session,
    session_id: int,
    *,
    user_id: int,
    role: str,
    catalog: QuestionCatalog = default_catalog,
) -> ResultsOut:
    session = _load(db, session_id)
    _check_reader(db, session, user_id, role)

    # an abandoned session is never summarized
    if session.status == SessionStatus.abandoned and session.evaluated_at is None:
        return ResultsOut(session_id=session.id, status="abandoned")

    # partial scores are never shown; "in_progress" until the summary has run
    if session.evaluated_at is None:
        return ResultsOut(session_id=session.id, status="in_progress")

    answers = {a.question_index: a for a in session.answers}
    per_question = []
    for aq in catalog.ordered_questions(db, session.interview_id):
        a = answers.get(aq.index)
        if a is None:
            continue
        per_question.append(
            QuestionResult(
                question_index=aq.index,
                question_id=aq.question_id,
                question_text=aq.question.question_text,
                type=getattr(aq.question.type, "value", aq.question.type),
                difficulty=getattr(aq.question.difficulty, "value", aq.question.difficulty),
                points=aq.points,
                answer_text=a.answer_text,
                auto_submitted=bool(a.auto_submitted),
                score=a.score,
                feedback=a.feedback,
                time_taken=a.time_taken,
                grader=a.ai_model_used,
            )
        )

    summary = SessionSummary(
        final_score=session.final_score or 0,
        max_score=session.max_score or 0,
        percentage=session.percentage or 0.0,
        ai_summary=session.ai_summary,
        recommendation=session.recommendation,
        evaluated_at=as_utc(session.evaluated_at),
        recruiter_notes=session.recruiter_notes if role == RECRUITER else None,
    )
    return ResultsOut(
        session_id=session.id,
        status="completed",
        summary=summary,
        per_question_results=per_question,
    )


def update_recruiter_notes(db: Session, session_id: int, *, recruiter_id: int, notes: str) -> InterviewSession:
    session = _load(db, session_id)
    if _interview_owner(db, session) != recruiter_id:
        raise Forbidden("only the interview owner may edit notes")
    session.recruiter_notes = notes
    db.commit()
    db.refresh(session)
    return session


def get_session_timeline(db: Session, session_id: int, *, recruiter_id: int) -> SessionTimeline:
    session = _load(db, session_id)
    if _interview_owner(db, session) != recruiter_id:
        raise Forbidden("not the owner of this interview")
    rows = tl.session_timeline(db, session_id)
    return SessionTimeline(
        session_id=session_id,
        events=[
            TimelineEvent(
                timestamp=as_utc(row.created_at),
                type=row.event_type,
                question_index=row.question_index,
                payload=row.payload or {},
            )
            for row in rows
        ],
    )

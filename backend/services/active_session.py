from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from models.interview_session import SessionStatus
from schemas.session import ActiveSessionOut, QuestionOut, SessionOut
from services import session_state
from services.answer_intake import Enqueue
from services.auto_advance import sweep_expired_questions
from services.catalog import AssignedQuestion, QuestionCatalog, default_catalog
from services.clock import QuestionClock
from utils.timeutil import as_utc, utcnow


def get_active_session(
    db: Session,
    candidate_id: int,
    *,
    interview_id: Optional[int] = None,
    client_time: Optional[datetime] = None,
    enqueue: Optional[Enqueue] = None,
    catalog: QuestionCatalog = default_catalog,
    now: Optional[datetime] = None,
) -> Optional[ActiveSessionOut]:
    """
    Re-attach a candidate to their in-progress session.

    Runs the auto-advance sweep first, then recomputes every timing value from
    server state. Returns None when there is nothing to resume.
    """
    now = now or utcnow()
    session = session_state.find_active_session(db, candidate_id, interview_id)
    if session is None:
        return None

    session_state.ensure_resumable(db, session, now)

    sweep = sweep_expired_questions(db, session, now=now, enqueue=enqueue, catalog=catalog)

    questions = catalog.ordered_questions(db, session.interview_id)
    clock = QuestionClock(session.started_at, [q.time_limit for q in questions])
    cursor = session.current_question_index
    running = session.status == SessionStatus.in_progress and cursor < clock.total_questions

    question_started_at = None
    if running and client_time is not None:
        question_started_at = clock.question_start_for_client(cursor, now, as_utc(client_time))

    return ActiveSessionOut(
        session=SessionOut.model_validate(session),
        questions=[_question_out(q) for q in questions],
        time_remaining=clock.remaining(cursor, now) if running else 0,
        total_elapsed=max(0, int((now - as_utc(session.started_at)).total_seconds())),
        server_time=now,
        can_resume=running,
        was_auto_advanced=sweep.was_auto_advanced,
        auto_advanced_count=len(sweep.advanced),
        question_started_at=question_started_at,
    )


def _question_out(aq: AssignedQuestion) -> QuestionOut:
    q = aq.question
    return QuestionOut(
        index=aq.index,
        id=q.id,
        type=getattr(q.type, "value", q.type),
        difficulty=getattr(q.difficulty, "value", q.difficulty),
        question_text=q.question_text,
        time_limit=aq.time_limit,
        points=aq.points,
        options=list(q.options) if q.options else None,
        language=q.language,
        starter_code=q.starter_code,
        min_words=q.min_words,
        max_words=q.max_words,
    )

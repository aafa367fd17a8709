"""
The single write path for answers.

Order of checks for submit_answer:
  1. token must belong to a session (and to the caller, when known)  -> Forbidden
  2. an answer already stored for that question                      -> no-op
  3. session must be in_progress and the index must be the cursor    -> OutOfSequence
  4. lapsed inactivity window                                         -> Expired
     an answer past the question deadline (plus grace) is stored as the
     time-expired sentinel instead of the submitted text
  5. insert answer + move cursor in one transaction, complete if last
  6. after commit, hand the answer to the evaluation queue
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import settings
from core.errors import Forbidden, OutOfSequence
from models.interview_answers import Answer
from models.interview_session import InterviewSession, SessionStatus
from services import session_state
from services import timeline_logger as tl
from services.catalog import QuestionCatalog, default_catalog
from services.clock import QuestionClock
from tasks.evaluation_queue import EvaluationJob
from utils.timeutil import utcnow

log = logging.getLogger(__name__)

NO_ANSWER_TEXT = "No answer provided (time expired)"

Enqueue = Callable[[EvaluationJob], bool]


@dataclass
class IntakeResult:
    completed: bool
    duplicate: bool = False
    time_expired: bool = False
    answer_id: Optional[int] = None
    job: Optional[EvaluationJob] = None


def submit_answer(
    db: Session,
    *,
    session_token: str,
    question_index: int,
    answer_text: str,
    candidate_id: Optional[int] = None,
    auto_submitted: bool = False,
    enqueue: Optional[Enqueue] = None,
    catalog: QuestionCatalog = default_catalog,
    now: Optional[datetime] = None,
) -> IntakeResult:
    now = now or utcnow()

    session = (
        db.query(InterviewSession)
        .filter(InterviewSession.session_token == session_token)
        .first()
    )
    if session is None or (candidate_id is not None and session.user_id != candidate_id):
        raise Forbidden("invalid session token")

    questions = catalog.ordered_questions(db, session.interview_id)
    total = len(questions)
    if question_index < 0 or question_index >= total:
        raise _out_of_sequence(session, question_index)

    assigned = questions[question_index]

    if _existing_answer(db, session.id, assigned.question_id) is not None:
        log.info(
            "duplicate answer ignored",
            extra={"session_id": session.id, "question_index": question_index},
        )
        return IntakeResult(completed=session.status == SessionStatus.completed, duplicate=True)

    if session.status != SessionStatus.in_progress or session.current_question_index != question_index:
        raise _out_of_sequence(session, question_index)

    clock = QuestionClock(session.started_at, [q.time_limit for q in questions])
    time_expired = False
    if not auto_submitted:
        session_state.ensure_resumable(db, session, now)
        grace = timedelta(seconds=settings.answer_grace_seconds)
        if clock.is_expired(question_index, now - grace):
            log.info(
                "late answer replaced by time-expired sentinel",
                extra={"session_id": session.id, "question_index": question_index},
            )
            answer_text = NO_ANSWER_TEXT
            auto_submitted = True
            time_expired = True

    if auto_submitted:
        time_taken = assigned.time_limit
    else:
        time_taken = max(0, int((now - clock.question_start(question_index)).total_seconds()))

    answer = Answer(
        session_id=session.id,
        question_id=assigned.question_id,
        question_index=question_index,
        answer_text=answer_text,
        auto_submitted=auto_submitted,
        time_taken=time_taken,
        submitted_at=now,
        evaluated=False,
    )
    db.add(answer)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        db.refresh(session)
        log.info(
            "concurrent duplicate answer ignored",
            extra={"session_id": session.id, "question_index": question_index},
        )
        return IntakeResult(completed=session.status == SessionStatus.completed, duplicate=True)

    if not session_state.advance_cursor(db, session.id, question_index):
        db.rollback()
        db.refresh(session)
        raise _out_of_sequence(session, question_index)

    tl.log_timeline_event(
        db,
        session_id=session.id,
        question_index=question_index,
        event_type=tl.AUTO_ADVANCED if auto_submitted else tl.ANSWER_SUBMITTED,
        payload={"answer_id": answer.id, "time_taken": time_taken},
    )

    completed = False
    if question_index + 1 >= total:
        session_state.complete_session(db, session.id, total, now)
        completed = True

    db.commit()
    db.refresh(session)
    completed = completed or session.status == SessionStatus.completed

    job = EvaluationJob(
        session_id=session.id,
        answer_id=answer.id,
        question_index=question_index,
        question=assigned.snapshot(),
        answer_text=answer_text,
        auto_submitted=auto_submitted,
    )
    if enqueue is not None:
        enqueue(job)
    else:
        log.warning("no evaluation queue attached; answer left for recovery", extra={"answer_id": answer.id})

    log.info(
        "answer accepted",
        extra={
            "session_id": session.id,
            "question_index": question_index,
            "auto_submitted": auto_submitted,
            "completed": completed,
        },
    )
    return IntakeResult(completed=completed, time_expired=time_expired, answer_id=answer.id, job=job)


def _existing_answer(db: Session, session_id: int, question_id: int) -> Optional[Answer]:
    return (
        db.query(Answer)
        .filter(Answer.session_id == session_id, Answer.question_id == question_id)
        .first()
    )


def _out_of_sequence(session: InterviewSession, question_index: int) -> OutOfSequence:
    return OutOfSequence(
        "answer submitted out of sequence",
        {
            "expected_index": session.current_question_index,
            "received_index": question_index,
            "status": getattr(session.status, "value", session.status),
        },
    )

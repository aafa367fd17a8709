import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from core.errors import OutOfSequence
from models.interview_session import InterviewSession, SessionStatus
from services.answer_intake import NO_ANSWER_TEXT, Enqueue, submit_answer
from services.catalog import QuestionCatalog, default_catalog
from services.clock import QuestionClock

log = logging.getLogger(__name__)


@dataclass
class SweepResult:
    advanced: List[int] = field(default_factory=list)
    completed: bool = False

    @property
    def was_auto_advanced(self) -> bool:
        return bool(self.advanced)


def sweep_expired_questions(
    db: Session,
    session: InterviewSession,
    *,
    now: datetime,
    enqueue: Optional[Enqueue] = None,
    catalog: QuestionCatalog = default_catalog,
) -> SweepResult:
    """
    Force-submit every question whose full time limit passed while the
    candidate was away. Stops at the first question still running.
    """
    result = SweepResult()
    if session.status != SessionStatus.in_progress or session.started_at is None:
        return result

    questions = catalog.ordered_questions(db, session.interview_id)
    clock = QuestionClock(session.started_at, [q.time_limit for q in questions])

    # each pass either moves the cursor or stops, so this is bounded by the question count
    for _ in range(len(questions)):
        index = session.current_question_index
        if session.status != SessionStatus.in_progress or index >= clock.total_questions:
            break
        if not clock.is_expired(index, now):
            break
        try:
            intake = submit_answer(
                db,
                session_token=session.session_token,
                question_index=index,
                answer_text=NO_ANSWER_TEXT,
                auto_submitted=True,
                enqueue=enqueue,
                catalog=catalog,
                now=now,
            )
        except OutOfSequence:
            # a live submission moved the cursor first; re-read and keep going
            db.refresh(session)
            continue
        db.refresh(session)
        if not intake.duplicate:
            result.advanced.append(index)
        if intake.completed:
            result.completed = True
            break

    if result.advanced:
        log.info(
            "auto-advanced expired questions",
            extra={"session_id": session.id, "indices": result.advanced, "completed": result.completed},
        )
    return result

# backend/api/candidate.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.deps import AuthContext, get_db, get_evaluation_queue, require_candidate
from core import security
from schemas.session import (
    ActiveSessionOut,
    ResultsOut,
    SessionOut,
    StartSessionIn,
    SubmitAnswerIn,
    SubmitAnswerOut,
)
from services import results as results_service
from services import session_state
from services.active_session import get_active_session
from services.answer_intake import submit_answer
from tasks.evaluation_queue import EvaluationQueue

router = APIRouter(prefix="/candidate", tags=["candidate"])


def _enqueue(queue: Optional[EvaluationQueue]):
    return queue.enqueue if queue is not None else None


@router.post("/sessions", response_model=SessionOut)
def start_session(
    payload: StartSessionIn,
    db: Session = Depends(get_db),
    user: AuthContext = Depends(require_candidate),
):
    return session_state.start_session(
        db,
        candidate_id=user.user_id,
        interview_id=payload.interview_id,
        resume_id=payload.resume_id,
    )


@router.get("/sessions/active", response_model=Optional[ActiveSessionOut])
def active_session(
    interview_id: Optional[int] = Query(None),
    client_time: Optional[datetime] = Query(None, alias="clientTime"),
    db: Session = Depends(get_db),
    user: AuthContext = Depends(require_candidate),
    queue: Optional[EvaluationQueue] = Depends(get_evaluation_queue),
):
    return get_active_session(
        db,
        user.user_id,
        interview_id=interview_id,
        client_time=client_time,
        enqueue=_enqueue(queue),
    )


@router.post("/answers", response_model=SubmitAnswerOut)
def post_answer(
    payload: SubmitAnswerIn,
    db: Session = Depends(get_db),
    user: AuthContext = Depends(require_candidate),
    queue: Optional[EvaluationQueue] = Depends(get_evaluation_queue),
):
    res = submit_answer(
        db,
        session_token=payload.session_token,
        question_index=payload.question_index,
        answer_text=payload.answer,
        candidate_id=user.user_id,
        enqueue=_enqueue(queue),
    )
    return SubmitAnswerOut(completed=res.completed, duplicate=res.duplicate, time_expired=res.time_expired)


@router.get("/results/{session_id}", response_model=ResultsOut, response_model_exclude_none=True)
def candidate_results(
    session_id: int,
    db: Session = Depends(get_db),
    user: AuthContext = Depends(require_candidate),
):
    return results_service.get_results(db, session_id, user_id=user.user_id, role=security.CANDIDATE)

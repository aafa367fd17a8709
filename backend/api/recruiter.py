# backend/api/recruiter.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.deps import AuthContext, get_db, require_recruiter
from core import security
from schemas.session import RecruiterNotesIn, ResultsOut, SessionTimeline
from services import results as results_service

router = APIRouter(prefix="/recruiter", tags=["recruiter"])


@router.get("/sessions/{session_id}/results", response_model=ResultsOut, response_model_exclude_none=True)
def recruiter_results(
    session_id: int,
    db: Session = Depends(get_db),
    user: AuthContext = Depends(require_recruiter),
):
    return results_service.get_results(db, session_id, user_id=user.user_id, role=security.RECRUITER)


@router.patch("/sessions/{session_id}/notes")
def update_notes(
    session_id: int,
    payload: RecruiterNotesIn,
    db: Session = Depends(get_db),
    user: AuthContext = Depends(require_recruiter),
):
    s = results_service.update_recruiter_notes(
        db, session_id, recruiter_id=user.user_id, notes=payload.notes
    )
    return {"session_id": s.id, "recruiter_notes": s.recruiter_notes}


@router.get("/sessions/{session_id}/timeline", response_model=SessionTimeline)
def session_timeline(
    session_id: int,
    db: Session = Depends(get_db),
    user: AuthContext = Depends(require_recruiter),
):
    return results_service.get_session_timeline(db, session_id, recruiter_id=user.user_id)

# backend/api/ops.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.deps import AuthContext, get_db, get_evaluation_queue, require_recruiter
from services import session_state
from tasks.evaluation_queue import EvaluationQueue

log = logging.getLogger(__name__)

router = APIRouter(prefix="/ops", tags=["ops"])

@router.get("/queue")
def queue_status(queue: Optional[EvaluationQueue] = Depends(get_evaluation_queue)):
    if queue is None:
        return {"running": False, "workers": 0, "busy_workers": 0, "queue_size": 0, "pending_retries": 0}
    return queue.status()

@router.post("/sessions/abandon-expired")
def abandon_expired(
    db: Session = Depends(get_db),
    user: AuthContext = Depends(require_recruiter),
):
    ids = session_state.abandon_expired_sessions(db)
    log.info("expired sessions abandoned", extra={"count": len(ids), "requested_by": user.user_id})
    return {"abandoned": ids}

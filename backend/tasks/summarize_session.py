# backend/tasks/summarize_session.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ai import prompts
from ai.llm_client import ModelClient
from core.errors import GradingFailure
from db.models import Interview
from db.session import SessionLocal
from models.interview_answers import Answer
from models.interview_questions import InterviewQuestion
from models.interview_session import InterviewSession, SessionStatus
from services import timeline_logger as tl
from utils.timeutil import utcnow

log = logging.getLogger(__name__)

# (minimum percentage, category), checked top-down
RECOMMENDATION_BANDS = [
    (80.0, "Strong Hire"),
    (65.0, "Hire"),
    (50.0, "Maybe"),
    (0.0, "No Hire"),
]


def recommendation_for(percentage: float) -> str:
    for floor, label in RECOMMENDATION_BANDS:
        if percentage >= floor:
            return label
    return RECOMMENDATION_BANDS[-1][1]


@dataclass
class SessionTotals:
    session_id: int
    final_score: int
    max_score: int
    percentage: float
    recommendation: str
    prompt: str
    breakdown: List[dict]


def _percentage(final_score: int, max_score: int) -> float:
    if max_score <= 0:
        return 0.0
    return final_score / max_score * 100.0


def template_summary(t: SessionTotals) -> str:
    """Deterministic narrative used when the model cannot produce one."""
    weak = [b for b in t.breakdown if b["points"] and b["score"] < b["points"] / 2]
    strong = [b for b in t.breakdown if b["points"] and b["score"] >= b["points"] * 0.8]
    parts = [
        f"The candidate scored {t.final_score}/{t.max_score} ({t.percentage:.1f}%).",
        f"Strong results on {len(strong)} of {len(t.breakdown)} questions.",
    ]
    if weak:
        parts.append(f"{len(weak)} question(s) scored below half marks and need review.")
    parts.append(f"Recommendation: {t.recommendation}.")
    return " ".join(parts)


class SummaryAggregator:
    def __init__(
        self,
        client: Optional[ModelClient] = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.client = client or ModelClient()
        self.session_factory = session_factory

    async def finalize(self, session_id: int) -> bool:
        """
        Compute totals and the narrative once every answer of a completed
        session is evaluated. Returns True only for the call that stored them.
        """
        totals = await asyncio.to_thread(self._collect, session_id)
        if totals is None:
            return False

        try:
            narrative = await self.client.generate_text(totals.prompt)
        except GradingFailure as e:
            log.warning("summary generation failed, using template", extra={"session_id": session_id, "error": e.message})
            narrative = template_summary(totals)

        stored = await asyncio.to_thread(self._store, totals, narrative)
        if stored:
            log.info(
                "session evaluated",
                extra={
                    "session_id": session_id,
                    "final_score": totals.final_score,
                    "max_score": totals.max_score,
                    "percentage": round(totals.percentage, 1),
                },
            )
        return stored

    def _collect(self, session_id: int) -> Optional[SessionTotals]:
        db = self.session_factory()
        try:
            session = db.get(InterviewSession, session_id)
            if session is None or session.status != SessionStatus.completed or session.evaluated_at is not None:
                return None

            assignments = (
                db.query(InterviewQuestion)
                .filter(InterviewQuestion.interview_id == session.interview_id)
                .order_by(InterviewQuestion.order_index.asc())
                .all()
            )
            answers = {
                a.question_index: a
                for a in db.query(Answer).filter(Answer.session_id == session_id).all()
            }
            if len(answers) < len(assignments) or not all(a.evaluated for a in answers.values()):
                return None

            final_score = sum(int(a.score or 0) for a in answers.values())
            max_score = sum(int(aq.points) for aq in assignments)
            percentage = _percentage(final_score, max_score)
            recommendation = recommendation_for(percentage)

            breakdown = []
            for i, aq in enumerate(assignments):
                a = answers[i]
                q = aq.question
                breakdown.append(
                    {
                        "n": i + 1,
                        "type": getattr(q.type, "value", q.type),
                        "difficulty": getattr(q.difficulty, "value", q.difficulty),
                        "score": int(a.score or 0),
                        "points": int(aq.points),
                        "time_taken": a.time_taken or 0,
                        "question": q.question_text,
                    }
                )

            interview = db.get(Interview, session.interview_id)
            prompt = prompts.SUMMARY_PROMPT.format(
                title=interview.title if interview else "",
                job_role=interview.job_role if interview else "",
                final_score=final_score,
                max_score=max_score,
                percentage=percentage,
                breakdown="\n".join(prompts.BREAKDOWN_LINE.format(**b) for b in breakdown),
                recommendation=recommendation,
            )
            return SessionTotals(
                session_id=session_id,
                final_score=final_score,
                max_score=max_score,
                percentage=percentage,
                recommendation=recommendation,
                prompt=prompt,
                breakdown=breakdown,
            )
        finally:
            db.close()

    def _store(self, t: SessionTotals, narrative: str) -> bool:
        db = self.session_factory()
        try:
            updated = (
                db.query(InterviewSession)
                .filter(
                    InterviewSession.id == t.session_id,
                    InterviewSession.evaluated_at.is_(None),
                )
                .update(
                    {
                        InterviewSession.final_score: t.final_score,
                        InterviewSession.max_score: t.max_score,
                        InterviewSession.percentage: t.percentage,
                        InterviewSession.ai_summary: narrative,
                        InterviewSession.recommendation: t.recommendation,
                        InterviewSession.evaluated_at: utcnow(),
                    },
                    synchronize_session=False,
                )
            )
            if updated:
                tl.log_timeline_event(
                    db,
                    session_id=t.session_id,
                    event_type=tl.SESSION_EVALUATED,
                    payload={
                        "final_score": t.final_score,
                        "max_score": t.max_score,
                        "percentage": round(t.percentage, 2),
                        "recommendation": t.recommendation,
                    },
                )
            db.commit()
            return updated == 1
        finally:
            db.close()

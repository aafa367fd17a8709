"""
Read-side adapters over the interview/question catalog and resume verification.

Both collaborators live outside the session core; these SQL-backed versions
read the tables in db/models.py and can be swapped for anything implementing
the same protocol.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol

from sqlalchemy.orm import Session

from db.models import Interview, InterviewStatus, Question, QuestionType, Resume
from models.interview_questions import InterviewQuestion
from schemas.grading import CodeMaterial, McqMaterial, QuestionSnapshot, ShortAnswerMaterial
from utils.timeutil import as_utc


@dataclass(frozen=True)
class AssignedQuestion:
    index: int
    question: Question
    points: int

    @property
    def question_id(self) -> int:
        return self.question.id

    @property
    def time_limit(self) -> int:
        return int(self.question.time_limit)

    def snapshot(self) -> QuestionSnapshot:
        return QuestionSnapshot(
            question_id=self.question.id,
            question_text=self.question.question_text,
            difficulty=_enum_value(self.question.difficulty),
            points=self.points,
            material=grading_material(self.question),
        )


class QuestionCatalog(Protocol):
    def ordered_questions(self, db: Session, interview_id: int) -> List[AssignedQuestion]: ...


class ResumeVerifier(Protocol):
    def is_verified(self, db: Session, candidate_id: int, resume_id: int) -> bool: ...


class SqlQuestionCatalog:
    def ordered_questions(self, db: Session, interview_id: int) -> List[AssignedQuestion]:
        rows = (
            db.query(InterviewQuestion)
            .filter(InterviewQuestion.interview_id == interview_id)
            .order_by(InterviewQuestion.order_index.asc())
            .all()
        )
        return [
            AssignedQuestion(index=i, question=row.question, points=int(row.points))
            for i, row in enumerate(rows)
        ]


class SqlResumeVerifier:
    def is_verified(self, db: Session, candidate_id: int, resume_id: int) -> bool:
        resume = db.get(Resume, resume_id)
        return bool(resume and resume.user_id == candidate_id and resume.verified_at is not None)


def grading_material(q: Question):
    qtype = QuestionType(_enum_value(q.type))
    if qtype == QuestionType.mcq:
        return McqMaterial(options=list(q.options or []), correct_answer=q.correct_answer or "")
    if qtype == QuestionType.short_answer:
        return ShortAnswerMaterial(
            expected_keywords=list(q.expected_keywords or []),
            min_words=q.min_words,
            max_words=q.max_words,
        )
    return CodeMaterial(
        language=q.language,
        starter_code=q.starter_code,
        sample_solution=q.sample_solution,
        evaluation_criteria=list(q.evaluation_criteria or []),
    )


def interview_closed_reason(interview: Interview, candidate_id: int, now: datetime) -> Optional[str]:
    """Why the candidate may not start this interview right now, or None."""
    if _enum_value(interview.status) != InterviewStatus.published.value:
        return "interview is not published"
    opens_at = as_utc(interview.opens_at)
    if opens_at is not None and now < opens_at:
        return "interview is not open yet"
    deadline = as_utc(interview.deadline)
    if deadline is not None and now >= deadline:
        return "interview deadline has passed"
    if not interview.is_public and candidate_id not in (interview.assigned_candidates or []):
        return "interview is not assigned to this candidate"
    return None


def _enum_value(v) -> str:
    return getattr(v, "value", v)


default_catalog = SqlQuestionCatalog()
default_verifier = SqlResumeVerifier()

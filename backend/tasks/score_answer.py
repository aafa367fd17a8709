# backend/tasks/score_answer.py
"""
Per-question graders, one per question type.

Model failures on a non-final attempt propagate as GradingFailure so the queue
retries the job; on the final attempt each grader applies its own fallback
(keyword-only for short answers, partial credit for code) and flags the
answer for manual review.
"""
from __future__ import annotations

import logging
import math
from typing import Dict, Optional, Protocol

from ai import prompts
from ai.llm_client import ModelClient
from core.config import settings
from core.errors import GradingFailure
from db.models import QuestionType
from schemas.grading import (
    CodeReview,
    Feedback,
    GradeResult,
    QuestionSnapshot,
    SemanticReview,
)

log = logging.getLogger(__name__)

KEYWORD_SHARE = 0.5


class Grader(Protocol):
    name: str

    async def grade(self, question: QuestionSnapshot, answer: str, *, final_attempt: bool) -> GradeResult: ...


def _round_score(x: float, points: int) -> int:
    # half-up, then clamp into [0, points]
    return max(0, min(int(points), int(math.floor(x + 0.5))))


# ------------------------------
# mcq
# ------------------------------
class ExactMatchGrader:
    name = "exact_match"

    async def grade(self, question: QuestionSnapshot, answer: str, *, final_attempt: bool = True) -> GradeResult:
        correct = (question.material.correct_answer or "").strip()
        is_correct = (answer or "").strip() == correct
        score = question.points if is_correct else 0
        fb = Feedback(
            total_score=score,
            overall_feedback="Correct!" if is_correct else f"Incorrect. The correct answer is: {correct}",
            strengths=["Correct answer selected"] if is_correct else [],
            improvements=[] if is_correct else ["Review the concept and try again"],
        )
        return GradeResult(score=score, feedback=fb, grader=self.name)


# ------------------------------
# short_answer
# ------------------------------
class KeywordSemanticGrader:
    def __init__(self, client: ModelClient):
        self.client = client
        self.name = f"keyword+{client.model_name}"

    async def grade(self, question: QuestionSnapshot, answer: str, *, final_attempt: bool) -> GradeResult:
        m = question.material
        points = question.points
        keywords = [k for k in m.expected_keywords if k and k.strip()]
        lowered = (answer or "").lower()

        keyword_cap = points * KEYWORD_SHARE if keywords else 0.0
        semantic_cap = points - keyword_cap
        found = [k for k in keywords if k.lower() in lowered]
        keyword_score = (len(found) / len(keywords)) * keyword_cap if keywords else 0.0

        manual_review = False
        try:
            review = await self.client.evaluate(
                prompts.SHORT_ANSWER_PROMPT.format(
                    question=question.question_text,
                    answer=answer,
                    keywords=", ".join(keywords) or "(none)",
                ),
                SemanticReview,
            )
            semantic_score = semantic_cap * review.semantic_score / 100.0
            overall, strengths, improvements = review.feedback, list(review.strengths), list(review.improvements)
        except GradingFailure as e:
            if not final_attempt:
                raise
            log.warning("semantic grading unavailable, keyword-only score", extra={"error": e.message})
            manual_review = True
            semantic_score = 0.0
            overall = "AI evaluation failed, manual review needed"
            strengths, improvements = [], ["Please review this answer manually"]

        total = min(float(points), keyword_score + semantic_score)

        word_count = len((answer or "").split())
        if m.min_words is not None and word_count < m.min_words:
            improvements.append(f"Answer is shorter than the expected {m.min_words} words")
        if m.max_words is not None and word_count > m.max_words:
            improvements.append(f"Answer is longer than the expected {m.max_words} words")

        fb = Feedback(
            total_score=round(total, 2),
            overall_feedback=overall,
            strengths=strengths,
            improvements=improvements,
            manual_review=manual_review,
            keyword_score=round(keyword_score, 2),
            semantic_score=round(semantic_score, 2),
            keywords_found=found,
            word_count=word_count,
        )
        return GradeResult(score=_round_score(total, points), feedback=fb, grader=self.name)


# ------------------------------
# code
# ------------------------------
class RubricCodeGrader:
    def __init__(self, client: ModelClient, fallback_credit: Optional[float] = None):
        self.client = client
        self.name = f"rubric+{client.model_name}"
        self.fallback_credit = settings.code_fallback_credit if fallback_credit is None else fallback_credit

    async def grade(self, question: QuestionSnapshot, answer: str, *, final_attempt: bool) -> GradeResult:
        m = question.material
        points = question.points
        try:
            review = await self.client.evaluate(
                prompts.CODE_REVIEW_PROMPT.format(
                    question=question.question_text,
                    language=m.language or "unspecified",
                    solution=m.sample_solution or "No sample solution provided",
                    criteria=prompts.numbered(m.evaluation_criteria),
                    code=answer,
                ),
                CodeReview,
            )
        except GradingFailure as e:
            if not final_attempt:
                raise
            log.warning("code review unavailable, awarding partial credit", extra={"error": e.message})
            score = int(math.floor(points * self.fallback_credit))
            fb = Feedback(
                total_score=score,
                overall_feedback="AI evaluation failed, manual review needed",
                strengths=[],
                improvements=["Please review this code manually"],
                manual_review=True,
                criteria_scores={},
                code_quality="fair",
                completeness="partial",
            )
            return GradeResult(score=score, feedback=fb, grader=self.name)

        raw = points * review.score / 100.0
        score = _round_score(raw, points)
        fb = Feedback(
            total_score=score,
            overall_feedback=review.overall_feedback,
            strengths=review.strengths,
            improvements=review.improvements,
            criteria_scores=review.criteria_scores,
            code_quality=review.code_quality,
            completeness=review.completeness,
        )
        return GradeResult(score=score, feedback=fb, grader=self.name)


# ------------------------------
# dispatch
# ------------------------------
class GraderRegistry:
    def __init__(self, graders: Dict[QuestionType, Grader]):
        self.graders = graders

    @classmethod
    def default(cls, client: Optional[ModelClient] = None) -> "GraderRegistry":
        client = client or ModelClient()
        return cls(
            {
                QuestionType.mcq: ExactMatchGrader(),
                QuestionType.short_answer: KeywordSemanticGrader(client),
                QuestionType.code: RubricCodeGrader(client),
            }
        )

    async def grade(
        self,
        question: QuestionSnapshot,
        answer: str,
        *,
        final_attempt: bool,
        auto_submitted: bool = False,
    ) -> GradeResult:
        if auto_submitted:
            return unanswered_result(question)
        grader = self.graders[QuestionType(question.material.type)]
        return await grader.grade(question, answer, final_attempt=final_attempt)


def unanswered_result(question: QuestionSnapshot) -> GradeResult:
    fb = Feedback(
        total_score=0,
        overall_feedback="No answer was submitted before the time limit.",
        improvements=["Manage time so every question receives an answer"],
    )
    return GradeResult(score=0, feedback=fb, grader="time_expired")


def exhausted_result(question: QuestionSnapshot, error: str, credit: float) -> GradeResult:
    score = int(math.floor(question.points * credit))
    fb = Feedback(
        total_score=score,
        overall_feedback=f"Evaluation failed: {error}",
        improvements=["Manual review required due to evaluation failure"],
        manual_review=True,
    )
    return GradeResult(score=score, feedback=fb, grader="failed")

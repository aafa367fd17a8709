from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ------------------------------
# Grading material (one variant per question type)
# ------------------------------
class McqMaterial(BaseModel):
    type: Literal["mcq"] = "mcq"
    options: List[str] = Field(default_factory=list)
    correct_answer: str = ""


class ShortAnswerMaterial(BaseModel):
    type: Literal["short_answer"] = "short_answer"
    expected_keywords: List[str] = Field(default_factory=list)
    min_words: Optional[int] = None
    max_words: Optional[int] = None


class CodeMaterial(BaseModel):
    type: Literal["code"] = "code"
    language: Optional[str] = None
    starter_code: Optional[str] = None
    sample_solution: Optional[str] = None
    evaluation_criteria: List[str] = Field(default_factory=list)


GradingMaterial = Annotated[
    Union[McqMaterial, ShortAnswerMaterial, CodeMaterial],
    Field(discriminator="type"),
]


class QuestionSnapshot(BaseModel):
    """What a grader needs to know about the question, frozen at submission time."""
    model_config = ConfigDict(frozen=True)

    question_id: int
    question_text: str
    difficulty: str = "medium"
    points: int
    material: GradingMaterial


# ------------------------------
# Uniform grader output
# ------------------------------
class Feedback(BaseModel):
    # grader-specific sub-scores (keyword_score, criteria_scores, ...) ride along as extras
    model_config = ConfigDict(extra="allow")

    total_score: float
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    overall_feedback: str = ""
    manual_review: bool = False


class GradeResult(BaseModel):
    score: int
    feedback: Feedback
    grader: str


# ------------------------------
# Structured model output
# ------------------------------
class SemanticReview(BaseModel):
    # 0-100, share of the semantic component earned
    semantic_score: float = Field(ge=0, le=100)
    feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)


class CodeReview(BaseModel):
    # 0-100, share of the question points earned
    score: float = Field(ge=0, le=100)
    criteria_scores: Dict[str, float] = Field(default_factory=dict)
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    overall_feedback: str = ""
    code_quality: Literal["excellent", "good", "fair", "poor"] = "fair"
    completeness: Literal["complete", "mostly_complete", "partial", "incomplete"] = "partial"

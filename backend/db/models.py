# db/models.py
"""
Catalog tables owned by the interview/question authoring service.

The session core only reads these: an interview's ordered question list is
immutable for the lifetime of any session started against it.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    func,
    Boolean,
    JSON,
)
from .session import Base

import enum
from sqlalchemy.types import Enum as SAEnum


class QuestionType(str, enum.Enum):
    mcq = "mcq"
    short_answer = "short_answer"
    code = "code"


class Difficulty(str, enum.Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class InterviewStatus(str, enum.Enum):
    draft = "draft"
    published = "published"
    closed = "closed"


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(SAEnum(QuestionType, native_enum=False), nullable=False)
    difficulty = Column(SAEnum(Difficulty, native_enum=False), nullable=False, server_default="medium")
    category = Column(String(100), nullable=True)
    question_text = Column(Text, nullable=False)

    # mcq
    options = Column(JSON, nullable=True)
    correct_answer = Column(Text, nullable=True)

    # short_answer
    expected_keywords = Column(JSON, nullable=True)
    min_words = Column(Integer, nullable=True)
    max_words = Column(Integer, nullable=True)

    # code
    language = Column(String(50), nullable=True)
    starter_code = Column(Text, nullable=True)
    sample_solution = Column(Text, nullable=True)
    evaluation_criteria = Column(JSON, nullable=True)

    time_limit = Column(Integer, nullable=False)  # seconds
    points = Column(Integer, nullable=False)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Interview(Base):
    __tablename__ = "interviews"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    job_role = Column(String(100), nullable=False)

    is_public = Column(Boolean, default=False, nullable=False)
    assigned_candidates = Column(JSON, nullable=True)  # list of candidate ids

    opens_at = Column(DateTime(timezone=True), nullable=True)
    deadline = Column(DateTime(timezone=True), nullable=True)
    status = Column(SAEnum(InterviewStatus, native_enum=False), nullable=False, server_default="draft")

    created_by = Column(Integer, nullable=False, index=True)  # recruiter id
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Resume(Base):
    __tablename__ = "resumes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    file_name = Column(String(255), nullable=True)
    # set by the verification collaborator once the extracted profile is complete
    verified_at = Column(DateTime(timezone=True), nullable=True)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now())

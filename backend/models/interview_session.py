import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, Float, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SAEnum

from db.session import Base


class SessionStatus(str, enum.Enum):
    not_started = "not_started"
    in_progress = "in_progress"
    completed = "completed"
    abandoned = "abandoned"


class InterviewSession(Base):
    __tablename__ = "interview_sessions"
    __table_args__ = (
        UniqueConstraint("user_id", "interview_id", name="uq_session_user_interview"),
    )

    id = Column(Integer, primary_key=True, index=True)
    interview_id = Column(Integer, ForeignKey("interviews.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    resume_id = Column(Integer, ForeignKey("resumes.id"), nullable=False)

    current_question_index = Column(Integer, nullable=False, default=0)
    status = Column(
        SAEnum(SessionStatus, native_enum=False),
        nullable=False,
        default=SessionStatus.not_started,
        server_default="not_started",
    )

    session_token = Column(String(255), unique=True, nullable=False, index=True)
    locked_until = Column(DateTime(timezone=True), nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    final_score = Column(Integer, nullable=True)
    max_score = Column(Integer, nullable=True)
    percentage = Column(Float, nullable=True)
    ai_summary = Column(Text, nullable=True)
    recommendation = Column(String(20), nullable=True)
    evaluated_at = Column(DateTime(timezone=True), nullable=True)
    recruiter_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    interview = relationship("Interview")
    answers = relationship(
        "Answer",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="Answer.question_index",
    )

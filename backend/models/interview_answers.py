from sqlalchemy import Column, Integer, Text, String, Boolean, ForeignKey, JSON, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from db.session import Base


class Answer(Base):
    __tablename__ = "answers"
    __table_args__ = (
        # one answer per (session, question); intake relies on this to stay idempotent
        UniqueConstraint("session_id", "question_id", name="uq_answer_session_question"),
    )

    id = Column(Integer, primary_key=True, index=True)

    session_id = Column(
        Integer,
        ForeignKey("interview_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id = Column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
    )
    question_index = Column(Integer, nullable=False)

    answer_text = Column(Text, nullable=False)
    auto_submitted = Column(Boolean, nullable=False, default=False)

    score = Column(Integer, nullable=True)
    feedback = Column(JSON, nullable=True)
    evaluated = Column(Boolean, nullable=False, default=False)
    evaluated_at = Column(DateTime(timezone=True), nullable=True)
    ai_model_used = Column(String(50), nullable=True)

    time_taken = Column(Integer, nullable=True)  # seconds
    submitted_at = Column(DateTime(timezone=True), server_default=func.now())

    # 🔗 relationship
    session = relationship(
        "InterviewSession",
        back_populates="answers",
    )
    question = relationship("Question")

# backend/models/interview_questions.py

from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from db.session import Base


class InterviewQuestion(Base):
    """Ordered assignment of a catalog question to an interview."""
    __tablename__ = "interview_questions"
    __table_args__ = (
        UniqueConstraint("interview_id", "order_index", name="uq_interview_question_order"),
    )

    id = Column(Integer, primary_key=True, index=True)

    interview_id = Column(
        Integer,
        ForeignKey("interviews.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id = Column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
    )

    order_index = Column(Integer, nullable=False)
    # points within this interview (overrides question.points)
    points = Column(Integer, nullable=False)

    question = relationship("Question", lazy="joined")

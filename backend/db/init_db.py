from .session import Base, engine
from . import models  # noqa: F401  (catalog tables)
from models import interview_questions, interview_session, interview_answers, interview_timeline  # noqa: F401


def init_db():
    Base.metadata.create_all(bind=engine)

if __name__ == "__main__":
    init_db()

# backend/tests/conftest.py
import os
import sys
import pathlib
import tempfile
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# -------------------------------------------------------------------------------------------------
# Path & environment setup (must happen BEFORE importing your app)
# -------------------------------------------------------------------------------------------------

# Ensure project root (backend/) is importable
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Temp SQLite DB file for tests
TEST_DB_FILE = str(pathlib.Path(tempfile.gettempdir()) / "interview_core_test.sqlite")

os.environ.setdefault("DATABASE_URL", f"sqlite:///{TEST_DB_FILE}")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:3000")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("AI_PROVIDER", "stub")
os.environ.setdefault("JSON_LOGS", "0")


# -------------------------------------------------------------------------------------------------
# Import app & modules AFTER env vars
# -------------------------------------------------------------------------------------------------
from main import app
from api import deps
from core import security
from db.session import Base
from db import init_db  # noqa: F401  (registers every table on Base.metadata)
from db.models import Interview, InterviewStatus, Question, QuestionType, Resume
from models.interview_questions import InterviewQuestion
from utils.timeutil import utcnow

CANDIDATE_ID = 1
OTHER_CANDIDATE_ID = 2
RECRUITER_ID = 100
OTHER_RECRUITER_ID = 101

# -------------------------------------------------------------------------------------------------
# Test DB engine + session factory
# -------------------------------------------------------------------------------------------------
engine = create_engine(
    f"sqlite:///{TEST_DB_FILE}",
    connect_args={"check_same_thread": False},
    future=True,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

# Fresh schema each test
@pytest.fixture(scope="function", autouse=True)
def reset_db():
    """Drop + recreate DB before each test function to ensure isolation"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function")
def db():
    """Yield a fresh DB session per test function."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

def _override_get_db():
    session = TestingSessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()

# Override the app's DB dependency
app.dependency_overrides[deps.get_db] = _override_get_db


# -------------------------------------------------------------------------------------------------
# Fake evaluation queue (no worker needed for request-path tests)
# -------------------------------------------------------------------------------------------------
class FakeQueue:
    def __init__(self):
        self.jobs = []

    def enqueue(self, job):
        self.jobs.append(job)
        return True

    def status(self):
        return {"running": True, "workers": 1, "busy_workers": 0, "queue_size": len(self.jobs), "pending_retries": 0}


@pytest.fixture(scope="function")
def fake_queue():
    q = FakeQueue()
    app.dependency_overrides[deps.get_evaluation_queue] = lambda: q
    try:
        yield q
    finally:
        app.dependency_overrides.pop(deps.get_evaluation_queue, None)


# -------------------------------------------------------------------------------------------------
# TestClient
# -------------------------------------------------------------------------------------------------
@pytest.fixture(scope="session")
def client():
    return TestClient(app)


def auth_headers(user_id: int, role: str) -> dict:
    token = security.create_access_token(str(user_id), role=role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def candidate_headers():
    return auth_headers(CANDIDATE_ID, security.CANDIDATE)


@pytest.fixture
def recruiter_headers():
    return auth_headers(RECRUITER_ID, security.RECRUITER)


# -------------------------------------------------------------------------------------------------
# Catalog helpers
# -------------------------------------------------------------------------------------------------
def add_question(db, qtype: QuestionType, time_limit: int, points: int, **material) -> Question:
    q = Question(
        type=qtype,
        difficulty=material.pop("difficulty", "medium"),
        question_text=material.pop("question_text", f"{qtype.value} question"),
        time_limit=time_limit,
        points=points,
        **material,
    )
    db.add(q)
    db.flush()
    return q


def make_interview(db, questions, **fields) -> Interview:
    now = utcnow()
    interview = Interview(
        title=fields.pop("title", "Backend Engineer Screen"),
        job_role=fields.pop("job_role", "Backend Engineer"),
        status=fields.pop("status", InterviewStatus.published),
        is_public=fields.pop("is_public", True),
        created_by=fields.pop("created_by", RECRUITER_ID),
        opens_at=fields.pop("opens_at", now - timedelta(days=1)),
        deadline=fields.pop("deadline", now + timedelta(days=7)),
        **fields,
    )
    db.add(interview)
    db.flush()
    for i, q in enumerate(questions):
        db.add(InterviewQuestion(interview_id=interview.id, question_id=q.id, order_index=i, points=q.points))
    db.commit()
    return interview


def make_resume(db, user_id: int = CANDIDATE_ID, verified: bool = True) -> Resume:
    r = Resume(user_id=user_id, file_name="cv.pdf", verified_at=utcnow() if verified else None)
    db.add(r)
    db.commit()
    return r


@pytest.fixture
def two_question_interview(db):
    """Q0: mcq, 30s, 10pts, correct B. Q1: short_answer, 60s, 20pts, keywords closure/scope."""
    q0 = add_question(
        db, QuestionType.mcq, 30, 10,
        options=["A", "B", "C", "D"], correct_answer="B",
        question_text="Which option is correct?",
    )
    q1 = add_question(
        db, QuestionType.short_answer, 60, 20,
        expected_keywords=["closure", "scope"], min_words=3, max_words=200,
        question_text="What is a closure?",
    )
    interview = make_interview(db, [q0, q1])
    resume = make_resume(db)
    return interview, resume

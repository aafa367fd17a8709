# backend/tests/test_auto_advance.py
from datetime import timedelta

import pytest

from conftest import CANDIDATE_ID, FakeQueue, add_question, make_interview, make_resume
from core.errors import Expired, OutOfSequence
from db.models import QuestionType
from models.interview_answers import Answer
from models.interview_session import InterviewSession, SessionStatus
from models.interview_timeline import SessionEvent
from services import session_state
from services.active_session import get_active_session
from services.answer_intake import NO_ANSWER_TEXT, submit_answer
from utils.timeutil import as_utc, utcnow


def _started(db, interview, resume, now):
    return session_state.start_session(
        db, candidate_id=CANDIDATE_ID, interview_id=interview.id, resume_id=resume.id, now=now
    )


def test_reconnect_after_expiry_auto_advances_once(db, two_question_interview):
    interview, resume = two_question_interview
    t0 = utcnow()
    session = _started(db, interview, resume, t0)
    queue = FakeQueue()

    # Q0 is 30s; candidate comes back 45s in, inside Q1's window
    view = get_active_session(db, CANDIDATE_ID, enqueue=queue.enqueue, now=t0 + timedelta(seconds=45))
    assert view.was_auto_advanced is True
    assert view.auto_advanced_count == 1
    assert view.session.current_question_index == 1
    assert view.can_resume is True
    assert view.time_remaining == 45

    answers = db.query(Answer).filter(Answer.session_id == session.id).all()
    assert len(answers) == 1
    assert answers[0].answer_text == NO_ANSWER_TEXT
    assert answers[0].auto_submitted is True
    assert answers[0].time_taken == 30
    assert [j.auto_submitted for j in queue.jobs] == [True]

    # a second poll does not re-report the auto-advance
    again = get_active_session(db, CANDIDATE_ID, enqueue=queue.enqueue, now=t0 + timedelta(seconds=50))
    assert again.was_auto_advanced is False
    assert again.session.current_question_index == 1
    assert len(queue.jobs) == 1


def test_current_question_is_never_auto_advanced(db, two_question_interview):
    interview, resume = two_question_interview
    t0 = utcnow()
    _started(db, interview, resume, t0)

    view = get_active_session(db, CANDIDATE_ID, now=t0 + timedelta(seconds=29))
    assert view.was_auto_advanced is False
    assert view.session.current_question_index == 0
    assert view.time_remaining == 1
    assert db.query(Answer).count() == 0


def test_long_absence_completes_session(db, two_question_interview):
    interview, resume = two_question_interview
    t0 = utcnow()
    session = _started(db, interview, resume, t0)
    queue = FakeQueue()

    # both limits (30 + 60) passed, still inside the resume grace window
    view = get_active_session(db, CANDIDATE_ID, enqueue=queue.enqueue, now=t0 + timedelta(seconds=120))
    assert view.auto_advanced_count == 2
    assert view.session.status == SessionStatus.completed
    assert view.can_resume is False
    assert view.time_remaining == 0
    assert len(queue.jobs) == 2

    db.expire_all()
    assert db.get(InterviewSession, session.id).current_question_index == 2
    assert get_active_session(db, CANDIDATE_ID, now=t0 + timedelta(seconds=121)) is None


def test_advance_is_one_question_per_elapsed_limit(db):
    qs = [add_question(db, QuestionType.mcq, 10, 5, options=["A", "B"], correct_answer="A") for _ in range(5)]
    interview = make_interview(db, qs)
    resume = make_resume(db)
    t0 = utcnow()
    _started(db, interview, resume, t0)

    # 25s in: Q0 (0-10) and Q1 (10-20) expired, Q2 (20-30) still running
    view = get_active_session(db, CANDIDATE_ID, now=t0 + timedelta(seconds=25))
    assert view.auto_advanced_count == 2
    assert view.session.current_question_index == 2
    assert view.time_remaining == 5


def test_client_time_gives_reconciled_question_start(db, two_question_interview):
    interview, resume = two_question_interview
    t0 = utcnow()
    _started(db, interview, resume, t0)
    now = t0 + timedelta(seconds=10)
    client_now = now - timedelta(minutes=7)  # client clock far behind

    view = get_active_session(db, CANDIDATE_ID, client_time=client_now, now=now)
    assert view.question_started_at == t0 - timedelta(minutes=7)


def test_resume_after_grace_window_is_expired(db, two_question_interview):
    interview, resume = two_question_interview
    t0 = utcnow()
    session = _started(db, interview, resume, t0)

    late = as_utc(session.locked_until) + timedelta(seconds=1)
    with pytest.raises(Expired) as exc:
        get_active_session(db, CANDIDATE_ID, now=late)
    assert exc.value.details["canResume"] is False

    db.expire_all()
    assert db.get(InterviewSession, session.id).status == SessionStatus.abandoned
    events = [e.event_type for e in db.query(SessionEvent).order_by(SessionEvent.id).all()]
    assert events[-1] == "session_abandoned"


def test_live_submission_racing_sweep_does_not_double_advance(db, two_question_interview):
    interview, resume = two_question_interview
    t0 = utcnow()
    session = _started(db, interview, resume, t0)

    # the live answer lands right at the deadline, before the sweep runs
    submit_answer(db, session_token=session.session_token, question_index=0, answer_text="B",
                  now=t0 + timedelta(seconds=30))
    view = get_active_session(db, CANDIDATE_ID, now=t0 + timedelta(seconds=31))
    assert view.was_auto_advanced is False
    assert view.session.current_question_index == 1
    assert db.query(Answer).count() == 1


def test_abandon_expired_sessions(db, two_question_interview):
    interview, resume = two_question_interview
    t0 = utcnow()
    session = _started(db, interview, resume, t0)

    assert session_state.abandon_expired_sessions(db, now=t0 + timedelta(seconds=60)) == []
    ids = session_state.abandon_expired_sessions(db, now=as_utc(session.locked_until) + timedelta(minutes=1))
    assert ids == [session.id]

    with pytest.raises(OutOfSequence):
        submit_answer(db, session_token=session.session_token, question_index=0, answer_text="B")


def test_late_answer_is_stored_as_time_expired(db, two_question_interview):
    interview, resume = two_question_interview
    t0 = utcnow()
    session = _started(db, interview, resume, t0)
    queue = FakeQueue()

    # Q0 allows 30s; the client never polled and answers at 200s
    res = submit_answer(db, session_token=session.session_token, question_index=0, answer_text="B",
                        enqueue=queue.enqueue, now=t0 + timedelta(seconds=200))
    assert res.time_expired is True

    answer = db.query(Answer).filter(Answer.session_id == session.id).one()
    assert answer.answer_text == NO_ANSWER_TEXT
    assert answer.auto_submitted is True
    assert answer.time_taken == 30
    assert queue.jobs[0].auto_submitted is True
    assert db.get(InterviewSession, session.id).current_question_index == 1


def test_answer_inside_grace_keeps_submitted_text(db, two_question_interview):
    interview, resume = two_question_interview
    t0 = utcnow()
    session = _started(db, interview, resume, t0)

    res = submit_answer(db, session_token=session.session_token, question_index=0, answer_text="B",
                        now=t0 + timedelta(seconds=31))
    assert res.time_expired is False
    answer = db.query(Answer).filter(Answer.session_id == session.id).one()
    assert answer.answer_text == "B"
    assert answer.auto_submitted is False


def test_answer_after_lock_window_is_expired(db, two_question_interview):
    interview, resume = two_question_interview
    t0 = utcnow()
    session = _started(db, interview, resume, t0)
    late = as_utc(session.locked_until) + timedelta(seconds=1)

    with pytest.raises(Expired):
        submit_answer(db, session_token=session.session_token, question_index=0, answer_text="B", now=late)
    assert db.get(InterviewSession, session.id).status == SessionStatus.abandoned
    assert db.query(Answer).count() == 0

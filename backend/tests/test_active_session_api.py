# backend/tests/test_active_session_api.py
from datetime import timedelta

from models.interview_session import InterviewSession
from utils.timeutil import as_utc, utcnow


def _start(client, headers, interview, resume):
    return client.post(
        "/candidate/sessions",
        json={"interview_id": interview.id, "resume_id": resume.id},
        headers=headers,
    ).json()


def _backdate(db, session_id, seconds):
    s = db.get(InterviewSession, session_id)
    s.started_at = as_utc(s.started_at) - timedelta(seconds=seconds)
    db.commit()


def test_reload_after_disconnect_auto_advances(client, db, fake_queue, candidate_headers, two_question_interview):
    interview, resume = two_question_interview
    s = _start(client, candidate_headers, interview, resume)
    _backdate(db, s["id"], 40)  # Q0 (30s) lapsed while away

    r = client.get("/candidate/sessions/active", headers=candidate_headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["wasAutoAdvanced"] is True
    assert body["canResume"] is True
    assert body["session"]["current_question_index"] == 1
    assert 0 < body["timeRemaining"] <= 50
    assert body["totalElapsed"] >= 40
    assert len(body["questions"]) == 2
    assert "correct_answer" not in body["questions"][0]
    assert fake_queue.jobs[0].auto_submitted is True

    again = client.get("/candidate/sessions/active", headers=candidate_headers).json()
    assert again["wasAutoAdvanced"] is False


def test_client_time_yields_question_start(client, db, fake_queue, candidate_headers, two_question_interview):
    interview, resume = two_question_interview
    _start(client, candidate_headers, interview, resume)

    client_time = (utcnow() + timedelta(hours=2)).isoformat()
    r = client.get(
        "/candidate/sessions/active",
        params={"interview_id": interview.id, "clientTime": client_time},
        headers=candidate_headers,
    )
    body = r.json()
    assert body["questionStartedAt"] is not None
    assert body["serverTime"]


def test_expired_session_reports_cannot_resume(client, db, fake_queue, candidate_headers, two_question_interview):
    interview, resume = two_question_interview
    s = _start(client, candidate_headers, interview, resume)
    row = db.get(InterviewSession, s["id"])
    row.locked_until = utcnow() - timedelta(seconds=1)
    db.commit()

    r = client.get("/candidate/sessions/active", headers=candidate_headers)
    assert r.status_code == 410
    assert r.json()["canResume"] is False
    assert r.json()["code"] == "expired"

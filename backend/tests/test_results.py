# backend/tests/test_results.py
import asyncio
from datetime import timedelta

import pytest

from conftest import (
    OTHER_CANDIDATE_ID,
    OTHER_RECRUITER_ID,
    TestingSessionLocal,
    auth_headers,
)
from core import security
from models.interview_session import InterviewSession
from services import session_state
from utils.timeutil import as_utc
from tasks.evaluation_queue import EvaluationQueue
from tasks.score_answer import GraderRegistry
from tasks.summarize_session import RECOMMENDATION_BANDS, _percentage, recommendation_for, SummaryAggregator
from ai.llm_client import ModelClient


def _run_scenario_one(client, fake_queue, candidate_headers, interview, resume):
    s = client.post(
        "/candidate/sessions",
        json={"interview_id": interview.id, "resume_id": resume.id},
        headers=candidate_headers,
    ).json()
    token = s["session_token"]
    client.post("/candidate/answers", json={"session_token": token, "question_index": 0, "answer": "B"}, headers=candidate_headers)
    client.post("/candidate/answers", json={"session_token": token, "question_index": 1, "answer": "A closure captures scope"},
                headers=candidate_headers)
    return s["id"]


def _drain(jobs):
    async def go():
        model = ModelClient(provider="stub")
        queue = EvaluationQueue(
            GraderRegistry.default(model).grade,
            SummaryAggregator(model, session_factory=TestingSessionLocal).finalize,
            session_factory=TestingSessionLocal,
            retry_delay=0.01,
        )
        await queue.start()
        try:
            for j in jobs:
                queue.enqueue(j)
            await queue.join()
        finally:
            await queue.stop()

    asyncio.run(go())


@pytest.mark.parametrize(
    "pct,label",
    [(100, "Strong Hire"), (80, "Strong Hire"), (79.9, "Hire"), (65, "Hire"), (50, "Maybe"), (49.9, "No Hire"), (0, "No Hire")],
)
def test_recommendation_bands(pct, label):
    assert recommendation_for(pct) == label
    assert [b[1] for b in RECOMMENDATION_BANDS][-1] == "No Hire"


def test_percentage_with_zero_max():
    assert _percentage(0, 0) == 0.0
    assert _percentage(15, 30) == 50.0


def test_results_report_processing_until_summary(client, fake_queue, candidate_headers, recruiter_headers, two_question_interview):
    interview, resume = two_question_interview
    session_id = _run_scenario_one(client, fake_queue, candidate_headers, interview, resume)

    r = client.get(f"/candidate/results/{session_id}", headers=candidate_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "in_progress"
    assert "summary" not in r.json()

    _drain(fake_queue.jobs)

    r = client.get(f"/candidate/results/{session_id}", headers=candidate_headers)
    body = r.json()
    assert body["status"] == "completed"
    summary = body["summary"]
    # stub model: mcq 10/10, short answer 10 keyword + 70% of 10 semantic = 17/20
    assert summary["final_score"] == 27
    assert summary["max_score"] == 30
    assert summary["percentage"] == pytest.approx(90.0)
    assert summary["recommendation"] == "Strong Hire"
    assert [q["score"] for q in body["per_question_results"]] == [10, 17]
    assert body["per_question_results"][0]["feedback"]["overall_feedback"] == "Correct!"

    r = client.get(f"/recruiter/sessions/{session_id}/results", headers=recruiter_headers)
    assert r.status_code == 200
    assert r.json()["summary"]["final_score"] == 27


def test_results_are_private(client, fake_queue, candidate_headers, two_question_interview):
    interview, resume = two_question_interview
    session_id = _run_scenario_one(client, fake_queue, candidate_headers, interview, resume)

    other = auth_headers(OTHER_CANDIDATE_ID, security.CANDIDATE)
    assert client.get(f"/candidate/results/{session_id}", headers=other).status_code == 403
    stranger = auth_headers(OTHER_RECRUITER_ID, security.RECRUITER)
    assert client.get(f"/recruiter/sessions/{session_id}/results", headers=stranger).status_code == 403
    assert client.get("/candidate/results/9999", headers=candidate_headers).status_code == 404


def test_recruiter_notes_owner_only(client, fake_queue, candidate_headers, recruiter_headers, two_question_interview):
    interview, resume = two_question_interview
    session_id = _run_scenario_one(client, fake_queue, candidate_headers, interview, resume)

    r = client.patch(f"/recruiter/sessions/{session_id}/notes", json={"notes": "strong on closures"}, headers=recruiter_headers)
    assert r.status_code == 200
    assert r.json()["recruiter_notes"] == "strong on closures"

    stranger = auth_headers(OTHER_RECRUITER_ID, security.RECRUITER)
    r = client.patch(f"/recruiter/sessions/{session_id}/notes", json={"notes": "x"}, headers=stranger)
    assert r.status_code == 403
    assert r.json()["code"] == "forbidden"

    assert client.patch(f"/recruiter/sessions/{session_id}/notes", json={"notes": "x"}, headers=candidate_headers).status_code == 403


def test_timeline_lists_session_events_in_order(client, fake_queue, candidate_headers, recruiter_headers, two_question_interview):
    interview, resume = two_question_interview
    session_id = _run_scenario_one(client, fake_queue, candidate_headers, interview, resume)
    _drain(fake_queue.jobs)

    r = client.get(f"/recruiter/sessions/{session_id}/timeline", headers=recruiter_headers)
    assert r.status_code == 200
    types = [e["type"] for e in r.json()["events"]]
    assert types[:4] == ["session_started", "answer_submitted", "answer_submitted", "session_completed"]
    assert types.count("answer_evaluated") == 2
    assert types[-1] == "session_evaluated"


def test_abandoned_session_reports_abandoned(client, db, fake_queue, candidate_headers, recruiter_headers, two_question_interview):
    interview, resume = two_question_interview
    s = client.post(
        "/candidate/sessions",
        json={"interview_id": interview.id, "resume_id": resume.id},
        headers=candidate_headers,
    ).json()
    row = db.get(InterviewSession, s["id"])
    session_state.abandon_expired_sessions(db, now=as_utc(row.locked_until) + timedelta(seconds=1))

    r = client.get(f"/candidate/results/{s['id']}", headers=candidate_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "abandoned"
    assert "summary" not in r.json()
    assert client.get(f"/recruiter/sessions/{s['id']}/results", headers=recruiter_headers).json()["status"] == "abandoned"

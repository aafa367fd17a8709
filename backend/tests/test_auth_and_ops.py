# backend/tests/test_auth_and_ops.py
from datetime import timedelta

from conftest import CANDIDATE_ID
from core import security


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json().get("ok") is True


def test_request_id_is_echoed(client):
    r = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert r.headers["X-Request-ID"] == "abc-123"
    assert client.get("/health").headers.get("X-Request-ID")


def test_expired_token_is_rejected(client):
    token = security.create_access_token(str(CANDIDATE_ID), role=security.CANDIDATE, expires_delta=timedelta(seconds=-5))
    r = client.get("/candidate/sessions/active", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_unknown_role_is_rejected(client):
    token = security.create_access_token(str(CANDIDATE_ID), role="admin")
    r = client.get("/candidate/sessions/active", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_no_active_session_returns_null(client, fake_queue, candidate_headers):
    r = client.get("/candidate/sessions/active", headers=candidate_headers)
    assert r.status_code == 200
    assert r.json() is None


def test_ops_queue(client, fake_queue):
    r = client.get("/ops/queue")
    assert r.status_code == 200
    assert r.json()["running"] is True
    assert "busy_workers" in r.json()


def test_ops_queue_without_worker(client):
    r = client.get("/ops/queue")
    assert r.status_code == 200
    assert r.json()["running"] is False


def test_abandon_expired_requires_recruiter(client, candidate_headers, recruiter_headers):
    assert client.post("/ops/sessions/abandon-expired").status_code == 401
    assert client.post("/ops/sessions/abandon-expired", headers=candidate_headers).status_code == 403

    r = client.post("/ops/sessions/abandon-expired", headers=recruiter_headers)
    assert r.status_code == 200
    assert r.json() == {"abandoned": []}

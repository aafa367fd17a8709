# backend/tests/test_clock.py
from datetime import datetime, timedelta, timezone

import pytest

from services.clock import QuestionClock, reconcile_question_start

START = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def test_question_start_sums_prior_limits():
    clock = QuestionClock(START, [30, 60, 45])
    assert clock.question_start(0) == START
    assert clock.question_start(1) == START + timedelta(seconds=30)
    assert clock.question_start(2) == START + timedelta(seconds=90)
    assert clock.deadline(2) == START + timedelta(seconds=135)
    assert clock.total_duration == 135


def test_naive_started_at_is_treated_as_utc():
    clock = QuestionClock(START.replace(tzinfo=None), [30])
    assert clock.question_start(0) == START


@pytest.mark.parametrize("offset", [-3600, -17, 0, 5, 86400])
def test_countdown_is_insensitive_to_client_skew(offset):
    clock = QuestionClock(START, [30, 60])
    server_now = START + timedelta(seconds=50)  # 20s into Q1
    client_now = server_now + timedelta(seconds=offset)

    start_client = clock.question_start_for_client(1, server_now, client_now)

    # same instant, expressed in the client's clock
    assert start_client - timedelta(seconds=offset) == clock.question_start(1)
    remaining_on_client = (start_client + timedelta(seconds=60) - client_now).total_seconds()
    assert remaining_on_client == 40
    assert clock.remaining(1, server_now) == 40


def test_reconcile_without_client_time_is_server_frame():
    assert reconcile_question_start(START, [30, 60], START) == START + timedelta(seconds=90)


def test_expired_and_remaining_at_boundary():
    clock = QuestionClock(START, [30])
    assert not clock.is_expired(0, START + timedelta(seconds=29))
    assert clock.is_expired(0, START + timedelta(seconds=30))
    assert clock.remaining(0, START + timedelta(seconds=29, milliseconds=500)) == 1
    assert clock.remaining(0, START + timedelta(seconds=90)) == 0
    assert clock.remaining(1, START) == 0

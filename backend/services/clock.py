"""
Authoritative question timing.

Every timing decision (countdown baseline, auto-advance, time taken) is derived
from the server-recorded session start plus the fixed per-question limits.
The client clock is only used to translate the result into the client's frame.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

from utils.timeutil import as_utc


@dataclass(frozen=True)
class QuestionClock:
    started_at: datetime
    time_limits: Sequence[int]

    def __post_init__(self):
        object.__setattr__(self, "started_at", as_utc(self.started_at))
        object.__setattr__(self, "time_limits", tuple(int(t) for t in self.time_limits))

    @property
    def total_questions(self) -> int:
        return len(self.time_limits)

    @property
    def total_duration(self) -> int:
        return sum(self.time_limits)

    def elapsed_before(self, index: int) -> int:
        """Seconds allotted to the questions strictly before `index`."""
        return sum(self.time_limits[:max(0, index)])

    def question_start(self, index: int) -> datetime:
        return self.started_at + timedelta(seconds=self.elapsed_before(index))

    def deadline(self, index: int) -> datetime:
        return self.question_start(index) + timedelta(seconds=self.time_limits[index])

    def is_expired(self, index: int, now: datetime) -> bool:
        # remaining <= 0 counts as expired, same as a live countdown hitting zero
        return self.deadline(index) <= as_utc(now)

    def remaining(self, index: int, now: datetime) -> int:
        if index >= self.total_questions:
            return 0
        secs = (self.deadline(index) - as_utc(now)).total_seconds()
        return max(0, math.ceil(secs))

    def question_start_for_client(
        self, index: int, server_now: datetime, client_now: datetime
    ) -> datetime:
        return reconcile_question_start(
            self.started_at, self.time_limits[:index], server_now, client_now
        )


def reconcile_question_start(
    started_at: datetime,
    prior_limits: Sequence[int],
    server_now: datetime,
    client_now: Optional[datetime] = None,
) -> datetime:
    """
    question_start = started_at + sum(prior_limits) + (client_now - server_now)

    The result is expressed in the client's clock, so the client's countdown
    `question_start + limit - client_now` comes out the same for any client skew.
    """
    drift = timedelta(0)
    if client_now is not None:
        drift = as_utc(client_now) - as_utc(server_now)
    return as_utc(started_at) + timedelta(seconds=sum(int(t) for t in prior_limits)) + drift

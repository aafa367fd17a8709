# backend/tasks/evaluation_queue.py
"""
In-process, at-least-once evaluation queue.

A bounded asyncio.Queue is drained by a fixed pool of worker tasks. A failed
job is put back on the queue after a fixed delay (it loses its place in line);
once the attempt cap is hit a fallback score is stored instead (partial credit
for code, EXHAUSTED_FALLBACK_CREDIT otherwise), so every accepted answer
eventually ends up evaluated.

`enqueue` is safe to call from request threads; everything else runs on the
event loop that called `start`.
"""
import asyncio
import concurrent.futures
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional, Set

from sqlalchemy.orm import Session

from core.config import settings
from core.errors import GradingExhausted, GradingFailure
from db.session import SessionLocal
from models.interview_answers import Answer
from models.interview_session import InterviewSession
from schemas.grading import GradeResult, QuestionSnapshot
from services import timeline_logger as tl
from services.catalog import default_catalog
from tasks.score_answer import exhausted_result
from utils.timeutil import utcnow

log = logging.getLogger(__name__)


def _new_job_id() -> str:
    return f"eval_{uuid.uuid4().hex[:12]}"


@dataclass
class EvaluationJob:
    session_id: int
    answer_id: int
    question_index: int
    question: QuestionSnapshot
    answer_text: str
    auto_submitted: bool = False
    id: str = field(default_factory=_new_job_id)
    created_at: datetime = field(default_factory=utcnow)
    attempts: int = 0
    max_attempts: int = field(default_factory=lambda: settings.eval_max_attempts)


GradeFn = Callable[..., Awaitable[GradeResult]]
FinalizeFn = Callable[[int], Awaitable[bool]]


class EvaluationQueue:
    def __init__(
        self,
        grade: GradeFn,
        finalize: Optional[FinalizeFn] = None,
        *,
        session_factory: Callable[[], Session] = SessionLocal,
        workers: Optional[int] = None,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        timeout: Optional[float] = None,
        maxsize: Optional[int] = None,
        exhausted_credit: Optional[float] = None,
        code_credit: Optional[float] = None,
        enqueue_timeout: float = 5.0,
    ):
        self._grade = grade
        self._finalize = finalize
        self.session_factory = session_factory
        self.workers = workers or settings.eval_workers
        self.max_attempts = max_attempts or settings.eval_max_attempts
        self.retry_delay = settings.eval_retry_delay_seconds if retry_delay is None else retry_delay
        self.timeout = timeout or settings.grading_timeout_seconds
        self.maxsize = maxsize or settings.eval_queue_maxsize
        self.exhausted_credit = (
            settings.exhausted_fallback_credit if exhausted_credit is None else exhausted_credit
        )
        self.code_credit = settings.code_fallback_credit if code_credit is None else code_credit
        self.enqueue_timeout = enqueue_timeout

        self._queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: list = []
        self._delayed: Set[asyncio.Task] = set()
        self._finalize_locks: Dict[int, asyncio.Lock] = {}
        self._finalize_callers: Dict[int, int] = {}
        self._busy = 0

    # ------------------------------
    # lifecycle
    # ------------------------------
    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self):
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self.maxsize)
        self._tasks = [
            asyncio.create_task(self._worker(n), name=f"eval-worker-{n}")
            for n in range(self.workers)
        ]
        log.info("evaluation queue started", extra={"workers": self.workers})

    async def stop(self):
        pending = list(self._delayed) + self._tasks
        for t in pending:
            t.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []
        self._delayed.clear()
        log.info("evaluation queue stopped")

    async def join(self):
        """Wait until the queue is empty, nothing is in flight and no retry is pending."""
        while True:
            await self._queue.join()
            if not self._delayed:
                return
            await asyncio.gather(*list(self._delayed), return_exceptions=True)

    # ------------------------------
    # producers
    # ------------------------------
    def enqueue(self, job: EvaluationJob) -> bool:
        """
        Thread-safe. Returns False when the job could not be queued; the
        answer stays unevaluated and is picked up again by `recover`.
        """
        if not self.running:
            log.warning("evaluation queue not running, job dropped", extra={"job_id": job.id, "answer_id": job.answer_id})
            return False
        try:
            current = asyncio.get_running_loop()
        except RuntimeError:
            current = None
        if current is self._loop:
            return self._put_nowait(job)
        fut = asyncio.run_coroutine_threadsafe(self._put_async(job), self._loop)
        try:
            return fut.result(timeout=self.enqueue_timeout)
        except concurrent.futures.TimeoutError:
            fut.cancel()
            log.error(
                "evaluation queue did not accept job in time, left for recovery",
                extra={"job_id": job.id, "answer_id": job.answer_id, "timeout": self.enqueue_timeout},
            )
            return False

    async def _put_async(self, job: EvaluationJob) -> bool:
        return self._put_nowait(job)

    def _put_nowait(self, job: EvaluationJob) -> bool:
        job.max_attempts = self.max_attempts
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            log.error("evaluation queue full, job dropped", extra={"job_id": job.id, "answer_id": job.answer_id})
            return False
        log.info(
            "job enqueued",
            extra={"job_id": job.id, "session_id": job.session_id, "question_index": job.question_index},
        )
        return True

    async def recover(self) -> int:
        """Re-enqueue answers that were accepted but never evaluated (e.g. across a restart)."""
        def _pending():
            db = self.session_factory()
            try:
                jobs = []
                rows = db.query(Answer).filter(Answer.evaluated.is_(False)).order_by(Answer.id.asc()).all()
                for a in rows:
                    session = db.get(InterviewSession, a.session_id)
                    questions = default_catalog.ordered_questions(db, session.interview_id)
                    if a.question_index >= len(questions):
                        continue
                    jobs.append(
                        EvaluationJob(
                            session_id=a.session_id,
                            answer_id=a.id,
                            question_index=a.question_index,
                            question=questions[a.question_index].snapshot(),
                            answer_text=a.answer_text,
                            auto_submitted=bool(a.auto_submitted),
                        )
                    )
                return jobs
            finally:
                db.close()

        jobs = await asyncio.to_thread(_pending)
        queued = sum(1 for j in jobs if self._put_nowait(j))
        if queued:
            log.info("recovered unevaluated answers", extra={"count": queued})
        return queued

    def status(self) -> dict:
        return {
            "running": self.running,
            "workers": self.workers,
            "busy_workers": self._busy,
            "queue_size": self._queue.qsize() if self._queue else 0,
            "pending_retries": len(self._delayed),
            "max_attempts": self.max_attempts,
        }

    # ------------------------------
    # consumers
    # ------------------------------
    async def _worker(self, n: int):
        while True:
            job = await self._queue.get()
            self._busy += 1
            try:
                await self._process(job)
            except asyncio.CancelledError:
                raise
            except Exception:
                # persistence/finalize bug; keep the worker alive, the answer stays pending for recovery
                log.exception("evaluation worker error", extra={"job_id": job.id, "worker": n})
            finally:
                self._busy -= 1
                self._queue.task_done()

    async def _process(self, job: EvaluationJob):
        job.attempts += 1
        final_attempt = job.attempts >= job.max_attempts
        log.info(
            "evaluating answer",
            extra={"job_id": job.id, "answer_id": job.answer_id, "attempt": job.attempts},
        )
        try:
            result = await asyncio.wait_for(
                self._grade(
                    job.question,
                    job.answer_text,
                    final_attempt=final_attempt,
                    auto_submitted=job.auto_submitted,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            await self._failed(job, f"grading timed out after {self.timeout:g}s")
            return
        except GradingFailure as e:
            await self._failed(job, e.message)
            return
        except Exception as e:
            log.exception("grader raised unexpectedly", extra={"job_id": job.id})
            await self._failed(job, repr(e))
            return

        await asyncio.to_thread(self._persist, job, result, tl.ANSWER_EVALUATED, {"attempt": job.attempts})
        log.info(
            "answer evaluated",
            extra={"job_id": job.id, "answer_id": job.answer_id, "score": result.score, "grader": result.grader},
        )
        await self._check_completion(job.session_id)

    async def _failed(self, job: EvaluationJob, error: str):
        if job.attempts < job.max_attempts:
            log.warning(
                "evaluation failed, retrying",
                extra={"job_id": job.id, "attempt": job.attempts, "max_attempts": job.max_attempts, "error": error},
            )
            await asyncio.to_thread(
                self._log_event, job, tl.EVALUATION_RETRY, {"attempt": job.attempts, "error": error}
            )
            self._schedule_retry(job)
            return

        exhausted = GradingExhausted(error, {"attempts": job.attempts})
        log.error(
            "evaluation exhausted, storing fallback score",
            extra={"job_id": job.id, "answer_id": job.answer_id, "error": exhausted.message},
        )
        result = exhausted_result(job.question, error, self._fallback_credit(job))
        await asyncio.to_thread(
            self._persist, job, result, tl.EVALUATION_FAILED, {"attempts": job.attempts, "error": error}
        )
        await self._check_completion(job.session_id)

    def _fallback_credit(self, job: EvaluationJob) -> float:
        if job.question.material.type == "code" and not job.auto_submitted:
            return self.code_credit
        return self.exhausted_credit

    def _schedule_retry(self, job: EvaluationJob):
        async def _later():
            await asyncio.sleep(self.retry_delay)
            await self._queue.put(job)

        task = asyncio.create_task(_later(), name=f"eval-retry-{job.id}")
        self._delayed.add(task)
        task.add_done_callback(self._delayed.discard)

    async def _check_completion(self, session_id: int):
        if self._finalize is None:
            return
        # finalize is a no-op once evaluated_at is set; the lock keeps two workers
        # from generating the narrative at once and outlives its last waiter
        lock = self._finalize_locks.setdefault(session_id, asyncio.Lock())
        self._finalize_callers[session_id] = self._finalize_callers.get(session_id, 0) + 1
        try:
            async with lock:
                try:
                    await self._finalize(session_id)
                except Exception:
                    log.exception("session summary failed", extra={"session_id": session_id})
        finally:
            self._finalize_callers[session_id] -= 1
            if not self._finalize_callers[session_id]:
                del self._finalize_callers[session_id]
                self._finalize_locks.pop(session_id, None)

    # ------------------------------
    # persistence (runs in a worker thread)
    # ------------------------------
    def _persist(self, job: EvaluationJob, result: GradeResult, event_type: str, payload: dict):
        db = self.session_factory()
        try:
            answer = db.get(Answer, job.answer_id)
            if answer is None:
                log.warning("answer vanished before evaluation", extra={"answer_id": job.answer_id})
                return
            answer.score = result.score
            answer.feedback = result.feedback.model_dump()
            answer.evaluated = True
            answer.evaluated_at = utcnow()
            answer.ai_model_used = result.grader
            tl.log_timeline_event(
                db,
                session_id=job.session_id,
                question_index=job.question_index,
                event_type=event_type,
                payload={"job_id": job.id, "score": result.score, **payload},
            )
            db.commit()
        finally:
            db.close()

    def _log_event(self, job: EvaluationJob, event_type: str, payload: dict):
        db = self.session_factory()
        try:
            tl.log_timeline_event(
                db,
                session_id=job.session_id,
                question_index=job.question_index,
                event_type=event_type,
                payload={"job_id": job.id, **payload},
            )
            db.commit()
        finally:
            db.close()

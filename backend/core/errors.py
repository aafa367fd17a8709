# backend/core/errors.py
"""
Domain errors for the session / evaluation core.

Request-path errors carry an HTTP status and are rendered by the handler
registered in main.py. Grading errors never leave the evaluation queue.
"""
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


class InterviewCoreError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body = {"detail": self.message, "code": self.code}
        body.update(self.details)
        return body


class Conflict(InterviewCoreError):
    status_code = 409
    code = "conflict"


class NotEligible(InterviewCoreError):
    status_code = 422
    code = "not_eligible"


class Expired(InterviewCoreError):
    status_code = 410
    code = "expired"

    def __init__(self, message: str = "session can no longer be resumed", details=None):
        super().__init__(message, {"canResume": False, **(details or {})})


class OutOfSequence(InterviewCoreError):
    status_code = 409
    code = "out_of_sequence"


class Forbidden(InterviewCoreError):
    status_code = 403
    code = "forbidden"


class NotFound(InterviewCoreError):
    status_code = 404
    code = "not_found"


class GradingFailure(InterviewCoreError):
    """Transient grading error; the queue retries the job."""
    code = "grading_failure"


class GradingExhausted(InterviewCoreError):
    """All attempts used up; converted to a fallback score by the queue."""
    code = "grading_exhausted"


async def core_error_handler(request: Request, exc: InterviewCoreError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

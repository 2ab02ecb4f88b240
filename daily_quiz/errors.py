# FILE: daily_quiz/errors.py
"""
Error taxonomy for the quiz engine

Structural failures are raised as QuizError subclasses and mapped to HTTP
responses in app.py. Malformed answers are never raised: the answer
validator scores them as incorrect. Data-integrity problems are reported,
not raised (see DataIntegrityWarning).
"""
from typing import Any, Dict, Optional


class QuizError(Exception):
    """Base class for errors surfaced to callers"""

    status_code = 500
    error_code = "quiz_error"
    retryable = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        payload = {"error": self.error_code, "detail": self.message}
        payload.update(self.details)
        return payload


class NotScheduled(QuizError):
    """No valid question for the requested date (or date outside the window)"""
    status_code = 404
    error_code = "not_scheduled"


class QuestionMismatch(QuizError):
    """Submitted question id is not the one scheduled for the date"""
    status_code = 409
    error_code = "question_rolled_over"

    def __init__(self, date_key: str, submitted_id: str, current_id: str):
        super().__init__(
            f"Question {submitted_id} is not scheduled for {date_key}",
            date_key=date_key,
            rollover=True,
            current_question_id=current_id,
        )
        self.current_id = current_id


class InvalidDateKey(QuizError):
    status_code = 400
    error_code = "invalid_date"


class UnknownQuestion(QuizError):
    status_code = 404
    error_code = "not_found"


class AlreadyScheduled(QuizError):
    status_code = 409
    error_code = "already_scheduled"


class ConflictRetryExhausted(QuizError):
    """Optimistic write lost too many races"""
    status_code = 503
    error_code = "conflict_retry_exhausted"
    retryable = True


class StoreUnavailable(QuizError):
    """Underlying persistence failed"""
    status_code = 503
    error_code = "store_unavailable"
    retryable = True


class DataIntegrityWarning(Warning):
    """
    A persisted reference that could not be repaired.

    Never raised on a read path; instances are collected in repair reports
    and written to the integrity log.
    """

    def __init__(self, kind: str, message: str, date_key: Optional[str] = None,
                 question_id: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.date_key = date_key
        self.question_id = question_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "date_key": self.date_key,
            "question_id": self.question_id,
        }

"""Domain errors raised by the quiz services.

Each error carries a machine-readable ``code`` and the HTTP status the API
layer answers with. Services never build HTTP responses themselves; the
handlers registered in ``app.main`` turn these into the standard envelope.
"""

from __future__ import annotations


class QuizError(Exception):
    code: str = "QUIZ_ERROR"
    status_code: int = 400
    default_message: str = "Quiz request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class NotFound(QuizError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class Forbidden(QuizError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Not authorized"


class Unavailable(QuizError):
    code = "UNAVAILABLE"
    status_code = 400
    default_message = "Quiz is not available"


class NotEnrolled(QuizError):
    code = "NOT_ENROLLED"
    status_code = 403
    default_message = "You must be enrolled to take this quiz"


class AttemptsExhausted(QuizError):
    code = "ATTEMPTS_EXHAUSTED"
    status_code = 400
    default_message = "Maximum attempts reached"


class AlreadySubmitted(QuizError):
    code = "ALREADY_SUBMITTED"
    status_code = 409
    default_message = "Attempt already submitted"


class TimeLimitExceeded(QuizError):
    code = "TIME_LIMIT_EXCEEDED"
    status_code = 400
    default_message = "Time limit exceeded"


class ResultsNotYetVisible(QuizError):
    code = "RESULTS_NOT_VISIBLE"
    status_code = 403
    default_message = "Results are not available for this quiz"


class InvalidRequest(QuizError):
    code = "INVALID_REQUEST"
    status_code = 400
    default_message = "Invalid request"

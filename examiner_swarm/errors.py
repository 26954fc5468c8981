"""
Fatal error taxonomy for a grading request.

Only these errors ever escape the orchestrator. Examiner and summary failures
are recovered locally and show up as softer signals in the result.
"""

import math
from datetime import datetime, timezone
from typing import Any


class GradingError(Exception):
    """Base class for errors that abort a grading request."""

    code = "INTERNAL_ERROR"
    status = 500

    def __init__(self, message: str, details: Any | None = None):
        self.details = details
        super().__init__(message)


class RequestValidationError(GradingError):
    """Raised when a grade request is malformed."""

    code = "VALIDATION_ERROR"
    status = 400


class SubjectAccessError(GradingError):
    """Raised when the caller may not grade the requested subject."""

    code = "SUBJECT_ACCESS_DENIED"
    status = 403


class AdmissionError(GradingError):
    """Raised when the caller's rate limit is exhausted."""

    code = "RATE_LIMITED"
    status = 429

    def __init__(self, message: str, reset_at: datetime, remaining: int = 0):
        self.reset_at = reset_at
        self.remaining = remaining
        super().__init__(message)

    @property
    def retry_after(self) -> int:
        """Whole seconds until capacity returns, never less than one."""
        delta = (self.reset_at - datetime.now(timezone.utc)).total_seconds()
        return max(1, math.ceil(delta))


class ConfigurationError(GradingError):
    """Raised when the language-model backend is not configured."""

    code = "AI_NOT_CONFIGURED"
    status = 503

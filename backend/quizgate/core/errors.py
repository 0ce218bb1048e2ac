"""Error taxonomy shared by services and routes.

Every error carries a stable ``code`` (rendered in the response envelope), a
human-readable ``message`` and the HTTP status the API answers with.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AppError(Exception):
    code = "APP_ERROR"
    status_code = 400

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or None

    def to_error(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            out["details"] = self.details
        return out


class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = 404


class NotAvailableError(AppError):
    code = "NOT_AVAILABLE"
    status_code = 403


class ResultsEmbargoedError(NotAvailableError):
    code = "RESULTS_EMBARGOED"

    def __init__(self, remaining_minutes: int):
        super().__init__(
            f"Results will be available in {int(remaining_minutes)} minutes",
            details={"remaining_minutes": int(remaining_minutes)},
        )
        self.remaining_minutes = int(remaining_minutes)


class AlreadyAttemptedError(AppError):
    code = "ALREADY_ATTEMPTED"
    status_code = 409

    def __init__(self, message: str = "You have already attempted this quiz"):
        super().__init__(message)


class InputValidationError(AppError):
    code = "VALIDATION_ERROR"
    status_code = 422


class TransientStoreError(AppError):
    """Any read/write failure against the store. Never retried automatically."""

    code = "STORE_ERROR"
    status_code = 503


class GenerationError(AppError):
    code = "GENERATION_ERROR"
    status_code = 502

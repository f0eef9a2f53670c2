"""Domain errors raised by the form engine.

Each error carries the HTTP status and a short machine-readable ``code``;
``main.py`` renders them as ``{"detail": ..., "code": ...}``.
"""
from typing import List, Optional


class FormEngineError(Exception):
    status_code = 400
    code = "form_engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class StructuralValidationError(FormEngineError):
    """Malformed form schema. Carries every violation found, first one as the message."""
    status_code = 400
    code = "structural_validation"

    def __init__(self, violations: List[str]):
        super().__init__(violations[0])
        self.violations = list(violations)

    def to_dict(self) -> dict:
        return {**super().to_dict(), "violations": self.violations}


class ReferentialError(FormEngineError):
    status_code = 400
    code = "entity_not_found"


class NotFoundError(FormEngineError):
    status_code = 404
    code = "not_found"


class EligibilityError(FormEngineError):
    status_code = 403

    NOT_OPEN = "not_open"
    CLOSED = "closed"
    ADMISSION_YEAR_MISMATCH = "admission_year_mismatch"
    GRADUATE_YEAR_MISMATCH = "graduate_year_mismatch"
    ALREADY_RESPONDED = "already_responded"

    def __init__(self, reason: str, message: Optional[str] = None):
        super().__init__(message or reason)
        self.reason = reason

    @property
    def code(self) -> str:
        return self.reason


class ActivePeriodError(FormEngineError):
    status_code = 409
    code = "active_period"


class TransientStoreError(FormEngineError):
    """The data store failed mid-commit; the only kind worth retrying."""
    status_code = 503
    code = "store_unavailable"

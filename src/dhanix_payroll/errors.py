"""Exception types shared by services and the API layer."""

from __future__ import annotations

from typing import Any


class PayrollError(Exception):
    """Base class for payroll domain errors."""

    code = "PAYROLL_ERROR"


class NotFoundError(PayrollError):
    """Raised when a referenced run, item, employee or company does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class PayrollValidationError(PayrollError):
    """Raised for malformed input; never partially applied."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.message = message
        self.field = field
        super().__init__(message)


class StateConflictError(PayrollError):
    """Raised when an operation is not allowed in the current run status."""

    code = "STATE_CONFLICT"

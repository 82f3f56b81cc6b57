"""Payroll run state machine with action validation."""

from __future__ import annotations

from enum import Enum

from dhanix_payroll.errors import StateConflictError


class PayrollRunStatus(str, Enum):
    """Payroll run status values."""

    DRAFT = "DRAFT"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    LOCKED = "LOCKED"


class RunAction(str, Enum):
    """Operations gated by run status."""

    UPDATE_ITEM = "update_item"
    IMPORT_ATTENDANCE = "import_attendance"
    CALCULATE = "calculate"
    PROCESS = "process"
    LOCK = "lock"
    ISSUE_PAYSLIPS = "issue_payslips"
    REPORT = "report"


def _value(member: str) -> str:
    return member.value if isinstance(member, Enum) else member


class InvalidTransitionError(StateConflictError):
    """Raised when an action is attempted in a status that forbids it."""

    def __init__(self, from_status: str, action: str, reason: str | None = None):
        self.from_status = _value(from_status)
        self.action = _value(action)
        self.reason = reason
        msg = f"Cannot {self.action} a payroll run in status '{self.from_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PayrollRunStateMachine:
    """State machine for payroll run status.

    Transitions:
    - DRAFT → PROCESSING → COMPLETED (process)
    - COMPLETED → PROCESSING → COMPLETED (process again, idempotent recompute)
    - COMPLETED → LOCKED (lock)
    - LOCKED → LOCKED (lock again, no-op)

    A run never moves backwards, and DRAFT cannot be locked directly.
    """

    # {status: allowed actions}
    ALLOWED_ACTIONS: dict[str, frozenset[str]] = {
        "DRAFT": frozenset({"update_item", "import_attendance", "calculate", "process"}),
        # Only seen when a process was interrupted; resuming is allowed
        "PROCESSING": frozenset({"process"}),
        "COMPLETED": frozenset({"calculate", "process", "lock", "issue_payslips", "report"}),
        "LOCKED": frozenset({"lock", "issue_payslips", "report"}),
    }

    # {action: status after the action}
    TARGET_STATUS: dict[str, str] = {
        "process": "COMPLETED",
        "lock": "LOCKED",
    }

    INPUTS_MUTABLE = frozenset({"DRAFT"})

    RESULTS_FINAL = frozenset({"COMPLETED", "LOCKED"})

    @classmethod
    def is_allowed(cls, status: str, action: str) -> bool:
        """Check if an action is allowed in this status."""
        return _value(action) in cls.ALLOWED_ACTIONS.get(_value(status), frozenset())

    @classmethod
    def ensure_allowed(cls, status: str, action: str) -> None:
        """Raise InvalidTransitionError if the action is not allowed."""
        if not cls.is_allowed(status, action):
            raise InvalidTransitionError(status, action)

    @classmethod
    def next_status(cls, status: str, action: str) -> str:
        """Validate an action and return the resulting status."""
        cls.ensure_allowed(status, action)
        return cls.TARGET_STATUS.get(_value(action), _value(status))

    @classmethod
    def can_modify_inputs(cls, status: str) -> bool:
        """Check if attendance and deductions can be edited."""
        return _value(status) in cls.INPUTS_MUTABLE

    @classmethod
    def are_results_final(cls, status: str) -> bool:
        """Check if computed figures are final (reports, payslips)."""
        return _value(status) in cls.RESULTS_FINAL

    @classmethod
    def get_allowed_actions(cls, status: str) -> list[str]:
        """List allowed actions in declaration order."""
        allowed = cls.ALLOWED_ACTIONS.get(_value(status), frozenset())
        return [action.value for action in RunAction if action.value in allowed]

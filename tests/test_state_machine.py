"""Tests for payroll run state machine."""

import pytest

from dhanix_payroll.errors import StateConflictError
from dhanix_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollRunStateMachine,
    PayrollRunStatus,
    RunAction,
)


class TestPayrollRunStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        """Test that valid transitions are allowed."""
        # DRAFT → COMPLETED (process)
        assert PayrollRunStateMachine.next_status("DRAFT", "process") == "COMPLETED"

        # COMPLETED → COMPLETED (process again)
        assert PayrollRunStateMachine.next_status("COMPLETED", "process") == "COMPLETED"

        # COMPLETED → LOCKED
        assert PayrollRunStateMachine.next_status("COMPLETED", "lock") == "LOCKED"

        # LOCKED → LOCKED
        assert PayrollRunStateMachine.next_status("LOCKED", "lock") == "LOCKED"

        # Interrupted process can be resumed
        assert PayrollRunStateMachine.next_status("PROCESSING", "process") == "COMPLETED"

    def test_invalid_transitions(self):
        """Test that invalid transitions are blocked."""
        # Can't lock an unprocessed run
        assert PayrollRunStateMachine.is_allowed("DRAFT", "lock") is False

        # Locked is terminal
        assert PayrollRunStateMachine.is_allowed("LOCKED", "process") is False
        assert PayrollRunStateMachine.is_allowed("LOCKED", "calculate") is False

        # Unknown statuses allow nothing
        assert PayrollRunStateMachine.is_allowed("ARCHIVED", "process") is False

    def test_next_status_raises(self):
        """Test that next_status raises for invalid actions."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            PayrollRunStateMachine.next_status("DRAFT", "lock")

        assert exc_info.value.from_status == "DRAFT"
        assert exc_info.value.action == "lock"
        assert "Cannot lock a payroll run in status 'DRAFT'" in str(exc_info.value)

    def test_invalid_transition_is_state_conflict(self):
        with pytest.raises(StateConflictError):
            PayrollRunStateMachine.ensure_allowed("COMPLETED", "update_item")

    def test_accepts_enum_members(self):
        assert PayrollRunStateMachine.is_allowed(PayrollRunStatus.DRAFT, RunAction.PROCESS) is True
        assert (
            PayrollRunStateMachine.next_status(PayrollRunStatus.COMPLETED, RunAction.LOCK)
            == "LOCKED"
        )

    def test_can_modify_inputs(self):
        """Test input modification allowed statuses."""
        assert PayrollRunStateMachine.can_modify_inputs("DRAFT") is True
        assert PayrollRunStateMachine.can_modify_inputs("PROCESSING") is False
        assert PayrollRunStateMachine.can_modify_inputs("COMPLETED") is False
        assert PayrollRunStateMachine.can_modify_inputs("LOCKED") is False

    def test_are_results_final(self):
        assert PayrollRunStateMachine.are_results_final("DRAFT") is False
        assert PayrollRunStateMachine.are_results_final("COMPLETED") is True
        assert PayrollRunStateMachine.are_results_final("LOCKED") is True

    def test_reports_and_payslips_need_final_results(self):
        for action in ("report", "issue_payslips"):
            assert PayrollRunStateMachine.is_allowed("DRAFT", action) is False
            assert PayrollRunStateMachine.is_allowed("COMPLETED", action) is True
            assert PayrollRunStateMachine.is_allowed("LOCKED", action) is True

    def test_get_allowed_actions(self):
        """Test allowed actions listing."""
        assert PayrollRunStateMachine.get_allowed_actions("DRAFT") == [
            "update_item",
            "import_attendance",
            "calculate",
            "process",
        ]
        assert PayrollRunStateMachine.get_allowed_actions("LOCKED") == [
            "lock",
            "issue_payslips",
            "report",
        ]
        assert PayrollRunStateMachine.get_allowed_actions("UNKNOWN") == []

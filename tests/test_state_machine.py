"""Tests for payroll entry state machine."""

from uuid import uuid4

import pytest

from hris_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollEntryStateMachine,
    PayrollEntryStatus,
    RecomputeNotAllowedError,
)


class TestPayrollEntryStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        """Test that each step of the linear workflow is allowed."""
        # draft → computed
        assert PayrollEntryStateMachine.can_transition("draft", "computed") is True

        # computed → reviewed
        assert PayrollEntryStateMachine.can_transition("computed", "reviewed") is True

        # reviewed → approved
        assert PayrollEntryStateMachine.can_transition("reviewed", "approved") is True

        # approved → paid
        assert PayrollEntryStateMachine.can_transition("approved", "paid") is True

    def test_invalid_transitions(self):
        """Test that skipping, going backwards and leaving paid are blocked."""
        # Can't skip review
        assert PayrollEntryStateMachine.can_transition("computed", "approved") is False
        assert PayrollEntryStateMachine.can_transition("draft", "paid") is False

        # Can't go backwards
        assert PayrollEntryStateMachine.can_transition("reviewed", "computed") is False
        assert PayrollEntryStateMachine.can_transition("approved", "reviewed") is False

        # Paid is terminal
        assert PayrollEntryStateMachine.can_transition("paid", "draft") is False
        assert PayrollEntryStateMachine.can_transition("paid", "approved") is False

    def test_unknown_status(self):
        """Test that unknown statuses have no transitions."""
        assert PayrollEntryStateMachine.can_transition("voided", "paid") is False
        assert PayrollEntryStateMachine.get_next_statuses("voided") == []

    def test_validate_transition_raises(self):
        """Test that validate_transition raises for invalid transitions."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            PayrollEntryStateMachine.validate_transition("draft", "approved")

        assert exc_info.value.from_status == "draft"
        assert exc_info.value.to_status == "approved"
        assert "draft" in str(exc_info.value)

    def test_validate_transition_passes(self):
        """Test that a valid transition does not raise."""
        PayrollEntryStateMachine.validate_transition("computed", "reviewed")

    def test_enum_values_match_strings(self):
        """Test that enum members compare equal to their stored strings."""
        assert PayrollEntryStateMachine.can_transition(
            PayrollEntryStatus.APPROVED, PayrollEntryStatus.PAID
        ) is True
        assert PayrollEntryStateMachine.get_next_statuses("computed") == [PayrollEntryStatus.REVIEWED]


class TestRecompute:
    """Test recompute eligibility."""

    @pytest.mark.parametrize("status", ["draft", "computed", "reviewed"])
    def test_recompute_allowed(self, status):
        """Test that entries before approval can be recomputed."""
        assert PayrollEntryStateMachine.can_recompute(status) is True
        PayrollEntryStateMachine.validate_recompute(uuid4(), status)

    @pytest.mark.parametrize("status", ["approved", "paid"])
    def test_recompute_blocked(self, status):
        """Test that approved and paid entries are locked."""
        entry_id = uuid4()

        with pytest.raises(RecomputeNotAllowedError) as exc_info:
            PayrollEntryStateMachine.validate_recompute(entry_id, status)

        assert exc_info.value.entry_id == entry_id
        assert exc_info.value.status == status

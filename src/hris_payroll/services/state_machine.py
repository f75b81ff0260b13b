"""Payroll entry state machine with transition validation."""

from __future__ import annotations

from enum import Enum
from uuid import UUID


class PayrollEntryStatus(str, Enum):
    """Payroll entry status values."""

    DRAFT = "draft"
    COMPUTED = "computed"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    PAID = "paid"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class RecomputeNotAllowedError(Exception):
    """Raised when recomputing an entry whose status forbids it."""

    def __init__(self, entry_id: UUID, status: str):
        self.entry_id = entry_id
        self.status = status
        super().__init__(f"Payroll entry {entry_id} cannot be recomputed in status '{status}'")


class PayrollEntryStateMachine:
    """State machine for payroll entry status transitions.

    Allowed transitions (no skipping):
    - draft → computed
    - computed → reviewed
    - reviewed → approved
    - approved → paid

    Recomputation is a separate path: it is allowed from draft, computed and
    reviewed and always lands on computed.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollEntryStatus.DRAFT: [PayrollEntryStatus.COMPUTED],
        PayrollEntryStatus.COMPUTED: [PayrollEntryStatus.REVIEWED],
        PayrollEntryStatus.REVIEWED: [PayrollEntryStatus.APPROVED],
        PayrollEntryStatus.APPROVED: [PayrollEntryStatus.PAID],
        PayrollEntryStatus.PAID: [],  # Terminal state
    }

    # Statuses where the engine may replace the entry's lines
    RECOMPUTE_ALLOWED = {
        PayrollEntryStatus.DRAFT,
        PayrollEntryStatus.COMPUTED,
        PayrollEntryStatus.REVIEWED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def can_recompute(cls, status: str) -> bool:
        return status in cls.RECOMPUTE_ALLOWED

    @classmethod
    def validate_recompute(cls, entry_id: UUID, status: str) -> None:
        """Raise RecomputeNotAllowedError unless the entry may be recomputed."""
        if not cls.can_recompute(status):
            raise RecomputeNotAllowedError(entry_id, status)

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

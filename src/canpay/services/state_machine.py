"""Pay run state machine with transition validation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from canpay.exceptions import InvalidTransitionError

if TYPE_CHECKING:
    from canpay.services.pay_run_service import PayRunPreview


class PayRunStatus(str, Enum):
    """Pay run status values."""

    PREVIEW = "preview"
    COMMITTED = "committed"
    DISCARDED = "discarded"


class PayRunStateMachine:
    """State machine for pay run status transitions.

    Allowed transitions:
    - preview → committed
    - preview → discarded

    A run is recalculated from scratch rather than reopened, so both
    committed and discarded are terminal.
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayRunStatus.PREVIEW: [PayRunStatus.COMMITTED, PayRunStatus.DISCARDED],
        PayRunStatus.COMMITTED: [],  # Terminal state
        PayRunStatus.DISCARDED: [],  # Terminal state
    }

    RESULTS_IMMUTABLE = {
        PayRunStatus.COMMITTED,
        PayRunStatus.DISCARDED,
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
    def are_results_immutable(cls, status: str) -> bool:
        return status in cls.RESULTS_IMMUTABLE

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

    @classmethod
    def validate_preview_for_transition(
        cls, preview: PayRunPreview, to_status: str
    ) -> list[str]:
        """Validate a preview for a specific transition, returning any errors.

        Returns list of error messages (empty if valid).
        """
        errors: list[str] = []
        from_status = preview.status

        if not cls.can_transition(from_status, to_status):
            errors.append(f"Cannot transition from '{from_status}' to '{to_status}'")
            return errors

        if to_status == PayRunStatus.COMMITTED and not preview.paystubs:
            errors.append("Pay run has no paystubs")

        return errors

"""
Operation results for state-machine services.

Business-rule rejections are expected outcomes, not errors. Every
state-transition service returns an OperationResult so callers can tell
*why* an operation was refused:

    result = reservation_services.cancel_reservation(
        reservation_id=reservation_id,
        cancelled_by_id=request.user.id,
        reason="Plans changed",
    )
    if not result.success:
        raise HttpError(400, result.message)
    return result.data
"""
from dataclasses import dataclass
from typing import Any, Optional


class Rejection:
    """
    Canonical reason codes for rejected operations.
    Prevents scattered string literals and typos across apps.
    """
    # ── Reservations ──────────────────────────────────────────────────
    RESOURCE_UNAVAILABLE = "RESOURCE_UNAVAILABLE"
    START_IN_PAST = "START_IN_PAST"
    SLOT_UNAVAILABLE = "SLOT_UNAVAILABLE"
    DURATION_EXCEEDED = "DURATION_EXCEEDED"
    ADVANCE_BOOKING_EXCEEDED = "ADVANCE_BOOKING_EXCEEDED"
    ALREADY_STARTED = "ALREADY_STARTED"

    # ── Usage ─────────────────────────────────────────────────────────
    ALREADY_CHECKED_OUT = "ALREADY_CHECKED_OUT"
    OUTSIDE_CHECKOUT_WINDOW = "OUTSIDE_CHECKOUT_WINDOW"
    NOT_RESERVATION_OWNER = "NOT_RESERVATION_OWNER"
    READING_BELOW_START = "READING_BELOW_START"
    CHECK_IN_BEFORE_CHECK_OUT = "CHECK_IN_BEFORE_CHECK_OUT"
    ALREADY_INVOICED = "ALREADY_INVOICED"

    # ── Invoices ──────────────────────────────────────────────────────
    INVOICE_NOT_EDITABLE = "INVOICE_NOT_EDITABLE"
    INVOICE_EMPTY = "INVOICE_EMPTY"
    ITEM_NOT_ON_INVOICE = "ITEM_NOT_ON_INVOICE"

    # ── Shared ────────────────────────────────────────────────────────
    INVALID_TRANSITION = "INVALID_TRANSITION"


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a state transition: the resulting entity, or a reason code."""
    success: bool
    data: Optional[Any] = None
    reason: Optional[str] = None
    message: str = ""

    @classmethod
    def ok(cls, data: Any = None, message: str = "") -> "OperationResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def rejected(cls, reason: str, message: str, data: Any = None) -> "OperationResult":
        return cls(success=False, data=data, reason=reason, message=message)

    def __bool__(self) -> bool:
        return self.success

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base exception for business rule violations.

    ``code`` is machine-readable; ``details`` carries the numbers needed to
    reconstruct the violated rule (amounts, distances, ids).
    """

    code = "DOMAIN_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": dict(self.details)}


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "VALIDATION_ERROR"


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""

    code = "AUTHENTICATION_ERROR"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "AUTHORIZATION_ERROR"


class NotFoundError(DomainError):
    code = "NOT_FOUND"


class ConflictError(DomainError):
    code = "CONFLICT"


# --- attendance -------------------------------------------------------------


class ProjectLocationMissingError(ValidationError):
    code = "PROJECT_LOCATION_MISSING"

    def __init__(self, project_id: int):
        super().__init__("Project location not configured", project_id=project_id)


class OutOfRangeError(ValidationError):
    code = "OUT_OF_RANGE"

    def __init__(self, distance_meters: float, threshold_meters: float):
        super().__init__(
            f"Attendance allowed only within {threshold_meters:g} meters "
            f"(you are {distance_meters:.2f} meters away)",
            distance_meters=distance_meters,
            threshold_meters=threshold_meters,
        )
        self.distance_meters = distance_meters
        self.threshold_meters = threshold_meters


class SequencingError(ValidationError):
    """Check-in/check-out ordering violation."""

    code = "SEQUENCING_ERROR"


class AlreadyCheckedInError(SequencingError):
    code = "ALREADY_CHECKED_IN"

    def __init__(self, last_entry_at=None):
        super().__init__("Already checked in. Please check out first.", last_entry_at=last_entry_at)


class NoOpenCheckInError(SequencingError):
    code = "NO_OPEN_CHECK_IN"

    def __init__(self, last_kind=None):
        super().__init__("You must check in before checking out.", last_kind=last_kind)


class BackdatedEntryError(SequencingError):
    code = "BACKDATED_ENTRY"

    def __init__(self, timestamp, last_entry_at):
        super().__init__(
            "Entry must be later than the last entry of the same day",
            timestamp=timestamp,
            last_entry_at=last_entry_at,
        )


class ConsecutiveKindError(SequencingError):
    code = "CONSECUTIVE_KIND"

    def __init__(self, kind):
        super().__init__(f"Two consecutive '{kind}' entries on the same day", kind=kind)


class CheckOutFirstError(SequencingError):
    code = "CHECK_OUT_FIRST"

    def __init__(self, day):
        super().__init__("A check-out cannot be the first entry of a day", day=day)


# --- payroll ----------------------------------------------------------------


class DuplicatePeriodError(ConflictError):
    code = "DUPLICATE_PERIOD"

    def __init__(self, user_id: int, project_id: int, period_start, period_end):
        super().__init__(
            "Payroll already generated for this period",
            user_id=user_id,
            project_id=project_id,
            period_start=period_start,
            period_end=period_end,
        )


class NoActiveStructureError(NotFoundError):
    code = "NO_ACTIVE_STRUCTURE"

    def __init__(self, project_id: int, user_id: int | None = None):
        if user_id is None:
            message = "No active salary structures found for this project"
        else:
            message = "No active salary structure found for this user on this project"
        super().__init__(message, user_id=user_id, project_id=project_id)


class PayrollLockedError(ValidationError):
    code = "PAYROLL_LOCKED"

    def __init__(self, payroll_id: int, status, action: str):
        super().__init__(
            f"Cannot {action} a payroll with status '{getattr(status, 'value', status)}'",
            payroll_id=payroll_id,
            payment_status=getattr(status, "value", status),
        )


class AdvanceLockedError(ValidationError):
    code = "ADVANCE_LOCKED"

    def __init__(self, advance_id: int, status, action: str):
        super().__init__(
            f"Cannot {action} an advance that has been partially or fully recovered",
            advance_id=advance_id,
            recovery_status=getattr(status, "value", status),
        )


class RecoveryError(ValidationError):
    """Advance recovery rejected; details carry requested vs available."""

    code = "RECOVERY_ERROR"

    def __init__(self, message: str, *, requested, available, **details: Any):
        super().__init__(message, requested=requested, available=available, **details)
        self.requested = requested
        self.available = available


class RecoveryExceedsEarningsError(RecoveryError):
    code = "RECOVERY_EXCEEDS_EARNINGS"

    def __init__(self, requested, available):
        super().__init__(
            f"Advance recovery ₹{requested} exceeds net earnings ₹{available} for this period",
            requested=requested,
            available=available,
        )


class RecoveryExceedsOutstandingError(RecoveryError):
    code = "RECOVERY_EXCEEDS_OUTSTANDING"

    def __init__(self, requested, available):
        super().__init__(
            f"Advance recovery ₹{requested} exceeds outstanding advance balance ₹{available}",
            requested=requested,
            available=available,
        )


class AdvanceAlreadyRecoveredError(RecoveryError):
    code = "ADVANCE_ALREADY_RECOVERED"

    def __init__(self, advance_id: int, requested):
        super().__init__(
            "Advance already fully recovered",
            requested=requested,
            available=0,
            advance_id=advance_id,
        )


class ExceedsRemainingError(RecoveryError):
    code = "EXCEEDS_REMAINING"

    def __init__(self, requested, remaining):
        super().__init__(
            f"Cannot recover more than remaining amount: ₹{remaining}",
            requested=requested,
            available=remaining,
        )


class NoRecoverableBalanceError(RecoveryError):
    code = "NO_RECOVERABLE_BALANCE"

    def __init__(self, requested, payroll_id: int | None):
        super().__init__(
            "No payroll balance available to recover the advance from",
            requested=requested,
            available=0,
            payroll_id=payroll_id,
        )


class ExceedsPayrollCapacityError(RecoveryError):
    code = "EXCEEDS_PAYROLL_CAPACITY"

    def __init__(self, requested, capacity, payroll_id: int):
        super().__init__(
            f"Cannot recover more than the latest payroll allows: ₹{capacity}",
            requested=requested,
            available=capacity,
            payroll_id=payroll_id,
        )

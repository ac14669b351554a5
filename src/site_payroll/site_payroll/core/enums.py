from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    SAAS_ADMIN = "saas_admin"
    SUPER_ADMIN = "super_admin"
    SITE_MANAGER = "site_manager"
    LABOUR = "labour"
    CLIENT = "client"


ADMIN_ROLES = frozenset({Role.SAAS_ADMIN, Role.SUPER_ADMIN})
PAYROLL_MANAGER_ROLES = frozenset({Role.SAAS_ADMIN, Role.SUPER_ADMIN, Role.SITE_MANAGER})


class EntryKind(str, Enum):
    CHECK_IN = "check-in"
    CHECK_OUT = "check-out"


class DayStatus(str, Enum):
    """Attendance state of a single day as seen by the worker."""

    NOT_MARKED = "not-marked"
    CHECKED_IN = "checked-in"
    CHECKED_OUT = "checked-out"
    ABSENT = "absent"
    PRESENT = "present"
    LATE = "late"


class SalaryType(str, Enum):
    DAILY = "daily"
    MONTHLY = "monthly"
    HOURLY = "hourly"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


class PaymentMode(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    UPI = "upi"
    CHEQUE = "cheque"


class RecoveryStatus(str, Enum):
    PENDING = "pending"
    PARTIALLY_RECOVERED = "partially_recovered"
    RECOVERED = "recovered"


class AllowanceReason(str, Enum):
    BONUS = "bonus"
    TRAVEL = "travel"
    FOOD = "food"
    OVERTIME = "overtime"
    OTHER = "other"


class DeductionReason(str, Enum):
    ABSENCE = "absence"
    ADVANCE_RECOVERY = "advance_recovery"
    PENALTY = "penalty"
    OTHER = "other"

"""Core enums used across modules."""

from enum import StrEnum


class RoleEnum(StrEnum):
    """System roles."""

    RESIDENT = "resident"
    SECURITY = "security"
    MANAGEMENT = "management"
    APP_ADMIN = "app_admin"
    ADMINISTRATION = "administration"


ADMIN_ROLES: frozenset[RoleEnum] = frozenset(
    {RoleEnum.APP_ADMIN, RoleEnum.MANAGEMENT, RoleEnum.ADMINISTRATION},
)


class UnitTypeEnum(StrEnum):
    """Residential unit kind."""

    VILLA = "villa"
    FLAT = "flat"


class PricingTypeEnum(StrEnum):
    """How a facility is charged."""

    HOURLY = "hourly"
    PER_SLOT = "per_slot"
    PER_DAY = "per_day"


class FacilityStatusEnum(StrEnum):
    """Operational status of a facility."""

    AVAILABLE = "Available"
    MAINTENANCE = "Maintenance"
    CLOSED = "Closed"


class ScheduleTypeEnum(StrEnum):
    """Opening pattern of an hourly facility."""

    CONTINUOUS = "continuous"
    SPLIT = "split"


class BookingStatusEnum(StrEnum):
    """Booking lifecycle status."""

    CONFIRMED = "confirmed"
    CANCELLATION_REQUESTED = "cancellation_requested"
    MODIFICATION_REQUESTED = "modification_requested"
    CANCELLED = "cancelled"


class RequestStatusEnum(StrEnum):
    """Status of a resident request awaiting admin review."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewDecisionEnum(StrEnum):
    """Admin decision on a pending request."""

    APPROVE = "approve"
    REJECT = "reject"


class FeeTypeEnum(StrEnum):
    """Billing line kind."""

    MAINTENANCE = "maintenance"
    FACILITY_BOOKING = "facility_booking"
    CANCELLATION_CHARGE = "cancellation_charge"


class PaymentStatusEnum(StrEnum):
    """Invoice payment status."""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    PARTIAL = "partial"
    CANCELLED = "cancelled"


class OutboxStatusEnum(StrEnum):
    """Outbox event status for change-feed publishing."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


class WorkflowStepStatusEnum(StrEnum):
    """Outcome of one step in a multi-step operation."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"

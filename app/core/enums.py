"""Core enums used across modules."""

from enum import StrEnum


class RoleEnum(StrEnum):
    """Profile roles."""

    ADMIN = "admin"
    TEACHER = "teacher"


class StudentStatusEnum(StrEnum):
    """Student enrollment status."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class ContractTypeEnum(StrEnum):
    """Legacy contract type, used as lesson count fallback."""

    TEN_CLASS_CARD = "ten_class_card"
    HALF_YEAR = "half_year"


class ContractStatusEnum(StrEnum):
    """Contract lifecycle status."""

    ACTIVE = "active"
    COMPLETED = "completed"


class PaymentTypeEnum(StrEnum):
    """How the contract price is charged."""

    MONTHLY = "monthly"
    ONE_TIME = "one_time"


class BillingCycleEnum(StrEnum):
    """Billing cadence recorded on a contract."""

    MONTHLY = "monthly"
    UPFRONT = "upfront"


class GroupTypeEnum(StrEnum):
    """Lesson group size of a contract variant."""

    SINGLE = "single"
    GROUP = "group"
    DUO = "duo"
    VARIES = "varies"


class TrialStatusEnum(StrEnum):
    """Trial appointment status."""

    OPEN = "open"
    ASSIGNED = "assigned"
    ACCEPTED = "accepted"


class NotificationTypeEnum(StrEnum):
    """Notification kinds."""

    CONTRACT_FULFILLED = "contract_fulfilled"
    OPEN_TRIAL = "open_trial"
    ASSIGNED_TRIAL = "assigned_trial"
    ACCEPTED_TRIAL = "accepted_trial"
    DECLINED_TRIAL = "declined_trial"


class OperationStatusEnum(StrEnum):
    """Outcome of a logged operation."""

    SUCCESS = "success"
    FAILED = "failed"


class OutboxStatusEnum(StrEnum):
    """Outbox event status for integration publishing."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"

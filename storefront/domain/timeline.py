"""Status enums and the status -> timestamp mapping for orders and registrations.

Each entity has a main flow (ordered, forward progress) and a set of terminal
statuses outside of it. Every status maps to at most one timestamp column;
REJECTED is the only status that records nothing.
"""

from datetime import datetime, timezone
from enum import Enum

from storefront.domain.errors import ValidationError


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"
    REFUNDED = "REFUNDED"


class RegistrationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PAID = "PAID"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class EventStatus(str, Enum):
    UPCOMING = "UPCOMING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_status(status_type, value):
    """Coerce a raw status string into ``status_type``, rejecting unknown values."""
    try:
        return status_type(value)
    except ValueError:
        raise ValidationError(f"Invalid status: {value}")


class StatusTimeline:
    def __init__(self, status_type, main_flow, timestamp_fields):
        self.status_type = status_type
        self.main_flow = list(main_flow)
        self._fields = dict(timestamp_fields)
        self.terminal_statuses = [s for s in status_type if s not in self.main_flow]

    def timestamp_field_for(self, status) -> str | None:
        return self._fields.get(status)

    def main_flow_index_of(self, status) -> int | None:
        if status in self.main_flow:
            return self.main_flow.index(status)
        return None

    def is_terminal(self, status) -> bool:
        return status not in self.main_flow

    @property
    def timestamp_fields(self) -> list[str]:
        return [f for f in self._fields.values() if f]

    def fields_for(self, statuses) -> list[str]:
        return [f for f in (self.timestamp_field_for(s) for s in statuses) if f]

    def parse(self, value):
        return parse_status(self.status_type, value)


ORDER_TIMELINE = StatusTimeline(
    OrderStatus,
    main_flow=[
        OrderStatus.PENDING,
        OrderStatus.PROCESSING,
        OrderStatus.PAID,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
    ],
    timestamp_fields={
        OrderStatus.PENDING: "request_at",
        OrderStatus.PROCESSING: "approved_at",
        OrderStatus.PAID: "paid_at",
        OrderStatus.SHIPPED: "shipped_at",
        OrderStatus.DELIVERED: "delivered_at",
        OrderStatus.CANCELLED: "cancelled_at",
        OrderStatus.RETURNED: "returned_at",
        OrderStatus.REFUNDED: "refunded_at",
    },
)

REGISTRATION_TIMELINE = StatusTimeline(
    RegistrationStatus,
    main_flow=[
        RegistrationStatus.PENDING,
        RegistrationStatus.APPROVED,
        RegistrationStatus.PAID,
        RegistrationStatus.CONFIRMED,
    ],
    timestamp_fields={
        RegistrationStatus.PENDING: "request_at",
        RegistrationStatus.APPROVED: "approved_at",
        RegistrationStatus.REJECTED: None,
        RegistrationStatus.PAID: "paid_at",
        RegistrationStatus.CONFIRMED: "confirmed_at",
        RegistrationStatus.CANCELLED: "cancelled_at",
    },
)

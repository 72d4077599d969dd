from enum import StrEnum


class Channel(StrEnum):
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    WEBHOOK = "webhook"


ALL_CHANNELS: frozenset[str] = frozenset(c.value for c in Channel)


class Priority(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


# Lower rank drains first.
PRIORITY_RANK: dict[str, int] = {
    Priority.HIGH: 0,
    Priority.NORMAL: 1,
    Priority.LOW: 2,
}


class NotificationStatus(StrEnum):
    SENT = "sent"
    SCHEDULED = "scheduled"
    FAILED = "failed"


class QueueStatus(StrEnum):
    PENDING = "pending"
    SENDING = "sending"
    SENT = "sent"
    FAILED = "failed"


# Forward-only lifecycle: a status may only move to a higher rank. The
# one exception is a re-claim of an expired SENDING lease, which
# restamps SENDING in place.
QUEUE_STATUS_RANK: dict[str, int] = {
    QueueStatus.PENDING: 0,
    QueueStatus.SENDING: 1,
    QueueStatus.SENT: 2,
    QueueStatus.FAILED: 2,
}


class DeliveryOutcome(StrEnum):
    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"


class MetricType(StrEnum):
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"


class EmailProviderName(StrEnum):
    SMTP = "smtp"
    SENDGRID = "sendgrid"


SYSTEM_TENANT = "system"

"""Ready-made order and billing notifications.

Builders return a :class:`NotificationRequest`; sending it is up to the
caller.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from notification_core.enums import Channel, Priority
from notification_core.renderer import render_message
from notification_core.schemas import NotificationRequest

DEFAULT_SIGNATURE = "The Billing Team"

ORDER_STATUS_MESSAGES: dict[str, str] = {
    "pending": "Your order has been received and is being processed.",
    "confirmed": "Your order has been confirmed and will be prepared soon.",
    "preparing": "Your order is being prepared.",
    "ready": "Your order is ready for pickup/delivery!",
    "out_for_delivery": "Your order is out for delivery.",
    "delivered": "Your order has been delivered. Thank you!",
    "cancelled": "Your order has been cancelled.",
}
_ORDER_STATUS_FALLBACK = "Your order status has been updated."


class BillingEvent(StrEnum):
    INVOICE_CREATED = "invoice_created"
    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_FAILED = "payment_failed"
    RENEWAL_REMINDER = "renewal_reminder"
    TRIAL_ENDING = "trial_ending"
    SUBSCRIPTION_CANCELLED = "subscription_cancelled"


# (subject, body) per event.
BILLING_TEMPLATES: dict[BillingEvent, tuple[str, str]] = {
    BillingEvent.INVOICE_CREATED: (
        "Invoice {{ invoice_number }} - {{ tenant_name }}",
        """Dear {{ billing_name }},

Your invoice has been generated for {{ tenant_name }}.

Invoice Number: {{ invoice_number }}
Invoice Date: {{ invoice_date }}
Due Date: {{ due_date }}
Total Amount: {{ total_amount }}

Please login to your account to view and pay the invoice.

Thank you,
{{ signature }}""",
    ),
    BillingEvent.PAYMENT_SUCCESS: (
        "Payment Received - Invoice {{ invoice_number }}",
        """Dear {{ billing_name }},

We have received your payment for invoice {{ invoice_number }}.

Payment Details:
- Amount: {{ amount }}
- Transaction ID: {{ transaction_id }}
- Payment Method: {{ payment_method }}
- Date: {{ completed_at }}

Thank you for your payment!

{{ signature }}""",
    ),
    BillingEvent.PAYMENT_FAILED: (
        "Payment Failed - Invoice {{ invoice_number }}",
        """Dear {{ billing_name }},

Your payment for invoice {{ invoice_number }} has failed.

Invoice Amount: {{ total_amount }}
Failure Reason: {{ failure_reason }}

Please try again or contact support if you need assistance.

{{ signature }}""",
    ),
    BillingEvent.RENEWAL_REMINDER: (
        "Subscription Renewal Reminder - {{ tenant_name }}",
        """Dear {{ tenant_name }},

Your subscription ({{ plan_name }}) will renew in {{ days_until_renewal }} days.

Renewal Date: {{ renewal_date }}
Plan: {{ plan_name }}
Amount: {{ amount }}

Please ensure your payment method is up to date.

{{ signature }}""",
    ),
    BillingEvent.TRIAL_ENDING: (
        "Trial Ending Soon - {{ tenant_name }}",
        """Dear {{ tenant_name }},

Your trial period will end in {{ days_remaining }} days.

Trial End Date: {{ trial_end }}
Plan: {{ plan_name }}
Price after trial: {{ amount }}/{{ billing_period }}

To continue using our services, please add a payment method before the trial ends.

{{ signature }}""",
    ),
    BillingEvent.SUBSCRIPTION_CANCELLED: (
        "Subscription Cancelled - {{ tenant_name }}",
        """Dear {{ tenant_name }},

Your subscription ({{ plan_name }}) has been cancelled.

{{ cancellation_note }}

We're sorry to see you go. If you change your mind, you can reactivate anytime.

{{ signature }}""",
    ),
}


def order_update_request(
    order_id: str,
    status: str,
    recipient: str,
    *,
    channel: Channel = Channel.PUSH,
    tenant_id: str | None = None,
) -> NotificationRequest:
    """High-priority order status notification."""
    return NotificationRequest(
        channel=channel,
        recipient=recipient,
        subject=f"Order Update - {status.replace('_', ' ').capitalize()}",
        message=ORDER_STATUS_MESSAGES.get(status, _ORDER_STATUS_FALLBACK),
        tenant_id=tenant_id,
        priority=Priority.HIGH,
        data={"order_id": order_id, "status": status},
    )


def billing_request(
    event: BillingEvent,
    recipient: str,
    context: dict[str, Any],
    *,
    tenant_id: str | None = None,
    scheduled_for: datetime | None = None,
) -> NotificationRequest:
    """Billing email for *event*, rendered from *context*.

    Raises jinja2.UndefinedError when *context* lacks a template variable.
    """
    ctx = {"signature": DEFAULT_SIGNATURE, **context}
    if event == BillingEvent.PAYMENT_FAILED:
        ctx.setdefault("failure_reason", "Unknown")
    if event == BillingEvent.SUBSCRIPTION_CANCELLED and "cancellation_note" not in ctx:
        if ctx.get("cancel_at_period_end"):
            ctx["cancellation_note"] = (
                f"Your subscription will remain active until {ctx['current_period_end']}."
            )
        else:
            ctx["cancellation_note"] = "Your subscription has been cancelled immediately."

    rendered = render_message(*BILLING_TEMPLATES[event], ctx)
    return NotificationRequest(
        channel=Channel.EMAIL,
        recipient=recipient,
        subject=rendered.subject,
        message=rendered.body,
        tenant_id=tenant_id,
        scheduled_for=scheduled_for,
        data={"billing_event": str(event)},
    )

"""Guardian payment notifications, delivered to an external webhook when one is configured."""

import logging
from typing import Any, Dict

import httpx

from school_ledger.core.config import settings
from school_ledger.core.events import EventBus, PaymentRecorded, event_bus

logger = logging.getLogger(__name__)


def build_payment_notification(event: PaymentRecorded) -> Dict[str, Any]:
    payer = event.payer_name or "guardian"
    receipt = f" (receipt {event.receipt_number})" if event.receipt_number else ""
    return {
        "type": "payment_received",
        "student_id": event.student_id,
        "year_key": event.year_key,
        "transaction_id": str(event.transaction_id),
        "amount": str(event.amount),
        "transaction_date": event.transaction_date.isoformat(),
        "payment_method": event.payment_method,
        "receipt_number": event.receipt_number,
        "message": f"Payment of {event.amount} received from {payer} on {event.transaction_date.isoformat()}{receipt}.",
    }


async def notify_payment_received(event: PaymentRecorded) -> None:
    payload = build_payment_notification(event)
    if not settings.notification_webhook_url:
        logger.info("Payment notification for student %s: %s", event.student_id, payload["message"])
        return
    async with httpx.AsyncClient(timeout=settings.notification_timeout_seconds) as client:
        response = await client.post(settings.notification_webhook_url, json=payload)
        response.raise_for_status()
    logger.info("Payment notification sent for transaction %s", event.transaction_id)


def register_notification_subscribers(bus: EventBus = event_bus) -> None:
    bus.subscribe(PaymentRecorded, notify_payment_received)

import json
import logging
from datetime import date
from decimal import Decimal
from uuid import uuid4

import httpx
import pytest

from school_ledger.core import notifications
from school_ledger.core.config import settings
from school_ledger.core.events import EventBus, PaymentRecorded


def _event() -> PaymentRecorded:
    return PaymentRecorded(
        student_id="STU-0001",
        year_key="2025-2026",
        transaction_id=uuid4(),
        amount=Decimal("750.00"),
        transaction_date=date(2025, 10, 2),
        payment_method="cash",
        receipt_number="R-17",
        payer_name="Hassan Ali",
    )


def _mock_client(monkeypatch: pytest.MonkeyPatch, handler) -> None:
    real_client = httpx.AsyncClient

    def factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(notifications.httpx, "AsyncClient", factory)


def test_notification_payload() -> None:
    event = _event()
    payload = notifications.build_payment_notification(event)
    assert payload["type"] == "payment_received"
    assert payload["amount"] == "750.00"
    assert payload["transaction_id"] == str(event.transaction_id)
    assert "Hassan Ali" in payload["message"]
    assert "R-17" in payload["message"]


async def test_without_webhook_the_notification_is_logged(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setattr(settings, "notification_webhook_url", None)
    with caplog.at_level(logging.INFO, logger="school_ledger.core.notifications"):
        await notifications.notify_payment_received(_event())
    assert "Payment of 750.00 received" in caplog.text


async def test_webhook_receives_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return httpx.Response(202)

    monkeypatch.setattr(settings, "notification_webhook_url", "https://notify.example.test/hook")
    _mock_client(monkeypatch, handler)

    await notifications.notify_payment_received(_event())
    assert len(sent) == 1
    assert sent[0]["receipt_number"] == "R-17"


async def test_webhook_failure_is_contained_by_the_bus(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setattr(settings, "notification_webhook_url", "https://notify.example.test/hook")
    _mock_client(monkeypatch, lambda request: httpx.Response(500))
    bus = EventBus()
    notifications.register_notification_subscribers(bus)

    with caplog.at_level(logging.ERROR, logger="school_ledger.core.events"):
        await bus.publish(_event())
    assert "notify_payment_received" in caplog.text

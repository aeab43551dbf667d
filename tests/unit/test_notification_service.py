"""Unit tests for the billing event sink."""

import pytest
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4
from sqlalchemy.ext.asyncio import AsyncSession

from kinderledger.core.exceptions import NotFoundError
from kinderledger.models.enums import BillingEventType, PaymentStatus
from kinderledger.models.notification import BillingEvent
from kinderledger.services import notification_service
from kinderledger.services.notification_service import (
    NotificationService,
    OutboxNotificationSink,
    LoggingNotificationSink,
    invoice_payload,
)
from tests.factories import make_regular_invoice, make_extra_invoice


class FailingSink:
    async def notify(self, event_type, payload):
        raise ConnectionError("outbox unavailable")


@pytest.mark.asyncio
async def test_emit_returns_false_and_logs_on_failure(caplog):
    ok = await NotificationService.emit(
        BillingEventType.INVOICE_PAID, {"invoice_id": "abc"}, sink=FailingSink()
    )

    assert ok is False
    assert "Failed to publish billing event billing:invoice_paid" in caplog.text


@pytest.mark.asyncio
async def test_emit_uses_default_sink():
    sink = MagicMock()
    sink.notify = AsyncMock()
    previous = notification_service.get_notification_sink()
    notification_service.set_notification_sink(sink)
    try:
        ok = await NotificationService.emit(BillingEventType.INVOICE_CREATED, {"invoice_id": "1"})
    finally:
        notification_service.set_notification_sink(previous)

    assert ok is True
    sink.notify.assert_awaited_once_with("billing:invoice_created", {"invoice_id": "1"})


@pytest.mark.asyncio
async def test_logging_sink_writes_event(caplog):
    caplog.set_level("INFO")
    await LoggingNotificationSink().notify("billing:invoice_paid", {"invoice_id": "x"})
    assert "Billing event billing:invoice_paid" in caplog.text


@pytest.mark.asyncio
async def test_outbox_sink_stores_one_row_per_event():
    db = MagicMock()
    scope = MagicMock()
    scope.__aenter__ = AsyncMock(return_value=db)
    scope.__aexit__ = AsyncMock(return_value=False)

    with patch("kinderledger.services.notification_service.session_scope", return_value=scope):
        await OutboxNotificationSink().notify("billing:invoice_created", {"invoice_id": "1"})

    [event] = [c.args[0] for c in db.add.call_args_list]
    assert isinstance(event, BillingEvent)
    assert event.event_type == "billing:invoice_created"
    assert event.payload == {"invoice_id": "1"}


def test_invoice_payload_is_json_safe():
    invoice = make_regular_invoice(status=PaymentStatus.PAID, paid_date=date(2024, 3, 10))

    payload = invoice_payload(invoice)

    assert payload["population"] == "regular"
    assert payload["student_id"] == str(invoice.student_id)
    assert payload["course_id"] is None
    assert payload["amount"] == "300.00"
    assert payload["due_date"] == "2024-03-01"
    assert payload["paid_date"] == "2024-03-10"


def test_extra_invoice_payload_carries_course():
    invoice = make_extra_invoice()
    payload = invoice_payload(invoice)
    assert payload["population"] == "extra_course"
    assert payload["course_id"] == str(invoice.extra_course_id)
    assert payload["paid_date"] is None


@pytest.mark.asyncio
async def test_mark_processed_stamps_event():
    db = AsyncMock(spec=AsyncSession)
    event = BillingEvent(id=uuid4(), event_type="billing:invoice_paid", payload={})
    db.get.return_value = event

    result = await NotificationService.mark_processed(db, event.id)

    assert result.is_processed
    assert db.commit.called


@pytest.mark.asyncio
async def test_mark_processed_unknown_event():
    db = AsyncMock(spec=AsyncSession)
    db.get.return_value = None
    with pytest.raises(NotFoundError):
        await NotificationService.mark_processed(db, uuid4())


@pytest.mark.asyncio
async def test_list_events_unprocessed_first_page():
    db = AsyncMock(spec=AsyncSession)
    result = MagicMock()
    result.scalars.return_value.all.return_value = []
    db.execute.return_value = result

    await NotificationService.list_events(db)

    sql = str(db.execute.call_args.args[0])
    assert "billing_events.processed_at IS NULL" in sql
    assert "LIMIT" in sql

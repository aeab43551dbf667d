"""Notification sink for billing events.

Billing publishes one domain event per occurrence; fan-out to recipients is
the consumer's job. Publishing is best effort: a failing sink is logged and
never affects the invoice that triggered it.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kinderledger.config import settings
from kinderledger.core.exceptions import NotFoundError
from kinderledger.database import session_scope
from kinderledger.models.enums import BillingEventType
from kinderledger.models.notification import BillingEvent
from kinderledger.services.populations import BillableRelationship, Invoice
from kinderledger.utils.time import get_utc_now

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    async def notify(self, event_type: str, payload: Dict[str, Any]) -> None:
        ...


class OutboxNotificationSink:
    """Stores events in billing_events through its own session"""

    async def notify(self, event_type: str, payload: Dict[str, Any]) -> None:
        async with session_scope() as db:
            db.add(BillingEvent(event_type=event_type, payload=payload))


class LoggingNotificationSink:
    """Writes events to the log only"""

    async def notify(self, event_type: str, payload: Dict[str, Any]) -> None:
        logger.info("Billing event %s", event_type, extra={"event_type": event_type, "payload": payload})


_default_sink: NotificationSink = OutboxNotificationSink()


def get_notification_sink() -> NotificationSink:
    return _default_sink


def set_notification_sink(sink: NotificationSink) -> None:
    global _default_sink
    _default_sink = sink


def invoice_payload(invoice: Invoice, relationship: Optional[BillableRelationship] = None) -> Dict[str, Any]:
    """JSON-safe description of an invoice and its billed party"""
    return {
        "invoice_id": str(invoice.id),
        "population": invoice.population.value,
        "student_id": str(invoice.party_id),
        "student_name": relationship.student_name if relationship else invoice.party_name,
        "course_id": str(invoice.course_id) if invoice.course_id else None,
        "course_title": relationship.course_title if relationship else invoice.course_title,
        "amount": str(invoice.amount),
        "due_date": invoice.due_date.isoformat(),
        "paid_date": invoice.paid_date.isoformat() if invoice.paid_date else None,
    }


class NotificationService:
    @staticmethod
    async def emit(
        event_type: BillingEventType,
        payload: Dict[str, Any],
        sink: Optional[NotificationSink] = None,
    ) -> bool:
        """Publish an event; returns False when the sink failed."""
        sink = sink or get_notification_sink()
        try:
            await sink.notify(event_type.value, payload)
            return True
        except Exception:
            logger.exception(
                "Failed to publish billing event %s",
                event_type.value,
                extra={"invoice_id": payload.get("invoice_id")},
            )
            return False

    @staticmethod
    async def list_events(
        db: AsyncSession,
        unprocessed_only: bool = True,
        limit: Optional[int] = None,
    ) -> List[BillingEvent]:
        query = select(BillingEvent).order_by(BillingEvent.created_at)
        if unprocessed_only:
            query = query.where(BillingEvent.processed_at.is_(None))
        result = await db.execute(query.limit(limit or settings.BILLING_EVENTS_PAGE_SIZE))
        return list(result.scalars().all())

    @staticmethod
    async def mark_processed(db: AsyncSession, event_id: UUID) -> BillingEvent:
        event = await db.get(BillingEvent, event_id)
        if event is None:
            raise NotFoundError(f"Billing event {event_id} not found")
        if event.processed_at is None:
            event.processed_at = get_utc_now()
            await db.commit()
            await db.refresh(event)
        return event

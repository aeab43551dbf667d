"""Payment Ledger - status transitions of a single invoice.

    UNPAID  --mark_paid-->     PAID
    UNPAID  --mark_partial-->  PARTIAL --mark_paid--> PAID
    UNPAID/PARTIAL --sweep--> OVERDUE --mark_paid--> PAID

PAID is terminal. Each transition reads the invoice under a row lock and
commits before any event is published.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from kinderledger.core.exceptions import ConflictError, ValidationError
from kinderledger.models.enums import PaymentStatus, BillingEventType
from kinderledger.services import billing_policy
from kinderledger.services.invoice_service import InvoiceService
from kinderledger.services.notification_service import NotificationService, NotificationSink, invoice_payload
from kinderledger.services.populations import Invoice
from kinderledger.utils.time import get_today

logger = logging.getLogger(__name__)


class PaymentLedger:
    """Drives invoice status transitions"""

    @staticmethod
    def _ensure_not_paid(invoice: Invoice) -> None:
        if invoice.status == PaymentStatus.PAID:
            raise ConflictError(f"Invoice {invoice.id} is already paid", code="INVOICE_ALREADY_PAID")

    @staticmethod
    async def mark_paid(
        db: AsyncSession,
        invoice_id: UUID,
        paid_date: Optional[date] = None,
        notes: Optional[str] = None,
        sink: Optional[NotificationSink] = None,
    ) -> Invoice:
        """
        Settle an invoice. Valid from UNPAID, PARTIAL and OVERDUE.

        Args:
            db: Database session
            invoice_id: Invoice of either population
            paid_date: Settlement date, defaults to today
            notes: Appended to the existing notes

        Raises:
            NotFoundError: unknown invoice
            ConflictError: invoice already PAID
        """
        invoice = await InvoiceService.get_invoice(db, invoice_id, for_update=True)
        PaymentLedger._ensure_not_paid(invoice)

        previous = invoice.status
        invoice.status = PaymentStatus.PAID
        invoice.paid_date = paid_date or get_today()
        invoice.append_notes(notes)
        invoice.touch()
        await db.commit()
        await db.refresh(invoice)

        logger.info(
            "Invoice marked paid",
            extra={
                "invoice_id": str(invoice.id),
                "population": invoice.population.value,
                "previous_status": previous.value,
            },
        )
        await NotificationService.emit(BillingEventType.INVOICE_PAID, invoice_payload(invoice), sink)
        return invoice

    @staticmethod
    async def mark_partial(
        db: AsyncSession,
        invoice_id: UUID,
        partial_amount: Union[Decimal, str, int, float],
        notes: Optional[str] = None,
    ) -> Invoice:
        """
        Record a partial payment. The invoice amount is overwritten with the
        partial amount; the originally billed amount stays in billed_amount.
        No event is published.

        Raises:
            NotFoundError: unknown invoice
            ValidationError: amount unparseable, not positive, or above the billed amount
            ConflictError: invoice already PAID
        """
        amount = billing_policy.to_money(partial_amount)
        if amount <= 0:
            raise ValidationError("Partial amount must be greater than zero")

        invoice = await InvoiceService.get_invoice(db, invoice_id, for_update=True)
        PaymentLedger._ensure_not_paid(invoice)
        if amount > invoice.billed_amount:
            raise ValidationError(
                f"Partial amount {amount} exceeds billed amount {invoice.billed_amount}"
            )

        invoice.status = PaymentStatus.PARTIAL
        invoice.amount = amount
        invoice.append_notes(notes)
        invoice.touch()
        await db.commit()
        await db.refresh(invoice)

        logger.info(
            "Invoice marked partial",
            extra={"invoice_id": str(invoice.id), "amount": str(amount)},
        )
        return invoice

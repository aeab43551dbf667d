"""Invoice Service - monthly generation, ad-hoc invoices and lookups"""

import logging
from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, extract
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from kinderledger.core.exceptions import NotFoundError
from kinderledger.models.enums import Population, PaymentStatus, PaymentType, BillingEventType
from kinderledger.services import billing_policy
from kinderledger.services.notification_service import NotificationService, NotificationSink, invoice_payload
from kinderledger.services.populations import BillableRelationship, Invoice, PopulationAdapter, get_adapter, all_adapters

logger = logging.getLogger(__name__)


def _violates(exc: IntegrityError, constraint: str) -> bool:
    """True when the driver reports ``constraint`` as the violated one"""
    orig = exc.orig
    name = getattr(orig, "constraint_name", None) or getattr(orig.__cause__, "constraint_name", None)
    if name:
        return name == constraint
    return f'"{constraint}"' in str(orig)


class InvoiceService:
    """Creates invoices for both populations and reads them back"""

    @staticmethod
    async def _insert_cycle_invoice(db: AsyncSession, adapter: PopulationAdapter, invoice: Invoice) -> bool:
        """
        Insert a cycle invoice inside a SAVEPOINT.

        A concurrent duplicate violates the population's per-period UNIQUE
        constraint; only that savepoint is rolled back and the invoice is
        reported as already generated. Any other integrity error propagates.
        """
        try:
            async with db.begin_nested():
                db.add(invoice)
        except IntegrityError as exc:
            if not _violates(exc, adapter.period_constraint):
                raise
            return False
        return True

    @staticmethod
    async def generate_for_period(
        db: AsyncSession,
        population: Population,
        year: int,
        month: int,
        sink: Optional[NotificationSink] = None,
    ) -> int:
        """
        Create one UNPAID invoice per active relationship of a population for
        (year, month), skipping relationships already billed for that period.

        Re-running for the same period creates nothing new.

        Returns:
            Number of invoices created
        """
        due_date = billing_policy.due_date_for(year, month)
        adapter = get_adapter(population)
        relationships = await adapter.list_active_relationships(db)

        created: List[Tuple[Invoice, BillableRelationship]] = []
        skipped = 0
        for relationship in relationships:
            if await adapter.has_invoice_for_period(db, relationship, year, month):
                skipped += 1
                continue
            invoice = adapter.build_invoice(
                relationship,
                amount=billing_policy.amount_for(relationship),
                due_date=due_date,
                notes=billing_policy.cycle_notes(relationship, year, month),
                billing_year=year,
                billing_month=month,
            )
            if await InvoiceService._insert_cycle_invoice(db, adapter, invoice):
                created.append((invoice, relationship))
            else:
                skipped += 1
                logger.info(
                    "Invoice already generated concurrently",
                    extra={"population": adapter.population.value, "student_id": str(relationship.student_id)},
                )

        await db.commit()
        logger.info(
            "Generated %d %s invoices for %04d-%02d (%d skipped)",
            len(created), adapter.population.value, year, month, skipped,
        )

        for invoice, relationship in created:
            await NotificationService.emit(
                BillingEventType.INVOICE_CREATED, invoice_payload(invoice, relationship), sink
            )
        return len(created)

    @staticmethod
    async def generate_single(
        db: AsyncSession,
        population: Population,
        student_id: UUID,
        due_date: date,
        notes: Optional[str] = None,
        course_id: Optional[UUID] = None,
        payment_type: PaymentType = PaymentType.TUITION,
        sink: Optional[NotificationSink] = None,
    ) -> Invoice:
        """
        Create an ad-hoc invoice outside the monthly cycle.

        No existence check is made: an explicit request may duplicate a cycle
        invoice. The invoice carries no billing period.

        Raises:
            NotFoundError: unknown student or course
        """
        adapter = get_adapter(population)
        relationship = await adapter.resolve(db, student_id, course_id, payment_type)
        invoice = adapter.build_invoice(
            relationship,
            amount=billing_policy.amount_for(relationship),
            due_date=due_date,
            notes=notes or billing_policy.single_notes(relationship),
        )
        db.add(invoice)
        await db.commit()
        await db.refresh(invoice)
        logger.info(
            "Created single %s invoice",
            adapter.population.value,
            extra={"invoice_id": str(invoice.id), "student_id": str(student_id)},
        )

        await NotificationService.emit(
            BillingEventType.INVOICE_CREATED, invoice_payload(invoice, relationship), sink
        )
        return invoice

    @staticmethod
    async def get_invoice(db: AsyncSession, invoice_id: UUID, for_update: bool = False) -> Invoice:
        """
        Find an invoice of either population by id.

        With for_update the row is locked (SELECT ... FOR UPDATE) until the
        surrounding transaction ends.

        Raises:
            NotFoundError: no invoice with that id
        """
        for adapter in all_adapters():
            model = adapter.invoice_model
            query = select(model).where(model.id == invoice_id)
            if for_update:
                query = query.with_for_update()
            result = await db.execute(query)
            invoice = result.scalar_one_or_none()
            if invoice is not None:
                return invoice
        raise NotFoundError(f"Invoice {invoice_id} not found")

    @staticmethod
    async def list_invoices(
        db: AsyncSession,
        population: Population,
        status: Optional[PaymentStatus] = None,
        year: Optional[int] = None,
        month: Optional[int] = None,
        student_id: Optional[UUID] = None,
    ) -> List[Invoice]:
        """
        Invoices of one population, newest due date first.

        year/month filter on the due date; a month without a year is rejected.

        Raises:
            ValidationError: month outside 1-12, or given without a year
        """
        billing_policy.validate_period_filter(year, month)
        adapter = get_adapter(population)
        model = adapter.invoice_model
        query = select(model)
        if status is not None:
            query = query.where(model.status == status)
        if year is not None:
            query = query.where(extract("year", model.due_date) == year)
        if month is not None:
            query = query.where(extract("month", model.due_date) == month)
        if student_id is not None:
            query = query.where(*adapter.party_filter(student_id))
        result = await db.execute(query.order_by(model.due_date.desc(), model.created_at.desc()))
        return list(result.scalars().all())

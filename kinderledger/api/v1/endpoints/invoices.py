"""Invoice endpoints - monthly generation, ad-hoc bills, payments and overdue sweep"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from kinderledger.api import deps
from kinderledger.models.enums import Population, PaymentStatus
from kinderledger.services.invoice_service import InvoiceService
from kinderledger.services.payment_ledger import PaymentLedger
from kinderledger.services.overdue_sweeper import OverdueSweeper
from kinderledger.services.balance_service import BalanceService
from kinderledger.schemas.billing import (
    InvoiceResponse,
    SingleInvoiceCreate,
    MarkPaidRequest,
    MarkPartialRequest,
    SweepRequest,
    GenerationResult,
    SweepResult,
)
from kinderledger.schemas.responses import SuccessResponse
from kinderledger.utils.time import get_today

router = APIRouter()


@router.get("", response_model=SuccessResponse)
async def list_invoices(
    population: Population = Query(...),
    status: Optional[PaymentStatus] = Query(None),
    year: Optional[int] = Query(None, description="Due-date year"),
    month: Optional[int] = Query(None, description="Due-date month (1-12), requires year"),
    student_id: Optional[UUID] = Query(None),
    _: deps.Principal = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """List invoices of one population, newest due date first."""
    invoices = await InvoiceService.list_invoices(
        db, population, status=status, year=year, month=month, student_id=student_id
    )
    return SuccessResponse(data=[InvoiceResponse.model_validate(i) for i in invoices])


@router.get("/statistics", response_model=SuccessResponse)
async def payment_statistics(
    population: Population = Query(...),
    year: Optional[int] = Query(None, description="Due-date year"),
    month: Optional[int] = Query(None, description="Due-date month (1-12), requires year"),
    _: deps.Principal = Depends(deps.require_owner),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Invoice counts and amounts of a population. Owner only."""
    stats = await BalanceService.payment_statistics(db, population, year=year, month=month)
    return SuccessResponse(data=stats)


@router.post("/generate-monthly/{population}", response_model=SuccessResponse)
async def generate_current_month(
    population: Population,
    _: deps.Principal = Depends(deps.require_owner),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Generate this month's invoices for a population. Owner only."""
    today = get_today()
    created = await InvoiceService.generate_for_period(db, population, today.year, today.month)
    return SuccessResponse(
        data=GenerationResult(population=population, year=today.year, month=today.month, created=created),
        message=f"{created} invoices generated",
    )


@router.post("/generate-monthly/{population}/{year}/{month}", response_model=SuccessResponse)
async def generate_monthly(
    population: Population,
    year: int,
    month: int,
    _: deps.Principal = Depends(deps.require_owner),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Generate a population's invoices for (year, month). Safe to repeat. Owner only."""
    created = await InvoiceService.generate_for_period(db, population, year, month)
    return SuccessResponse(
        data=GenerationResult(population=population, year=year, month=month, created=created),
        message=f"{created} invoices generated",
    )


@router.post("/single", response_model=SuccessResponse, status_code=201)
async def create_single_invoice(
    invoice_in: SingleInvoiceCreate,
    _: deps.Principal = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Create an ad-hoc invoice for one student (and course, for extra courses)."""
    invoice = await InvoiceService.generate_single(
        db,
        invoice_in.population,
        invoice_in.student_id,
        invoice_in.due_date,
        notes=invoice_in.notes,
        course_id=invoice_in.course_id,
        payment_type=invoice_in.payment_type,
    )
    return SuccessResponse(
        data=InvoiceResponse.model_validate(invoice),
        message="Invoice created successfully",
    )


@router.post("/sweep-overdue", response_model=SuccessResponse)
async def sweep_overdue(
    body: Optional[SweepRequest] = None,
    _: deps.Principal = Depends(deps.require_owner),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Mark past-due unpaid and partial invoices OVERDUE. Owner only."""
    today = (body.today if body else None) or get_today()
    updated = await OverdueSweeper.sweep(db, today=today)
    return SuccessResponse(
        data=SweepResult(today=today, updated=updated),
        message=f"{updated} invoices marked overdue",
    )


@router.get("/{invoice_id}", response_model=SuccessResponse)
async def get_invoice(
    invoice_id: UUID,
    _: deps.Principal = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    invoice = await InvoiceService.get_invoice(db, invoice_id)
    return SuccessResponse(data=InvoiceResponse.model_validate(invoice))


@router.patch("/{invoice_id}/mark-paid", response_model=SuccessResponse)
async def mark_paid(
    invoice_id: UUID,
    body: Optional[MarkPaidRequest] = None,
    _: deps.Principal = Depends(deps.require_owner),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Settle an invoice. paid_date defaults to today. Owner only."""
    body = body or MarkPaidRequest()
    invoice = await PaymentLedger.mark_paid(db, invoice_id, paid_date=body.paid_date, notes=body.notes)
    return SuccessResponse(
        data=InvoiceResponse.model_validate(invoice),
        message="Invoice marked as paid",
    )


@router.patch("/{invoice_id}/mark-partial", response_model=SuccessResponse)
async def mark_partial(
    invoice_id: UUID,
    body: MarkPartialRequest,
    _: deps.Principal = Depends(deps.require_owner),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Record a partial payment; the invoice amount becomes the amount received. Owner only."""
    invoice = await PaymentLedger.mark_partial(db, invoice_id, body.partial_amount, notes=body.notes)
    return SuccessResponse(
        data=InvoiceResponse.model_validate(invoice),
        message="Partial payment recorded",
    )

from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, ConfigDict, computed_field, model_validator
from uuid import UUID
from datetime import datetime, date
from decimal import Decimal

from kinderledger.models.enums import Population, PaymentStatus, PaymentType


class InvoiceResponse(BaseModel):
    id: UUID
    population: Population
    party_id: UUID
    party_name: Optional[str] = None
    course_id: Optional[UUID] = None
    course_title: Optional[str] = None
    payment_type: Optional[PaymentType] = None
    amount: Decimal
    billed_amount: Decimal
    status: PaymentStatus
    due_date: date
    paid_date: Optional[date] = None
    notes: Optional[str] = None
    billing_year: Optional[int] = None
    billing_month: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SingleInvoiceCreate(BaseModel):
    """Ad-hoc invoice outside the monthly cycle"""
    population: Population
    student_id: UUID
    course_id: Optional[UUID] = None
    due_date: date
    notes: Optional[str] = Field(None, max_length=2000)
    payment_type: PaymentType = PaymentType.TUITION

    @model_validator(mode="after")
    def check_course(self) -> "SingleInvoiceCreate":
        if self.population == Population.EXTRA_COURSE and self.course_id is None:
            raise ValueError("course_id is required for extra-course invoices")
        if self.population == Population.REGULAR and self.course_id is not None:
            raise ValueError("course_id is only accepted for extra-course invoices")
        return self


class MarkPaidRequest(BaseModel):
    paid_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)


class MarkPartialRequest(BaseModel):
    partial_amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    notes: Optional[str] = Field(None, max_length=2000)


class SweepRequest(BaseModel):
    today: Optional[date] = None


class GenerationResult(BaseModel):
    population: Population
    year: int
    month: int
    created: int


class SweepResult(BaseModel):
    today: date
    updated: int


class PaymentStatistics(BaseModel):
    population: Population
    year: Optional[int] = None
    month: Optional[int] = None
    total_payments: int = 0
    paid_payments: int = 0
    unpaid_payments: int = 0
    partial_payments: int = 0
    overdue_payments: int = 0
    total_amount: Decimal = Decimal("0.00")
    paid_amount: Decimal = Decimal("0.00")
    expected_amount: Decimal = Decimal("0.00")

    @computed_field
    @property
    def unpaid_amount(self) -> Decimal:
        return self.expected_amount - self.paid_amount


class BillingEventResponse(BaseModel):
    id: UUID
    event_type: str
    payload: Dict[str, Any]
    created_at: datetime
    processed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

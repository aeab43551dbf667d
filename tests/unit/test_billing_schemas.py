"""Unit tests for billing request and response schemas."""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4
from pydantic import ValidationError

from kinderledger.models.enums import Population, PaymentStatus
from kinderledger.schemas.billing import (
    SingleInvoiceCreate,
    MarkPartialRequest,
    InvoiceResponse,
    PaymentStatistics,
)
from tests.factories import make_regular_invoice, make_extra_invoice


def test_single_invoice_extra_requires_course():
    with pytest.raises(ValidationError):
        SingleInvoiceCreate(population="extra_course", student_id=uuid4(), due_date=date(2024, 3, 1))


def test_single_invoice_regular_rejects_course():
    with pytest.raises(ValidationError):
        SingleInvoiceCreate(
            population="regular", student_id=uuid4(), course_id=uuid4(), due_date=date(2024, 3, 1)
        )


def test_single_invoice_defaults_to_tuition():
    body = SingleInvoiceCreate(population="regular", student_id=uuid4(), due_date="2024-03-15")
    assert body.payment_type.value == "TUITION"
    assert body.due_date == date(2024, 3, 15)


@pytest.mark.parametrize("amount", ["0", "-1", "12.345"])
def test_partial_amount_validation(amount):
    with pytest.raises(ValidationError):
        MarkPartialRequest(partial_amount=amount)


def test_invoice_response_from_regular_model():
    invoice = make_regular_invoice()
    data = InvoiceResponse.model_validate(invoice)

    assert data.population == Population.REGULAR
    assert data.party_id == invoice.student_id
    assert data.course_id is None
    assert data.payment_type.value == "TUITION"
    assert data.status == PaymentStatus.UNPAID


def test_invoice_response_from_extra_model():
    invoice = make_extra_invoice()
    data = InvoiceResponse.model_validate(invoice)

    assert data.population == Population.EXTRA_COURSE
    assert data.party_id == invoice.extra_student_id
    assert data.course_id == invoice.extra_course_id
    assert data.payment_type is None


def test_statistics_serializes_unpaid_amount():
    stats = PaymentStatistics(
        population=Population.REGULAR,
        total_amount=Decimal("900.00"),
        paid_amount=Decimal("300.00"),
        expected_amount=Decimal("900.00"),
    )
    assert stats.model_dump()["unpaid_amount"] == Decimal("600.00")

"""Unit tests for BalanceService."""

import re

import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4
from sqlalchemy.dialects import postgresql
from sqlalchemy.ext.asyncio import AsyncSession

from kinderledger.core.exceptions import ValidationError
from kinderledger.models.enums import Population, PaymentStatus, PaymentType, StaffType
from kinderledger.models.student import ExtraCourse
from kinderledger.services.balance_service import BalanceService, CATEGORY_OF
from kinderledger.services.populations import get_adapter
from tests.factories import make_regular_invoice, make_extra_invoice, make_staff


def _course(title):
    return ExtraCourse(id=uuid4(), title=title, monthly_price=Decimal("100.00"), active=True)


def _paid_regular(amount, payment_type=PaymentType.TUITION):
    return make_regular_invoice(
        amount=Decimal(amount), billed_amount=Decimal(amount), payment_type=payment_type,
        status=PaymentStatus.PAID, paid_date=date(2024, 3, 10),
    )


def _paid_extra(amount, title):
    course = _course(title)
    return make_extra_invoice(
        amount=Decimal(amount), billed_amount=Decimal(amount), course=course, extra_course_id=course.id,
        status=PaymentStatus.PAID, paid_date=date(2024, 3, 12),
    )


PAID = {
    Population.REGULAR: [_paid_regular("300.00"), _paid_regular("50.00", PaymentType.REGISTRATION)],
    Population.EXTRA_COURSE: [_paid_extra("150.00", "Piano"), _paid_extra("90.00", "Chess")],
}
OUTSTANDING = {
    Population.REGULAR: [
        make_regular_invoice(),
        make_regular_invoice(status=PaymentStatus.PARTIAL, amount=Decimal("120.00")),
    ],
    Population.EXTRA_COURSE: [],
}
STAFF = [make_staff("2000.00", StaffType.EDUCATRICE), make_staff("1500.00", StaffType.ASSISTANT)]


def _patch_queries(march_only=False):
    """Patch the query helpers; with march_only, other months hold no invoices."""

    async def paid(db, adapter, start, end):
        if march_only and start.month != 3:
            return []
        return PAID[adapter.population]

    async def outstanding(db, adapter, start=None, end=None):
        if march_only and start is not None and start.month != 3:
            return []
        return OUTSTANDING[adapter.population]

    return (
        patch.object(BalanceService, "_paid_invoices", new=AsyncMock(side_effect=paid)),
        patch.object(BalanceService, "_outstanding_invoices", new=AsyncMock(side_effect=outstanding)),
        patch.object(BalanceService, "list_active_staff", new=AsyncMock(return_value=STAFF)),
    )


@pytest.mark.asyncio
async def test_monthly_balance():
    db = AsyncMock(spec=AsyncSession)
    p1, p2, p3 = _patch_queries()
    with p1, p2, p3:
        report = await BalanceService.monthly_balance(db, 2024, 3)

    assert report.month_name == "March"
    assert report.income_by_population == {
        Population.REGULAR: Decimal("350.00"),
        Population.EXTRA_COURSE: Decimal("240.00"),
    }
    assert report.total_income == Decimal("590.00")
    assert report.total_payroll == Decimal("3500.00")
    assert report.net_income == Decimal("-2910.00")

    assert report.breakdowns.regular.by_category == {
        "TUITION": Decimal("300.00"),
        "REGISTRATION": Decimal("50.00"),
    }
    assert report.breakdowns.extra_course.by_category == {
        "Piano": Decimal("150.00"),
        "Chess": Decimal("90.00"),
    }
    assert report.breakdowns.extra_course.total_payments == 2
    assert report.breakdowns.payroll.by_type == {
        "EDUCATRICE": Decimal("2000.00"),
        "ASSISTANT": Decimal("1500.00"),
    }
    assert report.breakdowns.payroll.staff_count == {"EDUCATRICE": 1, "ASSISTANT": 1}

    provisional = report.provisional_income
    assert provisional.by_population[Population.REGULAR].amount == Decimal("420.00")
    assert provisional.by_population[Population.REGULAR].count == 2
    assert provisional.by_population[Population.EXTRA_COURSE].count == 0
    assert provisional.total_amount == Decimal("420.00")
    assert provisional.total_count == 2


@pytest.mark.asyncio
async def test_monthly_balance_is_additive():
    db = AsyncMock(spec=AsyncSession)
    p1, p2, p3 = _patch_queries()
    with p1, p2, p3:
        report = await BalanceService.monthly_balance(db, 2024, 3)

    assert report.total_income == sum(report.income_by_population.values())
    assert report.net_income == report.total_income - report.total_payroll
    assert report.total_income == (
        report.breakdowns.regular.total_amount + report.breakdowns.extra_course.total_amount
    )


@pytest.mark.asyncio
async def test_monthly_balance_queries_the_whole_month():
    db = AsyncMock(spec=AsyncSession)
    p1, p2, p3 = _patch_queries()
    with p1 as mock_paid, p2, p3:
        await BalanceService.monthly_balance(db, 2024, 2)

    _, _, start, end = mock_paid.call_args.args
    assert (start, end) == (date(2024, 2, 1), date(2024, 2, 29))


@pytest.mark.asyncio
async def test_empty_month_nets_payroll():
    db = AsyncMock(spec=AsyncSession)
    with patch.object(BalanceService, "_paid_invoices", new=AsyncMock(return_value=[])), \
            patch.object(BalanceService, "_outstanding_invoices", new=AsyncMock(return_value=[])), \
            patch.object(BalanceService, "list_active_staff", new=AsyncMock(return_value=[])):
        report = await BalanceService.monthly_balance(db, 2024, 7)

    assert report.total_income == Decimal("0.00")
    assert report.net_income == Decimal("0.00")
    assert report.provisional_income.total_count == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("month", [0, 13])
async def test_monthly_balance_invalid_month(month):
    db = AsyncMock(spec=AsyncSession)
    with pytest.raises(ValidationError):
        await BalanceService.monthly_balance(db, 2024, month)
    assert not db.execute.called


@pytest.mark.asyncio
async def test_yearly_balance_sums_months():
    db = AsyncMock(spec=AsyncSession)
    p1, p2, p3 = _patch_queries(march_only=True)
    with p1, p2, p3:
        report = await BalanceService.yearly_balance(db, 2024)

    assert [m.month for m in report.months] == list(range(1, 13))
    assert report.total_income == sum(m.total_income for m in report.months) == Decimal("590.00")
    assert report.total_payroll == Decimal("3500.00") * 12
    assert report.net_income == report.total_income - report.total_payroll
    assert report.income_by_population[Population.REGULAR] == Decimal("350.00")
    assert report.income_by_population[Population.EXTRA_COURSE] == Decimal("240.00")
    assert report.provisional_income == Decimal("420.00")


@pytest.mark.asyncio
async def test_pending_payments_spans_all_periods():
    db = AsyncMock(spec=AsyncSession)
    p1, p2, p3 = _patch_queries()
    with p1, p2 as mock_outstanding, p3:
        summary = await BalanceService.pending_payments(db)

    for call in mock_outstanding.call_args_list:
        assert len(call.args) == 2
    assert summary.total_amount == Decimal("420.00")
    assert summary.total_count == 2


def test_extra_income_without_course_is_grouped_as_unknown():
    invoice = make_extra_invoice(status=PaymentStatus.PAID, paid_date=date(2024, 3, 1))

    breakdown = BalanceService.summarize_income([invoice], CATEGORY_OF[Population.EXTRA_COURSE])

    assert breakdown.by_category == {"Unknown course": Decimal("120.00")}


def test_summarize_statistics():
    invoices = [
        make_regular_invoice(status=PaymentStatus.PAID, paid_date=date(2024, 3, 2)),
        make_regular_invoice(),
        make_regular_invoice(status=PaymentStatus.PARTIAL, amount=Decimal("100.00")),
        make_regular_invoice(status=PaymentStatus.OVERDUE),
    ]

    stats = BalanceService.summarize_statistics(Population.REGULAR, invoices, 2024, 3)

    assert stats.total_payments == 4
    assert (stats.paid_payments, stats.unpaid_payments, stats.partial_payments, stats.overdue_payments) == (1, 1, 1, 1)
    assert stats.total_amount == Decimal("1000.00")
    assert stats.paid_amount == Decimal("300.00")
    assert stats.unpaid_amount == Decimal("700.00")


@pytest.mark.asyncio
async def test_payment_statistics_queries_population():
    db = AsyncMock(spec=AsyncSession)
    result = MagicMock()
    result.scalars.return_value.all.return_value = [make_extra_invoice()]
    db.execute.return_value = result

    stats = await BalanceService.payment_statistics(db, Population.EXTRA_COURSE, 2024, 3)

    assert stats.population == Population.EXTRA_COURSE
    assert stats.unpaid_payments == 1
    assert "extra_invoices" in str(db.execute.call_args.args[0])


def _empty_result():
    result = MagicMock()
    result.scalars.return_value.all.return_value = []
    return result


def _where(db, call=-1):
    """WHERE clause of an executed statement and its bound values, postgresql dialect"""
    compiled = db.execute.call_args_list[call].args[0].compile(dialect=postgresql.dialect())
    return str(compiled).split("WHERE", 1)[1], compiled.params


def _bound(where, params, fragment):
    """Value bound to the placeholder right after ``fragment``"""
    match = re.search(re.escape(fragment) + r" (?:%\((\w+)\)s|\(__\[POSTCOMPILE_(\w+)\]\))", where)
    assert match, f"{fragment!r} not in {where!r}"
    return params[match.group(1) or match.group(2)]


@pytest.mark.asyncio
async def test_income_is_paid_invoices_by_paid_date():
    db = AsyncMock(spec=AsyncSession)
    db.execute.return_value = _empty_result()

    await BalanceService._paid_invoices(db, get_adapter(Population.REGULAR), date(2024, 3, 1), date(2024, 3, 31))

    where, params = _where(db)
    assert _bound(where, params, "regular_invoices.status =") == PaymentStatus.PAID
    assert _bound(where, params, "regular_invoices.paid_date >=") == date(2024, 3, 1)
    assert _bound(where, params, "regular_invoices.paid_date <=") == date(2024, 3, 31)
    assert "due_date" not in where


@pytest.mark.asyncio
async def test_provisional_income_is_outstanding_invoices_by_due_date():
    db = AsyncMock(spec=AsyncSession)
    db.execute.return_value = _empty_result()

    await BalanceService._outstanding_invoices(
        db, get_adapter(Population.EXTRA_COURSE), date(2024, 2, 1), date(2024, 2, 29)
    )

    where, params = _where(db)
    assert set(_bound(where, params, "extra_invoices.status IN")) == {
        PaymentStatus.UNPAID, PaymentStatus.PARTIAL, PaymentStatus.OVERDUE,
    }
    assert _bound(where, params, "extra_invoices.due_date >=") == date(2024, 2, 1)
    assert _bound(where, params, "extra_invoices.due_date <=") == date(2024, 2, 29)
    assert "paid_date" not in where


@pytest.mark.asyncio
async def test_pending_payments_has_no_date_bounds():
    db = AsyncMock(spec=AsyncSession)
    db.execute.return_value = _empty_result()

    await BalanceService.pending_payments(db)

    assert db.execute.call_count == 2
    for call in range(2):
        where, _ = _where(db, call)
        assert "status IN" in where
        assert "due_date" not in where


@pytest.mark.asyncio
async def test_payroll_reads_active_staff_only():
    db = AsyncMock(spec=AsyncSession)
    db.execute.return_value = _empty_result()

    await BalanceService.list_active_staff(db)

    where, _ = _where(db)
    assert where.strip() == "staff.active IS true"


@pytest.mark.asyncio
async def test_monthly_balance_end_to_end_filters():
    """Queries issued for March 2024: income by paid_date, provisional by due_date, then payroll."""
    db = AsyncMock(spec=AsyncSession)
    db.execute.return_value = _empty_result()

    await BalanceService.monthly_balance(db, 2024, 3)

    # paid + outstanding per population, then staff
    assert db.execute.call_count == 5
    where, params = _where(db, 0)
    assert _bound(where, params, "regular_invoices.paid_date <=") == date(2024, 3, 31)
    where, params = _where(db, 1)
    assert _bound(where, params, "regular_invoices.due_date >=") == date(2024, 3, 1)
    where, _ = _where(db, 4)
    assert "staff.active" in where


@pytest.mark.asyncio
async def test_payment_statistics_year_only_bounds_due_date():
    db = AsyncMock(spec=AsyncSession)
    db.execute.return_value = _empty_result()

    await BalanceService.payment_statistics(db, Population.REGULAR, 2024)

    where, params = _where(db)
    assert _bound(where, params, "regular_invoices.due_date >=") == date(2024, 1, 1)
    assert _bound(where, params, "regular_invoices.due_date <=") == date(2024, 12, 31)


@pytest.mark.asyncio
@pytest.mark.parametrize("year,month", [(None, 3), (2024, 13)])
async def test_payment_statistics_rejects_bad_month(year, month):
    db = AsyncMock(spec=AsyncSession)
    with pytest.raises(ValidationError):
        await BalanceService.payment_statistics(db, Population.REGULAR, year, month)
    assert not db.execute.called

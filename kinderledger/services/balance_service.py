"""Balance Service - income, payroll and outstanding amounts per period.

Reports are recomputed from the invoice tables on every call; a yearly report
runs the monthly computation twelve times. That is fine for a single school's
volumes (up to a few thousand invoices a year) but has no caching to fall
back on if volumes grow.

Payroll is the sum of the salaries of currently active staff, for past
months as well: no salary history is kept.
"""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kinderledger.models.enums import Population, PaymentStatus, OUTSTANDING_STATUSES
from kinderledger.models.staff import Staff
from kinderledger.schemas.balance import (
    ZERO,
    BalanceBreakdowns,
    BalanceReport,
    IncomeBreakdown,
    OutstandingSummary,
    PopulationAmount,
    SalaryBreakdown,
    YearlyBalanceReport,
)
from kinderledger.schemas.billing import PaymentStatistics
from kinderledger.services import billing_policy
from kinderledger.services.populations import Invoice, PopulationAdapter, get_adapter, all_adapters
from kinderledger.utils.time import get_today, month_bounds, month_name

logger = logging.getLogger(__name__)

UNKNOWN_COURSE = "Unknown course"


def _sum(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


def _regular_category(invoice: Invoice) -> str:
    return invoice.payment_type.value


def _extra_category(invoice: Invoice) -> str:
    return invoice.course_title or UNKNOWN_COURSE


CATEGORY_OF: Dict[Population, Callable[[Invoice], str]] = {
    Population.REGULAR: _regular_category,
    Population.EXTRA_COURSE: _extra_category,
}


class BalanceService:
    # --- Queries -----------------------------------------------------------

    @staticmethod
    async def _paid_invoices(
        db: AsyncSession, adapter: PopulationAdapter, start: date, end: date
    ) -> List[Invoice]:
        model = adapter.invoice_model
        result = await db.execute(
            select(model).where(
                model.status == PaymentStatus.PAID,
                model.paid_date >= start,
                model.paid_date <= end,
            )
        )
        return list(result.scalars().all())

    @staticmethod
    async def _outstanding_invoices(
        db: AsyncSession,
        adapter: PopulationAdapter,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Invoice]:
        """UNPAID, PARTIAL and OVERDUE invoices, optionally due within [start, end]"""
        model = adapter.invoice_model
        query = select(model).where(model.status.in_(OUTSTANDING_STATUSES))
        if start is not None:
            query = query.where(model.due_date >= start)
        if end is not None:
            query = query.where(model.due_date <= end)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def list_active_staff(db: AsyncSession) -> List[Staff]:
        result = await db.execute(select(Staff).where(Staff.active.is_(True)))
        return list(result.scalars().all())

    # --- Aggregation -------------------------------------------------------

    @staticmethod
    def summarize_income(
        invoices: Sequence[Invoice], category_of: Callable[[Invoice], str]
    ) -> IncomeBreakdown:
        by_category: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        for invoice in invoices:
            by_category[category_of(invoice)] += invoice.amount
        return IncomeBreakdown(
            total_payments=len(invoices),
            total_amount=_sum(i.amount for i in invoices),
            by_category=dict(by_category),
        )

    @staticmethod
    def summarize_payroll(staff: Sequence[Staff]) -> SalaryBreakdown:
        by_type: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        staff_count: Dict[str, int] = defaultdict(int)
        for member in staff:
            by_type[member.type.value] += member.salary
            staff_count[member.type.value] += 1
        return SalaryBreakdown(
            total_staff=len(staff),
            total_amount=_sum(m.salary for m in staff),
            by_type=dict(by_type),
            staff_count=dict(staff_count),
        )

    @staticmethod
    def summarize_outstanding(invoices: Dict[Population, Sequence[Invoice]]) -> OutstandingSummary:
        by_population = {
            population: PopulationAmount(
                amount=_sum(i.amount for i in items),
                count=len(items),
            )
            for population, items in invoices.items()
        }
        return OutstandingSummary(
            by_population=by_population,
            total_amount=_sum(p.amount for p in by_population.values()),
            total_count=sum(p.count for p in by_population.values()),
        )

    # --- Reports -----------------------------------------------------------

    @staticmethod
    async def monthly_balance(db: AsyncSession, year: int, month: int) -> BalanceReport:
        """
        Balance of one calendar month.

        Income is what was paid during the month (status PAID, paid_date in
        the month). Provisional income is what falls due in the month and is
        still UNPAID, PARTIAL or OVERDUE.

        Raises:
            ValidationError: month outside 1-12
        """
        billing_policy.validate_period(year, month)
        start, end = month_bounds(year, month)

        income: Dict[Population, IncomeBreakdown] = {}
        outstanding: Dict[Population, List[Invoice]] = {}
        for adapter in all_adapters():
            paid = await BalanceService._paid_invoices(db, adapter, start, end)
            income[adapter.population] = BalanceService.summarize_income(
                paid, CATEGORY_OF[adapter.population]
            )
            outstanding[adapter.population] = await BalanceService._outstanding_invoices(
                db, adapter, start, end
            )

        payroll = BalanceService.summarize_payroll(await BalanceService.list_active_staff(db))

        income_by_population = {p: b.total_amount for p, b in income.items()}
        total_income = _sum(income_by_population.values())
        return BalanceReport(
            year=year,
            month=month,
            month_name=month_name(month),
            income_by_population=income_by_population,
            total_income=total_income,
            total_payroll=payroll.total_amount,
            net_income=total_income - payroll.total_amount,
            provisional_income=BalanceService.summarize_outstanding(outstanding),
            breakdowns=BalanceBreakdowns(
                regular=income[Population.REGULAR],
                extra_course=income[Population.EXTRA_COURSE],
                payroll=payroll,
            ),
        )

    @staticmethod
    async def yearly_balance(db: AsyncSession, year: int) -> YearlyBalanceReport:
        """Monthly balances for January to December plus their totals"""
        billing_policy.validate_year(year)
        months = [await BalanceService.monthly_balance(db, year, m) for m in range(1, 13)]

        income_by_population = {
            population: _sum(m.income_by_population.get(population, ZERO) for m in months)
            for population in Population
        }
        total_income = _sum(m.total_income for m in months)
        total_payroll = _sum(m.total_payroll for m in months)
        return YearlyBalanceReport(
            year=year,
            months=months,
            income_by_population=income_by_population,
            total_income=total_income,
            total_payroll=total_payroll,
            net_income=total_income - total_payroll,
            provisional_income=_sum(m.provisional_income.total_amount for m in months),
        )

    @staticmethod
    async def current_month_balance(db: AsyncSession) -> BalanceReport:
        today = get_today()
        return await BalanceService.monthly_balance(db, today.year, today.month)

    @staticmethod
    async def pending_payments(db: AsyncSession) -> OutstandingSummary:
        """Everything billed and not yet collected, across all periods"""
        outstanding = {
            adapter.population: await BalanceService._outstanding_invoices(db, adapter)
            for adapter in all_adapters()
        }
        return BalanceService.summarize_outstanding(outstanding)

    @staticmethod
    async def payment_statistics(
        db: AsyncSession,
        population: Population,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> PaymentStatistics:
        """
        Invoice counts and amounts of one population, optionally restricted
        to invoices due in one year or one month.

        Raises:
            ValidationError: month outside 1-12, or given without a year
        """
        billing_policy.validate_period_filter(year, month)
        adapter = get_adapter(population)
        model = adapter.invoice_model
        query = select(model)
        if month is not None:
            start, end = month_bounds(year, month)
            query = query.where(model.due_date >= start, model.due_date <= end)
        elif year is not None:
            query = query.where(model.due_date >= date(year, 1, 1), model.due_date <= date(year, 12, 31))
        result = await db.execute(query)
        invoices = list(result.scalars().all())
        return BalanceService.summarize_statistics(population, invoices, year, month)

    @staticmethod
    def summarize_statistics(
        population: Population,
        invoices: Sequence[Invoice],
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> PaymentStatistics:
        def count(status: PaymentStatus) -> int:
            return sum(1 for i in invoices if i.status == status)

        total_amount = _sum(i.amount for i in invoices)
        return PaymentStatistics(
            population=population,
            year=year,
            month=month,
            total_payments=len(invoices),
            paid_payments=count(PaymentStatus.PAID),
            unpaid_payments=count(PaymentStatus.UNPAID),
            partial_payments=count(PaymentStatus.PARTIAL),
            overdue_payments=count(PaymentStatus.OVERDUE),
            total_amount=total_amount,
            paid_amount=_sum(i.amount for i in invoices if i.status == PaymentStatus.PAID),
            expected_amount=total_amount,
        )

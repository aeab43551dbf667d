"""Balance report schemas (computed on demand, never persisted)"""

from typing import Dict, List
from decimal import Decimal
from pydantic import BaseModel, Field

from kinderledger.models.enums import Population

ZERO = Decimal("0.00")


class IncomeBreakdown(BaseModel):
    """Paid income of one population, grouped by payment type or course title"""
    total_payments: int = 0
    total_amount: Decimal = ZERO
    by_category: Dict[str, Decimal] = Field(default_factory=dict)


class SalaryBreakdown(BaseModel):
    total_staff: int = 0
    total_amount: Decimal = ZERO
    by_type: Dict[str, Decimal] = Field(default_factory=dict)
    staff_count: Dict[str, int] = Field(default_factory=dict)


class PopulationAmount(BaseModel):
    amount: Decimal = ZERO
    count: int = 0


class OutstandingSummary(BaseModel):
    """Billed-but-not-collected amounts split by population"""
    by_population: Dict[Population, PopulationAmount] = Field(default_factory=dict)
    total_amount: Decimal = ZERO
    total_count: int = 0


class BalanceBreakdowns(BaseModel):
    regular: IncomeBreakdown = Field(default_factory=IncomeBreakdown)
    extra_course: IncomeBreakdown = Field(default_factory=IncomeBreakdown)
    payroll: SalaryBreakdown = Field(default_factory=SalaryBreakdown)


class BalanceReport(BaseModel):
    year: int
    month: int
    month_name: str
    income_by_population: Dict[Population, Decimal]
    total_income: Decimal
    total_payroll: Decimal
    net_income: Decimal
    provisional_income: OutstandingSummary
    breakdowns: BalanceBreakdowns


class YearlyBalanceReport(BaseModel):
    year: int
    months: List[BalanceReport]
    income_by_population: Dict[Population, Decimal]
    total_income: Decimal
    total_payroll: Decimal
    net_income: Decimal
    provisional_income: Decimal

"""Billing Policy - invoice amounts, due dates and billing periods.

Pure functions only: no database access and no side effects.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from kinderledger.config import settings
from kinderledger.core.exceptions import ValidationError
from kinderledger.models.enums import Population
from kinderledger.services.populations import BillableRelationship
from kinderledger.utils.time import month_name

CENTS = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """
    Parse a monetary amount and round it to cents.

    Raises:
        ValidationError: value is not a finite number
    """
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid monetary amount: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid monetary amount: {value!r}")
    return amount.quantize(CENTS)


def validate_period(year: int, month: int) -> None:
    """Reject periods outside the calendar (month 1-12, year 1-9999)."""
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month}")
    validate_year(year)


def validate_year(year: int) -> None:
    if not 1 <= year <= 9999:
        raise ValidationError(f"Year out of range: {year}")


def amount_for(relationship: BillableRelationship) -> Decimal:
    """Monthly amount for a billable relationship.

    Regular students pay the platform-wide tuition; extra-course students pay
    the course's own monthly price.
    """
    if relationship.population == Population.REGULAR:
        return to_money(settings.REGULAR_MONTHLY_TUITION)
    return to_money(relationship.monthly_price)


def due_date_for(year: int, month: int) -> date:
    """Cycle invoices fall due on the 1st of the billed month."""
    validate_period(year, month)
    return date(year, month, 1)


def cycle_notes(relationship: BillableRelationship, year: int, month: int) -> str:
    period = f"{month_name(month).upper()} {year}"
    if relationship.population == Population.REGULAR:
        return f"Monthly tuition fee for {period}"
    return f"Monthly fee for {relationship.course_title} - {period}"


def single_notes(relationship: BillableRelationship) -> str:
    if relationship.population == Population.REGULAR:
        return "Monthly tuition fee"
    return f"Monthly fee for {relationship.course_title}"


def validate_period_filter(year: Optional[int], month: Optional[int]) -> None:
    """Optional (year, month) query filter: a month needs a year and must be 1-12."""
    if month is not None:
        if year is None:
            raise ValidationError("A month filter requires a year")
        validate_period(year, month)
    elif year is not None:
        validate_year(year)

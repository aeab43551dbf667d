"""Balance endpoints - monthly, yearly and pending reports (owner only)"""

from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from kinderledger.api import deps
from kinderledger.services.balance_service import BalanceService
from kinderledger.schemas.responses import SuccessResponse

router = APIRouter()


@router.get("/current", response_model=SuccessResponse)
async def current_month_balance(
    _: deps.Principal = Depends(deps.require_owner),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    report = await BalanceService.current_month_balance(db)
    return SuccessResponse(data=report)


@router.get("/pending", response_model=SuccessResponse)
async def pending_payments(
    _: deps.Principal = Depends(deps.require_owner),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Outstanding (unpaid, partial, overdue) amounts across all periods."""
    summary = await BalanceService.pending_payments(db)
    return SuccessResponse(data=summary)


@router.get("/year/{year}", response_model=SuccessResponse)
async def yearly_balance(
    year: int,
    _: deps.Principal = Depends(deps.require_owner),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Twelve monthly balances and the year's totals."""
    report = await BalanceService.yearly_balance(db, year)
    return SuccessResponse(data=report)


@router.get("/{year}/{month}", response_model=SuccessResponse)
async def monthly_balance(
    year: int,
    month: int,
    _: deps.Principal = Depends(deps.require_owner),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Income, payroll, net and provisional income of one month."""
    report = await BalanceService.monthly_balance(db, year, month)
    return SuccessResponse(data=report)

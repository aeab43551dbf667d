"""Billing event outbox endpoints - polled by the notification consumer"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from kinderledger.api import deps
from kinderledger.services.notification_service import NotificationService
from kinderledger.schemas.billing import BillingEventResponse
from kinderledger.schemas.responses import SuccessResponse

router = APIRouter()


@router.get("", response_model=SuccessResponse)
async def list_billing_events(
    unprocessed_only: bool = Query(True),
    limit: Optional[int] = Query(None, ge=1, le=500),
    _: deps.Principal = Depends(deps.require_owner),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Oldest events first."""
    events = await NotificationService.list_events(db, unprocessed_only=unprocessed_only, limit=limit)
    return SuccessResponse(data=[BillingEventResponse.model_validate(e) for e in events])


@router.post("/{event_id}/processed", response_model=SuccessResponse)
async def mark_event_processed(
    event_id: UUID,
    _: deps.Principal = Depends(deps.require_owner),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    event = await NotificationService.mark_processed(db, event_id)
    return SuccessResponse(
        data=BillingEventResponse.model_validate(event),
        message="Event marked as processed",
    )

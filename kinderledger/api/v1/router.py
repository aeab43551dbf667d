"""API V1 Router"""

from fastapi import APIRouter

# Import endpoint routers
from kinderledger.api.v1.endpoints import invoices, balance, billing_events

# Create API v1 router
api_router = APIRouter()

# Include endpoint routers with prefixes and tags
api_router.include_router(invoices.router, prefix="/invoices", tags=["Invoices"])
api_router.include_router(balance.router, prefix="/balance", tags=["Balance"])
api_router.include_router(billing_events.router, prefix="/billing-events", tags=["Billing Events"])

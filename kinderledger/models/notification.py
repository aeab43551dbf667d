"""Billing event outbox"""

from sqlalchemy import Column, String, DateTime
from sqlalchemy.dialects.postgresql import JSONB

from kinderledger.models.base import BaseModel


class BillingEvent(BaseModel):
    """
    One row per published billing event. A downstream consumer reads
    unprocessed rows and fans them out to recipients, then stamps
    processed_at.
    """
    __tablename__ = "billing_events"

    event_type = Column(String(100), nullable=False, index=True)
    payload = Column(JSONB, nullable=False, default=dict)
    processed_at = Column(DateTime, nullable=True, index=True)

    @property
    def is_processed(self) -> bool:
        return self.processed_at is not None

    def __repr__(self) -> str:
        return f"<BillingEvent {self.event_type}>"

"""Overdue Sweeper - promotes past-due invoices to OVERDUE"""

import logging
from datetime import date
from typing import Iterable, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from kinderledger.models.enums import Population, PaymentStatus, SWEEPABLE_STATUSES
from kinderledger.services.populations import PopulationAdapter, get_adapter, all_adapters
from kinderledger.utils.time import get_today, get_utc_now

logger = logging.getLogger(__name__)


class OverdueSweeper:
    @staticmethod
    def overdue_clause(adapter: PopulationAdapter, today: date) -> list:
        """Invoices due strictly before today and still UNPAID or PARTIAL"""
        model = adapter.invoice_model
        return [model.due_date < today, model.status.in_(SWEEPABLE_STATUSES)]

    @staticmethod
    async def sweep(
        db: AsyncSession,
        today: Optional[date] = None,
        populations: Optional[Iterable[Population]] = None,
    ) -> int:
        """
        Mark every past-due UNPAID/PARTIAL invoice OVERDUE in one UPDATE per
        population. Re-running with the same date touches nothing new.

        Returns:
            Number of invoices promoted
        """
        today = today or get_today()
        adapters = [get_adapter(p) for p in populations] if populations else all_adapters()
        now = get_utc_now()

        total = 0
        for adapter in adapters:
            model = adapter.invoice_model
            result = await db.execute(
                update(model)
                .where(*OverdueSweeper.overdue_clause(adapter, today))
                .values(status=PaymentStatus.OVERDUE, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            swept = result.rowcount or 0
            total += swept
            if swept:
                logger.info(
                    "Marked %d %s invoices overdue", swept, adapter.population.value,
                    extra={"today": today.isoformat()},
                )
        await db.commit()
        return total

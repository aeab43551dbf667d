"""Billing scheduler - in-process periodic job started from the app lifespan.

Every tick:
  1. generates the current month's invoices for both populations when the
     month differs from the last one generated (the first tick always runs,
     generation being idempotent this also catches up after a restart)
  2. sweeps past-due invoices to OVERDUE

A failing tick is logged and the loop keeps going.
"""

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from datetime import date
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from kinderledger.database import session_scope
from kinderledger.models.enums import Population
from kinderledger.services.invoice_service import InvoiceService
from kinderledger.services.overdue_sweeper import OverdueSweeper
from kinderledger.utils.time import get_today

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager]


class BillingScheduler:
    def __init__(
        self,
        interval_seconds: int,
        session_factory: SessionFactory = session_scope,
        clock: Callable[[], date] = get_today,
    ):
        self.interval_seconds = interval_seconds
        self._session_factory = session_factory
        self._clock = clock
        self._task: Optional[asyncio.Task] = None
        self._last_generated_period: Optional[Tuple[int, int]] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _generate(self, db: AsyncSession, today: date) -> Dict[Population, int]:
        created = {}
        for population in Population:
            created[population] = await InvoiceService.generate_for_period(
                db, population, today.year, today.month
            )
        self._last_generated_period = (today.year, today.month)
        return created

    async def run_once(self) -> Dict[str, int]:
        """One tick: monthly generation when due, then the overdue sweep."""
        today = self._clock()
        summary = {"generated": 0, "overdue": 0}
        async with self._session_factory() as db:
            if self._last_generated_period != (today.year, today.month):
                created = await self._generate(db, today)
                summary["generated"] = sum(created.values())
            summary["overdue"] = await OverdueSweeper.sweep(db, today=today)

        logger.info("Billing job finished", extra={"today": today.isoformat(), **summary})
        return summary

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Billing job failed")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="billing-scheduler")
        logger.info("Billing scheduler started", extra={"interval_seconds": self.interval_seconds})

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Billing scheduler stopped")

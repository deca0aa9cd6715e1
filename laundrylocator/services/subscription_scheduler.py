"""
Lightweight in-process scheduler for the subscription expiry check.
Runs ``premium.expire_subscriptions`` on the EXPIRY_CHECK_CRON schedule.
"""
from __future__ import annotations

import asyncio
from datetime import datetime

from croniter import CroniterBadCronError, croniter

from laundrylocator.core.logger import get_logger
from laundrylocator.database import SessionLocal
from laundrylocator.services import premium

logger = get_logger(__name__)


class SubscriptionScheduler:
    """Polls the clock and expires subscriptions when the cron slot is due."""

    def __init__(self, cron: str, poll_seconds: int = 60):
        self.cron = cron
        self.poll_seconds = poll_seconds
        self.next_run_at: datetime | None = self.compute_next_run(cron, datetime.utcnow())
        self.last_run_at: datetime | None = None
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        """Start scheduler loop as background task."""
        if self._task and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())
        logger.info("SubscriptionScheduler started, next expiry check at %s", self.next_run_at)

    async def stop(self) -> None:
        """Stop scheduler loop and wait for completion."""
        self._stop_event.set()
        if self._task:
            await self._task
        logger.info("SubscriptionScheduler stopped")

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.tick()
            except Exception as exc:
                logger.exception("SubscriptionScheduler tick failed: %s", exc)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_seconds)
            except asyncio.TimeoutError:
                pass

    async def tick(self, now: datetime | None = None) -> int | None:
        """Run the expiry check if due. Returns the number expired, or None when not due."""
        now = now or datetime.utcnow()
        if self.next_run_at is None or self.next_run_at > now:
            return None

        self.next_run_at = self.compute_next_run(self.cron, now)
        db = SessionLocal()
        try:
            expired = premium.expire_subscriptions(db, now=now)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
        self.last_run_at = now
        logger.info("Expiry check done: %s expired, next run %s", expired, self.next_run_at)
        return expired

    @staticmethod
    def compute_next_run(cron: str | None, from_dt: datetime) -> datetime | None:
        if not cron:
            return None
        try:
            return croniter(cron, from_dt).get_next(datetime)
        except (CroniterBadCronError, ValueError, KeyError):
            logger.warning("Invalid EXPIRY_CHECK_CRON expression %r", cron)
            return None

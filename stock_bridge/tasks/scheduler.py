"""
Periodic full sync.

An ``AsyncIOScheduler`` owns one interval job that runs a full sync on the
application's event loop. Changing the interval reschedules the job in
place, so a sync that is already running is never cancelled; the job runs
with ``max_instances=1`` and overlapping runs are also rejected by
``SyncService``.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from stock_bridge.constants.sync import LogStatus, LogType, SyncTrigger
from stock_bridge.schemas.sync_schemas import SchedulerStatus
from stock_bridge.services.audit import AuditLogger
from stock_bridge.services.config_service import ConfigService
from stock_bridge.services.sync_service import SyncService

logger = logging.getLogger(__name__)

FULL_SYNC_JOB_ID = "full_sync"


class SyncScheduler:
    """Owns the recurring full sync job; ``start``/``stop``/``restart``/``status``."""

    def __init__(
        self,
        sync_service: SyncService,
        config: ConfigService,
        audit: AuditLogger
    ):
        self.sync_service = sync_service
        self.config = config
        self.audit = audit

        self._scheduler: Optional[AsyncIOScheduler] = None
        self._runs: Set[asyncio.Task] = set()
        self._interval_minutes: int = 0

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """Start the job with the interval currently configured. Must run inside an event loop."""
        if self.running:
            return

        self._interval_minutes = self.config.get_sync_interval_minutes()
        self._scheduler = AsyncIOScheduler(
            event_loop=asyncio.get_running_loop(),
            timezone=timezone.utc,
            job_defaults={"max_instances": 1, "coalesce": True, "misfire_grace_time": 60},
        )
        self._scheduler.start()
        self._scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(minutes=self._interval_minutes, timezone=timezone.utc),
            id=FULL_SYNC_JOB_ID,
            replace_existing=True,
        )

        self.audit.record(
            LogType.SCHEDULER,
            LogStatus.OK,
            f"Scheduler started ({self._interval_minutes} min)",
            {"interval_minutes": self._interval_minutes},
            log=logger,
        )

    async def stop(self) -> None:
        """Stop the job. Runs already launched are awaited, not cancelled."""
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is None:
            return
        scheduler.pause()
        await self.wait_for_runs()
        if scheduler.running:
            scheduler.shutdown(wait=False)

    async def restart(self) -> None:
        """Apply the configured interval to the running job."""
        if not self.running:
            self.start()
            return

        self._interval_minutes = self.config.get_sync_interval_minutes()
        self._scheduler.reschedule_job(
            FULL_SYNC_JOB_ID,
            trigger=IntervalTrigger(minutes=self._interval_minutes, timezone=timezone.utc),
        )

        self.audit.record(
            LogType.SCHEDULER,
            LogStatus.OK,
            f"Scheduler rescheduled ({self._interval_minutes} min)",
            {"interval_minutes": self._interval_minutes},
            log=logger,
        )

    def run_now(self) -> None:
        """Move the next tick of the job to now."""
        if self.running:
            self._scheduler.modify_job(FULL_SYNC_JOB_ID, next_run_time=datetime.now(timezone.utc))

    async def wait_for_runs(self) -> None:
        """Wait for sync runs started by the job (used on shutdown)."""
        if self._runs:
            await asyncio.gather(*list(self._runs), return_exceptions=True)

    def next_run_at(self) -> Optional[datetime]:
        if not self.running:
            return None
        job = self._scheduler.get_job(FULL_SYNC_JOB_ID)
        return getattr(job, "next_run_time", None) if job else None

    def status(self) -> SchedulerStatus:
        return SchedulerStatus(
            running=self.running,
            interval_minutes=self._interval_minutes or self.config.get_sync_interval_minutes(),
            next_run_at=self.next_run_at(),
        )

    async def _tick(self) -> None:
        task = asyncio.current_task()
        self._runs.add(task)
        try:
            await self.sync_service.run_full_sync(trigger=SyncTrigger.SCHEDULER)
        except Exception as e:
            self.audit.record(LogType.SCHEDULER, LogStatus.ERROR, str(e), log=logger)
        finally:
            self._runs.discard(task)

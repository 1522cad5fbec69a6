"""Scheduler engine: APScheduler bridge that fires the batch runners."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from opsdispatch.scheduler.runner import BatchRunner, BatchTrigger

if TYPE_CHECKING:
    from opsdispatch.config.settings import Settings

logger = logging.getLogger("opsdispatch.scheduler.engine")


class SchedulerEngine:
    """Fires every registered pipeline on ``scheduler.batch_cron``.

    Per-job schedules live in the stores; this timer only decides how often
    the due-job scan happens.
    """

    def __init__(self, settings: Settings, runners: Sequence[BatchRunner]) -> None:
        self._settings = settings
        self._runners = list(runners)
        self._scheduler = AsyncIOScheduler(timezone=settings.scheduler.timezone)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Register one APScheduler job per pipeline and start the scheduler."""
        cfg = self._settings.scheduler
        for runner in self._runners:
            trigger = CronTrigger.from_crontab(cfg.batch_cron, timezone=cfg.timezone)
            self._scheduler.add_job(
                self._fire,
                trigger=trigger,
                args=[runner],
                id=runner.name,
                name=runner.name,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        self._scheduler.start()
        logger.info(
            "Scheduler started: %d pipeline(s) on '%s' (%s)",
            len(self._runners),
            cfg.batch_cron,
            cfg.timezone,
        )

    async def stop(self) -> None:
        """Gracefully shut down the scheduler."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def next_fire_times(self) -> dict[str, str | None]:
        """Pipeline name → next timer fire (ISO format), for status output."""
        times: dict[str, str | None] = {}
        for runner in self._runners:
            job = self._scheduler.get_job(runner.name)
            fire = getattr(job, "next_run_time", None) if job else None
            times[runner.name] = fire.isoformat() if fire else None
        return times

    # -- Execution callback ----------------------------------------------------

    async def _fire(self, runner: BatchRunner) -> None:
        """Called by APScheduler on every tick."""
        report = await runner.run(BatchTrigger(cron_execution=True))
        if not report.success:
            logger.error("[%s] scheduled run failed: %s", runner.name, report.error)

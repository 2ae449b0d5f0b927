from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ..config import LoggingConfig, ScrapeConfig
from .service import ScrapeService

LOGGER = logging.getLogger(__name__)


class ScrapeScheduler:
    def __init__(
        self,
        *,
        service: ScrapeService,
        scrape_config: ScrapeConfig,
        logging_config: LoggingConfig,
    ) -> None:
        self._service = service
        self._scrape_config = scrape_config
        self._scheduler = AsyncIOScheduler(timezone=logging_config.timezone)
        self._job = None

    @property
    def job(self):
        return self._job

    async def start(self) -> None:
        trigger = CronTrigger.from_crontab(self._scrape_config.cron, timezone=self._scheduler.timezone)
        self._scheduler.start()
        self._job = self._scheduler.add_job(
            self._scheduled_run,
            trigger=trigger,
            id="scrape",
            coalesce=True,
            replace_existing=True,
        )
        LOGGER.info(
            "Scrape job scheduled",
            extra={"cron": self._scrape_config.cron, "next_run": str(self._job.next_run_time)},
        )

    async def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._job = None

    async def _scheduled_run(self) -> None:
        LOGGER.info("Scheduled scrape triggered")
        self._service.trigger()

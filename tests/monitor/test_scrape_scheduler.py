from __future__ import annotations

import asyncio
from unittest.mock import Mock

from freelance_radar.config import LoggingConfig, ScrapeConfig
from freelance_radar.monitor.scheduler import ScrapeScheduler


async def _run_scheduler_test() -> Mock:
    service = Mock()
    scheduler = ScrapeScheduler(
        service=service,  # type: ignore[arg-type]
        scrape_config=ScrapeConfig(cron="*/7 * * * *"),
        logging_config=LoggingConfig(level="INFO", timezone="UTC"),
    )
    await scheduler.start()
    try:
        job = scheduler.job
        assert job is not None
        assert job.next_run_time is not None
        assert job.next_run_time.minute % 7 == 0

        await scheduler._scheduled_run()
    finally:
        await scheduler.shutdown()
    assert scheduler.job is None
    return service


def test_cron_job_triggers_background_run() -> None:
    service = asyncio.run(_run_scheduler_test())
    service.trigger.assert_called_once_with()

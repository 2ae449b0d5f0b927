from __future__ import annotations

import asyncio
import logging

from .config import load_config
from .di import Container
from .logging_config import configure_logging
from .util.signals import setup_signal_handlers

LOGGER = logging.getLogger(__name__)


async def main() -> None:
    config = load_config()
    configure_logging(config.logging.level)
    container = Container(config)
    await container.init_database()

    stopped = asyncio.Event()
    shutdown_called = False

    async def shutdown() -> None:
        nonlocal shutdown_called
        if shutdown_called:
            return
        shutdown_called = True
        try:
            try:
                await container.http_server.shutdown()
            except Exception:  # pragma: no cover
                LOGGER.exception("Failed to stop HTTP server")
            await container.scheduler.shutdown()
            await container.scrape_service.cancel_runs()
            await container.notifier.shutdown(config.telegram.shutdown_timeout_seconds)
            await container.shutdown()
        finally:
            stopped.set()

    setup_signal_handlers(shutdown)

    container.notifier.start()
    await container.scheduler.start()
    await container.http_server.start()
    LOGGER.info("Service started")

    try:
        await stopped.wait()
    finally:
        await shutdown()
        LOGGER.info("Service stopped")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()

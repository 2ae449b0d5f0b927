from __future__ import annotations

import asyncio
import logging
import signal
from typing import Awaitable, Callable

LOGGER = logging.getLogger(__name__)


def setup_signal_handlers(shutdown_func: Callable[[], Awaitable[None]]) -> None:
    loop = asyncio.get_running_loop()
    pending: set[asyncio.Task[None]] = set()

    async def handler(sig: signal.Signals) -> None:
        LOGGER.info("Received signal, shutting down", extra={"signal": sig.name})
        await shutdown_func()

    def schedule(sig: signal.Signals) -> None:
        task = loop.create_task(handler(sig))
        pending.add(task)
        task.add_done_callback(pending.discard)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, schedule, sig)
        except NotImplementedError:  # pragma: no cover - Windows
            signal.signal(sig, lambda _signum, _frame, s=sig: loop.call_soon_threadsafe(schedule, s))

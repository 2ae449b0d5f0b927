from __future__ import annotations

import logging

from aiogram import Bot
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from .config import AppConfig
from .db.repo import Repository, init_db
from .monitor.scheduler import ScrapeScheduler
from .monitor.service import ScrapeService
from .provider.base import SourceProvider
from .provider.karlancer_http import KarlancerHttpProvider
from .provider.ponisha_http import PonishaHttpProvider
from .tg.bot import create_bot
from .tg.notifier import TelegramNotifier
from .web.api import HttpServer

LOGGER = logging.getLogger(__name__)


class Container:
    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.engine = create_async_engine(config.database.url, echo=False)
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)
        self.repository = Repository(self.session_factory)
        self.bot: Bot = create_bot(config.telegram.token)
        self.notifier = TelegramNotifier(
            bot=self.bot,
            chat_id=config.telegram.chat_id,
            thread_id=config.telegram.thread_id,
            min_interval=config.telegram.min_interval_seconds,
            queue_size=config.telegram.queue_size,
            message_limit=config.telegram.message_limit,
            timezone_name=config.logging.timezone,
        )
        self.providers: list[SourceProvider] = [
            PonishaHttpProvider(config.scrape),
            KarlancerHttpProvider(config.scrape),
        ]
        self.scrape_service = ScrapeService(
            providers=self.providers,
            repository=self.repository,
            notifier=self.notifier,
        )
        self.scheduler = ScrapeScheduler(
            service=self.scrape_service,
            scrape_config=config.scrape,
            logging_config=config.logging,
        )
        self.http_server = HttpServer(service=self.scrape_service, config=config.http)

    async def init_database(self) -> None:
        await init_db(self.engine)

    async def shutdown(self) -> None:
        try:
            for provider in self.providers:
                try:
                    await provider.shutdown()
                except Exception:  # pragma: no cover
                    LOGGER.exception("Failed to close provider", extra={"source": provider.source_id})
        finally:
            await self.engine.dispose()
            await self.bot.session.close()

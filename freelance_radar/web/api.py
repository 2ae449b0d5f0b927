from __future__ import annotations

import logging
from typing import Any

import orjson
from aiohttp import web

from ..config import HttpServerConfig
from ..monitor.service import ScrapeService

LOGGER = logging.getLogger(__name__)
SERVICE_KEY = web.AppKey("scrape_service", ScrapeService)


def _dumps(value: Any) -> str:
    return orjson.dumps(value).decode()


async def handle_scraping(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    service.trigger()
    LOGGER.info("On-demand scrape requested", extra={"remote": request.remote})
    return web.json_response({"message": "Scraping started"}, dumps=_dumps)


def create_app(service: ScrapeService) -> web.Application:
    app = web.Application()
    app[SERVICE_KEY] = service
    app.router.add_get("/scraping", handle_scraping)
    return app


class HttpServer:
    def __init__(self, *, service: ScrapeService, config: HttpServerConfig) -> None:
        self._config = config
        self._runner = web.AppRunner(create_app(service), access_log=None)
        self._site: web.TCPSite | None = None

    async def start(self) -> None:
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await self._site.start()
        LOGGER.info("HTTP server listening", extra={"host": self._config.host, "port": self._config.port})

    async def shutdown(self) -> None:
        await self._runner.cleanup()
        self._site = None

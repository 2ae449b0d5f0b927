from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import Mock

from aiohttp.test_utils import TestClient, TestServer

from freelance_radar.web.api import create_app


async def _run_trigger_test() -> Mock:
    trigger = Mock()
    service = SimpleNamespace(trigger=trigger)
    async with TestClient(TestServer(create_app(service))) as client:  # type: ignore[arg-type]
        response = await client.get("/scraping")
        assert response.status == 200
        assert await response.json() == {"message": "Scraping started"}

        response = await client.get("/scraping")
        assert response.status == 200

        response = await client.post("/scraping")
        assert response.status == 405
    return trigger


def test_scraping_endpoint_starts_run_and_acknowledges() -> None:
    trigger = asyncio.run(_run_trigger_test())
    assert trigger.call_count == 2

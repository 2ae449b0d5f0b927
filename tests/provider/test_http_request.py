from __future__ import annotations

import asyncio

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from freelance_radar.config import ScrapeConfig
from freelance_radar.provider.base import CandidateListing, Page, PageFailurePolicy, ProviderError
from freelance_radar.provider.paginated import PaginatedHttpProvider


class EchoProvider(PaginatedHttpProvider):
    """Turns each response body into a single listing."""

    source_id = "echo"
    page_failure_policy = PageFailurePolicy.ABORT
    retry_backoff = 0.01

    def __init__(self, base_url: str, *, max_attempts: int = 3) -> None:
        super().__init__(ScrapeConfig(http_max_attempts=max_attempts, page_timeout_seconds=5.0))
        self._base_url = base_url

    def page_url(self, page: int) -> str:
        return f"{self._base_url}?page={page}"

    def parse_page(self, body: str) -> Page:
        listing = CandidateListing(
            source=self.source_id,
            external_id=body,
            title=body,
            link=self._base_url,
            budget_text="",
            amount_min=0,
            amount_max=150_000_000,
        )
        return Page(listings=[listing], total_pages=1)


def _app(statuses: list[int], hits: list[str]) -> web.Application:
    async def handler(request: web.Request) -> web.Response:
        hits.append(request.query.get("page", ""))
        status = statuses.pop(0) if statuses else 200
        return web.Response(status=status, text="ok" if status == 200 else "busy")

    app = web.Application()
    app.router.add_get("/projects", handler)
    return app


async def _fetch_with_statuses(statuses: list[int], *, max_attempts: int = 3) -> tuple[Page | Exception, list[str]]:
    hits: list[str] = []
    async with TestServer(_app(statuses, hits)) as server:
        provider = EchoProvider(str(server.make_url("/projects")), max_attempts=max_attempts)
        try:
            result: Page | Exception = await provider.fetch_page(2)
        except ProviderError as exc:
            result = exc
        finally:
            await provider.shutdown()
    return result, hits


def test_retryable_status_is_retried_until_success() -> None:
    result, hits = asyncio.run(_fetch_with_statuses([503, 429]))
    assert isinstance(result, Page)
    assert [listing.external_id for listing in result.listings] == ["ok"]
    assert hits == ["2", "2", "2"]


def test_retryable_status_gives_up_after_max_attempts() -> None:
    result, hits = asyncio.run(_fetch_with_statuses([502, 502, 502], max_attempts=2))
    assert isinstance(result, ProviderError)
    assert "502" in str(result)
    assert len(hits) == 2


def test_non_retryable_status_fails_at_once() -> None:
    result, hits = asyncio.run(_fetch_with_statuses([404]))
    assert isinstance(result, ProviderError)
    assert "404" in str(result)
    assert len(hits) == 1


async def _run_unreachable_test() -> None:
    server = TestServer(web.Application())
    await server.start_server()
    url = str(server.make_url("/projects"))
    await server.close()

    provider = EchoProvider(url, max_attempts=2)
    try:
        with pytest.raises(aiohttp.ClientError):
            await provider.fetch_page(1)
    finally:
        await provider.shutdown()


def test_connection_error_is_raised_after_max_attempts() -> None:
    asyncio.run(_run_unreachable_test())

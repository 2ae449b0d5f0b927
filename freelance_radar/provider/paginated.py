from __future__ import annotations

import abc
import asyncio
import logging

import aiohttp

from ..config import ScrapeConfig
from .base import CandidateListing, Page, PageFailurePolicy, ProviderError

LOGGER = logging.getLogger(__name__)
RETRYABLE_STATUS = {429, 500, 502, 503, 504}
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class PaginatedHttpProvider(abc.ABC):
    """Fetches every page of a source.

    Page 1 is fetched alone to learn the page count; the rest run concurrently
    behind a semaphore, each under its own timeout. What happens when one of
    them fails is decided by ``page_failure_policy``.
    """

    source_id: str
    page_failure_policy: PageFailurePolicy
    headers: dict[str, str] = {"User-Agent": USER_AGENT}
    retry_backoff: float = 1.0

    def __init__(self, config: ScrapeConfig, *, session: aiohttp.ClientSession | None = None) -> None:
        self._config = config
        self._session = session
        self._owns_session = session is None

    async def startup(self) -> None:
        if self._session is not None:
            return
        timeout = aiohttp.ClientTimeout(total=self._config.page_timeout_seconds)
        connector = aiohttp.TCPConnector(ssl=self._config.http_verify_ssl)
        self._session = aiohttp.ClientSession(timeout=timeout, headers=self.headers, connector=connector)
        self._owns_session = True
        if not self._config.http_verify_ssl:
            LOGGER.warning("TLS certificate verification disabled", extra={"source": self.source_id})

    async def shutdown(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def fetch_all(self) -> list[CandidateListing]:
        LOGGER.info("Fetching page", extra={"source": self.source_id, "page": 1})
        first = await self._fetch_page_timed(1)
        total_pages = first.total_pages
        LOGGER.info(
            "Fetched page",
            extra={"source": self.source_id, "page": 1, "count": len(first.listings), "total_pages": total_pages},
        )
        listings = list(first.listings)
        if total_pages <= 1:
            return listings

        semaphore = asyncio.Semaphore(max(self._config.page_concurrency, 1))
        tasks = [
            asyncio.create_task(self._fetch_remaining(page, total_pages, semaphore))
            for page in range(2, total_pages + 1)
        ]
        try:
            pages = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise
        for page_listings in pages:
            listings.extend(page_listings)
        return listings

    async def _fetch_remaining(
        self, page: int, total_pages: int, semaphore: asyncio.Semaphore
    ) -> list[CandidateListing]:
        async with semaphore:
            LOGGER.debug("Fetching page", extra={"source": self.source_id, "page": page, "total_pages": total_pages})
            try:
                result = await self._fetch_page_timed(page)
            except Exception:
                if self.page_failure_policy is PageFailurePolicy.ABORT:
                    LOGGER.warning("Page failed, aborting source", extra={"source": self.source_id, "page": page})
                    raise
                LOGGER.warning(
                    "Page failed, skipping", exc_info=True, extra={"source": self.source_id, "page": page}
                )
                return []
        LOGGER.debug(
            "Fetched page",
            extra={"source": self.source_id, "page": page, "count": len(result.listings), "total_pages": total_pages},
        )
        return result.listings

    async def _fetch_page_timed(self, page: int) -> Page:
        return await asyncio.wait_for(self.fetch_page(page), timeout=self._config.page_timeout_seconds)

    async def fetch_page(self, page: int) -> Page:
        if page < 1:
            raise ValueError("Page index must start from 1")
        session = await self._ensure_session()
        body = await self._request(session, self.page_url(page))
        return self.parse_page(body)

    @abc.abstractmethod
    def page_url(self, page: int) -> str: ...

    @abc.abstractmethod
    def parse_page(self, body: str) -> Page: ...

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            await self.startup()
        if self._session is None:  # pragma: no cover
            raise RuntimeError("HTTP session is not initialized")
        return self._session

    async def _request(self, session: aiohttp.ClientSession, url: str) -> str:
        attempt = 0
        backoff = self.retry_backoff
        max_attempts = max(self._config.http_max_attempts, 1)
        while True:
            attempt += 1
            try:
                async with session.get(url) as response:
                    if 200 <= response.status < 300:
                        return await response.text()
                    if response.status in RETRYABLE_STATUS and attempt < max_attempts:
                        LOGGER.warning(
                            "Retryable status %s from %s", response.status, url, extra={"attempt": attempt}
                        )
                    else:
                        raise ProviderError(f"Unexpected status {response.status} from {url}")
            except aiohttp.ClientError as exc:
                if attempt >= max_attempts:
                    raise
                LOGGER.warning("HTTP error, retrying", exc_info=exc, extra={"url": url, "attempt": attempt})
            await asyncio.sleep(backoff)
            backoff = min(backoff * 2, 30)

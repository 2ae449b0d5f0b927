from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

from ..db.repo import ProjectCreate, Repository
from ..logging_config import current_source
from ..provider.base import CandidateListing, SourceProvider
from ..util.budget import is_above_threshold

LOGGER = logging.getLogger(__name__)

# Sources whose high-budget duplicates are worth a diagnostic line.
DUPLICATE_DIAGNOSTIC_SOURCES = frozenset({"karlancer"})


class AlertSink(Protocol):
    async def send_alert(self, listing: CandidateListing) -> None: ...


@dataclass(slots=True)
class SourceResult:
    source: str
    listings: list[CandidateListing]


@dataclass(slots=True)
class RunStats:
    fetched: int = 0
    over_threshold: int = 0
    below_threshold: int = 0
    duplicates: int = 0
    saved: int = 0


class ScrapeService:
    def __init__(
        self,
        *,
        providers: Sequence[SourceProvider],
        repository: Repository,
        notifier: AlertSink,
    ) -> None:
        self._providers = list(providers)
        self._repo = repository
        self._notifier = notifier
        # Held for the whole run: a second caller sees it locked and leaves.
        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def trigger(self) -> asyncio.Task[None]:
        """Start a run in the background and return immediately."""
        task = asyncio.create_task(self.run(), name="scrape-run")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def cancel_runs(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def run(self) -> None:
        if self._lock.locked():
            LOGGER.info("Scrape already running; skipping")
            return
        async with self._lock:
            try:
                await self._scrape()
            except asyncio.CancelledError:
                LOGGER.info("Scrape cancelled")
                raise
            except Exception:
                LOGGER.exception("Error during scrape run")

    async def _scrape(self) -> None:
        LOGGER.info("Scraping started", extra={"sources": [p.source_id for p in self._providers]})
        results: list[SourceResult] = []

        async def collect(provider: SourceProvider) -> None:
            results.append(await self._scrape_source(provider))

        await asyncio.gather(*(collect(provider) for provider in self._providers))

        stats: dict[str, RunStats] = {}
        for result in results:
            source_stats = stats.setdefault(result.source, RunStats())
            source_stats.fetched += len(result.listings)
            for listing in result.listings:
                await self._process_listing(listing, source_stats)

        for source, source_stats in stats.items():
            LOGGER.info("Scrape summary", extra={"source": source, **dataclasses.asdict(source_stats)})

    async def _scrape_source(self, provider: SourceProvider) -> SourceResult:
        source = provider.source_id
        # Each source runs in its own gather task.
        current_source.set(source)
        LOGGER.info("Scraping source", extra={"source": source})
        try:
            listings = await provider.fetch_all()
        except Exception:
            LOGGER.exception("Scrape failed", extra={"source": source})
            return SourceResult(source=source, listings=[])
        LOGGER.info("Source scraped", extra={"source": source, "count": len(listings)})
        return SourceResult(source=source, listings=listings)

    async def _process_listing(self, listing: CandidateListing, stats: RunStats) -> None:
        if not is_above_threshold(listing.amount_min, listing.amount_max):
            stats.below_threshold += 1
            return
        stats.over_threshold += 1

        try:
            stored, is_new = await self._repo.create_if_not_exists(
                ProjectCreate(
                    source=listing.source,
                    external_id=listing.external_id,
                    title=listing.title,
                    link=listing.link,
                    budget_text=listing.budget_text,
                    amount_min=listing.amount_min,
                    amount_max=listing.amount_max,
                )
            )
        except Exception:
            LOGGER.exception(
                "Insert failed", extra={"source": listing.source, "external_id": listing.external_id}
            )
            return

        if not is_new:
            stats.duplicates += 1
            if listing.source in DUPLICATE_DIAGNOSTIC_SOURCES:
                LOGGER.info(
                    "Duplicate high-budget project",
                    extra={
                        "source": listing.source,
                        "external_id": listing.external_id,
                        "title": listing.title,
                        "amount_min": listing.amount_min,
                        "amount_max": listing.amount_max,
                        "link": listing.link,
                    },
                )
            return

        stats.saved += 1
        alert = dataclasses.replace(listing, source=stored.source, link=stored.link)
        try:
            await self._notifier.send_alert(alert)
        except Exception:
            LOGGER.exception(
                "Alert enqueue failed", extra={"source": stored.source, "external_id": stored.external_id}
            )

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Protocol


@dataclass(slots=True)
class CandidateListing:
    source: str
    external_id: str
    title: str
    link: str
    budget_text: str
    amount_min: int
    amount_max: int
    description: str = ""
    skills: list[str] = field(default_factory=list)
    approved_at: str = ""
    bidding_closed_at: str = ""
    bids_count: int | None = None


@dataclass(slots=True)
class Page:
    listings: list[CandidateListing]
    total_pages: int


class PageFailurePolicy(enum.Enum):
    # The whole source fails for this run.
    ABORT = "abort"
    # The page is logged and dropped; other pages still count.
    SKIP = "skip"


class ProviderError(RuntimeError):
    """Unexpected response from a listing source."""


class SourceProvider(Protocol):
    source_id: str

    async def fetch_all(self) -> list[CandidateListing]: ...

    async def shutdown(self) -> None: ...

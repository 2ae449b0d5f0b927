from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import orjson

from ..util.budget import format_budget_text, is_above_threshold, to_int, to_str
from .base import CandidateListing, Page, PageFailurePolicy, ProviderError
from .fields import amount_field, count_field, pick_first, text_field
from .paginated import USER_AGENT, PaginatedHttpProvider

LOGGER = logging.getLogger(__name__)
API_URL = "https://www.karlancer.com/api/publics/search/projects"
PROJECT_URL = "https://www.karlancer.com/projects/{slug}"
UNTITLED = "بدون عنوان"

ID_FIELDS = (text_field("id"), text_field("uuid"), text_field("_id"))
AMOUNT_MIN_FIELDS = (
    amount_field("min_budget"),
    amount_field("budget_from"),
    amount_field("amount_min"),
    amount_field("price_min"),
)
AMOUNT_MAX_FIELDS = (
    amount_field("max_budget"),
    amount_field("budget_to"),
    amount_field("amount_max"),
    amount_field("price_max"),
)
APPROVED_AT_FIELDS = (text_field("published_at"), text_field("approved_at"))
CLOSED_AT_FIELDS = (text_field("expired_at"), text_field("expiredAt"))
BIDS_FIELDS = (count_field("bids_count"), count_field("bidsCount"))


class KarlancerHttpProvider(PaginatedHttpProvider):
    """Karlancer public search API.

    Any failed page aborts the whole source for the run, so a partial
    listing set is never mistaken for a complete one.
    """

    source_id = "karlancer"
    page_failure_policy = PageFailurePolicy.ABORT
    headers = {
        "User-Agent": USER_AGENT,
        "Accept": "application/json, text/plain, */*",
        "Referer": "https://www.karlancer.com/",
    }

    def page_url(self, page: int) -> str:
        return f"{API_URL}?{urlencode({'page': page, 'order': 'newest'})}"

    def parse_page(self, body: str) -> Page:
        try:
            payload = orjson.loads(body)
        except orjson.JSONDecodeError as exc:
            raise ProviderError(f"Malformed karlancer response: {exc}") from exc
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            return Page(listings=[], total_pages=0)

        listings: list[CandidateListing] = []
        for item in data.get("data") or []:
            listing = parse_project(item)
            if listing is not None:
                listings.append(listing)
        return Page(listings=listings, total_pages=to_int(data.get("last_page")) or 0)


def parse_project(item: Any) -> CandidateListing | None:
    if not isinstance(item, dict):
        return None
    external_id = pick_first(item, ID_FIELDS)
    if not external_id:
        return None
    amount_min = pick_first(item, AMOUNT_MIN_FIELDS) or 0
    amount_max = pick_first(item, AMOUNT_MAX_FIELDS) or 0
    if not is_above_threshold(amount_min, amount_max):
        return None

    slug = to_str(item.get("url")) or external_id
    return CandidateListing(
        source=KarlancerHttpProvider.source_id,
        external_id=external_id,
        title=to_str(item.get("title")) or UNTITLED,
        link=PROJECT_URL.format(slug=slug),
        budget_text=format_budget_text(amount_min, amount_max),
        amount_min=amount_min,
        amount_max=amount_max,
        description=to_str(item.get("description")),
        skills=_skill_names(item.get("skills")),
        approved_at=pick_first(item, APPROVED_AT_FIELDS) or "",
        bidding_closed_at=pick_first(item, CLOSED_AT_FIELDS) or "",
        bids_count=pick_first(item, BIDS_FIELDS),
    )


def _skill_names(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    names = []
    for skill in raw:
        if not isinstance(skill, dict):
            continue
        name = to_str(skill.get("name")) or to_str(skill.get("title"))
        if name:
            names.append(name)
    return names

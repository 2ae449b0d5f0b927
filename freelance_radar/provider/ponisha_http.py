from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import orjson
from bs4 import BeautifulSoup

from ..util.budget import format_budget_text, is_above_threshold, to_int, to_str
from .base import CandidateListing, Page, PageFailurePolicy, ProviderError
from .fields import amount_field, count_field, pick_first, text_field
from .paginated import USER_AGENT, PaginatedHttpProvider

LOGGER = logging.getLogger(__name__)
BASE_URL = "https://ponisha.ir/search/projects"
PROJECT_URL = "https://ponisha.ir/project/{id}/{slug}"

ID_FIELDS = (text_field("id"),)
AMOUNT_MIN_FIELDS = (amount_field("amount_min"),)
AMOUNT_MAX_FIELDS = (amount_field("amount_max"),)
BIDS_FIELDS = (count_field("project_bids_count"),)


class PonishaHttpProvider(PaginatedHttpProvider):
    """Ponisha search pages.

    Listings live in the Next.js ``__NEXT_DATA__`` payload of each HTML page.
    A failed page is skipped: the rest of the search is still worth saving.
    """

    source_id = "ponisha"
    page_failure_policy = PageFailurePolicy.SKIP
    headers = {"User-Agent": USER_AGENT, "Accept": "text/html"}

    def page_url(self, page: int) -> str:
        params = {
            "page": page,
            "order": "approved_at|desc",
            "promotion": "-",
            "filterByProjectStatus": "open",
        }
        return f"{BASE_URL}?{urlencode(params)}"

    def parse_page(self, body: str) -> Page:
        payload = _decode_next_payload(body)
        if payload is None:
            LOGGER.warning("No __NEXT_DATA__ payload on page", extra={"source": self.source_id})
            return Page(listings=[], total_pages=0)
        query = _find_projects_query(payload)
        if query is None:
            return Page(listings=[], total_pages=0)
        data = _nested_map(query, "state", "data")
        if data is None:
            return Page(listings=[], total_pages=0)

        total_pages = _read_total_pages(data)
        items = data.get("data")
        if not isinstance(items, list):
            return Page(listings=[], total_pages=total_pages)

        listings: list[CandidateListing] = []
        for item in items:
            listing = parse_project(item)
            if listing is not None:
                listings.append(listing)
        return Page(listings=listings, total_pages=total_pages)


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

    return CandidateListing(
        source=PonishaHttpProvider.source_id,
        external_id=external_id,
        title=to_str(item.get("title")),
        link=PROJECT_URL.format(id=external_id, slug=to_str(item.get("slug"))),
        budget_text=format_budget_text(amount_min, amount_max),
        amount_min=amount_min,
        amount_max=amount_max,
        description=to_str(item.get("description")),
        skills=_skill_names(item.get("skills")),
        approved_at=to_str(item.get("approved_at")),
        bidding_closed_at=to_str(item.get("bidding_closed_at")),
        bids_count=pick_first(item, BIDS_FIELDS),
    )


def _decode_next_payload(html: str) -> dict[str, Any] | None:
    soup = BeautifulSoup(html, "lxml")
    script = soup.select_one("script#__NEXT_DATA__")
    if script is None:
        return None
    text = script.get_text()
    if not text.strip():
        return None
    try:
        payload = orjson.loads(text)
    except orjson.JSONDecodeError as exc:
        raise ProviderError(f"Malformed __NEXT_DATA__ payload: {exc}") from exc
    return payload if isinstance(payload, dict) else None


def _find_projects_query(payload: dict[str, Any]) -> dict[str, Any] | None:
    state = _nested_map(payload, "props", "pageProps", "dehydratedState")
    if state is None:
        return None
    queries = [q for q in state.get("queries") or [] if isinstance(q, dict)]
    paginated = [q for q in queries if _nested_map(q, "state", "data", "meta", "pagination") is not None]
    for query in paginated:
        key = query.get("queryKey")
        if isinstance(key, list) and [to_str(part) for part in key[:2]] == ["search", "projects"]:
            return query
    return paginated[0] if paginated else None


def _read_total_pages(data: dict[str, Any]) -> int:
    pagination = _nested_map(data, "meta", "pagination")
    if pagination is None:
        return 0
    return to_int(pagination.get("total_pages")) or 0


def _skill_names(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    names = []
    for skill in raw:
        if not isinstance(skill, dict):
            continue
        name = to_str(skill.get("name"))
        if name:
            names.append(name)
    return names


def _nested_map(root: dict[str, Any], *keys: str) -> dict[str, Any] | None:
    current: Any = root
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current if isinstance(current, dict) else None

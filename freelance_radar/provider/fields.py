from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence, TypeVar

from ..util.budget import to_int, to_str

T = TypeVar("T")


def pick_first(item: Mapping[str, Any], extractors: Sequence[Callable[[Mapping[str, Any]], T | None]]) -> T | None:
    """Evaluate ``extractors`` in priority order; the first non-``None`` result wins."""
    for extract in extractors:
        value = extract(item)
        if value is not None:
            return value
    return None


def text_field(key: str) -> Callable[[Mapping[str, Any]], str | None]:
    """Extractor for a non-empty string (or number rendered as string)."""

    def extract(item: Mapping[str, Any]) -> str | None:
        return to_str(item.get(key)) or None

    return extract


def amount_field(key: str) -> Callable[[Mapping[str, Any]], int | None]:
    """Extractor for a monetary amount; zero and unparsable values count as absent."""

    def extract(item: Mapping[str, Any]) -> int | None:
        value = to_int(item.get(key))
        if not value:
            return None
        return value

    return extract


def count_field(key: str) -> Callable[[Mapping[str, Any]], int | None]:
    """Extractor for a count where zero is a real value."""

    def extract(item: Mapping[str, Any]) -> int | None:
        return to_int(item.get(key))

    return extract

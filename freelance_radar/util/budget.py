from __future__ import annotations

from typing import Any

# Budgets are in toman.
THRESHOLD = 99_000_000


def is_above_threshold(amount_min: int, amount_max: int) -> bool:
    """Either bound strictly above ``THRESHOLD`` qualifies a listing."""
    return amount_max > THRESHOLD or amount_min > THRESHOLD


def to_int(value: Any) -> int | None:
    """Lenient integer coercion for loosely typed JSON values.

    Returns ``None`` when the value cannot be read as a number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def to_str(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return f"{value:.0f}"
    if isinstance(value, int):
        return str(value)
    return ""


def format_budget_text(amount_min: int, amount_max: int) -> str:
    if amount_min > 0 and amount_max > 0:
        return f"از {_format_toman(amount_min)} تا {_format_toman(amount_max)} تومان"
    if amount_max > 0:
        return f"تا {_format_toman(amount_max)} تومان"
    if amount_min > 0:
        return f"از {_format_toman(amount_min)} تومان"
    return "نامشخص"


def _format_toman(amount: int) -> str:
    return f"{amount:,}"

from __future__ import annotations

import pytest

from freelance_radar.util.budget import THRESHOLD, format_budget_text, is_above_threshold, to_int, to_str


def test_threshold_is_strict() -> None:
    assert is_above_threshold(0, THRESHOLD) is False
    assert is_above_threshold(THRESHOLD, 0) is False
    assert is_above_threshold(0, THRESHOLD + 1) is True
    assert is_above_threshold(THRESHOLD + 1, 0) is True


@pytest.mark.parametrize(
    ("amount_min", "amount_max", "expected"),
    [
        (0, 0, False),
        (50_000_000, 99_000_000, False),
        (100_000_000, 0, True),
        (0, 100_000_000, True),
        (120_000_000, 150_000_000, True),
    ],
)
def test_either_bound_qualifies(amount_min: int, amount_max: int, expected: bool) -> None:
    assert is_above_threshold(amount_min, amount_max) is expected


def test_to_int_is_lenient() -> None:
    assert to_int(150_000_000) == 150_000_000
    assert to_int(1.9) == 1
    assert to_int(" 42 ") == 42
    assert to_int("12,000") is None
    assert to_int("abc") is None
    assert to_int(None) is None
    assert to_int(True) is None


def test_to_str_renders_numbers() -> None:
    assert to_str("abc") == "abc"
    assert to_str(123) == "123"
    assert to_str(123.0) == "123"
    assert to_str(None) == ""
    assert to_str({"id": 1}) == ""


def test_budget_text_variants() -> None:
    assert format_budget_text(100_000_000, 200_000_000) == "از 100,000,000 تا 200,000,000 تومان"
    assert format_budget_text(0, 150_000_000) == "تا 150,000,000 تومان"
    assert format_budget_text(150_000_000, 0) == "از 150,000,000 تومان"
    assert format_budget_text(0, 0) == "نامشخص"

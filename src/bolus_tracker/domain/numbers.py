"""Locale-aware number parsing and display rounding."""

import math
import re
from decimal import ROUND_HALF_UP, Decimal

_LEADING_NUMBER = re.compile(r"^\s*[-+]?(?:\d+(?:\.\d*)?|\.\d+)")
_NUMBER_RUN = re.compile(r"\d[\d.,]*")


def parse_locale_number(value: str | float | None) -> float:
    """Parse a pt-BR formatted number ("1.234,5") and return 0.0 on failure."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    text = str(value).replace(".", "").replace(",", ".", 1)
    match = _LEADING_NUMBER.match(text)
    if match is None:
        return 0.0
    number = float(match.group(0))
    return number if math.isfinite(number) else 0.0


def first_number(text: str | None) -> float:
    """Return the first number found anywhere in free text."""
    if not text:
        return 0.0
    match = _NUMBER_RUN.search(text)
    if match is None:
        return 0.0
    return parse_locale_number(match.group(0))


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounding up."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def round_one_decimal(value: float) -> float:
    """Round to one decimal place with halves rounding up."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def format_decimal(value: float) -> str:
    """Format with one decimal and a comma separator (13.8 -> "13,8")."""
    return f"{round_one_decimal(value):.1f}".replace(".", ",")


def format_grams(value: float) -> str:
    """Format a gram amount, dropping a trailing ",0"."""
    text = format_decimal(value)
    return text[:-2] if text.endswith(",0") else text

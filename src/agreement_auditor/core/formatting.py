# core/formatting.py
"""Rupiah formatting helpers. Indonesian style: '.' groups thousands, ',' marks decimals."""
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[int, float]

CURRENCY_SYMBOL = "Rp"
_NON_NUMERIC = re.compile(r"[^\d,\-]")


def _group_thousands(digits: str) -> str:
    groups = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    return ".".join(groups)


def format_currency(amount: Number) -> str:
    """Formats an amount as whole Rupiah, e.g. 8000000 -> 'Rp 8.000.000'."""
    rounded = int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    sign = "-" if rounded < 0 else ""
    # Non-breaking space, as browsers render the id-ID currency format.
    return f"{sign}{CURRENCY_SYMBOL}\u00a0{_group_thousands(str(abs(rounded)))}"


def format_thousand(value: Number) -> str:
    """Formats a number for an input field: 1500000 -> '1.500.000'. Empty for 0/None."""
    if not value:
        return ""
    sign = "-" if value < 0 else ""
    value = abs(value)
    if float(value).is_integer():
        return sign + _group_thousands(str(int(value)))
    whole, fraction = f"{value:f}".rstrip("0").split(".")
    return f"{sign}{_group_thousands(whole)},{fraction}"


def parse_number(text: Union[str, Number, None]) -> float:
    """
    Inverse of format_thousand. Accepts 'Rp 12.500', '1.500.000' or '12,5'.
    Returns 0 for empty input, raises ValueError when nothing numeric remains.
    """
    if text is None:
        return 0.0
    if isinstance(text, bool):
        raise ValueError(f"Not a number: {text!r}")
    if isinstance(text, (int, float)):
        return float(text)

    cleaned = _NON_NUMERIC.sub("", str(text).strip())
    if not str(text).strip():
        return 0.0
    if not re.search(r"\d", cleaned):
        raise ValueError(f"Not a number: {text!r}")

    cleaned = cleaned.replace(",", ".", 1).replace(",", "")
    try:
        return float(cleaned)
    except ValueError as e:
        raise ValueError(f"Not a number: {text!r}") from e

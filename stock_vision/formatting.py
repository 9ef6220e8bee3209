"""
Display formatting for scraped numbers.

Values read off the page are strings such as "5210900000000", "+433048" or
"24,772". Large amounts are abbreviated with Korean units (조, 억, 천만, 백만),
or T/B/M/K when the value is in dollars.
"""

import re
from typing import Any

_NUMBER_RE = re.compile(r'^([+-]?)\$?(\d+)(\.\d+)?(.*)$')
_KOREAN_UNIT_RE = re.compile(r'[조억]')


def add_commas(digits: str) -> str:
    """Insert thousands separators into a string of digits."""
    return re.sub(r'\B(?=(\d{3})+(?!\d))', ',', digits)


def _one_decimal(value: float) -> str:
    text = f"{value:.1f}"
    return text[:-2] if text.endswith(".0") else text


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def abbreviate_korean(num: float) -> str:
    """Abbreviate a large number with Korean units."""
    abs_num = abs(num)
    sign = "-" if num < 0 else ""

    if abs_num >= 1_000_000_000_000:
        jo = abs_num / 1_000_000_000_000
        if jo >= 10:
            return f"{sign}{_round_half_up(jo):,}조"
        return f"{sign}{_one_decimal(jo)}조"
    if abs_num >= 100_000_000:
        eok = abs_num / 100_000_000
        if eok >= 100:
            return f"{sign}{_round_half_up(eok):,}억"
        if eok >= 10:
            return f"{sign}{_round_half_up(eok)}억"
        return f"{sign}{_one_decimal(eok)}억"
    if abs_num >= 10_000_000:
        return f"{sign}{_one_decimal(abs_num / 10_000_000)}천만"
    if abs_num >= 1_000_000:
        return f"{sign}{_one_decimal(abs_num / 1_000_000)}백만"
    return sign + add_commas(str(_round_half_up(abs_num)))


def abbreviate_dollar(num: float) -> str:
    """Abbreviate a dollar amount with T/B/M/K suffixes."""
    abs_num = abs(num)
    sign = "-" if num < 0 else ""

    for threshold, suffix in ((1e12, "T"), (1e9, "B"), (1e6, "M"), (1e3, "K")):
        if abs_num >= threshold:
            return f"{sign}${_one_decimal(abs_num / threshold)}{suffix}"
    return f"{sign}$" + add_commas(str(_round_half_up(abs_num)))


def format_value(value: Any) -> str:
    """Format a scraped value for display; '-' when there is nothing to show."""
    if value is None or value == "N/A" or value == "":
        return "-"

    text = str(value).strip()

    # Already abbreviated on the page
    if _KOREAN_UNIT_RE.search(text):
        return text
    if "%" in text:
        return text

    is_dollar = "$" in text or "달러" in text
    match = _NUMBER_RE.match(text.replace(",", ""))
    if not match:
        return text

    sign, int_part, dec_part, suffix = match.group(1), match.group(2), match.group(3) or "", match.group(4)
    num = float(sign + int_part + dec_part)

    if abs(num) >= 1_000_000:
        if is_dollar:
            return abbreviate_dollar(num) + suffix
        return abbreviate_korean(num) + suffix

    prefix = "$" if is_dollar else ""
    return f"{sign}{prefix}{add_commas(int_part)}{dec_part}{suffix}"

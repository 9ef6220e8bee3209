"""
Consistency checks for extracted price data.

OCR can misread a table cell or assign a value to the neighbouring label;
these checks flag records whose prices contradict each other.
"""

import logging
import re
from typing import Any, List, Optional

from ..storage.models import ExtractedData

logger = logging.getLogger(__name__)

_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")


def parse_price(value: Any) -> Optional[float]:
    """Pull a number out of a scraped price string ("24,772원" -> 24772.0)."""
    if value is None or value == "N/A":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    cleaned = _NON_NUMERIC_RE.sub("", str(value))
    try:
        return float(cleaned)
    except ValueError:
        return None


def validate_extracted_data(data: ExtractedData, stock_name: str = "") -> List[str]:
    """Return human-readable warnings for logically inconsistent prices."""
    warnings: List[str] = []

    current = parse_price(data.current_price)
    prev_close = parse_price(data.prev_close)
    open_price = parse_price(data.open_price)
    high = parse_price(data.high_price)
    low = parse_price(data.low_price)

    if open_price is not None and prev_close is not None and open_price == prev_close:
        warnings.append(f"Open ({open_price:g}) equals previous close ({prev_close:g}) - needs verification")
    if high is not None and open_price is not None and high < open_price:
        warnings.append(f"High ({high:g}) < open ({open_price:g}) - abnormal data")
    if low is not None and open_price is not None and low > open_price:
        warnings.append(f"Low ({low:g}) > open ({open_price:g}) - abnormal data")
    if high is not None and low is not None and high < low:
        warnings.append(f"High ({high:g}) < low ({low:g}) - abnormal data")
    if current is not None and high is not None and current > high:
        warnings.append(f"Current price ({current:g}) > high ({high:g}) - abnormal data")
    if current is not None and low is not None and current < low:
        warnings.append(f"Current price ({current:g}) < low ({low:g}) - abnormal data")

    if warnings:
        logger.warning(f"[{stock_name}] Data validation warnings:")
        for warning in warnings:
            logger.warning(f"  - {warning}")

    return warnings

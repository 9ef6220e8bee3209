"""Tests for extracted price consistency checks."""

import pytest

from stock_vision.agents.validation import parse_price, validate_extracted_data
from stock_vision.storage.models import ExtractedData


def _data(**prices):
    return ExtractedData.model_validate(prices)


@pytest.mark.parametrize("value, expected", [
    ("24,772", 24772.0),
    ("24,772원", 24772.0),
    ("-120", -120.0),
    (24772, 24772.0),
    ("N/A", None),
    (None, None),
    ("", None),
])
def test_parse_price(value, expected):
    assert parse_price(value) == expected


def test_consistent_prices_have_no_warnings():
    data = _data(currentPrice="24,772", prevClose="24,892", openPrice="24,850",
                 highPrice="24,900", lowPrice="24,700")

    assert validate_extracted_data(data, "KODEX 200") == []


def test_open_equal_to_previous_close_is_flagged():
    data = _data(prevClose="24,850", openPrice="24,850")

    warnings = validate_extracted_data(data)

    assert len(warnings) == 1
    assert "previous close" in warnings[0]


def test_swapped_high_and_low_are_flagged():
    data = _data(currentPrice="24,800", openPrice="24,800", highPrice="24,700", lowPrice="24,900")

    warnings = validate_extracted_data(data)

    assert any("High (24700) < open (24800)" in w for w in warnings)
    assert any("Low (24900) > open (24800)" in w for w in warnings)
    assert any("High (24700) < low (24900)" in w for w in warnings)
    assert any("Current price (24800) > high (24700)" in w for w in warnings)
    assert any("Current price (24800) < low (24900)" in w for w in warnings)


def test_missing_values_are_not_checked():
    data = _data(currentPrice="24,772")

    assert validate_extracted_data(data) == []


def test_numbers_are_kept_as_page_text():
    data = _data(currentPrice=24772, marketCap=5210900000000)

    assert data.current_price == "24772"
    assert data.market_cap == "5210900000000"

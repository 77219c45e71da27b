from decimal import Decimal

import pytest

from invoice_parsing.locales import ConfigLoader, GENERIC_LOCALE

EXPECTED_LOCALES = ["AU", "CA", "CH", "DE", "EN", "ES", "FR", "GB", "IT", "JP"]


def test_all_locales_are_discovered():
    assert ConfigLoader.list_locales() == EXPECTED_LOCALES


@pytest.mark.parametrize("code", EXPECTED_LOCALES)
def test_locale_config_is_complete(code):
    config = ConfigLoader.load_locale(code)
    assert config.code == code
    assert config.supported
    assert config.currency is not None
    assert config.detection.high
    assert config.order_number_patterns
    assert config.item_patterns
    assert config.total_labels


def test_generic_config_has_no_currency():
    config = ConfigLoader.load_locale(GENERIC_LOCALE)
    assert config.currency is None
    assert not config.supported
    assert config.order_number_patterns


@pytest.mark.parametrize("code, value, expected", [
    ("EN", Decimal("1234.5"), "$1,234.50"),
    ("DE", Decimal("159.98"), "159,98 €"),
    ("DE", Decimal("1234.56"), "1.234,56 €"),
    ("GB", Decimal("12"), "£12.00"),
    ("CH", Decimal("1234.5"), "CHF 1'234.50"),
    ("JP", Decimal("1234"), "¥1,234"),
])
def test_currency_format(code, value, expected):
    currency = ConfigLoader.load_locale(code).currency
    assert currency.format(value) == expected

import pytest

from invoice_parsing.s2_format_classification import FormatClassifier, FormatTag, classify


@pytest.fixture
def classifier():
    return FormatClassifier()


DOMESTIC_TEXT = """amazon.com
Order #123-4567890-1234567
Order Placed: December 15, 2023
Sold by: Example Store
Grand Total: $86.38"""

REGIONAL_TEXT = """www.amazon.de
Rechnung
Bestellnummer 305-1234567-7654321
15. Dezember 2023
Gesamtbetrag 159,98 €"""


def test_domestic(classifier):
    result = classifier.classify_detailed(DOMESTIC_TEXT)
    assert result.tag == FormatTag.DOMESTIC
    assert result.confidence == 100
    assert result.quality_level == "HIGH"
    assert result.subtype is None
    assert "amazon.com" in result.matched_signals


def test_regional(classifier):
    result = classifier.classify_detailed(REGIONAL_TEXT)
    assert result.tag == FormatTag.REGIONAL
    assert result.scores["regional"] > result.scores["domestic"]
    assert result.subtype == "consumer"


def test_matching_is_case_insensitive(classifier):
    assert classifier.classify("AMAZON.COM ORDER PLACED: today") == FormatTag.DOMESTIC


def test_no_signals_is_unknown(classifier):
    result = classifier.classify_detailed("hello world")
    assert result.tag == FormatTag.UNKNOWN
    assert result.confidence == 0
    assert result.quality_action == "reject"


def test_below_min_score_is_unknown(classifier):
    # Один символ валюты (20) не дотягивает до порога
    assert classifier.classify("price 5 $") == FormatTag.UNKNOWN


def test_tie_goes_to_domestic(classifier):
    # "$" (20) + "USD" (20) против "€" (20) + "EUR" (20)
    result = classifier.classify_detailed("5 $ USD / 5 € EUR")
    assert result.scores == {"domestic": 40, "regional": 40}
    assert result.tag == FormatTag.DOMESTIC


def test_ambiguous_confidence_is_reduced(classifier):
    text = "amazon.com Order # Sold by: $ 10 Rechnung"
    result = classifier.classify_detailed(text)
    assert result.tag == FormatTag.DOMESTIC
    assert result.scores["domestic"] == 140
    assert result.confidence == 100

    text = "Order # Sold by: Rechnung"
    result = classifier.classify_detailed(text)
    assert result.scores == {"domestic": 80, "regional": 25}
    assert result.confidence == 60
    assert result.quality_level == "MEDIUM"


@pytest.mark.parametrize("value", ["", "   ", None, 42])
def test_empty_or_non_string(classifier, value):
    assert classifier.classify(value) == FormatTag.UNKNOWN


def test_business_subtype(classifier):
    text = REGIONAL_TEXT + "\nRechnung an\nBeispiel GmbH\nUSt-IdNr DE123456789\n"
    assert classifier.classify_detailed(text).subtype == "business"


def test_amazon_polish_registration_is_not_business(classifier):
    text = (
        "amazon.pl Faktura 10,00 €\n"
        "Amazon EU S.à r.l., SP. Z O.O. ODDZIAŁ W POLSCE\n"
    )
    result = classifier.classify_detailed(text)
    assert result.tag == FormatTag.REGIONAL
    assert result.subtype == "consumer"


def test_to_dict(classifier):
    data = classifier.classify_detailed(DOMESTIC_TEXT).to_dict()
    assert data["format"] == "domestic"
    assert data["quality"] == {"level": "HIGH", "action": "accept"}


def test_module_function():
    assert classify(REGIONAL_TEXT) == FormatTag.REGIONAL


@pytest.mark.parametrize("tail, subtype", [
    ("| 1 | Kabel |\nASIN: B000\n", "business"),
    ("ASIN: B000\n| 1 | Kabel |\n", "consumer"),
])
def test_tie_decided_by_table_before_asin(classifier, tail, subtype):
    # amazon.de (consumer) против GmbH (business): решает таблица до ASIN
    text = REGIONAL_TEXT + "\nBeispiel GmbH\n" + tail
    assert classifier.classify_detailed(text).subtype == subtype

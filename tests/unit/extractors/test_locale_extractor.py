from decimal import Decimal

import pytest

from contracts.invoice_dto import InvoiceItem
from invoice_parsing.locales import ConfigLoader
from invoice_parsing.s6_locale_extraction import GenericExtractor, LocaleExtractor


@pytest.fixture(scope="module")
def extractors():
    return {code: LocaleExtractor(ConfigLoader.load_locale(code)) for code in ("EN", "DE", "FR", "JP", "CH")}


EN_TEXT = """Order Confirmation
Order #123-4567890-1234567
Order Placed: December 15, 2023
Items Ordered
1 x Wireless Mouse $29.99
2 x AA Batteries $10.00
Shipping Address
Jane Doe
Subtotal: $49.99
Shipping: $0.00
Tax: $4.00
Promotion Applied: -$5.00
Grand Total: $48.99"""

DE_LINE_TEXT = """Rechnung
Bestellnummer: 305-1234567-7654321
Bestelldatum: 15. Dezember 2023
Bluetooth Kopfhörer 129,99 €
USB Ladekabel Set 29,99 €
Versand 0,00 €
Gesamtbetrag 159,98 €"""

DE_ASIN_TEXT = """Rechnung
Bestellnummer: 305-1234567-7654321
Bluetooth Kopfhörer mit Geräuschunterdrückung
ASIN: B08XYZ1234
109,24 €19%129,99 €129,99 €
USB-C Ladekabel 2m Schwarz
ASIN: B07ABC5678
29,99 €
Zwischensumme 159,98 €
MwSt. 19% 25,54 €
Gesamtbetrag 159,98 €"""

JP_TEXT = """Amazon.co.jp ご注文の確認
注文番号: 503-1234567-1234567
注文日: 2023年12月15日
ワイヤレスマウス ¥2,980
USBハブ ¥1,500
小計: ¥4,480
配送料: ¥0
合計: ¥4,480"""


# --- EN -------------------------------------------------------------------

def test_en_summary_fields(extractors):
    en = extractors["EN"]
    assert en.extract_subtotal(EN_TEXT) == "$49.99"
    assert en.extract_shipping(EN_TEXT) == "$0.00"
    assert en.extract_tax(EN_TEXT) == "$4.00"
    assert en.extract_total(EN_TEXT) == "$48.99"
    assert en.extract_discount(EN_TEXT) == "$5.00"


def test_en_order_fields(extractors):
    en = extractors["EN"]
    assert en.extract_order_number(EN_TEXT) == "123-4567890-1234567"
    assert en.extract_order_date(EN_TEXT) == "December 15, 2023"


def test_en_items_with_quantity(extractors):
    items = extractors["EN"].extract_items(EN_TEXT)
    assert [i.description for i in items] == ["Wireless Mouse", "AA Batteries"]
    assert items[1].quantity == 2
    assert items[1].total_price == Decimal("10.00")
    assert items[1].unit_price == Decimal("5.00")
    assert items[1].price == "$10.00"


def test_label_skips_non_amount_occurrence(extractors):
    # "Shipping Address" без суммы, берётся следующая строка "Shipping:"
    text = "Shipping Address\n123 Main St\nShipping: $3.99"
    assert extractors["EN"].extract_shipping(text) == "$3.99"


def test_en_full_record(extractors):
    record = extractors["EN"].extract(EN_TEXT)
    assert record.currency == "USD"
    assert record.vendor == "Amazon"
    assert record.validation is None
    assert record.language_detection is None
    assert len(record.items) == 2


# --- DE -------------------------------------------------------------------

def test_de_line_items_and_calculated_subtotal(extractors):
    de = extractors["DE"]
    items = de.extract_items(DE_LINE_TEXT)
    assert [i.price for i in items] == ["129,99 €", "29,99 €"]
    assert de.calculate_subtotal_from_items(items) == "159,98 €"

    record = de.extract(DE_LINE_TEXT)
    assert record.subtotal == "159,98 €"
    assert record.shipping == "0,00 €"
    assert record.total == "159,98 €"
    assert record.order_date == "15. Dezember 2023"


def test_de_asin_blocks(extractors):
    items = extractors["DE"].extract_items(DE_ASIN_TEXT)
    assert len(items) == 2
    assert items[0].description == "Bluetooth Kopfhörer mit Geräuschunterdrückung"
    assert items[0].price == "129,99 €"
    assert items[0].total_price == Decimal("129.99")
    assert items[1].description == "USB-C Ladekabel 2m Schwarz"
    assert items[1].total_price == Decimal("29.99")


def test_de_tax_label_with_rate(extractors):
    assert extractors["DE"].extract_tax(DE_ASIN_TEXT) == "25,54 €"


def test_asin_without_description_gets_default(extractors):
    text = "ASIN: B000000001\n12,00 €"
    items = extractors["DE"].extract_items(text)
    assert items[0].description == "Amazon Produkt"


# --- FR / CH / JP ---------------------------------------------------------

def test_fr_space_thousands(extractors):
    text = "Numéro de commande : 171-1234567-7654321\nTotal TTC 1 234,56 €"
    fr = extractors["FR"]
    assert fr.extract_total(text) == "1 234,56 €"
    assert fr.extract_order_number(text) == "171-1234567-7654321"


def test_ch_apostrophe_thousands(extractors):
    text = "Gesamtbetrag CHF 1'234.50"
    assert extractors["CH"].extract_total(text) == "CHF 1'234.50"


def test_jp_fields(extractors):
    jp = extractors["JP"]
    record = jp.extract(JP_TEXT)
    assert record.order_number == "503-1234567-1234567"
    assert record.order_date == "2023年12月15日"
    assert record.subtotal == "¥4,480"
    assert record.shipping == "¥0"
    assert record.total == "¥4,480"
    assert [i.total_price for i in record.items] == [Decimal("2980"), Decimal("1500")]
    assert jp.calculate_subtotal_from_items(record.items) == "¥4,480"


# --- Общие правила --------------------------------------------------------

def test_order_number_requires_exact_groups(extractors):
    en = extractors["EN"]
    assert en.extract_order_number("Order #12-4567890-1234567") is None
    assert en.extract_order_number("Ref 1123-4567890-12345678") is None


def test_date_falls_back_to_generic_search(extractors):
    assert extractors["EN"].extract_order_date("Shipped 03/11/2023") == "03/11/2023"


def test_invalid_labeled_date_is_skipped(extractors):
    text = "Order Placed: February 30, 2023\nDelivered: March 2, 2023"
    assert extractors["EN"].extract_order_date(text) == "March 2, 2023"


def test_items_need_a_real_description(extractors):
    assert extractors["EN"].extract_items("12 $5.00\n--- $3.00") == []


def test_summary_lines_are_not_items(extractors):
    items = extractors["EN"].extract_items("Subtotal $10.00\nTotal $10.00\nTax $1.00")
    assert items == []


@pytest.mark.parametrize("value", ["", None])
def test_total_on_empty_input(extractors, value):
    en = extractors["EN"]
    assert en.extract_items(value) == []
    assert en.extract_total(value) is None
    assert en.extract_order_number(value) is None
    assert en.extract_order_date(value) is None


def test_calculate_subtotal_without_prices(extractors):
    assert extractors["EN"].calculate_subtotal_from_items([]) is None


# --- Generic --------------------------------------------------------------

def test_generic_extractor():
    generic = GenericExtractor()
    text = "Zamówienie 402-9876543-1234567\nDatum 03.11.2023\nArtikel Foo Bar 12,50 €\nTotal 12,50 €"
    record = generic.extract(text)
    assert generic.language_code == "GENERIC"
    assert record.order_number == "402-9876543-1234567"
    assert record.order_date == "03.11.2023"
    assert record.total == "12,50 €"
    assert record.currency == "EUR"
    assert [i.description for i in record.items] == ["Artikel Foo Bar"]
    assert record.subtotal == "12,50 EUR"


def test_generic_order_number_not_inside_longer_sequence():
    generic = GenericExtractor()
    assert generic.extract_order_number("ID 9123-4567890-1234567") is None
    assert generic.extract_order_number("ID 123-4567890-1234567-9") is None


def test_generic_record_has_no_vendor():
    assert GenericExtractor().extract("Total 12,50 €").vendor is None


# --- Длинные строки и большие числа ---------------------------------------

def test_oversized_price_is_not_an_item(extractors):
    text = "2 x Gold bar collection $" + "9" * 29 + ".99\n1 x Wireless Mouse $29.99"
    items = extractors["EN"].extract_items(text)
    assert [i.description for i in items] == ["Wireless Mouse"]


def test_unit_price_skipped_beyond_decimal_precision(extractors):
    item = extractors["EN"]._build_item("Gold bar collection", 3, "$" + "9" * 28 + ".99")
    assert item.total_price == Decimal("9" * 28 + ".99")
    assert item.unit_price is None
    assert item.quantity == 3


def test_calculate_subtotal_beyond_decimal_precision(extractors):
    items = [InvoiceItem(description="Gold bar collection", total_price=Decimal("9" * 28), price="$" + "9" * 28)]
    assert extractors["EN"].calculate_subtotal_from_items(items) is None


def test_asin_price_after_long_digit_line(extractors):
    text = "Bluetooth Kopfhörer Premium\nASIN: B000\n" + "1" * 20000 + "\n129,99 €"
    items = extractors["DE"].extract_items(text)
    assert [i.price for i in items] == ["129,99 €"]
    assert items[0].description == "Bluetooth Kopfhörer Premium"

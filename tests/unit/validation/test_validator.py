from decimal import Decimal

import pytest

from contracts.invoice_dto import InvoiceItem, InvoiceRecord, Issue
from invoice_parsing.s7_validation import InvoiceValidator, classify_discrepancy, score_issues, validate


@pytest.fixture
def validator():
    return InvoiceValidator()


def _item(price: str, quantity: int = 1) -> InvoiceItem:
    total = Decimal(price)
    return InvoiceItem(
        description="Test item",
        quantity=quantity,
        unit_price=total / quantity,
        total_price=total,
        price=f"${price}",
    )


def _record(**overrides) -> InvoiceRecord:
    data = dict(
        order_number="123-4567890-1234567",
        order_date="December 15, 2023",
        items=[_item("29.99"), _item("49.99")],
        subtotal="$79.98",
        shipping="$0.00",
        tax="$6.40",
        total="$86.38",
        currency="USD",
    )
    data.update(overrides)
    return InvoiceRecord(**data)


def _types(result):
    return [issue.type for issue in result.errors + result.warnings]


def test_clean_record(validator):
    result = validator.validate(_record())
    assert result.score == 100
    assert result.is_valid
    assert result.errors == []
    assert result.warnings == []
    assert result.summary == "All validations passed"


def test_discrepancy_equal_to_tolerance_is_warning(validator):
    record = _record(items=[_item("99.00")], subtotal="$100.00", shipping=None, tax=None, total="$100.00")
    result = validator.validate(record)
    assert _types(result) == ["item_subtotal_mismatch"]
    assert result.warnings[0].severity == "warning"
    assert result.is_valid
    assert result.score == 95


def test_discrepancy_above_tolerance_is_high(validator):
    record = _record(items=[_item("98.99")], subtotal="$100.00", shipping=None, tax=None, total="$100.00")
    result = validator.validate(record)
    assert result.errors[0].type == "item_subtotal_mismatch"
    assert result.errors[0].severity == "high"
    assert not result.is_valid
    assert result.score == 85


def test_large_discrepancy_is_critical(validator):
    record = _record(items=[_item("50.00")], subtotal="$100.00", shipping=None, tax=None, total="$100.00")
    result = validator.validate(record)
    assert result.errors[0].severity == "critical"
    assert result.score == 70


def test_minor_discrepancy_is_ignored(validator):
    record = _record(items=[_item("99.95")], subtotal="$100.00", shipping=None, tax=None, total="$100.00")
    assert validator.validate(record).score == 100


def test_items_compared_with_total_without_subtotal(validator):
    record = _record(subtotal=None, shipping=None, tax=None, total="$60.00")
    result = validator.validate(record)
    assert result.errors[0].fields == ["items", "total"]


def test_quantity_uses_unit_price(validator):
    record = _record(items=[_item("20.00", quantity=4)], subtotal="$20.00", shipping=None, tax=None, total="$20.00")
    assert validator.validate(record).score == 100


def test_mathematical_inconsistency(validator):
    result = validator.validate(_record(total="$120.00"))
    assert "mathematical_inconsistency" in _types(result)
    assert not result.is_valid


def test_discount_is_subtracted(validator):
    record = _record(discount="$5.00", total="$81.38")
    assert validator.validate(record).score == 100


def test_negative_discount_is_subtracted_once(validator):
    record = _record(discount="-$5.00", total="$81.38")
    assert validator.validate(record).score == 100


def test_missing_fields(validator):
    result = validator.validate(InvoiceRecord())
    assert sorted(_types(result)) == ["missing_critical_field", "missing_critical_field", "missing_date"]
    assert result.score == 65
    assert not result.is_valid
    assert result.summary == "3 validation issues found: 2 errors, 1 warning"


def test_invalid_amount_format(validator):
    result = validator.validate(_record(tax="n/a"))
    assert "invalid_amount_format" in _types(result)
    assert not result.is_valid


@pytest.mark.parametrize("order_date, issue_type", [
    ("December 15, 2099", "future_date"),
    ("March 1, 2005", "very_old_date"),
    ("32 December 2023", "invalid_date_format"),
])
def test_date_checks(validator, order_date, issue_type):
    result = validator.validate(_record(order_date=order_date))
    assert _types(result) == [issue_type]
    assert result.is_valid
    assert result.score == 95


def test_subtotal_without_items(validator):
    result = validator.validate(_record(items=[]))
    assert _types(result) == ["no_items_found"]


def test_inconsistent_currencies(validator):
    record = _record(currency=None, shipping="0,00 €", tax=None, total="$79.98")
    result = validator.validate(record)
    assert _types(result) == ["inconsistent_currencies"]
    assert result.summary == "1 validation issue found: 1 warning"


def test_attach_returns_copy(validator):
    record = _record()
    attached = validator.attach(record)
    assert record.validation is None
    assert attached.validation.score == 100
    assert attached.order_number == record.order_number


@pytest.mark.parametrize("discrepancy, expected", [
    ("0.05", None),
    ("0.10", "warning"),
    ("1.00", "warning"),
    ("1.01", "high"),
    ("10.01", "critical"),
    ("-1.01", "high"),
])
def test_classify_discrepancy(discrepancy, expected):
    assert classify_discrepancy(Decimal(discrepancy), Decimal("100.00")) == expected


def test_score_is_monotonic_and_bounded():
    issues = []
    previous = score_issues(issues)
    assert previous == 100
    for severity in ["warning", "high", "critical"] * 4:
        issues.append(Issue(type="x", severity=severity, message="x"))
        score = score_issues(issues)
        assert 0 <= score <= previous
        previous = score
    assert previous == 0


def test_module_function():
    assert validate(_record()).is_valid

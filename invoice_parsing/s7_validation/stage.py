"""
Stage 7: Validation

ЦКП: Оценка 0..100 и список проблем для извлечённой записи.

Input: InvoiceRecord из Stage 6
Output: ValidationResult (запись не изменяется, результат присоединяется копией)

Проверки:
1. Сумма позиций vs subtotal (или total, если subtotal нет)
2. subtotal + shipping + tax - discount ≈ total
3. Обязательные поля, дата, валюты, формат сумм

Severity расхождения d относительно базы b:
- d < MINOR_DISCREPANCY_THRESHOLD: не проблема
- d <= VALIDATION_TOLERANCE: warning (округление)
- d > VALIDATION_TOLERANCE и d > CRITICAL_DISCREPANCY_RATIO * |b|: critical
- иначе: high
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from loguru import logger

from config.settings import (
    CRITICAL_DISCREPANCY_RATIO,
    CURRENCY_DECIMAL_SEPARATORS,
    MAX_SCORE,
    MAX_YEAR_OFFSET_FUTURE,
    MIN_ORDER_YEAR,
    MINOR_DISCREPANCY_THRESHOLD,
    SEVERITY_PENALTIES,
    VALIDATION_TOLERANCE,
)
from contracts.invoice_dto import InvoiceRecord, Issue, Severity, ValidationResult
from ..domain.interfaces import IInvoiceValidator
from ..extraction.amount_parser import detect_currency, parse_amount
from ..extraction.date_checker import extract_year, normalize_date


AMOUNT_FIELDS = ("subtotal", "shipping", "tax", "discount", "total")
ERROR_SEVERITIES = ("critical", "high")


def classify_discrepancy(discrepancy: Decimal, base: Decimal) -> Optional[Severity]:
    """Severity расхождения или None, если расхождение в пределах шума."""
    discrepancy = abs(discrepancy)
    if discrepancy < MINOR_DISCREPANCY_THRESHOLD:
        return None
    if discrepancy <= VALIDATION_TOLERANCE:
        return "warning"
    if discrepancy > abs(base) * CRITICAL_DISCREPANCY_RATIO:
        return "critical"
    return "high"


def score_issues(issues: List[Issue]) -> int:
    """100 минус штрафы по severity, не ниже 0."""
    score = MAX_SCORE - sum(SEVERITY_PENALTIES[issue.severity] for issue in issues)
    return max(score, 0)


def build_summary(errors: List[Issue], warnings: List[Issue]) -> str:
    total = len(errors) + len(warnings)
    if total == 0:
        return "All validations passed"

    parts = []
    if errors:
        parts.append(f"{len(errors)} error{'s' if len(errors) > 1 else ''}")
    if warnings:
        parts.append(f"{len(warnings)} warning{'s' if len(warnings) > 1 else ''}")
    return f"{total} validation issue{'s' if total > 1 else ''} found: {', '.join(parts)}"


class InvoiceValidator(IInvoiceValidator):
    """
    Stage 7: Validation.

    ЦКП: Аннотация записи проблемами, без исправления значений.
    """

    def validate(self, record: InvoiceRecord) -> ValidationResult:
        """
        Проверяет запись счёта.

        Args:
            record: InvoiceRecord из экстрактора

        Returns:
            ValidationResult: score, is_valid (нет critical/high), errors, warnings, summary
        """
        issues: List[Issue] = []
        amounts = self._parse_amounts(record, issues)

        self._check_required_fields(record, issues)
        self._check_date(record, issues)
        self._check_items(record, amounts, issues)
        self._check_totals(amounts, issues)
        self._check_currencies(record, issues)

        errors = [i for i in issues if i.severity in ERROR_SEVERITIES]
        warnings = [i for i in issues if i.severity not in ERROR_SEVERITIES]
        result = ValidationResult(
            score=score_issues(issues),
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            summary=build_summary(errors, warnings),
        )

        logger.debug(f"[Validator] score={result.score}, valid={result.is_valid}: {result.summary}")
        return result

    def attach(self, record: InvoiceRecord) -> InvoiceRecord:
        """Копия записи с присоединённым ValidationResult."""
        return record.model_copy(update={"validation": self.validate(record)})

    def _parse_amounts(self, record: InvoiceRecord, issues: List[Issue]) -> Dict[str, Optional[Decimal]]:
        hint = CURRENCY_DECIMAL_SEPARATORS.get(record.currency)
        amounts: Dict[str, Optional[Decimal]] = {}
        for field in AMOUNT_FIELDS:
            raw = getattr(record, field)
            if raw is None:
                amounts[field] = None
                continue
            value = parse_amount(raw, hint)
            if value is None:
                issues.append(Issue(
                    type="invalid_amount_format",
                    severity="high",
                    message=f"{field} is not a valid amount: {raw}",
                    fields=[field],
                ))
            amounts[field] = value
        return amounts

    def _check_required_fields(self, record: InvoiceRecord, issues: List[Issue]) -> None:
        for field, label in (("order_number", "Order number"), ("total", "Total amount")):
            if not getattr(record, field):
                issues.append(Issue(
                    type="missing_critical_field",
                    severity="high",
                    message=f"{label} not found",
                    fields=[field],
                ))

    def _check_date(self, record: InvoiceRecord, issues: List[Issue]) -> None:
        if not record.order_date:
            issues.append(Issue(
                type="missing_date",
                severity="warning",
                message="Order date not found",
                fields=["order_date"],
            ))
            return

        if normalize_date(record.order_date) is None and normalize_date(record.order_date, True) is None:
            issues.append(Issue(
                type="invalid_date_format",
                severity="warning",
                message=f"Order date is not a calendar date: {record.order_date}",
                fields=["order_date"],
            ))
            return

        year = extract_year(record.order_date)
        max_year = date.today().year + MAX_YEAR_OFFSET_FUTURE
        if year is not None and year > max_year:
            issues.append(Issue(
                type="future_date",
                severity="warning",
                message=f"Order date is in the future: {record.order_date}",
                fields=["order_date"],
            ))
        elif year is not None and year < MIN_ORDER_YEAR:
            issues.append(Issue(
                type="very_old_date",
                severity="warning",
                message=f"Order date is before {MIN_ORDER_YEAR}: {record.order_date}",
                fields=["order_date"],
            ))

    def _check_items(self, record: InvoiceRecord, amounts: Dict[str, Optional[Decimal]], issues: List[Issue]) -> None:
        if not record.items:
            if record.subtotal:
                issues.append(Issue(
                    type="no_items_found",
                    severity="warning",
                    message="Subtotal present but no items were extracted",
                    fields=["items"],
                ))
            return

        item_sum = Decimal("0")
        priced = 0
        for item in record.items:
            if item.unit_price is not None:
                item_sum += item.unit_price * item.quantity
                priced += 1
            elif item.total_price is not None:
                item_sum += item.total_price
                priced += 1
        if not priced:
            return

        if amounts.get("subtotal") is not None:
            base_field, base = "subtotal", amounts["subtotal"]
        elif amounts.get("total") is not None:
            base_field, base = "total", amounts["total"]
        else:
            return

        discrepancy = abs(item_sum - base)
        severity = classify_discrepancy(discrepancy, base)
        if severity is not None:
            issues.append(Issue(
                type="item_subtotal_mismatch",
                severity=severity,
                message=f"Sum of items ({item_sum}) differs from {base_field} ({base}) by {discrepancy}",
                fields=["items", base_field],
            ))

    def _check_totals(self, amounts: Dict[str, Optional[Decimal]], issues: List[Issue]) -> None:
        subtotal = amounts.get("subtotal")
        total = amounts.get("total")
        if subtotal is None or total is None:
            return

        calculated = (
            subtotal
            + (amounts.get("shipping") or Decimal("0"))
            + (amounts.get("tax") or Decimal("0"))
            - abs(amounts.get("discount") or Decimal("0"))
        )
        discrepancy = abs(calculated - total)
        severity = classify_discrepancy(discrepancy, total)
        if severity is not None:
            issues.append(Issue(
                type="mathematical_inconsistency",
                severity=severity,
                message=f"Calculated total ({calculated}) differs from extracted total ({total}) by {discrepancy}",
                fields=["subtotal", "shipping", "tax", "discount", "total"],
            ))

    def _check_currencies(self, record: InvoiceRecord, issues: List[Issue]) -> None:
        codes = {
            code for code in (detect_currency(getattr(record, f)) for f in AMOUNT_FIELDS) if code
        }
        if len(codes) > 1:
            issues.append(Issue(
                type="inconsistent_currencies",
                severity="warning",
                message=f"Amounts use different currencies: {', '.join(sorted(codes))}",
                fields=list(AMOUNT_FIELDS),
            ))


_default_validator = InvoiceValidator()


def validate(record: InvoiceRecord) -> ValidationResult:
    """Stage 7 как функция: validate(record) -> ValidationResult."""
    return _default_validator.validate(record)

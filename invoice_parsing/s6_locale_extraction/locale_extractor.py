"""
Stage 6: Locale Extraction

ЦКП: InvoiceRecord, собранный за один проход по тексту.

Input: текст после Stage 3 + LocaleConfig выбранной локали
Output: InvoiceRecord без validation и language_detection

Один класс для всех локалей: различия (метки, паттерны, валюта,
порядок дат) приходят из YAML. Порядок паттернов в конфиге значим:
первый валидный матч выигрывает.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional, Pattern, Tuple

from loguru import logger

from config.settings import (
    ASIN_DEFAULT_DESCRIPTION,
    ASIN_LOOKAHEAD_LINES,
    ASIN_LOOKBEHIND_LINES,
    CURRENCY_DECIMAL_SEPARATORS,
    MIN_ITEM_DESCRIPTION_LENGTH,
)
from contracts.invoice_dto import InvoiceItem, InvoiceRecord
from ..domain.interfaces import ILocaleExtractor
from ..extraction.amount_parser import (
    CURRENCY_SYMBOLS,
    NUMBER_PATTERN,
    detect_currency,
    format_amount,
    parse_amount,
)
from ..extraction.date_checker import find_generic_date, is_valid_date
from ..locales.locale_config import PRICE_PLACEHOLDER, LocaleConfig


_ORDER_NUMBER_RE = re.compile(r"^\d{3}-\d{7}-\d{7}$")
_SPACED_NUMBER_PATTERN = (
    r"(?<![\d,'])(?<!\d\.)\d{1,3}(?:[ \u00a0\u202f]\d{3}){1,4}(?:[.,]\d{1,2})?(?![\d'])(?![.,]\d)"
)
_LETTER_RE = re.compile(r"[^\W\d_]")
_WHITESPACE_RE = re.compile(r"\s+")
_ASIN_RE = re.compile(r"ASIN:\s*([A-Z0-9]+)", re.IGNORECASE)
_CENT = Decimal("0.01")

# Метка, затем необязательные ".", "(inkl. MwSt.)" и "19%", затем разделители
_LABEL_CONNECTOR = (
    r"[.:]?"
    r"(?:[^\S\n]*\([^)\n]{0,30}\))?"
    r"(?:[^\S\n]*\d{1,2}(?:[.,]\d{1,2})?[^\S\n]*%)?"
    r"[\s.:]*"
)


class LocaleExtractor(ILocaleExtractor):
    """
    Stage 6: Locale Extraction.

    ЦКП: Поля счёта по паттернам одной локали.

    Все extract_* методы тотальны: None или [] вместо исключений.
    """

    def __init__(self, config: LocaleConfig):
        self.config = config
        self.language_code = config.code
        self._tag = f"[LocaleExtractor:{config.code}]"

        self._number_pattern = self._build_number_pattern()
        self._amount_pattern = self._build_amount_pattern()
        self._number_re = re.compile(self._number_pattern)

        self._order_number_res = self._compile(config.order_number_patterns)
        self._order_date_res = self._compile(config.order_date_patterns)
        self._skip_res = self._compile(config.skip_labels)
        self._item_res = self._compile(
            [p.replace(PRICE_PLACEHOLDER, f"(?P<price>{self._amount_pattern})") for p in config.item_patterns]
        )
        self._subtotal_res = self._compile_labels(config.subtotal_labels)
        self._shipping_res = self._compile_labels(config.shipping_labels)
        self._tax_res = self._compile_labels(config.tax_labels)
        self._total_res = self._compile_labels(config.total_labels)
        self._discount_res = self._compile_labels(config.discount_labels)

        symbols = "|".join(self._symbol_alternatives())
        self._asin_vat_row_re = re.compile(
            rf"({NUMBER_PATTERN})\s*(?:{symbols})\s*(\d{{1,2}})\s*%\s*({NUMBER_PATTERN})\s*(?:{symbols})"
            rf"\s*({NUMBER_PATTERN})\s*(?:{symbols})"
        )
        self._asin_price_row_re = re.compile(rf"({NUMBER_PATTERN})\s*(?:{symbols})")

        logger.debug(
            f"{self._tag} Инициализирован: {len(self._item_res)} item-паттернов, "
            f"валюта={config.currency.code if config.currency else 'любая'}"
        )

    # ------------------------------------------------------------------
    # Построение regex
    # ------------------------------------------------------------------

    def _symbol_alternatives(self) -> List[str]:
        if self.config.currency is not None:
            symbols = self.config.currency.all_symbols
        else:
            symbols = list(CURRENCY_SYMBOLS)
        return [re.escape(s) for s in sorted(symbols, key=len, reverse=True)]

    def _build_number_pattern(self) -> str:
        currency = self.config.currency
        if currency is None or currency.thousands_separator == " ":
            return rf"(?:{_SPACED_NUMBER_PATTERN}|{NUMBER_PATTERN})"
        return NUMBER_PATTERN

    def _build_amount_pattern(self) -> str:
        symbols = "|".join(self._symbol_alternatives())
        num = self._number_pattern
        return rf"(?:(?:{symbols})[^\S\n]*{num}|{num}[^\S\n]*(?:{symbols}))"

    def _compile(self, patterns: List[str]) -> List[Pattern]:
        compiled = []
        for pattern in patterns:
            try:
                compiled.append(re.compile(pattern, re.IGNORECASE | re.MULTILINE))
            except re.error as e:
                logger.error(f"{self._tag} Паттерн пропущен '{pattern}': {e}")
        return compiled

    def _compile_labels(self, labels: List[str]) -> List[Pattern]:
        return self._compile(
            [
                rf"(?<![\w-])(?:{label})(?!\w){_LABEL_CONNECTOR}[-−]?(?P<amount>{self._amount_pattern})"
                for label in labels
            ]
        )

    # ------------------------------------------------------------------
    # Суммы
    # ------------------------------------------------------------------

    @property
    def decimal_separator(self) -> Optional[str]:
        if self.config.currency is not None:
            return self.config.currency.decimal_separator
        return None

    def _render_amount(self, amount_text: str) -> str:
        """Сумма в формате локали ("$79.98", "159,98 €"); generic сохраняет текст как есть."""
        amount_text = amount_text.strip()
        if self.config.currency is None:
            return amount_text
        number = self._number_re.search(amount_text)
        if not number:
            return amount_text
        return self.config.currency.render(number.group(0))

    def _parse_price(self, price: str) -> Optional[Decimal]:
        hint = self.decimal_separator
        if hint is None:
            hint = CURRENCY_DECIMAL_SEPARATORS.get(detect_currency(price))
        return parse_amount(price, hint)

    def _find_amount(self, text: str, patterns: List[Pattern], field: str) -> Optional[str]:
        if not isinstance(text, str) or not text:
            return None
        for pattern in patterns:
            match = pattern.search(text)
            if not match:
                continue
            amount = self._render_amount(match.group("amount"))
            if self._parse_price(amount) is None:
                logger.trace(f"{self._tag} {field}: '{amount}' не разбирается, следующий паттерн")
                continue
            logger.trace(f"{self._tag} {field}: {amount}")
            return amount
        return None

    def extract_subtotal(self, text: str) -> Optional[str]:
        return self._find_amount(text, self._subtotal_res, "subtotal")

    def extract_shipping(self, text: str) -> Optional[str]:
        return self._find_amount(text, self._shipping_res, "shipping")

    def extract_tax(self, text: str) -> Optional[str]:
        return self._find_amount(text, self._tax_res, "tax")

    def extract_total(self, text: str) -> Optional[str]:
        return self._find_amount(text, self._total_res, "total")

    def extract_discount(self, text: str) -> Optional[str]:
        """Скидка/купон как положительная сумма в формате локали."""
        return self._find_amount(text, self._discount_res, "discount")

    # ------------------------------------------------------------------
    # Номер и дата заказа
    # ------------------------------------------------------------------

    def extract_order_number(self, text: str) -> Optional[str]:
        """
        Номер заказа по паттернам локали, затем структурный NNN-NNNNNNN-NNNNNNN.

        Совпадение принимается только после проверки длин групп цифр.
        """
        if not isinstance(text, str) or not text:
            return None
        for pattern in self._order_number_res:
            match = pattern.search(text)
            if not match:
                continue
            candidate = (match.group(1) if pattern.groups else match.group(0)).strip()
            if _ORDER_NUMBER_RE.match(candidate):
                logger.trace(f"{self._tag} Номер заказа: {candidate}")
                return candidate
        return None

    def extract_order_date(self, text: str) -> Optional[str]:
        """Дата заказа как в документе (метки локали, затем общий поиск)."""
        if not isinstance(text, str) or not text:
            return None
        month_first = self.config.month_first
        for pattern in self._order_date_res:
            for match in pattern.finditer(text):
                candidate = (match.group(1) if pattern.groups else match.group(0)).strip()
                if is_valid_date(candidate, month_first):
                    logger.trace(f"{self._tag} Дата заказа: {candidate}")
                    return candidate
        return find_generic_date(text, month_first)

    # ------------------------------------------------------------------
    # Позиции
    # ------------------------------------------------------------------

    def extract_items(self, text: str) -> List[InvoiceItem]:
        """
        Позиции счёта.

        Для локалей с asin_items сначала ищутся блоки "ASIN:" + строка цены;
        если их нет, строки разбираются item-паттернами по порядку.
        """
        if not isinstance(text, str) or not text:
            return []

        lines = text.split("\n")
        if self.config.asin_items:
            items = self._extract_asin_items(lines)
            if items:
                logger.debug(f"{self._tag} Позиций из ASIN-блоков: {len(items)}")
                return items

        items = []
        for raw_line in lines:
            line = raw_line.strip()
            if not line or self._is_summary_line(line):
                continue
            item = self._match_item_line(line)
            if item is not None:
                items.append(item)

        logger.debug(f"{self._tag} Позиций найдено: {len(items)}")
        return items

    def _is_summary_line(self, line: str) -> bool:
        return any(p.search(line) for p in self._skip_res)

    def _match_item_line(self, line: str) -> Optional[InvoiceItem]:
        for pattern in self._item_res:
            match = pattern.search(line)
            if not match:
                continue
            description = self._clean_description(match.group("description"))
            if description is None:
                continue
            quantity = 1
            if "qty" in pattern.groupindex and match.group("qty"):
                quantity = max(int(match.group("qty")), 1)
            return self._build_item(description, quantity, self._render_amount(match.group("price")))
        return None

    def _clean_description(self, raw: Optional[str]) -> Optional[str]:
        if not raw:
            return None
        description = _WHITESPACE_RE.sub(" ", raw).strip(" \t-|:")
        if len(description) < MIN_ITEM_DESCRIPTION_LENGTH or not _LETTER_RE.search(description):
            return None
        return description

    def _build_item(self, description: str, quantity: int, price: str) -> InvoiceItem:
        """Цена в строке = цена позиции; при quantity > 1 unit_price = total / quantity."""
        total = self._parse_price(price)
        unit = None
        if total is not None:
            try:
                unit = total if quantity == 1 else (total / quantity).quantize(_CENT, rounding=ROUND_HALF_UP)
            except InvalidOperation:
                # Больше знаков, чем точность Decimal: цену позиции оставляем, unit_price нет
                logger.warning(f"{self._tag} unit_price не посчитан для '{price}' x {quantity}")
        return InvoiceItem(
            description=description,
            quantity=quantity,
            unit_price=unit,
            total_price=total,
            price=price,
        )

    def _extract_asin_items(self, lines: List[str]) -> List[InvoiceItem]:
        items = []
        i = 0
        while i < len(lines):
            if not _ASIN_RE.search(lines[i]):
                i += 1
                continue

            price, price_index = self._find_asin_price(lines, i)
            if price is None:
                i += 1
                continue

            description = self._find_asin_description(lines, i)
            items.append(self._build_item(description, 1, price))
            i = price_index + 1
        return items

    def _find_asin_price(self, lines: List[str], asin_index: int) -> Tuple[Optional[str], int]:
        """Строка цены после ASIN: "base €rate%incl €final €" (берётся incl) или "N,NN €"."""
        end = min(asin_index + 1 + ASIN_LOOKAHEAD_LINES, len(lines))
        for j in range(asin_index + 1, end):
            line = lines[j].strip()
            vat_row = self._asin_vat_row_re.search(line)
            if vat_row:
                return self._render_amount(vat_row.group(3)), j
            simple_row = self._asin_price_row_re.search(line)
            if simple_row and "%" not in line:
                return self._render_amount(simple_row.group(1)), j
        return None, asin_index

    def _find_asin_description(self, lines: List[str], asin_index: int) -> str:
        start = max(0, asin_index - ASIN_LOOKBEHIND_LINES)
        for k in range(asin_index - 1, start - 1, -1):
            line = lines[k].strip()
            if line and not _ASIN_RE.search(line) and len(line) > 10 and _LETTER_RE.search(line):
                return _WHITESPACE_RE.sub(" ", line)
        return ASIN_DEFAULT_DESCRIPTION

    def calculate_subtotal_from_items(self, items: List[InvoiceItem]) -> Optional[str]:
        """Сумма цен позиций в формате валюты; None, если ни одна цена не разобрана."""
        if not items:
            return None

        total = Decimal("0")
        parsed = 0
        currency_code = None
        for item in items:
            value = item.total_price
            if value is None and item.price:
                value = self._parse_price(item.price)
            if value is None:
                continue
            total += value
            parsed += 1
            if currency_code is None and item.price:
                currency_code = detect_currency(item.price)

        if not parsed:
            return None

        try:
            if self.config.currency is not None:
                return self.config.currency.format(total)

            decimal_separator = CURRENCY_DECIMAL_SEPARATORS.get(currency_code, ".")
            thousands_separator = "." if decimal_separator == "," else ","
            number = format_amount(total, decimal_separator, thousands_separator)
        except InvalidOperation:
            logger.warning(f"{self._tag} Сумма позиций не форматируется ({parsed} цен), subtotal пропущен")
            return None
        return f"{number} {currency_code}" if currency_code else number

    # ------------------------------------------------------------------
    # Точка входа
    # ------------------------------------------------------------------

    def _record_currency(self, *amounts: Optional[str]) -> Optional[str]:
        if self.config.currency is not None:
            return self.config.currency.code
        for amount in amounts:
            code = detect_currency(amount) if amount else None
            if code:
                return code
        return None

    def extract(self, text: str) -> InvoiceRecord:
        """
        Извлекает полную запись счёта.

        Subtotal без явной метки считается по позициям.
        """
        if not isinstance(text, str):
            text = ""

        items = self.extract_items(text)
        subtotal = self.extract_subtotal(text)
        if subtotal is None:
            subtotal = self.calculate_subtotal_from_items(items)
            if subtotal is not None:
                logger.debug(f"{self._tag} Subtotal рассчитан по позициям: {subtotal}")

        total = self.extract_total(text)
        record = InvoiceRecord(
            order_number=self.extract_order_number(text),
            order_date=self.extract_order_date(text),
            items=items,
            subtotal=subtotal,
            shipping=self.extract_shipping(text),
            tax=self.extract_tax(text),
            discount=self.extract_discount(text),
            total=total,
            currency=self._record_currency(total, subtotal, *(item.price for item in items)),
            vendor=self.config.vendor,
        )

        logger.debug(
            f"{self._tag} Извлечено: order={record.order_number}, date={record.order_date}, "
            f"items={len(items)}, subtotal={subtotal}, total={total}"
        )
        return record

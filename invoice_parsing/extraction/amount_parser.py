"""
Amount Parser - Разбор и форматирование денежных сумм.

ЦКП: Decimal из локальной строки суммы и обратно.

SRP: Только числа (без поиска сумм в тексте).

Правила разбора:
1. Оба разделителя в строке: последний = дробный ("1.234,56", "1,234.56")
2. Один разделитель, встречается 1 раз, после него 1-2 цифры: дробный ("29,99")
3. Один разделитель, встречается 1 раз и совпадает с подсказкой валюты: дробный
4. Иначе разделитель тысяч ("1,234" для USD/JPY, "1.234" для EUR)
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Optional

from loguru import logger


# Символ -> ISO код (для generic экстрактора и проверки валют)
CURRENCY_SYMBOLS: Dict[str, str] = {
    "CHF": "CHF",
    "EUR": "EUR",
    "USD": "USD",
    "GBP": "GBP",
    "JPY": "JPY",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "円": "JPY",
    "$": "USD",
}

# Число как в документе: начинается и заканчивается цифрой, не длиннее 24 символов.
# Матч не начинается и не заканчивается внутри более длинной последовательности цифр,
# поэтому поиск по строке из одних цифр линейный, а слишком длинное число не матчится.
NUMBER_PATTERN = r"(?<![\d,'])(?<!\d\.)\d(?:[\d.,']{0,22}\d)?(?![\d'])(?![.,]\d)"

# Пробел/неразрывный пробел как разделитель тысяч ("1 234,56")
_SPACE_GROUP_RE = re.compile(r"(?<=\d)[ \u00a0\u202f](?=\d{3}(?!\d))")


def parse_amount(value: str, decimal_separator: Optional[str] = None) -> Optional[Decimal]:
    """
    Парсит строку суммы в Decimal.

    Args:
        value: Строка суммы ("$1,234.56", "159,98 €", "¥1,234", "-5,00 €")
        decimal_separator: Подсказка валюты ("," или "."), None = без подсказки

    Returns:
        Decimal или None, если цифр нет или строка не разбирается
    """
    if not isinstance(value, str) or not value.strip():
        return None

    text = _SPACE_GROUP_RE.sub("", value.strip())
    # Апостроф как разделитель тысяч (CHF "1'234.50")
    text = text.replace("'", "").replace("’", "")

    match = re.search(r"\d[\d.,]*", text)
    if not match:
        return None

    negative = "-" in text[:match.start()] or text.startswith("(")
    cleaned = match.group(0).rstrip(".,")

    normalized = _normalize_separators(cleaned, decimal_separator)
    try:
        amount = Decimal(normalized)
    except InvalidOperation:
        logger.trace(f"[AmountParser] Не удалось разобрать '{value}' -> '{normalized}'")
        return None

    return -amount if negative else amount


def _normalize_separators(cleaned: str, decimal_separator: Optional[str]) -> str:
    """Приводит число к виду '1234.56'."""
    has_comma = "," in cleaned
    has_dot = "." in cleaned

    if has_comma and has_dot:
        decimal_char = "," if cleaned.rfind(",") > cleaned.rfind(".") else "."
        thousands_char = "." if decimal_char == "," else ","
        return cleaned.replace(thousands_char, "").replace(decimal_char, ".")

    if not has_comma and not has_dot:
        return cleaned

    sep = "," if has_comma else "."
    count = cleaned.count(sep)
    if count == 1:
        fraction = cleaned.split(sep)[1]
        if 1 <= len(fraction) <= 2 or sep == decimal_separator:
            return cleaned.replace(sep, ".")

    return cleaned.replace(sep, "")


def format_amount(
    value: Decimal,
    decimal_separator: str = ".",
    thousands_separator: str = ",",
    decimals: int = 2,
) -> str:
    """
    Форматирует Decimal в локальную строку без символа валюты.

    Примеры:
    - format_amount(Decimal("1234.5"), ",", ".") -> "1.234,50"
    - format_amount(Decimal("1234"), ".", ",", decimals=0) -> "1,234"

    Raises:
        InvalidOperation: если после округления знаков больше, чем точность Decimal (28)
    """
    quant = Decimal(1).scaleb(-decimals)
    rounded = value.quantize(quant, rounding=ROUND_HALF_UP)

    sign = "-" if rounded < 0 else ""
    text = f"{abs(rounded):,.{decimals}f}"
    integer_part, _, fraction = text.partition(".")
    integer_part = integer_part.replace(",", thousands_separator)

    if decimals:
        return f"{sign}{integer_part}{decimal_separator}{fraction}"
    return f"{sign}{integer_part}"


def detect_currency(value: str) -> Optional[str]:
    """Определяет ISO код валюты по символу в строке суммы."""
    if not isinstance(value, str):
        return None
    for symbol, code in CURRENCY_SYMBOLS.items():
        if symbol in value:
            return code
    return None

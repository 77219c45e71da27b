"""
Вспомогательные модули извлечения: суммы и даты.
"""

from .amount_parser import (
    CURRENCY_SYMBOLS,
    NUMBER_PATTERN,
    parse_amount,
    format_amount,
    detect_currency,
)
from .date_checker import (
    normalize_date,
    is_valid_date,
    extract_year,
    find_generic_date,
)

__all__ = [
    "CURRENCY_SYMBOLS",
    "NUMBER_PATTERN",
    "parse_amount",
    "format_amount",
    "detect_currency",
    "normalize_date",
    "is_valid_date",
    "extract_year",
    "find_generic_date",
]

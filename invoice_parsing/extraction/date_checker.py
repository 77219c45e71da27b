"""
Date Checker - Проверка и нормализация дат заказа.

ЦКП: Решение "это реальная дата?" для извлечённой строки и ISO-форма даты.

Поддерживаемые формы:
- "December 15, 2023", "Dec 15 2023"
- "15. Dezember 2023", "15 décembre 2023", "15 de diciembre de 2023"
- "15.12.2023", "15/12/2023", "12/15/2023" (month_first), "15-12-2023"
- "2023-12-15", "2023/12/15"
- "2023年12月15日"
"""

import re
from datetime import date
from typing import Dict, Optional, Tuple

from loguru import logger


MONTHS: Dict[str, int] = {
    # English
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7, "aug": 8,
    "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
    # Deutsch
    "januar": 1, "jänner": 1, "februar": 2, "märz": 3, "mai": 5, "juni": 6, "juli": 7,
    "oktober": 10, "dezember": 12, "mär": 3, "okt": 10, "dez": 12,
    # Français
    "janvier": 1, "février": 2, "fevrier": 2, "mars": 3, "avril": 4, "juin": 6,
    "juillet": 7, "août": 8, "aout": 8, "septembre": 9, "octobre": 10,
    "novembre": 11, "décembre": 12, "decembre": 12,
    # Español
    "enero": 1, "febrero": 2, "marzo": 3, "abril": 4, "mayo": 5, "junio": 6,
    "julio": 7, "agosto": 8, "septiembre": 9, "setiembre": 9, "octubre": 10,
    "noviembre": 11, "diciembre": 12,
    # Italiano
    "gennaio": 1, "febbraio": 2, "aprile": 4, "maggio": 5, "giugno": 6,
    "luglio": 7, "settembre": 9, "ottobre": 10, "dicembre": 12,
}

_MONTH_ALT = "|".join(sorted(MONTHS, key=len, reverse=True))

_ISO_RE = re.compile(r"(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})")
_JP_RE = re.compile(r"(\d{4})\s*年\s*(\d{1,2})\s*月\s*(\d{1,2})\s*日")
_NUMERIC_RE = re.compile(r"(\d{1,2})[./-](\d{1,2})[./-](\d{4})")
_MONTH_DAY_YEAR_RE = re.compile(r"([^\W\d_]+)\.?\s+(\d{1,2}),?\s+(\d{4})")
_DAY_MONTH_YEAR_RE = re.compile(
    r"(\d{1,2})\.?\s+(?:de\s+)?([^\W\d_]+)\.?,?\s+(?:de\s+)?(\d{4})", re.IGNORECASE
)

# Общий поиск даты в тексте (fallback после локальных паттернов)
GENERIC_DATE_PATTERNS = [
    re.compile(r"(?<!\d)(\d{1,2}[/.-]\d{1,2}[/.-]\d{4})(?!\d)"),
    re.compile(rf"\b((?:{_MONTH_ALT})\.?\s+\d{{1,2}},?\s+\d{{4}})\b", re.IGNORECASE),
    re.compile(rf"\b(\d{{1,2}}\.?\s+(?:de\s+)?(?:{_MONTH_ALT})\.?\s+(?:de\s+)?\d{{4}})\b", re.IGNORECASE),
    re.compile(r"(?<!\d)(\d{4}-\d{2}-\d{2})(?!\d)"),
    re.compile(r"(\d{4}\s*年\s*\d{1,2}\s*月\s*\d{1,2}\s*日)"),
]


def _month_number(name: str) -> Optional[int]:
    return MONTHS.get(name.lower().rstrip("."))


def _to_iso(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _parse_parts(date_str: str, month_first: bool) -> Optional[Tuple[int, int, int]]:
    """Возвращает (year, month, day) без проверки календаря."""
    m = _ISO_RE.search(date_str)
    if m:
        return int(m.group(1)), int(m.group(2)), int(m.group(3))

    m = _JP_RE.search(date_str)
    if m:
        return int(m.group(1)), int(m.group(2)), int(m.group(3))

    m = _NUMERIC_RE.search(date_str)
    if m:
        first, second, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
        month, day = (first, second) if month_first else (second, first)
        if not 1 <= month <= 12 and 1 <= day <= 12:
            month, day = day, month
        return year, month, day

    m = _MONTH_DAY_YEAR_RE.search(date_str)
    if m and _month_number(m.group(1)):
        return int(m.group(3)), _month_number(m.group(1)), int(m.group(2))

    m = _DAY_MONTH_YEAR_RE.search(date_str)
    if m and _month_number(m.group(2)):
        return int(m.group(3)), _month_number(m.group(2)), int(m.group(1))

    return None


def normalize_date(date_str: str, month_first: bool = False) -> Optional[str]:
    """
    Приводит локальную дату к ISO (YYYY-MM-DD).

    Args:
        date_str: Дата как в документе
        month_first: Числовые даты в порядке MM/DD (US)

    Returns:
        "YYYY-MM-DD" или None, если дата не разбирается или не существует
    """
    if not isinstance(date_str, str) or not date_str.strip():
        return None

    parts = _parse_parts(date_str.strip(), month_first)
    if parts is None:
        return None
    return _to_iso(*parts)


def is_valid_date(date_str: str, month_first: bool = False) -> bool:
    """True, если строка является существующей календарной датой."""
    return normalize_date(date_str, month_first) is not None


def extract_year(date_str: str) -> Optional[int]:
    """Год из даты (после нормализации или по первому 4-значному числу)."""
    iso = normalize_date(date_str)
    if iso:
        return int(iso[:4])
    if isinstance(date_str, str):
        m = re.search(r"(?<!\d)(\d{4})(?!\d)", date_str)
        if m:
            return int(m.group(1))
    return None


def find_generic_date(text: str, month_first: bool = False) -> Optional[str]:
    """
    Ищет первую валидную дату в тексте по общим паттернам.

    Returns:
        Дата как в документе или None
    """
    if not isinstance(text, str) or not text:
        return None

    for pattern in GENERIC_DATE_PATTERNS:
        for match in pattern.finditer(text):
            candidate = match.group(1)
            if is_valid_date(candidate, month_first):
                logger.trace(f"[DateChecker] Generic дата: {candidate}")
                return candidate
    return None

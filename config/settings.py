"""
Настройки проекта Invoice Parsing.

Все пороги пайплайна собраны здесь. Числовые значения можно
переопределить через переменные окружения.
"""

import os
from decimal import Decimal
from pathlib import Path

# =============================================================================
# ПУТИ ПРОЕКТА
# =============================================================================
PROJECT_ROOT = Path(__file__).parent.parent
LOCALES_DIR = PROJECT_ROOT / "invoice_parsing" / "locales"

# =============================================================================
# НАСТРОЙКИ ОПРЕДЕЛЕНИЯ ФОРМАТА (Stage 2)
# =============================================================================
# Минимальный score, чтобы формат считался распознанным
FORMAT_MIN_SCORE = int(os.getenv("FORMAT_MIN_SCORE", "25"))

# =============================================================================
# НАСТРОЙКИ ОПРЕДЕЛЕНИЯ ЯЗЫКА (Stage 4)
# =============================================================================
# Ниже этого порога язык = UNKNOWN
MIN_LANGUAGE_CONFIDENCE = float(os.getenv("MIN_LANGUAGE_CONFIDENCE", "0.3"))

# Sentinel для неопределённого языка
UNKNOWN_LANGUAGE = "UNKNOWN"

# Порядок разрешения ничьих (первый выигрывает)
LANGUAGE_PRIORITY = os.getenv(
    "LANGUAGE_PRIORITY",
    "EN,DE,GB,FR,ES,IT,CA,AU,CH,JP",
).split(",")

# =============================================================================
# НАСТРОЙКИ ИЗВЛЕЧЕНИЯ (Stage 6)
# =============================================================================
# Минимальная длина описания товара
MIN_ITEM_DESCRIPTION_LENGTH = 4

# Сколько строк после "ASIN:" просматривать в поиске цены
ASIN_LOOKAHEAD_LINES = 4

# Сколько строк до "ASIN:" просматривать в поиске описания
ASIN_LOOKBEHIND_LINES = 10

# Описание по умолчанию, если рядом с ASIN нет подходящей строки
ASIN_DEFAULT_DESCRIPTION = "Amazon Produkt"

# Валидация даты: год заказа должен быть в [MIN_ORDER_YEAR, текущий + offset]
MIN_ORDER_YEAR = int(os.getenv("MIN_ORDER_YEAR", "2010"))
MAX_YEAR_OFFSET_FUTURE = 1

# Десятичный разделитель по коду валюты (для парсинга сумм)
CURRENCY_DECIMAL_SEPARATORS = {
    "USD": ".",
    "GBP": ".",
    "AUD": ".",
    "CAD": ",",
    "EUR": ",",
    "CHF": ".",
    "JPY": ".",
}

# =============================================================================
# НАСТРОЙКИ ВАЛИДАЦИИ (Stage 7)
# =============================================================================
# Допустимое абсолютное расхождение (в единицах валюты)
VALIDATION_TOLERANCE = Decimal(os.getenv("VALIDATION_TOLERANCE", "1.00"))

# Расхождение ниже этого порога не считается проблемой
MINOR_DISCREPANCY_THRESHOLD = Decimal(os.getenv("MINOR_DISCREPANCY_THRESHOLD", "0.10"))

# Доля от базы, выше которой расхождение критично
CRITICAL_DISCREPANCY_RATIO = Decimal(os.getenv("CRITICAL_DISCREPANCY_RATIO", "0.10"))

# Штрафы к score по severity
SEVERITY_PENALTIES = {
    "critical": 30,
    "high": 15,
    "warning": 5,
}

MAX_SCORE = 100
